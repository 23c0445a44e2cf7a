"""
策略基类
"""
from typing import List, Optional

from core.cards import Card
from core.actions import Play
from core.decision import Decision, DecisionContext


class Strategy:
    """决策策略基类"""

    def __init__(self, name: str = "strategy"):
        self.name = name

    def decide(
        self,
        hand: List[Card],
        table_lead: Optional[Play],
        context: DecisionContext,
    ) -> Decision:
        """选择出牌或过牌"""
        raise NotImplementedError

    def reset(self):
        """重置状态"""
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"
