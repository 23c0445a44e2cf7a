"""
决策接口的数据类型

策略 (启发式 / 外部模型) 与状态机之间只通过这里的类型交互
"""
from dataclasses import dataclass, field
from typing import Dict, Tuple, Optional, Iterable, Sequence

from .cards import Card, sort_cards, cards_to_str

PLAY = "play"
PASS = "pass"


@dataclass(frozen=True)
class Decision:
    """
    策略给出的动作

    Attributes:
        action: "play" 或 "pass"
        cards: 出的牌 (pass 时为空)
        explanation: 可选的说明 (外部策略返回)
    """
    action: str
    cards: Tuple[Card, ...] = ()
    explanation: Optional[str] = None

    @classmethod
    def play(cls, cards: Iterable[Card], explanation: Optional[str] = None) -> 'Decision':
        return cls(action=PLAY, cards=tuple(sort_cards(cards)), explanation=explanation)

    @classmethod
    def pass_turn(cls, explanation: Optional[str] = None) -> 'Decision':
        return cls(action=PASS, explanation=explanation)

    @property
    def is_pass(self) -> bool:
        return self.action == PASS

    def __str__(self) -> str:
        if self.is_pass:
            return "pass"
        return f"play {cards_to_str(self.cards)}"


@dataclass(frozen=True)
class DecisionContext:
    """
    决策上下文

    Attributes:
        seat_id: 决策座位
        hand_size: 自己剩余手牌数
        round_number: 当前轮次
        is_leading: 是否主动出牌 (桌面为空)
        is_opening_play: 是否整局第一手
        opponent_hand_sizes: 对手剩余手牌数
        recent_moves: 最近几手出牌 (最多 core.state.RECENT_MOVES 手，更长的历史见 move_history)
        move_history: 完整出牌历史 (用于开局约束判断)
        opening_card: 开局约束牌
    """
    seat_id: str = ""
    hand_size: int = 0
    round_number: int = 1
    is_leading: bool = True
    is_opening_play: bool = False
    opponent_hand_sizes: Dict[str, int] = field(default_factory=dict)
    recent_moves: Sequence = ()
    move_history: Sequence = ()
    opening_card: Optional[Card] = None

    @property
    def min_opponent_hand_size(self) -> Optional[int]:
        """最接近获胜的对手剩余牌数 (已出完的不计)"""
        sizes = [n for n in self.opponent_hand_sizes.values() if n > 0]
        return min(sizes) if sizes else None
