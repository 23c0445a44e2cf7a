"""
策略配置

启发式评分权重与外部策略参数
"""
from dataclasses import dataclass, field
from typing import Dict, Any


@dataclass
class HeuristicConfig:
    """
    启发式策略配置 (分数越低越优先)

    Attributes:
        high_danger_hand_size: 对手剩余牌数不超过该值时为高危
        medium_danger_hand_size: 对手剩余牌数不超过该值时为中危
        structure_penalty: 拆散对子/三条/铁支的惩罚
        structure_danger_relief: 危险度对拆牌惩罚的削减比例
        ace_penalty: 出 A 的惩罚
        two_penalty: 出 2 的惩罚
        control_danger_relief: 危险度对控制牌惩罚的削减比例
        endgame_hand_size: 手牌不超过该值时进入残局模式
        endgame_card_bonus: 残局每多出一张牌的奖励 (负分)
        endgame_finish_bonus: 一手出完的奖励 (负分)
        lead_value_weights: 主动出牌时按危险度对牌值的权重
        lead_multi_base: 主动出多张的基础奖励
        lead_multi_per_card: 主动出多张奖励随手牌数增长的系数
        lead_multi_danger: 主动出多张奖励随危险度增长的系数
        response_margin_weights: 跟牌时按危险度对超出幅度的权重
        five_card_tier_scale: 五张牌型等级在强度中的放大系数
        tie_break_step: 按候选顺序的微小偏移，保证平分时结果稳定
        exploration: 选择次优出牌的概率 (0 为完全确定)
    """
    # 危险度
    high_danger_hand_size: int = 2
    medium_danger_hand_size: int = 4

    # 保留牌型结构
    structure_penalty: float = 4.0
    structure_danger_relief: float = 0.7

    # 控制牌
    ace_penalty: float = 3.0
    two_penalty: float = 4.0
    control_danger_relief: float = 0.9

    # 残局
    endgame_hand_size: int = 5
    endgame_card_bonus: float = 3.0
    endgame_finish_bonus: float = 100.0

    # 主动出牌
    lead_value_weights: Dict[str, float] = field(
        default_factory=lambda: {"low": 0.3, "medium": 0.15, "high": -0.2}
    )
    lead_multi_base: float = 1.0
    lead_multi_per_card: float = 0.1
    lead_multi_danger: float = 1.0

    # 跟牌
    response_margin_weights: Dict[str, float] = field(
        default_factory=lambda: {"low": 1.0, "medium": 0.4, "high": -0.6}
    )
    five_card_tier_scale: float = 20.0

    tie_break_step: float = 1e-6
    exploration: float = 0.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'HeuristicConfig':
        """从字典创建配置"""
        valid_keys = cls.__dataclass_fields__.keys()
        filtered = {k: v for k, v in d.items() if k in valid_keys}
        return cls(**filtered)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        return {
            "high_danger_hand_size": self.high_danger_hand_size,
            "medium_danger_hand_size": self.medium_danger_hand_size,
            "structure_penalty": self.structure_penalty,
            "structure_danger_relief": self.structure_danger_relief,
            "ace_penalty": self.ace_penalty,
            "two_penalty": self.two_penalty,
            "control_danger_relief": self.control_danger_relief,
            "endgame_hand_size": self.endgame_hand_size,
            "endgame_card_bonus": self.endgame_card_bonus,
            "endgame_finish_bonus": self.endgame_finish_bonus,
            "lead_value_weights": dict(self.lead_value_weights),
            "lead_multi_base": self.lead_multi_base,
            "lead_multi_per_card": self.lead_multi_per_card,
            "lead_multi_danger": self.lead_multi_danger,
            "response_margin_weights": dict(self.response_margin_weights),
            "five_card_tier_scale": self.five_card_tier_scale,
            "tie_break_step": self.tie_break_step,
            "exploration": self.exploration,
        }


@dataclass
class ExternalStrategyConfig:
    """
    外部策略配置

    Attributes:
        timeout_s: 单次决策的硬超时 (秒)
        explanation_limit: 说明文字的最大长度
        history_length: 提示中包含的最近出牌数
        model: 语言模型名称 (由调用方的 client 解释)
        temperature: 采样温度
    """
    timeout_s: float = 3.0
    explanation_limit: int = 100
    history_length: int = 5
    model: str = ""
    temperature: float = 0.2

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'ExternalStrategyConfig':
        valid_keys = cls.__dataclass_fields__.keys()
        filtered = {k: v for k, v in d.items() if k in valid_keys}
        return cls(**filtered)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timeout_s": self.timeout_s,
            "explanation_limit": self.explanation_limit,
            "history_length": self.history_length,
            "model": self.model,
            "temperature": self.temperature,
        }


# 预定义配置
STANDARD = HeuristicConfig()

EASY = HeuristicConfig(exploration=0.3)

HARD = HeuristicConfig(
    structure_penalty=5.0,
    ace_penalty=4.5,
    two_penalty=6.0,
)
