"""
启发式决策策略

对合法出牌逐一打分，取分数最低者:
- 危险度: 由对手最少剩余牌数决定
- 保留结构: 为凑小牌型拆散对子/三条/铁支要扣分，危险时放宽
- 控制牌: 出 A/2 要扣分，危险时放宽
- 残局: 手牌不多时鼓励多出牌，能一手出完则强烈优先
- 主动出牌: 优先出多张，避免陷入单张缠斗
- 跟牌: 安全时用最小的牌压，危险时用大牌压
"""
from enum import Enum
from typing import List, Optional, Tuple, Sequence
import logging

import numpy as np

from core.cards import Card, Rank, group_by_rank
from core.actions import Play, enumerate_plays
from core.decision import Decision, DecisionContext

from .base import Strategy
from .config import HeuristicConfig

logger = logging.getLogger(__name__)


class DangerLevel(Enum):
    """对手接近获胜的程度"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def factor(self) -> float:
        return _DANGER_FACTORS[self]


_DANGER_FACTORS = {
    DangerLevel.LOW: 0.0,
    DangerLevel.MEDIUM: 0.5,
    DangerLevel.HIGH: 1.0,
}


def danger_level(context: DecisionContext, config: HeuristicConfig) -> DangerLevel:
    """根据对手最少剩余牌数判断危险度"""
    smallest = context.min_opponent_hand_size
    if smallest is None:
        return DangerLevel.LOW
    if smallest <= config.high_danger_hand_size:
        return DangerLevel.HIGH
    if smallest <= config.medium_danger_hand_size:
        return DangerLevel.MEDIUM
    return DangerLevel.LOW


def play_strength(play: Play, config: HeuristicConfig) -> float:
    """单一数值的出牌强度，五张牌型的等级优先于牌值"""
    return play.hierarchy * config.five_card_tier_scale + play.value


def broken_groups(play: Play, hand: Sequence[Card]) -> int:
    """出牌拆散了手中多少个同点数组 (对子及以上)"""
    groups = group_by_rank(hand)
    used = group_by_rank(play.cards)
    broken = 0
    for rank, cards in used.items():
        have = len(groups.get(rank, ()))
        if have >= 2 and len(cards) < have:
            broken += 1
    return broken


def score_play(
    play: Play,
    hand: Sequence[Card],
    table_lead: Optional[Play],
    context: DecisionContext,
    config: Optional[HeuristicConfig] = None,
) -> float:
    """
    给单个候选出牌打分 (越低越好)

    Args:
        play: 候选出牌
        hand: 当前手牌
        table_lead: 桌面出牌 (None 表示主动出牌)
        context: 决策上下文
        config: 评分权重

    Returns:
        分数
    """
    config = config or HeuristicConfig()
    danger = danger_level(context, config)
    factor = danger.factor
    hand_size = len(hand)
    score = 0.0

    # 保留结构
    score += (
        broken_groups(play, hand)
        * config.structure_penalty
        * (1.0 - config.structure_danger_relief * factor)
    )

    # 控制牌
    control = sum(
        config.ace_penalty if c.rank == Rank.ACE else config.two_penalty
        for c in play.cards if c.rank in (Rank.ACE, Rank.TWO)
    )
    score += control * (1.0 - config.control_danger_relief * factor)

    # 残局
    if hand_size <= config.endgame_hand_size:
        score -= config.endgame_card_bonus * play.size
        if play.size == hand_size:
            score -= config.endgame_finish_bonus

    if table_lead is None:
        score += config.lead_value_weights[danger.value] * play.value
        multi_weight = (
            config.lead_multi_base
            + config.lead_multi_per_card * min(hand_size, 13)
            + config.lead_multi_danger * factor
        )
        score -= (play.size - 1) * multi_weight
    else:
        margin = play_strength(play, config) - play_strength(table_lead, config)
        score += config.response_margin_weights[danger.value] * margin

    return score


def rank_candidates(
    candidates: Sequence[Play],
    hand: Sequence[Card],
    table_lead: Optional[Play],
    context: DecisionContext,
    config: Optional[HeuristicConfig] = None,
) -> List[Tuple[float, Play]]:
    """
    给所有候选打分并按分数升序排列

    候选顺序需确定 (如 enumerate_plays 的输出)，平分时按顺序加微小偏移

    Returns:
        (分数, 出牌) 列表
    """
    config = config or HeuristicConfig()
    scored = [
        (score_play(play, hand, table_lead, context, config) + i * config.tie_break_step, i, play)
        for i, play in enumerate(candidates)
    ]
    scored.sort(key=lambda x: (x[0], x[1]))
    return [(score, play) for score, _, play in scored]


class HeuristicStrategy(Strategy):
    """
    启发式策略

    Args:
        config: 评分权重
        rng: 随机数生成器 (仅在 exploration > 0 时使用)
        seed: 未提供 rng 时的随机种子
        name: 名称
    """

    def __init__(
        self,
        config: Optional[HeuristicConfig] = None,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
        name: str = "heuristic",
    ):
        super().__init__(name)
        self.config = config or HeuristicConfig()
        self.rng = rng if rng is not None else np.random.default_rng(seed)

    def decide(
        self,
        hand: List[Card],
        table_lead: Optional[Play],
        context: Optional[DecisionContext] = None,
    ) -> Decision:
        if context is None:
            context = DecisionContext(hand_size=len(hand), is_leading=table_lead is None)

        candidates = enumerate_plays(hand, table_lead, context.move_history, context.opening_card)
        if not candidates:
            logger.debug(f"{self.name}: no legal plays, passing")
            return Decision.pass_turn()

        ranked = rank_candidates(candidates, hand, table_lead, context, self.config)
        choice = ranked[0][1]

        if (
            self.config.exploration > 0
            and len(ranked) > 1
            and self.rng.random() < self.config.exploration
        ):
            choice = ranked[1][1]

        logger.debug(f"{self.name}: play {choice} (score {ranked[0][0]:.3f})")
        return Decision.play(choice.cards)
