"""
规则引擎 - 牌型检测、大小比较、合法性验证

所有方法都是纯函数，无状态
"""
from dataclasses import dataclass
from typing import List, Optional, Sequence, Iterable
from collections import Counter

from .cards import Card, Rank, card_value
from .actions import Play, HandType, HAND_HIERARCHY, PlayGenerator
from .errors import StructuralError, RankingError, OpeningConstraintError


@dataclass(frozen=True)
class HandClassification:
    """
    牌型判断结果

    Attributes:
        valid: 是否为合法牌型
        hand_type: 牌型 (不合法时为 None)
        value: 同牌型比较用的强度
        reason: 不合法的原因
    """
    valid: bool
    hand_type: Optional[HandType] = None
    value: float = 0.0
    reason: str = ""

    @property
    def hierarchy(self) -> int:
        if self.hand_type is None:
            return 0
        return HAND_HIERARCHY[self.hand_type]


class RuleEngine:
    """
    锄大地规则引擎

    提供牌型检测、大小比较、合法性验证等功能
    所有方法都是静态方法，无状态
    """

    @staticmethod
    def is_consecutive(ranks: List[int]) -> bool:
        """
        检查点数列表是否连续

        Args:
            ranks: 已排序的点数列表

        Returns:
            是否连续
        """
        for i in range(len(ranks) - 1):
            if ranks[i + 1] - ranks[i] != 1:
                return False
        return True

    @staticmethod
    def is_straight(cards: Sequence[Card]) -> bool:
        """五张点数各不相同且连续；2 不能参与顺子"""
        ranks = sorted(c.rank for c in cards)
        if len(set(ranks)) != 5 or Rank.TWO in ranks:
            return False
        return RuleEngine.is_consecutive(ranks)

    @staticmethod
    def is_flush(cards: Sequence[Card]) -> bool:
        return len({c.suit for c in cards}) == 1

    @staticmethod
    def _group_high(cards: Sequence[Card], rank: int) -> float:
        """同点数组内最大的牌值"""
        return max(card_value(c) for c in cards if c.rank == rank)

    @staticmethod
    def classify(cards: Iterable[Card]) -> HandClassification:
        """
        检测牌型

        与输入顺序无关；强度取自匹配到的点数组，而非排序后的位置

        Args:
            cards: 牌列表

        Returns:
            牌型判断结果
        """
        cards = sorted(cards, key=card_value)
        n = len(cards)

        if n not in (1, 2, 3, 5):
            return HandClassification(False, reason="Invalid number of cards")

        if len(set(cards)) != n:
            return HandClassification(False, reason="Duplicate cards")

        counter = Counter(c.rank for c in cards)
        high = card_value(cards[-1])

        # 单张
        if n == 1:
            return HandClassification(True, HandType.SINGLE, high)

        # 对子
        if n == 2:
            if len(counter) == 1:
                return HandClassification(True, HandType.PAIR, high)
            return HandClassification(False, reason="Not a valid pair")

        # 三条
        if n == 3:
            if len(counter) == 1:
                return HandClassification(True, HandType.TRIPLE, high)
            return HandClassification(False, reason="Not a valid three of a kind")

        # 五张牌型，按优先级判断
        straight = RuleEngine.is_straight(cards)
        flush = RuleEngine.is_flush(cards)

        if straight and flush:
            if cards[-1].rank == Rank.ACE:
                return HandClassification(True, HandType.ROYAL_FLUSH, high)
            return HandClassification(True, HandType.STRAIGHT_FLUSH, high)

        shape = sorted(counter.values())

        if shape == [1, 4]:
            quad_rank = next(r for r, num in counter.items() if num == 4)
            return HandClassification(
                True, HandType.FOUR_OF_A_KIND, RuleEngine._group_high(cards, quad_rank)
            )

        if shape == [2, 3]:
            triple_rank = next(r for r, num in counter.items() if num == 3)
            return HandClassification(
                True, HandType.FULL_HOUSE, RuleEngine._group_high(cards, triple_rank)
            )

        if flush:
            return HandClassification(True, HandType.FLUSH, high)

        if straight:
            return HandClassification(True, HandType.STRAIGHT, high)

        return HandClassification(False, reason="Not a valid 5-card hand")

    @staticmethod
    def hierarchy_rank(hand_type: HandType) -> int:
        """五张牌型等级: 顺子(1) < 同花(2) < 葫芦(3) < 铁支(4) < 同花顺(5) < 皇家同花顺(6)"""
        return HAND_HIERARCHY.get(hand_type, 0)

    @staticmethod
    def check_beats(play: Play, lead: Play):
        """
        检查出牌能否压过桌面出牌

        Raises:
            RankingError: 张数/牌型不匹配或不够大
        """
        if play.size == 5 and lead.size == 5:
            if play.hierarchy < lead.hierarchy:
                raise RankingError("You must play a higher ranked hand type")
            if play.hierarchy == lead.hierarchy and play.value <= lead.value:
                raise RankingError("You must play a higher value of the same hand type")
            return

        if play.size == 5:
            raise RankingError("Can only play 5-card hands over other 5-card hands")

        if play.hand_type != lead.hand_type:
            raise RankingError("For 1-3 card plays, you must play the same type of hand")

        if play.value <= lead.value:
            raise RankingError("You must play a higher hand")

    @staticmethod
    def beats(play: Play, lead: Play) -> bool:
        """出牌是否严格大于桌面出牌"""
        try:
            RuleEngine.check_beats(play, lead)
        except RankingError:
            return False
        return True

    @staticmethod
    def compare_plays(a: Play, b: Play) -> int:
        """
        比较两个出牌的大小

        Returns:
            1 if a > b, -1 if a < b, 0 if 相等或不可比较 (张数/牌型不同)
        """
        if a.size != b.size:
            return 0
        if a.size < 5 and a.hand_type != b.hand_type:
            return 0
        if a.strength > b.strength:
            return 1
        if a.strength < b.strength:
            return -1
        return 0

    @staticmethod
    def requires_opening_card(move_history: Sequence, opening_card: Optional[Card]) -> bool:
        """整局第一手必须包含开局约束牌"""
        return opening_card is not None and len(move_history) == 0

    @staticmethod
    def validate_play(
        cards: Iterable[Card],
        table_lead: Optional[Play],
        move_history: Sequence = (),
        opening_card: Optional[Card] = None,
    ) -> Play:
        """
        验证出牌是否合法

        Args:
            cards: 要出的牌
            table_lead: 桌面上的出牌 (None 表示主动出牌)
            move_history: 本局出牌历史
            opening_card: 开局约束牌

        Returns:
            合法的出牌

        Raises:
            StructuralError: 牌型不合法
            OpeningConstraintError: 首手未包含开局约束牌
            RankingError: 无法压过桌面出牌
        """
        cards = list(cards)
        result = RuleEngine.classify(cards)
        if not result.valid:
            raise StructuralError(result.reason)

        play = Play(
            cards=tuple(sorted(cards, key=card_value)),
            hand_type=result.hand_type,
            value=result.value,
        )

        if RuleEngine.requires_opening_card(move_history, opening_card):
            if not play.contains(opening_card):
                raise OpeningConstraintError(f"First play must include the {opening_card}")

        if table_lead is not None:
            RuleEngine.check_beats(play, table_lead)

        return play

    @staticmethod
    def is_valid_play(
        cards: Iterable[Card],
        table_lead: Optional[Play],
        move_history: Sequence = (),
        opening_card: Optional[Card] = None,
    ) -> bool:
        """validate_play 的布尔版本"""
        try:
            RuleEngine.validate_play(cards, table_lead, move_history, opening_card)
        except (StructuralError, RankingError, OpeningConstraintError):
            return False
        return True

    @staticmethod
    def can_beat(hand: Iterable[Card], lead: Optional[Play]) -> bool:
        """
        检查手牌是否有牌能出

        Args:
            hand: 当前手牌
            lead: 桌面上的出牌

        Returns:
            是否存在合法出牌
        """
        generator = PlayGenerator(hand)
        if lead is None:
            return bool(generator.hand)
        return any(True for _ in generator.generate_responses(lead))
