"""
牌型定义与合法出牌生成器

锄大地可出的牌型: 单张、对子、三条，以及五张牌型 (顺子、同花、葫芦、铁支、同花顺、皇家同花顺)
"""
from enum import IntEnum
from dataclasses import dataclass
from typing import List, Tuple, Optional, Iterator, Iterable, Sequence, Dict, FrozenSet
import itertools

from .cards import Card, Rank, sort_cards, group_by_rank, cards_to_str


class HandType(IntEnum):
    """牌型类型"""
    SINGLE = 1            # 单张
    PAIR = 2              # 对子
    TRIPLE = 3            # 三条
    STRAIGHT = 4          # 顺子
    FLUSH = 5             # 同花
    FULL_HOUSE = 6        # 葫芦 (三带二)
    FOUR_OF_A_KIND = 7    # 铁支 (四带一)
    STRAIGHT_FLUSH = 8    # 同花顺
    ROYAL_FLUSH = 9       # 皇家同花顺 (10-J-Q-K-A)

    @property
    def label(self) -> str:
        return self.name.lower()


# 五张牌型的等级 (单张/对子/三条为 0)
HAND_HIERARCHY: Dict[HandType, int] = {
    HandType.SINGLE: 0,
    HandType.PAIR: 0,
    HandType.TRIPLE: 0,
    HandType.STRAIGHT: 1,
    HandType.FLUSH: 2,
    HandType.FULL_HOUSE: 3,
    HandType.FOUR_OF_A_KIND: 4,
    HandType.STRAIGHT_FLUSH: 5,
    HandType.ROYAL_FLUSH: 6,
}

# 合法的出牌张数
PLAY_SIZES: Tuple[int, ...] = (1, 2, 3, 5)

FIVE_CARD_SIZE = 5


@dataclass(frozen=True)
class Play:
    """
    不可变的出牌表示

    Attributes:
        cards: 出的牌 (按数值升序)
        hand_type: 牌型
        value: 同牌型比较用的强度
    """
    cards: Tuple[Card, ...]
    hand_type: HandType
    value: float

    @classmethod
    def from_cards(cls, cards: Iterable[Card]) -> 'Play':
        """从牌列表创建出牌，牌型不合法时抛出 StructuralError"""
        from .rules import RuleEngine
        from .errors import StructuralError

        ordered = tuple(sort_cards(cards))
        result = RuleEngine.classify(ordered)
        if not result.valid:
            raise StructuralError(result.reason)
        return cls(cards=ordered, hand_type=result.hand_type, value=result.value)

    @property
    def size(self) -> int:
        return len(self.cards)

    @property
    def hierarchy(self) -> int:
        return HAND_HIERARCHY[self.hand_type]

    @property
    def strength(self) -> Tuple[int, float]:
        """同张数出牌的比较键: (牌型等级, 强度)"""
        return (self.hierarchy, self.value)

    @property
    def card_set(self) -> FrozenSet[Card]:
        return frozenset(self.cards)

    def contains(self, card: Card) -> bool:
        return card in self.cards

    def __len__(self) -> int:
        return len(self.cards)

    def __str__(self) -> str:
        return f"{cards_to_str(self.cards)} [{self.hand_type.label}]"


def play_sort_key(play: Play) -> Tuple:
    """由弱到强的排序键: 张数、牌型等级、强度、逐张数值"""
    return (play.size, play.hierarchy, play.value, tuple(c.value for c in play.cards))


def sort_plays_by_strength(plays: Iterable[Play]) -> List[Play]:
    """按强度升序排序 (最弱在前)"""
    return sorted(plays, key=play_sort_key)


class PlayGenerator:
    """
    合法出牌生成器

    根据手牌生成所有可能的出牌组合；五张组合以惰性生成器的方式遍历
    """

    def __init__(self, hand_cards: Iterable[Card]):
        """
        Args:
            hand_cards: 手牌列表
        """
        self.hand: List[Card] = sort_cards(hand_cards)
        self.groups: Dict[Rank, List[Card]] = group_by_rank(self.hand)

    def _iter_groups(self, size: int, hand_type: HandType) -> Iterator[Play]:
        """同点数的 size 张组合 (对子/三条)"""
        for rank in sorted(self.groups):
            cards = self.groups[rank]
            if len(cards) < size:
                continue
            for combo in itertools.combinations(cards, size):
                yield Play(cards=combo, hand_type=hand_type, value=combo[-1].value)

    def iter_singles(self) -> Iterator[Play]:
        """遍历所有单张"""
        for card in self.hand:
            yield Play(cards=(card,), hand_type=HandType.SINGLE, value=card.value)

    def iter_pairs(self) -> Iterator[Play]:
        """遍历所有对子"""
        return self._iter_groups(2, HandType.PAIR)

    def iter_triples(self) -> Iterator[Play]:
        """遍历所有三条"""
        return self._iter_groups(3, HandType.TRIPLE)

    def iter_five_card_hands(self) -> Iterator[Play]:
        """
        遍历所有合法的五张牌型

        每次调用返回新的生成器，共 C(n, 5) 个组合逐个经过牌型判断
        """
        from .rules import RuleEngine

        for combo in itertools.combinations(self.hand, FIVE_CARD_SIZE):
            result = RuleEngine.classify(combo)
            if result.valid:
                yield Play(cards=combo, hand_type=result.hand_type, value=result.value)

    def iter_by_size(self, size: int) -> Iterator[Play]:
        if size == 1:
            return self.iter_singles()
        if size == 2:
            return self.iter_pairs()
        if size == 3:
            return self.iter_triples()
        if size == FIVE_CARD_SIZE:
            return self.iter_five_card_hands()
        return iter(())

    def generate_all(self) -> List[Play]:
        """
        生成所有可能的出牌 (主动出牌)

        Returns:
            所有结构合法的出牌列表
        """
        plays: List[Play] = []
        for size in PLAY_SIZES:
            plays.extend(self.iter_by_size(size))
        return plays

    def generate_responses(self, lead: Play) -> List[Play]:
        """
        生成能压过桌面出牌的合法响应

        Args:
            lead: 桌面上的出牌

        Returns:
            同张数且更大的出牌列表
        """
        from .rules import RuleEngine

        return [
            play for play in self.iter_by_size(lead.size)
            if RuleEngine.beats(play, lead)
        ]


def enumerate_plays(
    hand: Iterable[Card],
    table_lead: Optional[Play],
    move_history: Sequence = (),
    opening_card: Optional[Card] = None,
) -> List[Play]:
    """
    枚举当前可出的全部合法出牌

    Args:
        hand: 手牌
        table_lead: 桌面上的出牌 (None 表示主动出牌)
        move_history: 本局出牌历史 (为空表示整局第一手)
        opening_card: 开局约束牌

    Returns:
        按强度升序排列的合法出牌
    """
    from .rules import RuleEngine

    generator = PlayGenerator(hand)

    if table_lead is None:
        plays = generator.generate_all()
    else:
        plays = generator.generate_responses(table_lead)

    if RuleEngine.requires_opening_card(move_history, opening_card):
        plays = [p for p in plays if p.contains(opening_card)]

    return sort_plays_by_strength(plays)
