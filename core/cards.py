"""
牌的定义与编码

锄大地 (Big 2) 使用一副 52 张标准牌：
- 点数 3-10, J, Q, K, A, 2，其中 2 最大、3 最小
- 花色仅用于同点数比较：方块 < 梅花 < 红桃 < 黑桃
"""
from enum import IntEnum
from dataclasses import dataclass
from typing import List, Tuple, Dict, Iterable
import numpy as np


class Rank(IntEnum):
    """点数定义 (2 最大)"""
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9
    TEN = 10
    JACK = 11
    QUEEN = 12
    KING = 13
    ACE = 14
    TWO = 15


class Suit(IntEnum):
    """花色定义 (仅作同点数的决胜)"""
    DIAMONDS = 1
    CLUBS = 2
    HEARTS = 3
    SPADES = 4


# 点数到显示字符的映射
RANK_TO_STR: Dict[int, str] = {
    3: '3', 4: '4', 5: '5', 6: '6', 7: '7',
    8: '8', 9: '9', 10: '10', 11: 'J', 12: 'Q',
    13: 'K', 14: 'A', 15: '2',
}

# 花色到显示符号的映射
SUIT_TO_STR: Dict[int, str] = {
    1: '♦', 2: '♣', 3: '♥', 4: '♠',
}


@dataclass(frozen=True)
class Card:
    """
    不可变的牌

    Attributes:
        rank: 点数
        suit: 花色
    """
    rank: Rank
    suit: Suit

    @property
    def value(self) -> float:
        """比较用数值: 整数部分为点数，小数部分为花色"""
        return card_value(self)

    @property
    def index(self) -> int:
        """在 FULL_DECK 中的位置 (0-51)"""
        return (self.rank - Rank.THREE) * 4 + (self.suit - Suit.DIAMONDS)

    def __lt__(self, other: 'Card') -> bool:
        return self.value < other.value

    def __str__(self) -> str:
        return f"{RANK_TO_STR[self.rank]}{SUIT_TO_STR[self.suit]}"

    def __repr__(self) -> str:
        return f"Card({self})"


def card_value(card: Card) -> float:
    """
    牌的全序数值

    如 3♦ = 3.1, 3♣ = 3.2, 2♠ = 15.4，任意两张不同的牌数值都不相同
    """
    return int(card.rank) + int(card.suit) / 10


# 完整牌组 (52 张，按数值升序)
FULL_DECK: Tuple[Card, ...] = tuple(
    Card(rank, suit) for rank in Rank for suit in Suit
)

# 整副牌中最小的牌，四人局的开局约束牌
THREE_OF_DIAMONDS = Card(Rank.THREE, Suit.DIAMONDS)

# 控制牌 (A 和 2)
CONTROL_RANKS: Tuple[Rank, ...] = (Rank.ACE, Rank.TWO)

DECK_SIZE = len(FULL_DECK)


def sort_cards(cards: Iterable[Card]) -> List[Card]:
    """按数值升序排序"""
    return sorted(cards, key=card_value)


def cards_to_array(cards: Iterable[Card]) -> np.ndarray:
    """
    将牌列表转换为 52 维 one-hot 向量

    第 i 维对应 FULL_DECK[i]

    Args:
        cards: 牌列表

    Returns:
        52 维 numpy 数组 (float32)，重复的牌会累加
    """
    array = np.zeros(DECK_SIZE, dtype=np.float32)
    for card in cards:
        array[card.index] += 1
    return array


def array_to_cards(array: np.ndarray) -> List[Card]:
    """
    将 52 维数组转换回牌列表

    Args:
        array: 52 维 numpy 数组

    Returns:
        牌列表 (升序)
    """
    return [FULL_DECK[i] for i in np.flatnonzero(array > 0)]


def cards_to_str(cards: Iterable[Card]) -> str:
    """
    将牌列表转换为可读字符串

    Returns:
        如 "3♦ 3♣ 10♠"，空列表返回 "Pass"
    """
    ordered = sort_cards(cards)
    if not ordered:
        return "Pass"
    return ' '.join(str(c) for c in ordered)


def group_by_rank(cards: Iterable[Card]) -> Dict[Rank, List[Card]]:
    """按点数分组，组内按数值升序"""
    groups: Dict[Rank, List[Card]] = {}
    for card in sort_cards(cards):
        groups.setdefault(card.rank, []).append(card)
    return groups


def is_control_card(card: Card) -> bool:
    """是否为控制牌 (A 或 2)"""
    return card.rank in CONTROL_RANKS
