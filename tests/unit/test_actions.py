"""牌型与合法出牌生成测试"""
import itertools

import pytest

from core.cards import Card, Rank, Suit, RANK_TO_STR, THREE_OF_DIAMONDS
from core.actions import (
    Play,
    HandType,
    PlayGenerator,
    enumerate_plays,
    sort_plays_by_strength,
)
from core.rules import RuleEngine
from core.errors import StructuralError

_RANKS = {v: Rank(k) for k, v in RANK_TO_STR.items()}
_SUITS = {"D": Suit.DIAMONDS, "C": Suit.CLUBS, "H": Suit.HEARTS, "S": Suit.SPADES}


def cards(text):
    return [Card(_RANKS[t[:-1]], _SUITS[t[-1]]) for t in text.split()]


def play(text):
    return Play.from_cards(cards(text))


def brute_force(hand, lead, history=(), opening_card=None):
    """逐个子集验证，得到全部合法出牌的牌集合"""
    legal = set()
    for size in (1, 2, 3, 5):
        for combo in itertools.combinations(hand, size):
            if RuleEngine.is_valid_play(combo, lead, history, opening_card):
                legal.add(frozenset(combo))
    return legal


HAND = cards("3D 4D 4C 4H 5S 6D 7D 8D 9D JD KS 2H")


class TestPlay:
    """Play 测试"""

    def test_from_cards_sorts(self):
        p = play("9C 9D")
        assert p.cards == tuple(cards("9D 9C"))
        assert p.hand_type == HandType.PAIR
        assert p.size == 2
        assert len(p) == 2

    def test_from_cards_invalid(self):
        with pytest.raises(StructuralError):
            Play.from_cards(cards("9C 8D"))

    def test_strength(self):
        assert play("3H 7H 9H JH KH").strength > play("10D JC QH KS AD").strength

    def test_contains(self):
        assert play("3C 3D").contains(THREE_OF_DIAMONDS)

    def test_str(self):
        assert str(play("9C 9D")) == "9♦ 9♣ [pair]"


class TestPlayGenerator:
    """出牌生成器测试"""

    def test_singles(self):
        gen = PlayGenerator(HAND)
        assert len(list(gen.iter_singles())) == len(HAND)

    def test_pairs_cover_all_suit_combinations(self):
        gen = PlayGenerator(HAND)
        pairs = list(gen.iter_pairs())
        assert len(pairs) == 3  # 4♦4♣, 4♦4♥, 4♣4♥
        assert all(p.hand_type == HandType.PAIR for p in pairs)

    def test_triples(self):
        gen = PlayGenerator(cards("7D 7C 7H 7S"))
        assert len(list(gen.iter_triples())) == 4

    def test_five_card_generator_is_restartable(self):
        gen = PlayGenerator(HAND)
        first = list(gen.iter_five_card_hands())
        second = list(gen.iter_five_card_hands())
        assert first == second
        assert len(first) > 0

    def test_five_card_hands_found(self):
        gen = PlayGenerator(HAND)
        types = {p.hand_type for p in gen.iter_five_card_hands()}
        assert HandType.STRAIGHT in types  # 4-5-6-7-8
        assert HandType.FLUSH in types  # 6♦ 7♦ 8♦ 9♦ J♦
        assert HandType.FULL_HOUSE not in types

    def test_generate_responses(self):
        gen = PlayGenerator(HAND)
        responses = gen.generate_responses(play("JS"))
        assert {str(p.cards[0]) for p in responses} == {"K♠", "2♥"}


class TestEnumeratePlays:
    """合法出牌枚举测试"""

    @pytest.mark.parametrize("lead", [
        None,
        "7S",
        "3C 3H",
        "9S 9H 9C",
        "5D 6C 7H 8S 9C",
        "3S 5S 7S 9S JS",
        "10D 10C 10H 2C 2D",
    ])
    def test_sound_and_complete(self, lead):
        lead_play = play(lead) if lead else None
        enumerated = enumerate_plays(HAND, lead_play)
        found = {p.card_set for p in enumerated}
        assert len(found) == len(enumerated)
        assert found == brute_force(HAND, lead_play)

    def test_sound_and_complete_with_opening_card(self):
        enumerated = enumerate_plays(HAND, None, [], THREE_OF_DIAMONDS)
        assert enumerated
        assert all(p.contains(THREE_OF_DIAMONDS) for p in enumerated)
        assert {p.card_set for p in enumerated} == brute_force(HAND, None, [], THREE_OF_DIAMONDS)

    def test_no_opening_card_held(self):
        assert enumerate_plays(cards("4D 5D"), None, [], THREE_OF_DIAMONDS) == []

    def test_sorted_weakest_first(self):
        enumerated = enumerate_plays(HAND, None)
        assert enumerated == sort_plays_by_strength(enumerated)
        assert enumerated[0].cards == (THREE_OF_DIAMONDS,)

    def test_deterministic(self):
        assert enumerate_plays(HAND, None) == enumerate_plays(list(reversed(HAND)), None)

    def test_empty_hand(self):
        assert enumerate_plays([], None) == []
        assert enumerate_plays([], play("7S")) == []
