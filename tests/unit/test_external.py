"""外部策略测试"""
import json
import threading
import time

import pytest

from core.cards import Card, Rank, Suit, RANK_TO_STR
from core.actions import Play, enumerate_plays
from core.decision import Decision, DecisionContext
from core.errors import ExternalStrategyError
from core.state import MoveRecord
from strategy import (
    ExternalStrategy,
    LanguageModelStrategy,
    HeuristicStrategy,
    ExternalStrategyConfig,
    parse_card_spec,
    parse_reply,
    map_cards_from_hand,
)
from strategy.external import SYSTEM_PROMPT, split_card_specs

_RANKS = {v: Rank(k) for k, v in RANK_TO_STR.items()}
_SUITS = {"D": Suit.DIAMONDS, "C": Suit.CLUBS, "H": Suit.HEARTS, "S": Suit.SPADES}


def cards(text):
    return [Card(_RANKS[t[:-1]], _SUITS[t[-1]]) for t in text.split()]


def play(text):
    return Play.from_cards(cards(text))


HAND = cards("6D 9H 9S 10S KH")
CONTEXT = DecisionContext(seat_id="me", hand_size=5, is_leading=True, opponent_hand_sizes={"p1": 8, "p2": 11})


class ScriptedStrategy(ExternalStrategy):
    """返回预设结果的外部策略"""

    def __init__(self, reply=None, error=None, delay=0.0, **kwargs):
        super().__init__(**kwargs)
        self.reply = reply
        self.error = error
        self.delay = delay
        self.calls = 0

    def propose(self, hand, table_lead, context, candidates):
        self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply


def expected_fallback(hand, table_lead, context=CONTEXT):
    return HeuristicStrategy().decide(hand, table_lead, context)


class TestVerify:
    """外部决策校验测试"""

    def test_accepts_legal_play(self):
        candidates = enumerate_plays(HAND, None)
        decision = ExternalStrategy.verify(
            Decision(action="play", cards=tuple(cards("9S 9H")), explanation="pair"), HAND, None, candidates
        )
        assert decision.cards == tuple(cards("9H 9S"))
        assert decision.explanation == "pair"

    @pytest.mark.parametrize("proposal", [
        "play 9H",
        Decision.pass_turn(),
        Decision(action="play", cards=()),
        Decision(action="play", cards=tuple(cards("9H 9H"))),
        Decision.play(cards("AS")),
        Decision.play(cards("6D 9H")),
    ])
    def test_rejects(self, proposal):
        candidates = enumerate_plays(HAND, None)
        with pytest.raises(ExternalStrategyError):
            ExternalStrategy.verify(proposal, HAND, None, candidates)

    def test_pass_allowed_when_following(self):
        lead = play("QS")
        candidates = enumerate_plays(HAND, lead)
        decision = ExternalStrategy.verify(Decision.pass_turn("save cards"), HAND, lead, candidates)
        assert decision.is_pass


class TestFallback:
    """回退测试"""

    def test_accepted(self):
        strategy = ScriptedStrategy(reply=Decision.play(cards("KH")))
        decision = strategy.decide(HAND, None, CONTEXT)
        assert decision.cards == tuple(cards("KH"))
        assert strategy.fallback_count == 0

    @pytest.mark.parametrize("reply", [
        Decision.play(cards("AS")),
        Decision.play(cards("6D 9H")),
        Decision.pass_turn(),
        None,
    ])
    def test_invalid_proposal_falls_back(self, reply):
        strategy = ScriptedStrategy(reply=reply)
        decision = strategy.decide(HAND, None, CONTEXT)
        assert decision == expected_fallback(HAND, None)
        assert strategy.fallback_count == 1

    def test_exception_falls_back(self):
        strategy = ScriptedStrategy(error=RuntimeError("connection reset"))
        decision = strategy.decide(HAND, None, CONTEXT)
        assert decision == expected_fallback(HAND, None)
        assert strategy.fallback_count == 1

    def test_timeout_falls_back(self, caplog):
        config = ExternalStrategyConfig(timeout_s=0.05)
        strategy = ScriptedStrategy(reply=Decision.play(cards("KH")), delay=0.5, config=config)
        start = time.monotonic()
        decision = strategy.decide(HAND, None, CONTEXT)
        assert time.monotonic() - start < 0.4
        assert decision == expected_fallback(HAND, None)
        assert strategy.fallback_count == 1
        assert "No response within" in caplog.text

    def test_no_candidates_skips_external(self):
        strategy = ScriptedStrategy(reply=Decision.play(cards("KH")))
        decision = strategy.decide(cards("3D 4D"), play("2S"), CONTEXT)
        assert decision.is_pass
        assert decision.explanation == "No valid moves available"
        assert strategy.calls == 0

    def test_custom_fallback(self):
        fallback = ScriptedStrategy(reply=Decision.play(cards("6D")), name="backup")
        strategy = ScriptedStrategy(error=ValueError("bad"), fallback=fallback)
        assert strategy.decide(HAND, None, CONTEXT).cards == tuple(cards("6D"))


class TestParsing:
    """回复解析测试"""

    @pytest.mark.parametrize("spec,expected", [
        ("6♦", "6D"),
        ("10S", "10S"),
        ("T♠", "10S"),
        ("♦6", "6D"),
        ("qh", "QH"),
        ({"value": "K", "suit": "♥"}, "KH"),
        ({"rank": "9", "suit": "spades"}, "9S"),
        ({"value": "♠", "suit": "9"}, "9S"),
    ])
    def test_parse_card_spec(self, spec, expected):
        assert parse_card_spec(spec) == cards(expected)[0]

    @pytest.mark.parametrize("spec", ["", "X♦", "6X", {"value": "6"}, 6])
    def test_parse_card_spec_invalid(self, spec):
        with pytest.raises(ExternalStrategyError):
            parse_card_spec(spec)

    def test_split_comma_joined(self):
        assert split_card_specs(["9♥, 9♠"]) == ["9♥", "9♠"]
        assert split_card_specs("6♦") == ["6♦"]

    def test_map_cards_from_hand(self):
        assert map_cards_from_hand(["9♥", "9♠"], HAND) == cards("9H 9S")
        with pytest.raises(ExternalStrategyError, match="Selected card not in hand"):
            map_cards_from_hand(["A♠"], HAND)
        with pytest.raises(ExternalStrategyError):
            map_cards_from_hand(["9♥", "9♥"], HAND)

    def test_parse_reply_fenced(self):
        reply = '```json\n{"action": "play", "cards": ["6♦"], "explanation": "low"}\n```'
        assert parse_reply(reply) == {"action": "play", "cards": ["6♦"], "explanation": "low"}

    def test_parse_reply_with_prose(self):
        reply = 'Sure! {"action": "pass", "explanation": "hold"} Good luck.'
        assert parse_reply(reply)["action"] == "pass"

    def test_parse_reply_truncates_explanation(self):
        reply = json.dumps({"action": "pass", "explanation": "x" * 150})
        explanation = parse_reply(reply, explanation_limit=100)["explanation"]
        assert len(explanation) == 100
        assert explanation.endswith("...")

    @pytest.mark.parametrize("reply", ["no json here", "{broken", None, "[1, 2]"])
    def test_parse_reply_malformed(self, reply):
        with pytest.raises(ExternalStrategyError):
            parse_reply(reply)


class TestLanguageModelStrategy:
    """语言模型策略测试"""

    def make(self, reply):
        requests = []

        def client(request):
            requests.append(request)
            return reply

        return LanguageModelStrategy(client=client), requests

    def test_fenced_reply(self):
        strategy, _ = self.make('```json\n{"action":"play","cards":["10S"],"explanation":"low"}\n```')
        decision = strategy.decide(HAND, None, CONTEXT)
        assert decision.cards == tuple(cards("10S"))
        assert decision.explanation == "low"
        assert strategy.fallback_count == 0

    def test_comma_joined_pair(self):
        strategy, _ = self.make('{"action":"play","cards":["9♥, 9♠"]}')
        assert strategy.decide(HAND, None, CONTEXT).cards == tuple(cards("9H 9S"))

    def test_swapped_fields(self):
        strategy, _ = self.make('{"action":"play","cards":[{"value":"♥","suit":"K"}]}')
        assert strategy.decide(HAND, None, CONTEXT).cards == tuple(cards("KH"))

    def test_pass_when_following(self):
        strategy, _ = self.make('{"action":"pass","explanation":"saving pairs"}')
        decision = strategy.decide(HAND, play("QS"), CONTEXT)
        assert decision.is_pass
        assert decision.explanation == "saving pairs"

    @pytest.mark.parametrize("reply", [
        "I would play the six",
        '{"action":"pass"}',
        '{"action":"play"}',
        '{"action":"play","cards":["A♠"]}',
        '{"action":"play","cards":["6♦","9♥"]}',
    ])
    def test_bad_reply_falls_back(self, reply):
        strategy, _ = self.make(reply)
        decision = strategy.decide(HAND, None, CONTEXT)
        assert decision == expected_fallback(HAND, None)
        assert strategy.fallback_count == 1

    def test_no_client(self):
        strategy = LanguageModelStrategy()
        assert strategy.decide(HAND, None, CONTEXT) == expected_fallback(HAND, None)
        assert strategy.fallback_count == 1

    def test_request(self):
        config = ExternalStrategyConfig(model="test-model", temperature=0.5)
        strategy = LanguageModelStrategy(config=config)
        candidates = enumerate_plays(HAND, None)
        request = strategy.build_request(HAND, None, CONTEXT, candidates)
        assert request["model"] == "test-model"
        assert request["temperature"] == 0.5
        assert request["timeout_s"] == config.timeout_s
        assert request["messages"][0] == {"role": "system", "content": SYSTEM_PROMPT}

        prompt = request["messages"][1]["content"]
        assert "Your hand: 6♦ 9♥ 9♠ 10♠ K♥" in prompt
        assert "None (you are leading this trick)." in prompt
        assert "- p1: 8 cards" in prompt
        assert "VALID PLAYS" in prompt
        assert "1. 6♦ [single]" in prompt
        assert f"{len(candidates)}. " in prompt

    def test_history_length_beyond_recent_moves(self):
        records = [MoveRecord("p1", (card,), Play.from_cards([card])) for card in cards("3D 4D 5D 6D 7D 8D 9D")]
        context = DecisionContext(
            seat_id="me", hand_size=5, is_leading=True,
            recent_moves=tuple(records[-5:]), move_history=tuple(records),
        )

        long_prompt = LanguageModelStrategy(config=ExternalStrategyConfig(history_length=7)).build_user_prompt(
            HAND, None, context, enumerate_plays(HAND, None)
        )
        assert "p1 played 3♦" in long_prompt
        assert "p1 played 9♦" in long_prompt

        short_prompt = LanguageModelStrategy().build_user_prompt(HAND, None, context, enumerate_plays(HAND, None))
        assert "p1 played 4♦" not in short_prompt
        assert "p1 played 5♦" in short_prompt


class TestHungClient:
    """外部调用不返回时的线程管理测试"""

    def test_hung_client_does_not_stack_threads(self, caplog):
        release = threading.Event()
        requests = []

        def client(request):
            requests.append(request)
            release.wait(timeout=5)
            return '{"action":"play","cards":["6D"]}'

        config = ExternalStrategyConfig(timeout_s=0.05)
        strategy = LanguageModelStrategy(client=client, config=config, name="hung")
        try:
            for _ in range(3):
                assert strategy.decide(HAND, None, CONTEXT) == expected_fallback(HAND, None)
            assert len(requests) == 1
            assert strategy.fallback_count == 3
            assert strategy.busy
            assert "Previous request still running" in caplog.text
            workers = [t for t in threading.enumerate() if t.name.startswith("hung")]
            assert len(workers) == 1

            release.set()
            deadline = time.monotonic() + 5
            while strategy.busy and time.monotonic() < deadline:
                time.sleep(0.01)
            assert not strategy.busy

            decision = strategy.decide(HAND, None, CONTEXT)
            assert decision.cards == tuple(cards("6D"))
            assert len(requests) == 2
            assert [t for t in threading.enumerate() if t.name.startswith("hung")] == workers
        finally:
            release.set()
            strategy.close()
