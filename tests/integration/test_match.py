"""完整对局集成测试"""
import pytest

from core.state import Seat, create_match
from core.session import MatchSession
from evaluation import Arena
from models import SCORER_SMALL
from strategy import HeuristicStrategy, LanguageModelStrategy, build_strategy, strategies_for_seats
from strategy.model import ModelStrategy


def heuristic_field(count, seed=0):
    tags = ["standard", "easy", "hard", "standard"]
    return [
        build_strategy(tags[i], seed=seed + i, name=f"{tags[i]}_{i}")
        for i in range(count)
    ]


class TestArena:
    """竞技场测试"""

    @pytest.mark.parametrize("seats", [2, 3, 4])
    def test_full_match(self, seats):
        arena = Arena(seed=seats)
        results = arena.play_match(heuristic_field(seats), n_games=3)
        assert len(results) == 3
        for result in results:
            assert not result.truncated
            assert result.winner is not None
            assert sum(result.scores.values()) == 1
            assert result.scores[result.winner_seat] == 1
            assert result.rounds >= 1
            assert len(result.seat_names) == seats

    def test_state_consistent_after_every_move(self):
        checked = []

        def on_move(match, seat, result):
            assert match.check_integrity()
            assert len(match.passed_seats) <= match.seat_count - 1
            if not match.is_finished:
                assert match.get_current_seat().identity not in match.passed_seats
            assert all(n >= 0 for n in match.hand_sizes().values())
            checked.append(seat.identity)

        arena = Arena(seed=1, on_move=on_move)
        arena.play_match(heuristic_field(4), n_games=2)
        assert len(checked) > 0

    def test_same_seed_same_games(self):
        first = Arena(seed=11).play_match(heuristic_field(4, seed=3), n_games=2)
        second = Arena(seed=11).play_match(heuristic_field(4, seed=3), n_games=2)
        assert first == second

    def test_round_robin(self):
        strategies = heuristic_field(3)
        result = Arena(seed=2).round_robin(strategies, seats_per_match=2, games_per_match=1)
        assert result.total_games == 6
        assert len(result.matches) == 6
        assert sum(s.get("wins", 0) for s in result.standings.values()) == 6
        for stats in result.standings.values():
            assert stats["games"] == 4
        ranking = result.get_ranking()
        assert len(ranking) == 3
        assert ranking[0][1] >= ranking[-1][1]
        assert "Tournament Results (6 games)" in repr(result)


class TestExternalStrategiesInMatch:
    """外部策略参与完整对局"""

    def test_model_strategy(self):
        strategies = [
            ModelStrategy(spec=SCORER_SMALL, seed=0, name="model"),
            HeuristicStrategy(seed=1, name="standard"),
            ModelStrategy(spec=SCORER_SMALL, seed=2, deterministic=False, name="sampler"),
        ]
        result = Arena(seed=4).play_match(strategies)[0]
        assert not result.truncated
        assert strategies[0].fallback_count == 0
        assert strategies[2].fallback_count == 0

    def test_broken_language_model_never_blocks(self):
        llm = LanguageModelStrategy(client=lambda request: "I refuse to answer in JSON", name="llm")
        strategies = [llm, HeuristicStrategy(seed=1, name="standard")]
        result = Arena(seed=5).play_match(strategies)[0]
        assert not result.truncated
        assert llm.fallback_count > 0


class TestSessionWithSeats:
    """按座位标签创建策略并走完对局"""

    def test_mixed_tags(self):
        seats = [
            Seat("a", is_computer_controlled=True, difficulty_tag="easy"),
            Seat("b", is_computer_controlled=True, difficulty_tag="hard"),
            Seat("c", is_computer_controlled=True, difficulty_tag="standard"),
        ]
        match = create_match(seats, seed=8)
        session = MatchSession(match, strategies_for_seats(seats, seed=8))
        moves = 0
        while session.is_computer_turn() and moves < 2000:
            assert session.run_computer_turn().success
            moves += 1
        session.close()
        assert match.is_finished
        assert match.winner in {"a", "b", "c"}
        assert match.check_integrity()
