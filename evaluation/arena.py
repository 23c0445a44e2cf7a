"""
对战竞技场

组织电脑座位之间的完整对局，统计胜率
"""
from typing import Dict, List, Optional, Callable, Tuple, Sequence
from dataclasses import dataclass
from collections import defaultdict
from itertools import permutations
import logging

import numpy as np

from core.state import Seat, MatchState, MoveResult, create_match
from core.session import MatchSession
from strategy.base import Strategy

logger = logging.getLogger(__name__)

# 单局最多步数 (正常对局远小于该值)
DEFAULT_MAX_MOVES = 2000


@dataclass
class MatchResult:
    """对局结果"""
    seat_names: Tuple[str, ...]  # 按座位顺序的策略名
    winner: Optional[str]  # 获胜策略名 (步数耗尽时为 None)
    winner_seat: Optional[str]
    moves: int
    rounds: int
    scores: Dict[str, int]
    truncated: bool = False


@dataclass
class TournamentResult:
    """锦标赛结果"""
    standings: Dict[str, Dict[str, float]]
    total_games: int
    matches: List[MatchResult]

    def get_ranking(self) -> List[Tuple[str, float]]:
        """获取排名"""
        return sorted(
            [(name, stats.get("win_rate", 0.0)) for name, stats in self.standings.items()],
            key=lambda x: x[1],
            reverse=True,
        )

    def __repr__(self) -> str:
        ranking = self.get_ranking()
        lines = [f"Tournament Results ({self.total_games} games):"]
        for i, (name, win_rate) in enumerate(ranking):
            lines.append(f"  {i+1}. {name}: {win_rate:.2%}")
        return "\n".join(lines)


class Arena:
    """
    对战竞技场

    每一步都通过 MatchSession 执行，并检查牌的完整性

    Args:
        seed: 发牌随机种子
        max_moves: 单局最多步数
        on_move: 每步之后的回调 (match, seat, result)
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        max_moves: int = DEFAULT_MAX_MOVES,
        on_move: Optional[Callable[[MatchState, Seat, MoveResult], None]] = None,
    ):
        self.rng = np.random.default_rng(seed)
        self.max_moves = max_moves
        self.on_move = on_move

    def _play_single_match(self, strategies: Sequence[Strategy]) -> MatchResult:
        """单场对局"""
        seats = [
            Seat(identity=f"seat{i}", display_name=s.name, is_computer_controlled=True)
            for i, s in enumerate(strategies)
        ]
        match = create_match(seats, rng=self.rng)
        session = MatchSession(match, {seat.identity: s for seat, s in zip(seats, strategies)})
        for s in strategies:
            s.reset()

        moves = 0
        try:
            while not match.is_finished and moves < self.max_moves:
                seat = match.get_current_seat()
                result = session.run_computer_turn()
                if result is None or not result.success:
                    message = result.message if result is not None else "decision discarded"
                    raise RuntimeError(f"Move by {seat.identity} failed: {message}")
                moves += 1

                if not match.check_integrity():
                    raise RuntimeError(f"Deck integrity violated after move {moves}")

                if self.on_move is not None:
                    self.on_move(match, seat, result)
        finally:
            session.close()

        truncated = not match.is_finished
        if truncated:
            logger.warning(f"Match truncated after {moves} moves")

        winner = match.get_seat(match.winner).display_name if match.winner else None
        return MatchResult(
            seat_names=tuple(s.name for s in strategies),
            winner=winner,
            winner_seat=match.winner,
            moves=moves,
            rounds=match.round_number,
            scores=dict(match.scores),
            truncated=truncated,
        )

    def play_match(
        self,
        strategies: Sequence[Strategy],
        n_games: int = 1,
    ) -> List[MatchResult]:
        """
        进行对局

        Args:
            strategies: 2-4 个策略，顺序即座位顺序
            n_games: 对局数

        Returns:
            对局结果列表
        """
        results = []
        for _ in range(n_games):
            result = self._play_single_match(strategies)
            logger.debug(
                f"{' vs '.join(result.seat_names)}: winner {result.winner} "
                f"in {result.moves} moves, {result.rounds} rounds"
            )
            results.append(result)
        return results

    def round_robin(
        self,
        strategies: Sequence[Strategy],
        seats_per_match: Optional[int] = None,
        games_per_match: int = 1,
    ) -> TournamentResult:
        """
        循环赛

        所有座位排列都对战一次

        Args:
            strategies: 策略列表 (名称应互不相同)
            seats_per_match: 每局座位数 (默认 min(4, 策略数))
            games_per_match: 每种排列的对局数

        Returns:
            锦标赛结果
        """
        if seats_per_match is None:
            seats_per_match = min(4, len(strategies))

        standings = {s.name: defaultdict(float) for s in strategies}
        all_matches = []

        # 生成所有位置组合
        for perm in permutations(range(len(strategies)), seats_per_match):
            match_strategies = [strategies[i] for i in perm]

            results = self.play_match(match_strategies, games_per_match)
            all_matches.extend(results)

            for result in results:
                for name in result.seat_names:
                    standings[name]["games"] += 1
                if result.winner is not None:
                    standings[result.winner]["wins"] += 1

        # 计算胜率
        for name, stats in standings.items():
            if stats["games"] > 0:
                stats["win_rate"] = stats["wins"] / stats["games"]

        return TournamentResult(
            standings={name: dict(stats) for name, stats in standings.items()},
            total_games=len(all_matches),
            matches=all_matches,
        )
