"""
对局会话 - 单局的并发保护

- play / pass_turn 在同一把锁内串行执行
- 电脑座位决策期间释放锁，完成后只在状态未变化且会话未关闭时应用
- 决策进行中，同一座位的人工操作与重入的决策调用都会被拒绝
"""
from typing import Dict, Iterable, Optional
import logging
import threading

from .cards import Card
from .decision import Decision
from .errors import GameError, MatchTerminated, MatchFinished, DecisionInFlight
from .state import MatchState, MoveResult, Seat

logger = logging.getLogger(__name__)


class MatchSession:
    """
    对局会话

    Args:
        match: 对局状态
        strategies: 座位标识 -> 策略 (需实现 decide(hand, table_lead, context))
    """

    def __init__(self, match: MatchState, strategies: Optional[Dict[str, object]] = None):
        self.match = match
        self.strategies: Dict[str, object] = dict(strategies or {})
        self._lock = threading.RLock()
        self._in_flight: Optional[str] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def decision_in_flight(self) -> Optional[str]:
        """正在决策的座位"""
        return self._in_flight

    def _guard(self, seat_id: str) -> Optional[GameError]:
        if self._closed:
            return MatchTerminated("Match has been terminated")
        if self._in_flight is not None and self._in_flight == seat_id:
            return DecisionInFlight(f"A decision for {seat_id} is already in progress")
        return None

    def play(self, seat_id: str, cards: Iterable[Card]) -> MoveResult:
        with self._lock:
            error = self._guard(seat_id)
            if error is not None:
                return MoveResult.rejected("play", error, self.match.status)
            return self.match.play(seat_id, cards)

    def pass_turn(self, seat_id: str) -> MoveResult:
        with self._lock:
            error = self._guard(seat_id)
            if error is not None:
                return MoveResult.rejected("pass", error, self.match.status)
            return self.match.pass_turn(seat_id)

    def is_computer_turn(self) -> bool:
        with self._lock:
            if self._closed or self.match.is_finished:
                return False
            seat = self.match.get_current_seat()
            return seat.identity in self.strategies

    def run_computer_turn(self) -> Optional[MoveResult]:
        """
        让当前座位的策略决策并应用结果

        Returns:
            执行结果；决策期间状态已变化或会话被关闭时返回 None (结果被丢弃)

        Raises:
            DecisionInFlight: 已有决策在进行中
            ValueError: 当前座位没有策略
        """
        with self._lock:
            if self._in_flight is not None:
                raise DecisionInFlight(f"A decision for {self._in_flight} is already in progress")
            if self._closed:
                return MoveResult.rejected(
                    "play", MatchTerminated("Match has been terminated"), self.match.status
                )
            if self.match.is_finished:
                return MoveResult.rejected(
                    "play", MatchFinished("Game is already finished"), self.match.status
                )

            seat = self.match.get_current_seat()
            strategy = self.strategies.get(seat.identity)
            if strategy is None:
                raise ValueError(f"No strategy for seat {seat.identity}")

            hand = self.match.hand_of(seat.identity)
            table_lead = self.match.table_lead
            context = self.match.decision_context(seat.identity)
            version = self.match.version
            self._in_flight = seat.identity

        try:
            decision = strategy.decide(hand, table_lead, context)
            with self._lock:
                if self._closed or self.match.version != version:
                    logger.info(f"Discarding stale decision for {seat.identity}: {decision}")
                    return None
                return self._apply(seat, decision)
        finally:
            with self._lock:
                self._in_flight = None

    def _apply(self, seat: Seat, decision: Decision) -> MoveResult:
        if decision.is_pass:
            result = self.match.pass_turn(seat.identity)
        else:
            result = self.match.play(seat.identity, decision.cards)
        if not result.success:
            logger.warning(f"Strategy decision {decision} for {seat.identity} rejected: {result.message}")
        return result

    def close(self):
        """终止会话，进行中的决策结果将被丢弃"""
        with self._lock:
            if not self._closed:
                self._closed = True
                logger.info("Match session closed")
