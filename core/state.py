"""
对局状态机

持有一局的权威状态: 各座位手牌、当前行动座位、桌面出牌、过牌记录、轮次与比分
状态只通过 play / pass_turn 修改，规则不满足时返回拒绝结果而不抛出异常
"""
from dataclasses import dataclass
from typing import Dict, Tuple, Optional, List, Set, Iterable, Sequence
from enum import Enum
import logging

import numpy as np

from .cards import Card, FULL_DECK, DECK_SIZE, sort_cards, cards_to_array, cards_to_str
from .actions import Play, enumerate_plays
from .rules import RuleEngine
from .decision import DecisionContext
from .errors import (
    GameError, StructuralError, CardsNotOwned, SeatNotFound, NotYourTurn,
    CannotPassOnLead, MatchFinished, InvalidSeatCount,
)

logger = logging.getLogger(__name__)

# 各座位数的发牌张数
HAND_SIZE_BY_SEATS: Dict[int, int] = {4: 13, 3: 17, 2: 17}

# 两人局弃掉的牌数
TWO_SEAT_DISCARD = 17

# 决策上下文中保留的最近出牌数
RECENT_MOVES = 5


class MatchStatus(Enum):
    """对局状态"""
    ACTIVE = "active"
    FINISHED = "finished"


@dataclass(frozen=True)
class Seat:
    """
    座位

    Attributes:
        identity: 唯一标识
        display_name: 显示名称
        is_computer_controlled: 是否由电脑控制
        difficulty_tag: 电脑策略标签 (standard / easy / hard / model)
    """
    identity: str
    display_name: str = ""
    is_computer_controlled: bool = False
    difficulty_tag: Optional[str] = None

    @property
    def name(self) -> str:
        return self.display_name or self.identity


@dataclass(frozen=True)
class MoveRecord:
    """一次被接受的出牌"""
    seat_id: str
    cards: Tuple[Card, ...]
    play: Play


@dataclass(frozen=True)
class MoveResult:
    """
    命令执行结果

    Attributes:
        success: 是否被接受
        action: "play" 或 "pass"
        status: 执行后的对局状态
        winner: 获胜座位 (对局结束时)
        message: 拒绝原因或提示
        error: 错误类别 (GameError.kind)
        new_round: pass 是否开启了新一轮
    """
    success: bool
    action: str
    status: MatchStatus = MatchStatus.ACTIVE
    winner: Optional[str] = None
    message: str = ""
    error: Optional[str] = None
    new_round: bool = False

    @classmethod
    def rejected(cls, action: str, exc: GameError, status: MatchStatus) -> 'MoveResult':
        return cls(success=False, action=action, status=status, message=exc.message, error=exc.kind)


@dataclass(frozen=True)
class Snapshot:
    """某个座位可见的只读视图"""
    own_hand: Tuple[Card, ...]
    table_lead: Optional[Play]
    current_seat_id: str
    hand_sizes: Dict[str, int]
    round_number: int
    status: MatchStatus


class MatchState:
    """
    可变的对局状态

    通过 create_match() 创建；单局内单线程使用，多线程访问由 MatchSession 加锁

    Attributes:
        seats: 座位 (顺序即出牌顺序)
        hands: 座位 -> 手牌 (升序)
        current_index: 当前行动座位下标
        table_lead: 桌面出牌 (None 表示本轮尚无出牌)
        passed_seats: 本轮已过牌的座位
        last_accepting_index: 最近出牌成功的座位下标
        round_number: 轮次 (从 1 开始)
        move_history: 出牌历史 (不含 pass)
        scores: 各座位获胜次数
        opening_card: 首手必须包含的牌
        status: 对局状态
        winner: 获胜座位
        discarded: 两人局弃掉的牌
        diagnostics: 异常路径的诊断信息
    """

    def __init__(
        self,
        seats: Sequence[Seat],
        hands: Dict[str, List[Card]],
        opening_card: Optional[Card],
        current_index: int = 0,
        discarded: Iterable[Card] = (),
    ):
        self.seats: Tuple[Seat, ...] = tuple(seats)
        self.hands: Dict[str, List[Card]] = {
            seat.identity: sort_cards(hands.get(seat.identity, ())) for seat in self.seats
        }
        self.current_index = current_index
        self.table_lead: Optional[Play] = None
        self.passed_seats: Set[str] = set()
        self.last_accepting_index = current_index
        self.round_number = 1
        self.move_history: List[MoveRecord] = []
        self.scores: Dict[str, int] = {seat.identity: 0 for seat in self.seats}
        self.opening_card = opening_card
        self.status = MatchStatus.ACTIVE
        self.winner: Optional[str] = None
        self.discarded: Tuple[Card, ...] = tuple(sort_cards(discarded))
        self.diagnostics: List[str] = []
        self._version = 0
        self._index: Dict[str, int] = {seat.identity: i for i, seat in enumerate(self.seats)}

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    @property
    def version(self) -> int:
        """每次被接受的修改后递增，用于丢弃过期的决策"""
        return self._version

    @property
    def seat_count(self) -> int:
        return len(self.seats)

    @property
    def is_finished(self) -> bool:
        return self.status == MatchStatus.FINISHED

    def get_current_seat(self) -> Seat:
        return self.seats[self.current_index]

    def get_seat(self, seat_id: str) -> Seat:
        """按标识查找座位，未找到时抛出 SeatNotFound"""
        if seat_id not in self._index:
            raise SeatNotFound("Player not found")
        return self.seats[self._index[seat_id]]

    def hand_of(self, seat_id: str) -> List[Card]:
        self.get_seat(seat_id)
        return list(self.hands[seat_id])

    def hand_sizes(self) -> Dict[str, int]:
        return {seat.identity: len(self.hands[seat.identity]) for seat in self.seats}

    def snapshot_for(self, seat_id: str) -> Snapshot:
        """
        某个座位可见的状态投影

        Args:
            seat_id: 座位标识

        Returns:
            只包含本座位手牌的快照
        """
        self.get_seat(seat_id)
        return Snapshot(
            own_hand=tuple(self.hands[seat_id]),
            table_lead=self.table_lead,
            current_seat_id=self.get_current_seat().identity,
            hand_sizes=self.hand_sizes(),
            round_number=self.round_number,
            status=self.status,
        )

    def legal_plays(self, seat_id: Optional[str] = None) -> List[Play]:
        """座位当前可出的全部合法出牌 (默认当前座位)"""
        if seat_id is None:
            seat_id = self.get_current_seat().identity
        self.get_seat(seat_id)
        if self.is_finished:
            return []
        return enumerate_plays(
            self.hands[seat_id], self.table_lead, self.move_history, self.opening_card
        )

    def decision_context(self, seat_id: Optional[str] = None) -> DecisionContext:
        """
        构建策略所需的决策上下文

        Args:
            seat_id: 座位标识 (默认当前座位)

        Returns:
            决策上下文
        """
        if seat_id is None:
            seat_id = self.get_current_seat().identity
        self.get_seat(seat_id)
        sizes = self.hand_sizes()
        return DecisionContext(
            seat_id=seat_id,
            hand_size=sizes[seat_id],
            round_number=self.round_number,
            is_leading=self.table_lead is None,
            is_opening_play=len(self.move_history) == 0,
            opponent_hand_sizes={sid: n for sid, n in sizes.items() if sid != seat_id},
            recent_moves=tuple(self.move_history[-RECENT_MOVES:]),
            move_history=tuple(self.move_history),
            opening_card=self.opening_card,
        )

    def accounted_cards(self) -> List[Card]:
        """手牌 + 已出的牌 + 弃牌"""
        cards: List[Card] = []
        for seat in self.seats:
            cards.extend(self.hands[seat.identity])
        for record in self.move_history:
            cards.extend(record.cards)
        cards.extend(self.discarded)
        return cards

    def check_integrity(self) -> bool:
        """所有牌恰好各出现一次"""
        counts = cards_to_array(self.accounted_cards())
        return bool(np.array_equal(counts, np.ones(DECK_SIZE, dtype=np.float32)))

    # ------------------------------------------------------------------
    # 命令
    # ------------------------------------------------------------------

    def _check_turn(self, seat_id: str):
        if self.is_finished:
            raise MatchFinished("Game is already finished")
        self.get_seat(seat_id)
        if self.get_current_seat().identity != seat_id:
            raise NotYourTurn("Not your turn")

    def play(self, seat_id: str, cards: Iterable[Card]) -> MoveResult:
        """
        出牌

        Args:
            seat_id: 座位标识
            cards: 要出的牌

        Returns:
            执行结果；被拒绝时状态不变
        """
        cards = list(cards)
        try:
            self._check_turn(seat_id)
            if len(set(cards)) != len(cards):
                raise StructuralError("Duplicate cards")
            hand = self.hands[seat_id]
            if any(card not in hand for card in cards):
                raise CardsNotOwned("One or more cards not in player's hand")
            play = RuleEngine.validate_play(
                cards, self.table_lead, self.move_history, self.opening_card
            )
        except GameError as e:
            logger.debug(f"Rejected play {cards_to_str(cards)} from {seat_id}: {e.message}")
            return MoveResult.rejected("play", e, self.status)

        if len(self.passed_seats) >= self.seat_count - 1:
            self.passed_seats.clear()

        for card in play.cards:
            hand.remove(card)
        self.table_lead = play
        self.move_history.append(MoveRecord(seat_id=seat_id, cards=play.cards, play=play))
        self.last_accepting_index = self.current_index
        self._version += 1
        logger.debug(f"{seat_id} played {play}, {len(hand)} cards left")

        if not hand:
            self.status = MatchStatus.FINISHED
            self.winner = seat_id
            self.scores[seat_id] += 1
            logger.info(f"Match finished, winner: {seat_id} ({len(self.move_history)} plays)")
            return MoveResult(
                success=True, action="play", status=self.status, winner=seat_id,
            )

        self.advance_to_next_seat()
        return MoveResult(success=True, action="play", status=self.status)

    def pass_turn(self, seat_id: str) -> MoveResult:
        """
        过牌

        Args:
            seat_id: 座位标识

        Returns:
            执行结果；其余座位都过牌时 new_round=True
        """
        try:
            self._check_turn(seat_id)
            if self.table_lead is None:
                raise CannotPassOnLead("Cannot pass on first play")
        except GameError as e:
            logger.debug(f"Rejected pass from {seat_id}: {e.message}")
            return MoveResult.rejected("pass", e, self.status)

        self.passed_seats.add(seat_id)
        self._version += 1
        logger.debug(f"{seat_id} passed ({len(self.passed_seats)}/{self.seat_count - 1})")

        if len(self.passed_seats) >= self.seat_count - 1:
            self.current_index = self.last_accepting_index
            self.table_lead = None
            self.passed_seats.clear()
            self.round_number += 1
            logger.debug(
                f"Round {self.round_number} starts with {self.get_current_seat().identity}"
            )
            return MoveResult(success=True, action="pass", status=self.status, new_round=True)

        self.advance_to_next_seat()
        return MoveResult(success=True, action="pass", status=self.status)

    def advance_to_next_seat(self) -> int:
        """
        轮到下一个未过牌的座位

        最多绕一圈；找不到时说明过牌集合不一致，清空后取紧邻的下一个座位

        Returns:
            新的当前座位下标
        """
        n = self.seat_count
        for step in range(1, n):
            index = (self.current_index + step) % n
            if self.seats[index].identity not in self.passed_seats:
                self.current_index = index
                return index

        message = (
            f"Inconsistent pass set {sorted(self.passed_seats)} after "
            f"{self.get_current_seat().identity}; resetting"
        )
        logger.warning(message)
        self.diagnostics.append(message)
        self.passed_seats.clear()
        self.current_index = (self.current_index + 1) % n
        return self.current_index


def _find_opening_card(hands: Dict[str, List[Card]]) -> Optional[Card]:
    """所有手牌中最小的牌为开局约束牌 (发满 52 张时即方块 3)"""
    all_cards = [card for hand in hands.values() for card in hand]
    if not all_cards:
        return None
    return min(all_cards, key=lambda c: c.value)


def create_match(
    seats: Sequence[Seat],
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
) -> MatchState:
    """
    创建对局: 洗牌、发牌、确定开局座位

    Args:
        seats: 座位列表 (2-4 个)
        seed: 随机种子
        rng: 随机数生成器 (优先于 seed)

    Returns:
        初始状态

    Raises:
        InvalidSeatCount: 座位数不在 2-4 之间
        ValueError: 座位标识重复
    """
    seats = list(seats)
    if len(seats) not in HAND_SIZE_BY_SEATS:
        raise InvalidSeatCount(f"Expected 2-4 seats, got {len(seats)}")
    identities = [seat.identity for seat in seats]
    if len(set(identities)) != len(identities):
        raise ValueError(f"Duplicate seat identities: {identities}")

    if rng is None:
        rng = np.random.default_rng(seed)

    deck = [FULL_DECK[i] for i in rng.permutation(DECK_SIZE)]
    per_seat = HAND_SIZE_BY_SEATS[len(seats)]

    hands: Dict[str, List[Card]] = {}
    for i, seat in enumerate(seats):
        hands[seat.identity] = deck[i * per_seat:(i + 1) * per_seat]
    rest = deck[len(seats) * per_seat:]

    discarded: List[Card] = []
    if len(seats) == 2:
        discarded, rest = rest[:TWO_SEAT_DISCARD], rest[TWO_SEAT_DISCARD:]

    lowest = _find_opening_card(hands)
    holder = next(sid for sid, hand in hands.items() if lowest in hand)

    # 剩余的一张牌给开局座位，若它更小则成为开局约束牌
    hands[holder].extend(rest)
    opening_card = _find_opening_card(hands)

    match = MatchState(
        seats=seats,
        hands=hands,
        opening_card=opening_card,
        current_index=identities.index(holder),
        discarded=discarded,
    )
    logger.info(
        f"Match created with {len(seats)} seats, {holder} opens with {opening_card}"
    )
    logger.debug(f"Hand sizes: {match.hand_sizes()}, discarded {len(discarded)}")
    return match
