"""
Core Layer - 纯游戏逻辑 (无 ML 依赖)

Modules:
    cards: 牌定义与编码
    actions: 牌型与合法出牌生成
    rules: 规则引擎
    state: 对局状态机
    decision: 决策接口类型
    session: 单局并发保护
    errors: 错误类型
"""
from .cards import (
    Rank,
    Suit,
    Card,
    FULL_DECK,
    DECK_SIZE,
    THREE_OF_DIAMONDS,
    card_value,
    sort_cards,
    cards_to_array,
    array_to_cards,
    cards_to_str,
)

from .actions import (
    HandType,
    HAND_HIERARCHY,
    Play,
    PlayGenerator,
    enumerate_plays,
    sort_plays_by_strength,
)

from .rules import RuleEngine, HandClassification

from .state import (
    MatchStatus,
    Seat,
    MoveRecord,
    MoveResult,
    Snapshot,
    MatchState,
    create_match,
)

from .decision import Decision, DecisionContext

from .session import MatchSession

from .errors import (
    GameError,
    StructuralError,
    OwnershipError,
    CardsNotOwned,
    TurnError,
    SeatNotFound,
    NotYourTurn,
    CannotPassOnLead,
    MatchFinished,
    MatchTerminated,
    DecisionInFlight,
    RankingError,
    OpeningConstraintError,
    ExternalStrategyError,
    InvalidSeatCount,
)

__all__ = [
    # cards
    "Rank",
    "Suit",
    "Card",
    "FULL_DECK",
    "DECK_SIZE",
    "THREE_OF_DIAMONDS",
    "card_value",
    "sort_cards",
    "cards_to_array",
    "array_to_cards",
    "cards_to_str",
    # actions
    "HandType",
    "HAND_HIERARCHY",
    "Play",
    "PlayGenerator",
    "enumerate_plays",
    "sort_plays_by_strength",
    # rules
    "RuleEngine",
    "HandClassification",
    # state
    "MatchStatus",
    "Seat",
    "MoveRecord",
    "MoveResult",
    "Snapshot",
    "MatchState",
    "create_match",
    # decision
    "Decision",
    "DecisionContext",
    # session
    "MatchSession",
    # errors
    "GameError",
    "StructuralError",
    "OwnershipError",
    "CardsNotOwned",
    "TurnError",
    "SeatNotFound",
    "NotYourTurn",
    "CannotPassOnLead",
    "MatchFinished",
    "MatchTerminated",
    "DecisionInFlight",
    "RankingError",
    "OpeningConstraintError",
    "ExternalStrategyError",
    "InvalidSeatCount",
]
