"""
错误类型

规则校验失败时抛出，状态机捕获后转换为结构化的拒绝结果
"""


class GameError(Exception):
    """所有游戏错误的基类"""
    kind = "game_error"

    def __init__(self, message: str = ""):
        self.message = message or self.__class__.__name__
        super().__init__(self.message)


class StructuralError(GameError):
    """牌数错误、点数不一致等牌型结构问题"""
    kind = "structural"


class OwnershipError(GameError):
    """出的牌不在手牌中"""
    kind = "ownership"


class CardsNotOwned(OwnershipError):
    pass


class TurnError(GameError):
    """回合顺序错误"""
    kind = "turn"


class SeatNotFound(TurnError):
    kind = "seat_not_found"


class NotYourTurn(TurnError):
    kind = "not_your_turn"


class CannotPassOnLead(TurnError):
    kind = "cannot_pass_on_lead"


class MatchFinished(TurnError):
    kind = "match_finished"


class MatchTerminated(TurnError):
    kind = "match_terminated"


class DecisionInFlight(TurnError):
    """该座位的决策仍在进行中"""
    kind = "decision_in_flight"


class RankingError(GameError):
    """牌型合法但无法压过桌面上的牌"""
    kind = "ranking"


class OpeningConstraintError(GameError):
    """首手牌未包含开局约束牌"""
    kind = "opening_constraint"


class ExternalStrategyError(GameError):
    """外部策略超时、返回格式错误或选择了非法的牌 (总是本地回退)"""
    kind = "external_strategy"


class InvalidSeatCount(GameError, ValueError):
    kind = "invalid_seat_count"
