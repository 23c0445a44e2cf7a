"""
外部决策策略

外部来源 (语言模型、神经网络等) 给出的出牌必须经过本地校验:
- 牌互不重复且都在手牌中
- 与某个合法出牌的牌集合完全一致
- 只有跟牌时才能过牌

超时、格式错误、选了非法的牌都会记录警告并回退到启发式策略，对局不会被阻塞
"""
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Any, Callable, Dict, List, Optional, Sequence
import json
import logging
import re

from core.cards import Card, Rank, Suit, RANK_TO_STR, cards_to_str
from core.actions import Play, enumerate_plays
from core.decision import Decision, DecisionContext
from core.errors import ExternalStrategyError

from .base import Strategy
from .config import ExternalStrategyConfig
from .heuristic import HeuristicStrategy

logger = logging.getLogger(__name__)


class ExternalStrategy(Strategy):
    """
    外部策略基类

    子类实现 propose()，返回候选决策；本类负责超时、校验与回退
    外部调用在一个常驻工作线程中执行，上一次调用未返回前新的决策直接回退

    Args:
        fallback: 回退策略 (默认启发式)
        config: 外部策略配置
        name: 名称
    """

    def __init__(
        self,
        fallback: Optional[Strategy] = None,
        config: Optional[ExternalStrategyConfig] = None,
        name: str = "external",
    ):
        super().__init__(name)
        self.config = config or ExternalStrategyConfig()
        self.fallback = fallback or HeuristicStrategy()
        self.fallback_count = 0
        self._executor: Optional[ThreadPoolExecutor] = None
        self._pending: Optional[Future] = None

    @property
    def busy(self) -> bool:
        """上一次外部调用是否仍在执行"""
        return self._pending is not None and not self._pending.done()

    def close(self):
        """释放工作线程 (不等待仍在执行的调用)"""
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None

    def propose(
        self,
        hand: List[Card],
        table_lead: Optional[Play],
        context: DecisionContext,
        candidates: List[Play],
    ) -> Decision:
        """向外部来源请求决策"""
        raise NotImplementedError

    def decide(
        self,
        hand: List[Card],
        table_lead: Optional[Play],
        context: Optional[DecisionContext] = None,
    ) -> Decision:
        if context is None:
            context = DecisionContext(hand_size=len(hand), is_leading=table_lead is None)

        candidates = enumerate_plays(hand, table_lead, context.move_history, context.opening_card)
        if not candidates:
            return Decision.pass_turn("No valid moves available")

        try:
            proposal = self._propose_with_timeout(hand, table_lead, context, candidates)
            decision = self.verify(proposal, hand, table_lead, candidates)
            logger.debug(f"{self.name}: {decision} ({decision.explanation or 'no reason given'})")
            return decision
        except ExternalStrategyError as e:
            logger.warning(f"{self.name}: {e.message}; falling back to {self.fallback.name}")
        except Exception as e:
            logger.warning(f"{self.name}: unexpected error {e!r}; falling back to {self.fallback.name}")

        self.fallback_count += 1
        return self.fallback.decide(hand, table_lead, context)

    def _propose_with_timeout(
        self,
        hand: List[Card],
        table_lead: Optional[Play],
        context: DecisionContext,
        candidates: List[Play],
    ) -> Decision:
        if self.busy:
            raise ExternalStrategyError("Previous request still running")
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=self.name)

        future = self._executor.submit(self.propose, list(hand), table_lead, context, list(candidates))
        self._pending = future
        try:
            return future.result(timeout=self.config.timeout_s)
        except FutureTimeout:
            raise ExternalStrategyError(
                f"No response within {self.config.timeout_s:.1f}s"
            )

    @staticmethod
    def verify(
        proposal: Any,
        hand: Sequence[Card],
        table_lead: Optional[Play],
        candidates: Sequence[Play],
    ) -> Decision:
        """
        校验外部给出的决策

        Args:
            proposal: 外部决策
            hand: 当前手牌
            table_lead: 桌面出牌
            candidates: 本地枚举的合法出牌

        Returns:
            规范化后的决策 (牌取自合法出牌)

        Raises:
            ExternalStrategyError: 决策不合法
        """
        if not isinstance(proposal, Decision):
            raise ExternalStrategyError(f"Malformed proposal: {proposal!r}")

        if proposal.is_pass:
            if table_lead is None:
                raise ExternalStrategyError("Cannot pass while leading")
            return Decision.pass_turn(proposal.explanation)

        cards = list(proposal.cards)
        if not cards:
            raise ExternalStrategyError("Proposal has no cards")
        if len(set(cards)) != len(cards):
            raise ExternalStrategyError(f"Duplicate cards in proposal: {cards_to_str(cards)}")
        missing = [c for c in cards if c not in hand]
        if missing:
            raise ExternalStrategyError(f"Cards not in hand: {cards_to_str(missing)}")

        selected = frozenset(cards)
        for play in candidates:
            if play.card_set == selected:
                return Decision.play(play.cards, proposal.explanation)
        raise ExternalStrategyError(f"Not a valid play: {cards_to_str(cards)}")


# ----------------------------------------------------------------------
# 语言模型策略
# ----------------------------------------------------------------------

SYSTEM_PROMPT = """You are a Big 2 card game assistant.

CRITICAL RULE: You can ONLY select cards from the "VALID PLAYS" list provided to you. Do not create your own combinations.

Basic Big 2 rules:
- Single cards: 3 < 4 < 5 < 6 < 7 < 8 < 9 < 10 < J < Q < K < A < 2
- Suits: ♦ < ♣ < ♥ < ♠
- Match card count (single vs single, pair vs pair)

Strategy: Generally prefer lower cards when leading, save high cards for later.

Reply with JSON only:
{"action":"pass","explanation":"reason"} or {"action":"play","cards":[exact cards from list],"explanation":"reason"}

Keep explanations under 100 characters."""

_RANK_TOKENS: Dict[str, Rank] = {v: Rank(k) for k, v in RANK_TO_STR.items()}
_RANK_TOKENS["T"] = Rank.TEN

_SUIT_TOKENS: Dict[str, Suit] = {
    "♦": Suit.DIAMONDS, "♢": Suit.DIAMONDS, "D": Suit.DIAMONDS, "DIAMOND": Suit.DIAMONDS,
    "DIAMONDS": Suit.DIAMONDS,
    "♣": Suit.CLUBS, "♧": Suit.CLUBS, "C": Suit.CLUBS, "CLUB": Suit.CLUBS, "CLUBS": Suit.CLUBS,
    "♥": Suit.HEARTS, "♡": Suit.HEARTS, "H": Suit.HEARTS, "HEART": Suit.HEARTS,
    "HEARTS": Suit.HEARTS,
    "♠": Suit.SPADES, "♤": Suit.SPADES, "S": Suit.SPADES, "SPADE": Suit.SPADES,
    "SPADES": Suit.SPADES,
}

_CARD_PATTERN = re.compile(r"^(10|[2-9JQKAT])\s*(.+)$", re.IGNORECASE)
_SWAPPED_PATTERN = re.compile(r"^([♦♢♣♧♥♡♠♤])\s*(10|[2-9JQKAT])$", re.IGNORECASE)


def _rank_token(token: str) -> Optional[Rank]:
    return _RANK_TOKENS.get(str(token).strip().upper())


def _suit_token(token: str) -> Optional[Suit]:
    return _SUIT_TOKENS.get(str(token).strip().upper())


def parse_card_spec(spec: Any) -> Card:
    """
    解析宽松格式的牌

    支持 "6♦"、"10S"、"T♠"、"♦6"，以及 {"value": "6", "suit": "♦"} (字段互换也可)

    Raises:
        ExternalStrategyError: 无法解析
    """
    if isinstance(spec, dict):
        value = spec.get("value", spec.get("rank"))
        suit = spec.get("suit")
        rank, suit_ = _rank_token(value), _suit_token(suit)
        if rank is None or suit_ is None:
            # 字段互换
            rank, suit_ = _rank_token(suit), _suit_token(value)
        if rank is None or suit_ is None:
            raise ExternalStrategyError(f"Invalid card spec: {spec!r}")
        return Card(rank, suit_)

    if isinstance(spec, str):
        text = spec.strip()
        match = _CARD_PATTERN.match(text)
        if match:
            rank, suit = _rank_token(match.group(1)), _suit_token(match.group(2))
            if rank is not None and suit is not None:
                return Card(rank, suit)
        match = _SWAPPED_PATTERN.match(text)
        if match:
            return Card(_rank_token(match.group(2)), _suit_token(match.group(1)))
        raise ExternalStrategyError(f"Failed to parse card string: {spec!r}")

    raise ExternalStrategyError(f"Invalid card spec: {spec!r}")


def split_card_specs(specs: Any) -> List[Any]:
    """把逗号拼接的字符串拆成单张"""
    if isinstance(specs, (str, dict)):
        specs = [specs]
    if not isinstance(specs, list):
        raise ExternalStrategyError(f"Cards must be a list, got {type(specs).__name__}")
    result: List[Any] = []
    for spec in specs:
        if isinstance(spec, str) and "," in spec:
            result.extend(s.strip() for s in spec.split(",") if s.strip())
        else:
            result.append(spec)
    return result


def map_cards_from_hand(specs: Any, hand: Sequence[Card]) -> List[Card]:
    """
    将外部返回的牌映射到手牌

    Raises:
        ExternalStrategyError: 无法解析或不在手牌中
    """
    remaining = list(hand)
    selected: List[Card] = []
    for spec in split_card_specs(specs):
        card = parse_card_spec(spec)
        if card not in remaining:
            raise ExternalStrategyError(f"Selected card not in hand: {card}")
        remaining.remove(card)
        selected.append(card)
    return selected


def parse_reply(content: Any, explanation_limit: int = 100) -> Dict[str, Any]:
    """
    解析模型回复中的第一个 JSON 对象

    Raises:
        ExternalStrategyError: 回复不是字符串或不含 JSON 对象
    """
    if not isinstance(content, str):
        raise ExternalStrategyError("Unable to parse model response")

    sanitized = re.sub(r"```json", "", content, flags=re.IGNORECASE).replace("```", "").strip()
    start = sanitized.find("{")
    if start < 0:
        raise ExternalStrategyError("Unable to parse model response")
    try:
        parsed, _ = json.JSONDecoder().raw_decode(sanitized[start:])
    except json.JSONDecodeError as e:
        raise ExternalStrategyError(f"Unable to parse model response: {e.msg}")
    if not isinstance(parsed, dict):
        raise ExternalStrategyError("Unable to parse model response")

    explanation = parsed.get("explanation")
    if isinstance(explanation, str) and len(explanation) > explanation_limit:
        parsed["explanation"] = explanation[:explanation_limit - 3] + "..."
    return parsed


class LanguageModelStrategy(ExternalStrategy):
    """
    语言模型策略

    构造请求交给调用方提供的 client，解析 JSON 回复

    Args:
        client: 接收请求字典、返回回复文本的可调用对象
        fallback: 回退策略
        config: 外部策略配置
        name: 名称
    """

    def __init__(
        self,
        client: Optional[Callable[[Dict[str, Any]], str]] = None,
        fallback: Optional[Strategy] = None,
        config: Optional[ExternalStrategyConfig] = None,
        name: str = "llm",
    ):
        super().__init__(fallback=fallback, config=config, name=name)
        self.client = client

    def build_request(
        self,
        hand: Sequence[Card],
        table_lead: Optional[Play],
        context: DecisionContext,
        candidates: Sequence[Play],
    ) -> Dict[str, Any]:
        """构造请求"""
        return {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": self.build_user_prompt(hand, table_lead, context, candidates)},
            ],
            "temperature": self.config.temperature,
            "timeout_s": self.config.timeout_s,
        }

    def build_user_prompt(
        self,
        hand: Sequence[Card],
        table_lead: Optional[Play],
        context: DecisionContext,
        candidates: Sequence[Play],
    ) -> str:
        opponents = "\n".join(
            f"- {seat_id}: {n} cards" for seat_id, n in context.opponent_hand_sizes.items()
        ) or "No opponent information available."

        moves = context.move_history or context.recent_moves
        recent = list(moves)[-self.config.history_length:]
        history = "\n".join(
            f"{move.seat_id} played {cards_to_str(move.cards)}" for move in recent
        ) or "No moves have been played yet."

        if table_lead is None:
            last_play = "None (you are leading this trick)."
        else:
            last_play = f"{cards_to_str(table_lead.cards)} ({table_lead.hand_type.label})"

        plays = "\n".join(
            f"{i + 1}. {cards_to_str(play.cards)} [{play.hand_type.label}]"
            for i, play in enumerate(candidates)
        )

        tip = (
            "Tip: When leading, prefer lower-numbered options from the list above."
            if table_lead is None else "Tip: Choose from above or pass."
        )

        return "\n".join([
            f"Round: {context.round_number} | Your hand: {cards_to_str(hand)}",
            f"Last played: {last_play}",
            "Opponents:\n" + opponents,
            "Recent moves:\n" + history,
            "",
            "*** VALID PLAYS - CHOOSE EXACTLY FROM THIS LIST ***",
            plays,
            "",
            tip,
            'Format: {"action":"play","cards":[copy exact cards from list above],'
            '"explanation":"brief reason"}',
        ])

    def propose(
        self,
        hand: List[Card],
        table_lead: Optional[Play],
        context: DecisionContext,
        candidates: List[Play],
    ) -> Decision:
        if self.client is None:
            raise ExternalStrategyError("No language model client configured")

        request = self.build_request(hand, table_lead, context, candidates)
        reply = self.client(request)
        parsed = parse_reply(reply, self.config.explanation_limit)

        action = parsed.get("action")
        explanation = parsed.get("explanation")
        if not isinstance(explanation, str):
            explanation = None

        if action == "pass":
            return Decision.pass_turn(explanation)
        if action != "play" or "cards" not in parsed:
            raise ExternalStrategyError("Model response missing playable cards")

        cards = map_cards_from_hand(parsed["cards"], hand)
        return Decision.play(cards, explanation)
