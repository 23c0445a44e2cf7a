"""
策略注册与工厂

按座位的难度标签创建策略
"""
from typing import Any, Callable, Dict, Iterable, List, Optional
import logging

from core.state import Seat

from .base import Strategy
from .config import HeuristicConfig, EASY, HARD
from .heuristic import HeuristicStrategy

logger = logging.getLogger(__name__)

DEFAULT_TAG = "standard"


def _standard(**kwargs) -> Strategy:
    kwargs.setdefault("name", "standard")
    return HeuristicStrategy(**kwargs)


def _easy(**kwargs) -> Strategy:
    kwargs.setdefault("config", HeuristicConfig.from_dict(EASY.to_dict()))
    kwargs.setdefault("name", "easy")
    return HeuristicStrategy(**kwargs)


def _hard(**kwargs) -> Strategy:
    kwargs.setdefault("config", HeuristicConfig.from_dict(HARD.to_dict()))
    kwargs.setdefault("name", "hard")
    return HeuristicStrategy(**kwargs)


def _model(**kwargs) -> Strategy:
    from .model import ModelStrategy
    return ModelStrategy(**kwargs)


def _llm(**kwargs) -> Strategy:
    from .external import LanguageModelStrategy
    kwargs.pop("seed", None)
    if kwargs.get("client") is None:
        logger.warning(
            f"No language model client for {kwargs.get('name', 'llm')}; "
            f"every decision will use the fallback strategy"
        )
    return LanguageModelStrategy(**kwargs)


class StrategyRegistry:
    """
    策略注册与工厂

    单例模式管理标签到策略工厂的映射
    """

    _instance: Optional['StrategyRegistry'] = None

    def __init__(self):
        self._factories: Dict[str, Callable[..., Strategy]] = {}
        self._register_defaults()

    @classmethod
    def get_instance(cls) -> 'StrategyRegistry':
        """获取单例实例"""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def _register_defaults(self):
        """注册默认策略"""
        self._factories["standard"] = _standard
        self._factories["easy"] = _easy
        self._factories["hard"] = _hard
        self._factories["model"] = _model
        self._factories["llm"] = _llm

    def register(self, tag: str, factory: Callable[..., Strategy]):
        """注册策略工厂"""
        self._factories[tag] = factory

    def list_tags(self) -> List[str]:
        """列出所有注册的标签"""
        return list(self._factories.keys())

    def build(self, tag: Optional[str] = None, **kwargs) -> Strategy:
        """
        按标签创建策略

        Args:
            tag: 难度标签，未知或为空时使用 standard
            **kwargs: 传给工厂的参数

        Returns:
            策略实例
        """
        tag = tag or DEFAULT_TAG
        if tag not in self._factories:
            logger.warning(f"Unknown strategy tag: {tag}, falling back to {DEFAULT_TAG}")
            tag = DEFAULT_TAG
        return self._factories[tag](**kwargs)


def get_registry() -> StrategyRegistry:
    """获取全局注册表"""
    return StrategyRegistry.get_instance()


def build_strategy(tag: Optional[str] = None, **kwargs) -> Strategy:
    """
    便捷函数: 按标签创建策略

    Example:
        >>> strategy = build_strategy("easy", seed=0)
    """
    return get_registry().build(tag, **kwargs)


def strategies_for_seats(
    seats: Iterable[Seat],
    seed: Optional[int] = None,
    client: Optional[Callable[[Dict[str, Any]], str]] = None,
) -> Dict[str, Strategy]:
    """
    为所有电脑座位创建策略

    Args:
        seats: 座位列表
        seed: 随机种子 (按座位顺序递增)
        client: 语言模型 client，传给标签为 llm 的座位

    Returns:
        座位标识 -> 策略
    """
    strategies: Dict[str, Strategy] = {}
    for i, seat in enumerate(seats):
        if not seat.is_computer_controlled:
            continue
        kwargs: Dict[str, Any] = {} if seed is None else {"seed": seed + i}
        if seat.difficulty_tag == "llm" and client is not None:
            kwargs["client"] = client
        strategies[seat.identity] = build_strategy(seat.difficulty_tag, **kwargs)
    return strategies
