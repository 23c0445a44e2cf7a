"""
Strategy Layer - 电脑座位的决策策略

Modules:
    base: 策略基类
    config: 策略配置
    heuristic: 启发式策略
    external: 外部策略 (校验、超时与回退) 与语言模型策略
    model: 神经网络评分策略
    registry: 策略注册与工厂
"""
from .base import Strategy
from .config import HeuristicConfig, ExternalStrategyConfig, STANDARD, EASY, HARD
from .heuristic import (
    DangerLevel,
    HeuristicStrategy,
    danger_level,
    score_play,
    rank_candidates,
)
from .external import (
    ExternalStrategy,
    LanguageModelStrategy,
    parse_card_spec,
    parse_reply,
    map_cards_from_hand,
)
from .registry import (
    StrategyRegistry,
    get_registry,
    build_strategy,
    strategies_for_seats,
)

__all__ = [
    # base
    "Strategy",
    # config
    "HeuristicConfig",
    "ExternalStrategyConfig",
    "STANDARD",
    "EASY",
    "HARD",
    # heuristic
    "DangerLevel",
    "HeuristicStrategy",
    "danger_level",
    "score_play",
    "rank_candidates",
    # external
    "ExternalStrategy",
    "LanguageModelStrategy",
    "parse_card_spec",
    "parse_reply",
    "map_cards_from_hand",
    # registry
    "StrategyRegistry",
    "get_registry",
    "build_strategy",
    "strategies_for_seats",
]
