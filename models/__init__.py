"""
Model Layer - 神经网络模型

Modules:
    config: 评分网络规格
    features: 候选出牌特征编码
    scorer: 出牌评分网络
"""
from .config import ScorerSpec, SCORER_SMALL, SCORER_BASE
from .features import FEATURE_DIM, encode_candidates
from .scorer import PlayScorer, build_scorer

__all__ = [
    # config
    "ScorerSpec",
    "SCORER_SMALL",
    "SCORER_BASE",
    # features
    "FEATURE_DIM",
    "encode_candidates",
    # scorer
    "PlayScorer",
    "build_scorer",
]
