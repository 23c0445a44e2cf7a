"""
模型配置

定义出牌评分网络的规格
"""
from dataclasses import dataclass
from typing import Literal, Dict, Any, Tuple

from .features import FEATURE_DIM


@dataclass
class ScorerSpec:
    """
    评分网络规格

    Attributes:
        input_dim: 单个候选的特征维度
        hidden_dims: 隐藏层维度
        activation: 激活函数
        dropout: Dropout 概率
    """
    # 输入维度 (应与 features.FEATURE_DIM 一致)
    input_dim: int = FEATURE_DIM

    # 隐藏层
    hidden_dims: Tuple[int, ...] = (256, 128)

    activation: Literal["relu", "gelu", "tanh"] = "relu"

    # 正则化
    dropout: float = 0.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'ScorerSpec':
        """从字典创建配置"""
        valid_keys = cls.__dataclass_fields__.keys()
        filtered = {k: v for k, v in d.items() if k in valid_keys}
        if "hidden_dims" in filtered:
            filtered["hidden_dims"] = tuple(filtered["hidden_dims"])
        return cls(**filtered)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        return {
            "input_dim": self.input_dim,
            "hidden_dims": list(self.hidden_dims),
            "activation": self.activation,
            "dropout": self.dropout,
        }


# 预定义配置
SCORER_SMALL = ScorerSpec(hidden_dims=(64,))

SCORER_BASE = ScorerSpec(hidden_dims=(256, 128))
