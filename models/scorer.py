"""
出牌评分网络

对每个候选的特征向量输出一个 logit，候选之间共享参数
"""
import torch
import torch.nn as nn
from typing import Optional

from .config import ScorerSpec

ACTIVATIONS = {
    "relu": lambda: nn.ReLU(inplace=True),
    "gelu": nn.GELU,
    "tanh": nn.Tanh,
}


class PlayScorer(nn.Module):
    """
    候选评分头

    输入 (batch, num_candidates, input_dim) 或 (num_candidates, input_dim)
    """

    def __init__(self, spec: Optional[ScorerSpec] = None):
        """
        Args:
            spec: 网络规格
        """
        super().__init__()
        self.spec = spec or ScorerSpec()

        if self.spec.activation not in ACTIVATIONS:
            raise ValueError(f"Unknown activation: {self.spec.activation}")

        layers = []
        in_dim = self.spec.input_dim
        for hidden_dim in self.spec.hidden_dims:
            layers.extend([
                nn.Linear(in_dim, hidden_dim),
                ACTIVATIONS[self.spec.activation](),
                nn.Dropout(self.spec.dropout),
            ])
            in_dim = hidden_dim
        layers.append(nn.Linear(in_dim, 1))

        self.fc = nn.Sequential(*layers)

    def forward(
        self,
        x: torch.Tensor,
        mask: Optional[torch.Tensor] = None,
    ) -> torch.Tensor:
        """
        Args:
            x: (..., num_candidates, input_dim) 候选特征
            mask: (..., num_candidates) 有效候选掩码

        Returns:
            logits: (..., num_candidates) 候选 logits
        """
        logits = self.fc(x).squeeze(-1)

        if mask is not None:
            logits = logits.masked_fill(mask == 0, float('-inf'))

        return logits


def build_scorer(spec: Optional[ScorerSpec] = None, seed: Optional[int] = None) -> PlayScorer:
    """
    构建评分网络

    Args:
        spec: 网络规格
        seed: 参数初始化的随机种子

    Returns:
        eval 模式的 PlayScorer
    """
    if seed is None:
        model = PlayScorer(spec)
    else:
        with torch.random.fork_rng():
            torch.manual_seed(seed)
            model = PlayScorer(spec)
    model.eval()
    return model
