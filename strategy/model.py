"""
模型策略

用 PlayScorer 给候选打分，结果同样经过外部策略的校验与回退
"""
from typing import List, Optional
import logging

import torch
import torch.nn as nn

from core.cards import Card
from core.actions import Play
from core.decision import Decision, DecisionContext
from core.errors import ExternalStrategyError
from models.config import ScorerSpec
from models.features import encode_candidates
from models.scorer import build_scorer

from .base import Strategy
from .config import ExternalStrategyConfig
from .external import ExternalStrategy

logger = logging.getLogger(__name__)


class ModelStrategy(ExternalStrategy):
    """
    模型策略

    Args:
        model: 评分网络 (默认按 spec 新建)
        spec: 新建网络的规格
        deterministic: True 取最高分，False 按 softmax 采样
        seed: 参数初始化与采样的随机种子
        device: 推理设备
        fallback: 回退策略
        config: 外部策略配置
        name: 名称
    """

    def __init__(
        self,
        model: Optional[nn.Module] = None,
        spec: Optional[ScorerSpec] = None,
        deterministic: bool = True,
        seed: Optional[int] = None,
        device: str = "cpu",
        fallback: Optional[Strategy] = None,
        config: Optional[ExternalStrategyConfig] = None,
        name: str = "model",
    ):
        super().__init__(fallback=fallback, config=config, name=name)
        self.model = model if model is not None else build_scorer(spec, seed=seed)
        self.device = torch.device(device)
        self.deterministic = deterministic
        self.generator = torch.Generator()
        if seed is not None:
            self.generator.manual_seed(seed)
        self.model.to(self.device)
        self.model.eval()

    def propose(
        self,
        hand: List[Card],
        table_lead: Optional[Play],
        context: DecisionContext,
        candidates: List[Play],
    ) -> Decision:
        # 跟牌时 pass 也是一个选项 (最后一行)
        include_pass = table_lead is not None
        features = encode_candidates(hand, table_lead, context, candidates, include_pass)

        with torch.no_grad():
            x = torch.from_numpy(features).to(self.device)
            logits = self.model(x)

        if tuple(logits.shape) != (features.shape[0],):
            raise ExternalStrategyError(
                f"Expected {features.shape[0]} scores, got shape {tuple(logits.shape)}"
            )
        if not bool(torch.isfinite(logits).all()):
            raise ExternalStrategyError("Model produced non-finite scores")

        if self.deterministic:
            index = int(logits.argmax().item())
        else:
            probs = torch.softmax(logits, dim=-1).cpu()
            index = int(torch.multinomial(probs, 1, generator=self.generator).item())

        if index == len(candidates):
            return Decision.pass_turn("model prefers to pass")
        return Decision.play(candidates[index].cards)
