"""
候选出牌特征编码

每个候选 (含跟牌时的 pass) 编码为一个定长向量:
    [0:52]     手牌 one-hot
    [52:104]   候选出牌 one-hot (pass 为全零)
    [104:156]  桌面出牌 one-hot
    [156:166]  候选牌型 one-hot (第 0 位为 pass)
    [166:172]  标量: 自己手牌数、对手最少牌数、是否主动出牌、轮次、出牌张数、牌型等级
"""
from typing import Optional, Sequence

import numpy as np

from core.cards import Card, DECK_SIZE, cards_to_array
from core.actions import Play, HandType
from core.decision import DecisionContext

# 最大手牌数 (两/三人局开局座位)
MAX_HAND_SIZE = 18

# 轮次归一化
MAX_ROUNDS = 50

TYPE_DIM = len(HandType) + 1
SCALAR_DIM = 6

FEATURE_DIM = DECK_SIZE * 3 + TYPE_DIM + SCALAR_DIM


def encode_candidates(
    hand: Sequence[Card],
    table_lead: Optional[Play],
    context: DecisionContext,
    candidates: Sequence[Play],
    include_pass: bool = False,
) -> np.ndarray:
    """
    编码所有候选

    Args:
        hand: 当前手牌
        table_lead: 桌面出牌
        context: 决策上下文
        candidates: 候选出牌
        include_pass: 是否在末尾追加 pass 选项

    Returns:
        (num_candidates [+1], FEATURE_DIM) float32 数组
    """
    hand_vec = cards_to_array(hand)
    lead_vec = cards_to_array(table_lead.cards) if table_lead is not None else np.zeros(DECK_SIZE, dtype=np.float32)

    smallest = context.min_opponent_hand_size
    shared = np.array([
        len(hand) / MAX_HAND_SIZE,
        (smallest if smallest is not None else MAX_HAND_SIZE) / MAX_HAND_SIZE,
        float(table_lead is None),
        min(context.round_number, MAX_ROUNDS) / MAX_ROUNDS,
    ], dtype=np.float32)

    rows = len(candidates) + (1 if include_pass else 0)
    features = np.zeros((rows, FEATURE_DIM), dtype=np.float32)
    features[:, 0:DECK_SIZE] = hand_vec
    features[:, 2 * DECK_SIZE:3 * DECK_SIZE] = lead_vec

    type_offset = 3 * DECK_SIZE
    scalar_offset = type_offset + TYPE_DIM
    features[:, scalar_offset:scalar_offset + 4] = shared

    for i, play in enumerate(candidates):
        features[i, DECK_SIZE:2 * DECK_SIZE] = cards_to_array(play.cards)
        features[i, type_offset + int(play.hand_type)] = 1.0
        features[i, scalar_offset + 4] = play.size / 5
        features[i, scalar_offset + 5] = play.hierarchy / 6

    if include_pass:
        features[-1, type_offset] = 1.0

    return features
