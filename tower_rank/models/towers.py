"""User / item towers: index (+ side features) -> embedding."""

from __future__ import annotations

from typing import Sequence

import numpy as np
import torch
import torch.nn as nn

from tower_rank.errors import DimensionMismatch, InvalidBatch
from tower_rank.models.embedding import EmbeddingStore, as_index_tensor

# ---------------------------------------------------------------------------
# Utilities
# ---------------------------------------------------------------------------


def _glorot_init(m: nn.Module) -> None:
    if isinstance(m, nn.Linear):
        nn.init.xavier_normal_(m.weight)
        if m.bias is not None:
            nn.init.zeros_(m.bias)


def as_feature_tensor(features, device=None) -> torch.Tensor:
    if isinstance(features, torch.Tensor):
        return features.to(device=device, dtype=torch.float32)
    return torch.as_tensor(np.asarray(features, dtype=np.float32), device=device)


# ---------------------------------------------------------------------------
class LinearTower(nn.Module):
    """Plain embedding lookup, no transform."""

    def __init__(self, num_rows: int, embedding_dim: int):
        super().__init__()
        self.embeddings = EmbeddingStore(num_rows, embedding_dim)

    @property
    def num_rows(self) -> int:
        return self.embeddings.num_rows

    def forward(self, indices: torch.Tensor | Sequence[int], side_features=None) -> torch.Tensor:
        if side_features is not None:
            raise DimensionMismatch("linear tower takes no side features")
        return self.embeddings.gather(indices)


# ---------------------------------------------------------------------------
class DeepTower(nn.Module):
    """Embedding lookup followed by ``Linear(2D) -> ReLU -> Linear(D)``.

    With ``num_side_features > 0`` the base embedding is concatenated with a
    side-feature row per index before the MLP. A missing feature block is
    replaced by zeros, which is what all-items inference relies on since it
    has no genre rows at hand.
    """

    def __init__(self, num_rows: int, embedding_dim: int, num_side_features: int = 0):
        super().__init__()
        self.num_side_features = num_side_features
        self.embeddings = EmbeddingStore(num_rows, embedding_dim)
        self.hidden = nn.Linear(embedding_dim + num_side_features, embedding_dim * 2)
        self.output = nn.Linear(embedding_dim * 2, embedding_dim)
        self.reset_parameters()

    def reset_parameters(self) -> None:
        _glorot_init(self.hidden)
        _glorot_init(self.output)

    @property
    def num_rows(self) -> int:
        return self.embeddings.num_rows

    def _side_block(self, side_features, batch: int, device) -> torch.Tensor:
        if side_features is None:
            return torch.zeros(batch, self.num_side_features, device=device)
        feats = as_feature_tensor(side_features, device=device)
        if feats.dim() != 2 or feats.size(1) != self.num_side_features:
            raise DimensionMismatch(
                f"expected side features of width {self.num_side_features}, "
                f"got shape {tuple(feats.shape)}"
            )
        if feats.size(0) != batch:
            raise InvalidBatch(f"{feats.size(0)} feature rows for {batch} indices")
        return feats

    def forward(self, indices: torch.Tensor | Sequence[int], side_features=None) -> torch.Tensor:
        idx = as_index_tensor(indices, device=self.embeddings.weight.device)
        x = self.embeddings.gather(idx)  # (B, D)
        if self.num_side_features:
            x = torch.cat([x, self._side_block(side_features, idx.numel(), x.device)], dim=1)
        elif side_features is not None:
            raise DimensionMismatch("tower was built without side features")
        h = torch.relu(self.hidden(x))  # (B, 2D)
        return self.output(h)  # (B, D)
