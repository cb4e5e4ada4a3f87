"""Dense per-entity embedding tables."""

from __future__ import annotations

from typing import Sequence

import torch
import torch.nn as nn

from tower_rank.errors import InvalidBatch


def as_index_tensor(indices: torch.Tensor | Sequence[int], device=None) -> torch.Tensor:
    if isinstance(indices, torch.Tensor):
        return indices.to(device=device, dtype=torch.long).reshape(-1)
    return torch.as_tensor(list(indices), dtype=torch.long, device=device)


class EmbeddingStore(nn.Module):
    """Fixed-size ``[num_rows, dim]`` table with bounds-checked row lookup.

    The table is a plain ``nn.Embedding`` with dense gradients, so rows that a
    batch does not touch get an all-zero gradient row and the optimizer leaves
    them where they are.
    """

    def __init__(self, num_rows: int, dim: int, init_std: float = 0.05):
        super().__init__()
        if num_rows <= 0 or dim <= 0:
            raise ValueError(f"table shape must be positive, got ({num_rows}, {dim})")
        self.num_rows = num_rows
        self.dim = dim
        self.table = nn.Embedding(num_rows, dim)
        nn.init.normal_(self.table.weight, mean=0.0, std=init_std)

    @property
    def weight(self) -> nn.Parameter:
        return self.table.weight

    def check_indices(self, idx: torch.Tensor) -> None:
        if idx.numel() == 0:
            return
        lo, hi = int(idx.min()), int(idx.max())
        if lo < 0 or hi >= self.num_rows:
            raise InvalidBatch(
                f"index out of range [0, {self.num_rows}): min={lo}, max={hi}"
            )

    def gather(self, indices: torch.Tensor | Sequence[int]) -> torch.Tensor:
        # indices may repeat; output is (len(indices), dim)
        idx = as_index_tensor(indices, device=self.weight.device)
        self.check_indices(idx)
        return self.table(idx)

    def forward(self, indices: torch.Tensor | Sequence[int]) -> torch.Tensor:
        return self.gather(indices)
