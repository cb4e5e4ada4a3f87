"""Two-Tower recommenders: a basic lookup model and a deep MLP model."""

from __future__ import annotations

from typing import Sequence

import torch
import torch.nn as nn

from tower_rank.engine import inference
from tower_rank.models.towers import DeepTower, LinearTower


def dot_score(user_emb: torch.Tensor, item_emb: torch.Tensor) -> torch.Tensor:
    """Row-wise dot product; a scalar for two vectors, ``(B,)`` for two ``(B, D)``."""
    return torch.sum(user_emb * item_emb, dim=-1)


class TwoTowerModel(nn.Module):
    uses_genres = False

    def __init__(self, user_tower: nn.Module, item_tower: nn.Module, embedding_dim: int):
        super().__init__()
        self.embedding_dim = embedding_dim
        self.user_tower = user_tower
        self.item_tower = item_tower

    @property
    def num_users(self) -> int:
        return self.user_tower.num_rows

    @property
    def num_items(self) -> int:
        return self.item_tower.num_rows

    def user_forward(self, users: torch.Tensor | Sequence[int]) -> torch.Tensor:
        return self.user_tower(users)

    def item_forward(self, items: torch.Tensor | Sequence[int], genres=None) -> torch.Tensor:
        return self.item_tower(items, genres)

    score = staticmethod(dot_score)

    def forward(self, users, items, genres=None):
        return self.user_forward(users), self.item_forward(items, genres)

    # ---------------------------------------------------------------------
    def get_user_embedding(self, user_index: int) -> torch.Tensor:
        return inference.get_user_embedding(self, user_index)

    def get_scores_for_all_items(self, user_embedding: torch.Tensor,
                                 chunk_size: int = inference.DEFAULT_CHUNK_SIZE) -> torch.Tensor:
        return inference.score_all_items(self, user_embedding, chunk_size=chunk_size)

    def get_item_embeddings(self) -> torch.Tensor:
        # base table only; the deep tower's MLP is not applied
        return self.item_tower.embeddings.weight.detach()


class BasicTwoTowerModel(TwoTowerModel):
    def __init__(self, num_users: int, num_items: int, embedding_dim: int = 32):
        super().__init__(
            LinearTower(num_users, embedding_dim),
            LinearTower(num_items, embedding_dim),
            embedding_dim,
        )


class DeepTwoTowerModel(TwoTowerModel):
    uses_genres = True

    def __init__(self, num_users: int, num_items: int, embedding_dim: int = 32,
                 num_genres: int = 19):
        super().__init__(
            DeepTower(num_users, embedding_dim),
            DeepTower(num_items, embedding_dim, num_side_features=num_genres),
            embedding_dim,
        )
        self.num_genres = num_genres
