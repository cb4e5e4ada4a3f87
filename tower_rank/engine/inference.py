"""Read-only scoring helpers shared by both Two-Tower variants."""

from __future__ import annotations

from typing import Iterable

import torch

DEFAULT_CHUNK_SIZE = 100


@torch.no_grad()
def get_user_embedding(model, user_index: int) -> torch.Tensor:
    """Single-row user tower forward, returned as a ``(D,)`` vector."""
    return model.user_forward([int(user_index)]).squeeze(0)


@torch.no_grad()
def score_all_items(model, user_embedding: torch.Tensor,
                    chunk_size: int = DEFAULT_CHUNK_SIZE) -> torch.Tensor:
    """Score every item index against one user embedding.

    Items are encoded ``chunk_size`` at a time in index order. The deep item
    tower gets no genre rows here, so it sees zero genre vectors.
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    user_embedding = user_embedding.reshape(-1)
    device = next(model.parameters()).device
    user_embedding = user_embedding.to(device)

    scores = []
    for start in range(0, model.num_items, chunk_size):
        end = min(start + chunk_size, model.num_items)
        items = torch.arange(start, end, dtype=torch.long, device=device)
        item_embs = model.item_forward(items)  # (chunk, D)
        scores.append(model.score(item_embs, user_embedding.unsqueeze(0)))
    return torch.cat(scores).cpu()


def top_k_items(scores: torch.Tensor, k: int,
                exclude: Iterable[int] = ()) -> list[tuple[int, float]]:
    """Highest-scoring ``(item_index, score)`` pairs, skipping ``exclude``."""
    scores = scores.detach().clone().float()
    excluded = [int(i) for i in exclude]
    if excluded:
        scores[torch.as_tensor(excluded, dtype=torch.long)] = float("-inf")
    available = scores.numel() - len(set(excluded))
    k = max(0, min(k, available))
    if k == 0:
        return []
    vals, idx = torch.topk(scores, k)
    return [(int(i), float(v)) for i, v in zip(idx, vals)]
