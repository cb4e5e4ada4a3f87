"""PyTorch dataset (user, item, genres) for Two-Tower training."""

from __future__ import annotations

import numpy as np
import torch
from torch.utils.data import DataLoader, Dataset

from tower_rank.errors import InvalidBatch


class InteractionDataset(Dataset):
    def __init__(self, users, items, item_genres: np.ndarray | None = None, num_genres: int = 19):
        if len(users) != len(items):
            raise InvalidBatch(f"{len(users)} users vs {len(items)} items")
        self.u = torch.tensor(np.asarray(users), dtype=torch.long)
        self.i = torch.tensor(np.asarray(items), dtype=torch.long)
        # genre rows are looked up per item index; unknown genres stay zero
        if item_genres is None:
            item_genres = np.zeros((int(self.i.max()) + 1 if len(self.i) else 0, num_genres))
        self.genres = torch.tensor(np.asarray(item_genres), dtype=torch.float32)

    def __len__(self):
        return len(self.u)

    def __getitem__(self, idx):
        item = self.i[idx]
        return {"user": self.u[idx], "item": item, "genres": self.genres[item]}


def make_loader(ds: InteractionDataset, batch_size: int, shuffle: bool = False,
                seed: int | None = None) -> DataLoader:
    """Contiguous batches over ``ds``; the final batch may be short."""
    generator = None
    if shuffle and seed is not None:
        generator = torch.Generator().manual_seed(seed)
    return DataLoader(ds, batch_size=batch_size, shuffle=shuffle,
                      drop_last=False, generator=generator)
