import numpy as np
import pandas as pd
import pytest
import torch

from tower_rank.config.train import GENRES

USERS = [10, 11, 12, 13, 14]
ITEMS = list(range(100, 108))


@pytest.fixture(autouse=True)
def _seed():
    torch.manual_seed(0)


@pytest.fixture
def ratings() -> pd.DataFrame:
    rows = [
        {"user_id": u, "item_id": i, "rating": float((u * i) % 5 + 1), "timestamp": u * 1000 + i}
        for u in USERS
        for i in ITEMS
        if (u + i) % 3 != 0
    ]
    return pd.DataFrame(rows)


@pytest.fixture
def items() -> pd.DataFrame:
    frame = pd.DataFrame({"item_id": ITEMS,
                          "title": [f"Movie {i} ({1990 + i % 10})" for i in ITEMS]})
    for g in GENRES:
        frame[g] = 0
    frame.loc[frame["item_id"] % 2 == 0, "Action"] = 1
    frame.loc[frame["item_id"] % 2 == 1, "Comedy"] = 1
    return frame


@pytest.fixture
def genre_rows():
    def _make(n, width=len(GENRES)):
        return np.eye(n, width, dtype=np.float32)
    return _make
