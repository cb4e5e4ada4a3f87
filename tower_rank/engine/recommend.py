"""Side-by-side recommendations and item-embedding projection."""

from __future__ import annotations

from typing import Mapping

import numpy as np
import pandas as pd
from sklearn.decomposition import PCA

from tower_rank.data.preprocess import PreparedData
from tower_rank.engine.inference import DEFAULT_CHUNK_SIZE, top_k_items
from tower_rank.models.two_tower import TwoTowerModel


def pick_qualified_user(data: PreparedData, rng: np.random.Generator | None = None):
    if not data.qualified_users:
        raise ValueError("no user has enough ratings to compare recommendations")
    rng = rng or np.random.default_rng()
    return data.qualified_users[int(rng.integers(len(data.qualified_users)))]


def _label(data: PreparedData, item_id) -> str:
    return data.titles.get(item_id, str(item_id))


def compare_recommendations(models: Mapping[str, TwoTowerModel],
                            data: PreparedData,
                            user_id,
                            k: int = 10,
                            chunk_size: int = DEFAULT_CHUNK_SIZE) -> pd.DataFrame:
    """Top-``k`` rated movies next to each model's top-``k`` unseen movies."""
    profile = data.user_top_rated[user_id]
    seen = data.item_encoder.transform(profile["item_id"])
    uidx = data.user_index(user_id)

    columns = {"top_rated": [_label(data, iid) for iid in profile["item_id"].head(k)]}
    for name, model in models.items():
        user_emb = model.get_user_embedding(uidx)
        scores = model.get_scores_for_all_items(user_emb, chunk_size=chunk_size)
        recs = top_k_items(scores, k, exclude=seen)
        columns[name] = [_label(data, iid) for iid in data.item_ids([i for i, _ in recs])]

    frame = pd.DataFrame({c: pd.Series(v, dtype=object) for c, v in columns.items()})
    frame.index = pd.RangeIndex(1, len(frame) + 1, name="rank")
    return frame


def project_item_embeddings(model: TwoTowerModel, n_components: int = 2) -> np.ndarray:
    """PCA of the base item table, one ``(n_components,)`` row per item."""
    emb = model.get_item_embeddings().cpu().numpy()
    n_components = min(n_components, *emb.shape)
    return PCA(n_components=n_components).fit_transform(emb)
