"""Turn parsed MovieLens tables into dense indices, genre rows and user profiles.

Inputs are already-parsed pandas frames:

* ``ratings`` – one row per interaction with ``user_id``, ``item_id``,
  ``rating`` and ``timestamp``;
* ``items`` (optional) – one row per movie with ``item_id``, an optional
  ``title`` and one 0/1 column per name in :data:`GENRES`.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
from sklearn.preprocessing import LabelEncoder

from tower_rank.config.train import GENRES

log = logging.getLogger(__name__)

_YEAR_RE = re.compile(r"\((\d{4})\)")


def split_title_year(title: str) -> tuple[str, int | None]:
    """``"Toy Story (1995)"`` -> ``("Toy Story", 1995)``."""
    title = title or ""
    m = _YEAR_RE.search(title)
    if not m:
        return title.strip(), None
    return _YEAR_RE.sub("", title, count=1).strip(), int(m.group(1))


@dataclass
class PreparedData:
    interactions: pd.DataFrame  # user_id, item_id, rating, timestamp, user_idx, item_idx
    user_encoder: LabelEncoder
    item_encoder: LabelEncoder
    item_genres: np.ndarray  # (num_items, num_genres), indexed by item_idx
    user_top_rated: dict = field(default_factory=dict)  # raw user id -> sorted frame
    qualified_users: list = field(default_factory=list)
    titles: dict = field(default_factory=dict)  # raw item id -> clean title

    @property
    def num_users(self) -> int:
        return len(self.user_encoder.classes_)

    @property
    def num_items(self) -> int:
        return len(self.item_encoder.classes_)

    def user_index(self, user_id) -> int:
        return int(self.user_encoder.transform([user_id])[0])

    def item_ids(self, item_indices) -> list:
        return list(self.item_encoder.inverse_transform(np.asarray(item_indices, dtype=int)))


def _genre_matrix(items: pd.DataFrame | None, item_encoder: LabelEncoder,
                  num_genres: int) -> np.ndarray:
    mat = np.zeros((len(item_encoder.classes_), num_genres), dtype=np.float32)
    if items is None or items.empty:
        return mat
    cols = [g for g in GENRES[:num_genres] if g in items.columns]
    if len(cols) < num_genres:
        log.warning("Items table has %d of %d genre columns – the rest stay zero",
                    len(cols), num_genres)
    known = items[items["item_id"].isin(item_encoder.classes_)]
    if known.empty:
        return mat
    rows = item_encoder.transform(known["item_id"])
    for c in cols:
        mat[rows, GENRES.index(c)] = known[c].fillna(0).astype(np.float32).values
    return mat


def build_user_profiles(ratings: pd.DataFrame) -> dict:
    """Each user's interactions, best rating first, newest first on ties."""
    ordered = ratings.sort_values(["user_id", "rating", "timestamp"],
                                  ascending=[True, False, False], kind="mergesort")
    return {uid: grp.reset_index(drop=True) for uid, grp in ordered.groupby("user_id", sort=False)}


def prepare_interactions(ratings: pd.DataFrame,
                         items: pd.DataFrame | None = None,
                         *,
                         max_interactions: int | None = 80_000,
                         min_user_ratings: int = 20,
                         num_genres: int = len(GENRES)) -> PreparedData:
    missing = {"user_id", "item_id", "rating", "timestamp"} - set(ratings.columns)
    if missing:
        raise ValueError(f"ratings frame is missing columns: {sorted(missing)}")

    s = ratings.copy()
    if max_interactions is not None:
        s = s.head(max_interactions).copy()

    u_enc, i_enc = LabelEncoder(), LabelEncoder()
    s["user_idx"] = u_enc.fit_transform(s["user_id"])
    s["item_idx"] = i_enc.fit_transform(s["item_id"])

    genres = _genre_matrix(items, i_enc, num_genres)
    profiles = build_user_profiles(s)
    qualified = [uid for uid, grp in profiles.items() if len(grp) >= min_user_ratings]

    titles = {}
    if items is not None and "title" in items.columns:
        titles = {iid: split_title_year(str(t))[0] for iid, t in zip(items["item_id"], items["title"])}

    log.info("Prepared %d interactions | users=%d | items=%d | qualified users=%d",
             len(s), len(u_enc.classes_), len(i_enc.classes_), len(qualified))
    return PreparedData(
        interactions=s.reset_index(drop=True),
        user_encoder=u_enc,
        item_encoder=i_enc,
        item_genres=genres,
        user_top_rated=profiles,
        qualified_users=qualified,
        titles=titles,
    )
