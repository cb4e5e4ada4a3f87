"""
Train the basic and deep Two-Tower models side by side and compare them.

Inputs are already-parsed tables (Parquet or CSV):
    ratings: user_id, item_id, rating, timestamp
    items:   item_id, title, <one 0/1 column per genre>
Run with:
    python -m tower_rank.cli.train_two_tower --ratings data/movielens/ratings.parquet \
        --items data/movielens/items.parquet --epochs 20
"""

from __future__ import annotations

import logging
import sys
from argparse import ArgumentParser
from pathlib import Path

import mlflow
import numpy as np
import pandas as pd

from tower_rank.config.paths import DATA_DIR, MLFLOW_EXPERIMENT
from tower_rank.config.train import TrainConfig
from tower_rank.data.encoders import dump_encoder_tmp
from tower_rank.data.preprocess import prepare_interactions
from tower_rank.engine.recommend import compare_recommendations, pick_qualified_user
from tower_rank.engine.session import TrainingSession
from tower_rank.errors import TowerRankError

log = logging.getLogger(__name__)


def _read_table(path: Path) -> pd.DataFrame:
    if path.suffix == ".parquet":
        return pd.read_parquet(path)
    return pd.read_csv(path)


def main(argv=None) -> int:
    defaults = TrainConfig()
    ap = ArgumentParser()
    ap.add_argument("--ratings", type=Path, default=DATA_DIR / "ratings.parquet")
    ap.add_argument("--items", type=Path, default=None)
    ap.add_argument("--emb_dim", type=int, default=defaults.embedding_dim)
    ap.add_argument("--epochs", type=int, default=defaults.epochs)
    ap.add_argument("--batch", type=int, default=defaults.batch_size)
    ap.add_argument("--lr", type=float, default=defaults.learning_rate)
    ap.add_argument("--max_interactions", type=int, default=defaults.max_interactions)
    ap.add_argument("--shuffle", action="store_true")
    ap.add_argument("--seed", type=int, default=None)
    ap.add_argument("--top_k", type=int, default=10)
    args = ap.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")

    cfg = TrainConfig(
        embedding_dim=args.emb_dim,
        batch_size=args.batch,
        epochs=args.epochs,
        learning_rate=args.lr,
        max_interactions=args.max_interactions,
        shuffle=args.shuffle,
        seed=args.seed,
    )

    ratings = _read_table(args.ratings)
    items = _read_table(args.items) if args.items else None
    data = prepare_interactions(ratings, items,
                                max_interactions=cfg.max_interactions,
                                min_user_ratings=cfg.min_user_ratings,
                                num_genres=cfg.num_genres)

    mlflow.set_experiment(MLFLOW_EXPERIMENT)
    with mlflow.start_run():
        mlflow.log_params(vars(cfg))
        session = TrainingSession(data, cfg)
        try:
            histories = session.train()
        except TowerRankError:
            log.exception("Training aborted")
            return 1

        for name, hist in histories.items():
            log.info("%s loss | %s", name,
                     " ".join(f"{k}={v:.4f}" for k, v in hist.summary().items()))

        # dump encoders so inference scripts can recover them
        mlflow.log_artifact(dump_encoder_tmp(data.user_encoder, "users"), artifact_path="artifacts")
        mlflow.log_artifact(dump_encoder_tmp(data.item_encoder, "items"), artifact_path="artifacts")

    if data.qualified_users:
        user_id = pick_qualified_user(data, np.random.default_rng(cfg.seed))
        table = compare_recommendations(session.models, data, user_id, k=args.top_k,
                                        chunk_size=cfg.inference_chunk_size)
        print(f"Recommendations for user {user_id}:")
        print(table.to_string())
    return 0


if __name__ == "__main__":
    sys.exit(main())
