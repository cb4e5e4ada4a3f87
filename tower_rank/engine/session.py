"""Paired training run: basic and deep models on the same batches."""

from __future__ import annotations

import logging

import torch

from tower_rank.config.train import TrainConfig
from tower_rank.data.preprocess import PreparedData
from tower_rank.datasets.two_tower import InteractionDataset, make_loader
from tower_rank.engine.registry import MODEL_NAMES, create_model
from tower_rank.engine.train_loop import LossHistory, StepHook, Trainer, fit
from tower_rank.errors import TrainingInProgress

log = logging.getLogger(__name__)


class TrainingSession:
    def __init__(self, data: PreparedData, config: TrainConfig | None = None):
        self.data = data
        self.config = config or TrainConfig()
        self.trainers: dict[str, Trainer] = {}
        self.histories: dict[str, LossHistory] = {name: LossHistory() for name in MODEL_NAMES}
        self.is_training = False

    @property
    def models(self):
        return {name: t.model for name, t in self.trainers.items()}

    def _build_trainers(self) -> dict[str, Trainer]:
        cfg = self.config
        return {
            name: Trainer(
                create_model(name,
                             num_users=self.data.num_users,
                             num_items=self.data.num_items,
                             embedding_dim=cfg.embedding_dim,
                             num_genres=cfg.num_genres),
                lr=cfg.learning_rate,
            )
            for name in MODEL_NAMES
        }

    def train(self, on_step: StepHook | None = None) -> dict[str, LossHistory]:
        """Fresh models, fresh histories, ``config.epochs`` passes over the data."""
        if self.is_training:
            raise TrainingInProgress("a training run is already active")
        self.is_training = True
        try:
            cfg = self.config
            if cfg.seed is not None:
                torch.manual_seed(cfg.seed)
            self.histories = {name: LossHistory() for name in MODEL_NAMES}
            self.trainers = self._build_trainers()

            inter = self.data.interactions
            ds = InteractionDataset(inter["user_idx"].values, inter["item_idx"].values,
                                    self.data.item_genres, num_genres=cfg.num_genres)
            dl = make_loader(ds, cfg.batch_size, shuffle=cfg.shuffle, seed=cfg.seed)
            log.info("Training %s | %d interactions | %d batches/epoch | %d epochs",
                     "+".join(MODEL_NAMES), len(ds), len(dl), cfg.epochs)

            fit(self.trainers, dl, epochs=cfg.epochs, on_step=on_step,
                histories=self.histories)
            return self.histories
        finally:
            self.is_training = False
