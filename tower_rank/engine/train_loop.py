"""In-batch softmax training for Two-Tower models."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Mapping, Sequence

import mlflow
import torch
import torch.nn.functional as F
from torch.utils.data import DataLoader
from tqdm import tqdm

from tower_rank.errors import InvalidBatch
from tower_rank.models.embedding import as_index_tensor
from tower_rank.models.two_tower import TwoTowerModel

log = logging.getLogger(__name__)

StepHook = Callable[[str, int, int, float], None]


def in_batch_softmax_loss(user_embs: torch.Tensor, item_embs: torch.Tensor) -> torch.Tensor:
    """Mean softmax cross-entropy of ``users @ items.T`` against the diagonal.

    Every other item in the batch acts as a negative for a user. A batch that
    repeats an item gives that item several "positive" columns; that is left
    as is.
    """
    logits = user_embs @ item_embs.T  # (B, B)
    labels = torch.arange(logits.size(0), device=logits.device)
    return F.cross_entropy(logits, labels)


@dataclass
class ModelState:
    """A model's parameters plus the Adam state that mutates them."""

    model: TwoTowerModel
    optimizer: torch.optim.Optimizer

    @classmethod
    def create(cls, model: TwoTowerModel, lr: float = 1e-3) -> "ModelState":
        optim = torch.optim.Adam(model.parameters(), lr=lr, betas=(0.9, 0.999), eps=1e-8)
        return cls(model=model, optimizer=optim)

    @property
    def params(self) -> list[torch.nn.Parameter]:
        return [p for p in self.model.parameters() if p.requires_grad]

    @property
    def step_count(self) -> int:
        """Number of Adam updates applied so far."""
        state = self.optimizer.state.get(self.params[0], {})
        step = state.get("step", 0)
        return int(step.item() if torch.is_tensor(step) else step)


def _validate(model: TwoTowerModel, users, items, genres):
    device = next(model.parameters()).device
    u = as_index_tensor(users, device=device)
    i = as_index_tensor(items, device=device)
    if u.numel() == 0:
        raise InvalidBatch("empty batch")
    if u.numel() != i.numel():
        raise InvalidBatch(f"{u.numel()} users vs {i.numel()} items")
    model.user_tower.embeddings.check_indices(u)
    model.item_tower.embeddings.check_indices(i)
    return u, i, (genres if model.uses_genres else None)


def _step(state: ModelState, users, items, genres=None) -> torch.Tensor:
    model, optim = state.model, state.optimizer
    model.train()
    u, i, g = _validate(model, users, items, genres)

    user_embs, item_embs = model(u, i, g)
    loss = in_batch_softmax_loss(user_embs, item_embs)

    params = state.params
    grads = torch.autograd.grad(loss, params)
    for p, grad in zip(params, grads):
        p.grad = grad
    optim.step()
    optim.zero_grad(set_to_none=True)
    return loss.detach()


class Trainer:
    """Owns one model's :class:`ModelState` and runs single optimisation steps."""

    def __init__(self, model: TwoTowerModel, lr: float = 1e-3):
        self.state = ModelState.create(model, lr=lr)

    @property
    def model(self) -> TwoTowerModel:
        return self.state.model

    def train_step(self, users: torch.Tensor | Sequence[int], items: torch.Tensor | Sequence[int],
                   genres=None) -> float:
        # Validation happens before any gradient is applied, so a bad batch
        # leaves parameters and Adam moments untouched.
        return _step(self.state, users, items, genres).cpu().item()


class LossHistory:
    """Append-only per-batch losses with epoch boundaries."""

    def __init__(self):
        self.values: list[float] = []
        self._epoch_ends: list[int] = []

    def append(self, loss: float) -> None:
        self.values.append(float(loss))

    def end_epoch(self) -> float:
        start = self._epoch_ends[-1] if self._epoch_ends else 0
        self._epoch_ends.append(len(self.values))
        chunk = self.values[start:]
        return sum(chunk) / len(chunk) if chunk else math.nan

    def epoch_means(self) -> list[float]:
        means, start = [], 0
        for end in self._epoch_ends:
            chunk = self.values[start:end]
            means.append(sum(chunk) / len(chunk) if chunk else math.nan)
            start = end
        return means

    def summary(self) -> dict[str, float]:
        if not self.values:
            return {"min": math.nan, "max": math.nan, "latest": math.nan}
        return {"min": min(self.values), "max": max(self.values), "latest": self.values[-1]}

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self):
        return iter(self.values)

    def __getitem__(self, idx):
        return self.values[idx]


def fit(trainers: Mapping[str, Trainer],
        dl: DataLoader,
        epochs: int = 20,
        on_step: StepHook | None = None,
        histories: Mapping[str, LossHistory] | None = None) -> dict[str, LossHistory]:
    """Train every model in ``trainers`` on the same batches, in order.

    Each batch is a dict with ``user``, ``item`` and ``genres`` tensors. The
    hook, if given, runs after each model's update for that batch is applied.
    Losses are appended to ``histories`` as they are computed; missing
    entries get a fresh :class:`LossHistory`.
    """
    histories = dict(histories or {})
    for name in trainers:
        histories.setdefault(name, LossHistory())
    log_to_mlflow = mlflow.active_run() is not None
    global_step = 0

    for ep in range(epochs):
        pbar = tqdm(dl, desc=f"Epoch {ep+1}/{epochs}")
        for b, batch in enumerate(pbar):
            postfix = {}
            for name, trainer in trainers.items():
                loss = trainer.train_step(batch["user"], batch["item"], batch.get("genres"))
                histories[name].append(loss)
                postfix[name] = f"{loss:.4f}"
                if log_to_mlflow:
                    mlflow.log_metric(f"{name}_batch_loss", loss, step=global_step)
                if on_step is not None:
                    on_step(name, ep, b, loss)
            pbar.set_postfix(postfix)
            global_step += 1

        means = {name: h.end_epoch() for name, h in histories.items()}
        if log_to_mlflow:
            for name, mean in means.items():
                mlflow.log_metric(f"{name}_train_loss", mean, step=ep)
        log.info("Epoch %d | %s", ep + 1,
                 " | ".join(f"{n} loss {m:.4f}" for n, m in means.items()))

    return histories
