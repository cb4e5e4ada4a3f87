"""Hyper-parameters shared by the training driver and the CLI."""

from __future__ import annotations

from dataclasses import dataclass

# MovieLens 100k genre flags, in u.item column order.
GENRES = [
    "Unknown", "Action", "Adventure", "Animation", "Children's",
    "Comedy", "Crime", "Documentary", "Drama", "Fantasy",
    "Film-Noir", "Horror", "Musical", "Mystery", "Romance",
    "Sci-Fi", "Thriller", "War", "Western",
]
NUM_GENRES = len(GENRES)


@dataclass
class TrainConfig:
    embedding_dim: int = 32
    batch_size: int = 512
    epochs: int = 20
    learning_rate: float = 1e-3
    max_interactions: int = 80_000
    num_genres: int = NUM_GENRES
    inference_chunk_size: int = 100
    min_user_ratings: int = 20
    shuffle: bool = False  # contiguous slices in dataset order
    seed: int | None = None
