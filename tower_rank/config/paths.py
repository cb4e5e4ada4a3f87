"""Centralised project paths & defaults."""

from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[2]  # tower_rank/
DATA_DIR = PROJECT_ROOT / "data" / "movielens"  # parsed ratings + genres
MLFLOW_EXPERIMENT = "tower_rank_experiments"
