import numpy as np
import pytest
import torch

from tower_rank.errors import DimensionMismatch, InvalidBatch
from tower_rank.models.towers import DeepTower, LinearTower
from tower_rank.models.two_tower import DeepTwoTowerModel, dot_score


def test_linear_tower_is_a_gather():
    tower = LinearTower(6, 4)
    out = tower([3, 1])
    assert torch.equal(out, tower.embeddings.weight[[3, 1]])


def test_linear_tower_rejects_side_features():
    with pytest.raises(DimensionMismatch):
        LinearTower(6, 4)([0], np.zeros((1, 19)))


def test_deep_user_tower_shapes():
    tower = DeepTower(5, 8)
    assert tower.hidden.in_features == 8
    assert tower.hidden.out_features == 16
    assert tower.output.out_features == 8
    assert tower([0, 1, 4]).shape == (3, 8)


def test_deep_tower_biases_start_at_zero():
    tower = DeepTower(5, 8, num_side_features=19)
    assert torch.count_nonzero(tower.hidden.bias) == 0
    assert torch.count_nonzero(tower.output.bias) == 0
    assert tower.hidden.in_features == 8 + 19


def test_item_forward_genre_width(genre_rows):
    model = DeepTwoTowerModel(num_users=3, num_items=4, embedding_dim=2, num_genres=19)
    assert model.item_forward([0, 1], genre_rows(2, 19)).shape == (2, 2)
    with pytest.raises(DimensionMismatch):
        model.item_forward([0, 1], genre_rows(2, 18))


def test_missing_genres_are_zeros():
    tower = DeepTower(4, 3, num_side_features=19)
    implicit = tower([0, 2, 3])
    explicit = tower([0, 2, 3], torch.zeros(3, 19))
    assert torch.equal(implicit, explicit)


def test_genre_row_count_must_match(genre_rows):
    tower = DeepTower(4, 3, num_side_features=19)
    with pytest.raises(InvalidBatch):
        tower([0, 1, 2], genre_rows(2))


def test_user_tower_rejects_side_features():
    with pytest.raises(DimensionMismatch):
        DeepTower(4, 3)([0], torch.zeros(1, 19))


def test_dot_score_commutes():
    u, v = torch.randn(5, 4), torch.randn(5, 4)
    assert torch.equal(dot_score(u, v), dot_score(v, u))
    assert dot_score(u, v).shape == (5,)
    assert dot_score(u[0], v[0]).dim() == 0
    assert dot_score(u[0], v[0]).item() == pytest.approx(float(u[0] @ v[0]), abs=1e-6)
