import numpy as np
import pytest

from tower_rank.config.train import TrainConfig
from tower_rank.data.preprocess import prepare_interactions
from tower_rank.engine.recommend import (compare_recommendations, pick_qualified_user,
                                         project_item_embeddings)
from tower_rank.engine.session import TrainingSession


@pytest.fixture
def trained(ratings, items):
    data = prepare_interactions(ratings, items, min_user_ratings=1)
    session = TrainingSession(data, TrainConfig(embedding_dim=4, batch_size=8, epochs=1))
    session.train()
    return session


def test_recommendations_skip_rated_items(trained):
    data = trained.data
    table = compare_recommendations(trained.models, data, 10, k=10, chunk_size=3)
    assert list(table.columns) == ["top_rated", "basic", "deep"]
    assert table.index[0] == 1
    seen = {data.titles[i] for i in data.user_top_rated[10]["item_id"]}
    assert set(table["top_rated"].dropna()) == seen
    for name in ("basic", "deep"):
        assert set(table[name].dropna()) == {"Movie 101", "Movie 104", "Movie 107"}


def test_top_rated_column_is_ordered(trained):
    data = trained.data
    table = compare_recommendations(trained.models, data, 11, k=2)
    expected = [data.titles[i] for i in data.user_top_rated[11]["item_id"].head(2)]
    assert list(table["top_rated"]) == expected


def test_pick_qualified_user(trained):
    user = pick_qualified_user(trained.data, np.random.default_rng(0))
    assert user in trained.data.qualified_users
    trained.data.qualified_users = []
    with pytest.raises(ValueError):
        pick_qualified_user(trained.data)


def test_project_item_embeddings(trained):
    points = project_item_embeddings(trained.models["basic"])
    assert points.shape == (trained.data.num_items, 2)
