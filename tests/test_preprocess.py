import numpy as np
import pytest

from tower_rank.config.train import GENRES
from tower_rank.data.preprocess import prepare_interactions, split_title_year


def test_indices_are_dense(ratings, items):
    data = prepare_interactions(ratings, items, min_user_ratings=1)
    assert data.num_users == 5
    assert data.num_items == 8
    assert set(data.interactions["user_idx"]) == set(range(5))
    assert set(data.interactions["item_idx"]) == set(range(8))
    assert data.user_index(12) == 2
    assert data.item_ids([0, 7]) == [100, 107]


def test_genre_matrix_follows_item_index(ratings, items):
    data = prepare_interactions(ratings, items)
    assert data.item_genres.shape == (8, len(GENRES))
    action, comedy = GENRES.index("Action"), GENRES.index("Comedy")
    idx = data.item_encoder.transform([100, 101])
    assert data.item_genres[idx[0], action] == 1 and data.item_genres[idx[0], comedy] == 0
    assert data.item_genres[idx[1], comedy] == 1
    assert data.item_genres.sum() == 8


def test_genres_default_to_zero(ratings):
    data = prepare_interactions(ratings)
    assert data.item_genres.shape == (8, 19)
    assert not data.item_genres.any()


def test_profiles_sorted_by_rating_then_recency(ratings):
    data = prepare_interactions(ratings)
    for profile in data.user_top_rated.values():
        keys = list(zip(-profile["rating"], -profile["timestamp"]))
        assert keys == sorted(keys)


def test_qualified_users_threshold(ratings):
    counts = ratings.groupby("user_id").size()
    data = prepare_interactions(ratings, min_user_ratings=6)
    assert sorted(data.qualified_users) == sorted(counts[counts >= 6].index)
    assert prepare_interactions(ratings, min_user_ratings=100).qualified_users == []


def test_truncates_to_max_interactions(ratings):
    data = prepare_interactions(ratings, max_interactions=7)
    assert len(data.interactions) == 7
    assert data.num_users == ratings.head(7)["user_id"].nunique()


def test_missing_columns(ratings):
    with pytest.raises(ValueError, match="timestamp"):
        prepare_interactions(ratings.drop(columns=["timestamp"]))


def test_titles_are_cleaned(ratings, items):
    data = prepare_interactions(ratings, items)
    assert data.titles[103] == "Movie 103"


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("Toy Story (1995)", ("Toy Story", 1995)),
        ("Heat", ("Heat", None)),
        ("", ("", None)),
    ],
)
def test_split_title_year(raw, expected):
    assert split_title_year(raw) == expected
