"""Simple factory so CLI scripts stay tiny."""
from tower_rank.models.two_tower import BasicTwoTowerModel, DeepTwoTowerModel

MODEL_NAMES = ("basic", "deep")


def create_model(name: str, **kwargs):
    name = name.lower()
    if name == "basic":
        kwargs.pop("num_genres", None)
        return BasicTwoTowerModel(**kwargs)
    if name == "deep":
        return DeepTwoTowerModel(**kwargs)
    raise ValueError(f"Unknown model: {name}")
