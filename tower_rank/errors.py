"""Exceptions raised by the towers, the trainer and the training driver."""


class TowerRankError(Exception):
    pass


class InvalidBatch(TowerRankError, ValueError):
    """Empty batch, mismatched lengths or an index outside its table."""


class DimensionMismatch(TowerRankError, ValueError):
    """Side-feature width differs from what the tower was built for."""


class TrainingInProgress(TowerRankError, RuntimeError):
    pass
