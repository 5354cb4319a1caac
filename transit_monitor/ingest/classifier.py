"""
Anomaly classification of parsed rows.

Classification is a pluggable step: the parser asks a classifier for the
probability category and anomaly types of every accepted row.
RandomAnomalyClassifier reproduces the placeholder uniform draw of the
dashboard; FixedAnomalyClassifier gives deterministic output.
"""

import random
from abc import ABC, abstractmethod
from typing import Any, Mapping, NamedTuple


class Classification(NamedTuple):
    probability: str
    types: tuple[str, ...]


def classification_for_draw(r: float) -> Classification:
    """
    Map one uniform draw in [0, 1) to a classification.

    Probability thresholds are 0.85 / 0.65 / 0.35; types are weight above
    0.8, time above 0.9 and route above 0.85, in that order.
    """
    if r > 0.85:
        probability = "high"
    elif r > 0.65:
        probability = "elevated"
    elif r > 0.35:
        probability = "medium"
    else:
        probability = "low"

    types = []
    if r > 0.8:
        types.append("weight")
    if r > 0.9:
        types.append("time")
    if r > 0.85:
        types.append("route")
    return Classification(probability, tuple(types))


class AnomalyClassifier(ABC):
    """Assigns an anomaly classification to one parsed row."""

    @abstractmethod
    def classify(self, fields: Mapping[str, Any]) -> Classification:
        """
        Args:
            fields: The row's mapped field values

        Returns:
            Classification for the row
        """

    @property
    @abstractmethod
    def name(self) -> str:
        """Classifier identifier used in settings."""


class RandomAnomalyClassifier(AnomalyClassifier):
    """Uniform random draw per row; pass ``seed`` for reproducible output."""

    def __init__(self, seed: int | None = None):
        self.seed = seed
        self._random = random.Random(seed)

    def classify(self, fields: Mapping[str, Any]) -> Classification:
        return classification_for_draw(self._random.random())

    @property
    def name(self) -> str:
        return "random"


class FixedAnomalyClassifier(AnomalyClassifier):
    """Returns the same classification for every row."""

    def __init__(self, probability: str = "low", types: tuple[str, ...] = ()):
        if probability not in ("high", "elevated", "medium", "low"):
            raise ValueError(f"Unknown anomaly probability: {probability}")
        self.classification = Classification(probability, tuple(types))

    def classify(self, fields: Mapping[str, Any]) -> Classification:
        return self.classification

    @property
    def name(self) -> str:
        return "fixed"


def build_classifier(kind: str, seed: int | None = None, probability: str = "low") -> AnomalyClassifier:
    """
    Build a classifier by settings name.

    Raises:
        ValueError: On an unknown classifier name
    """
    if kind == "random":
        return RandomAnomalyClassifier(seed)
    if kind == "fixed":
        return FixedAnomalyClassifier(probability)
    raise ValueError(f"Unknown classifier: {kind}")
