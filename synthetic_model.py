from __future__ import annotations

import itertools
import math
from dataclasses import dataclass
from typing import Dict, Iterator, Tuple

from config import (
    ACTIVATIONS,
    LOOKBACKS,
    NEURONS_LAYER1,
    NEURONS_LAYER2,
    OPTIMIZERS,
)


@dataclass(frozen=True)
class SeriesPoint:
    """One observed or predicted magnitude for a year."""

    year: int
    value: float


@dataclass(frozen=True)
class Configuration:
    """A candidate synthetic model setup.

    ``optimizer`` is descriptive only; nothing is computed from it.
    """

    lookback: int
    hidden_units_1: int
    hidden_units_2: int
    activation: str
    optimizer: str

    @property
    def neurons_display(self) -> str:
        if self.hidden_units_2:
            return f"{self.hidden_units_1}, {self.hidden_units_2}"
        return str(self.hidden_units_1)


@dataclass(frozen=True)
class SyntheticMetrics:
    training_loss: float
    validation_loss: float
    mean_absolute_error: float

    def formatted(self) -> Dict[str, str]:
        """Storage/display form: losses to 4 decimals, error to 3."""
        return {
            "trainingLoss": f"{self.training_loss:.4f}",
            "validationLoss": f"{self.validation_loss:.4f}",
            "mae": f"{self.mean_absolute_error:.3f}",
        }


@dataclass(frozen=True)
class HyperparameterGrid:
    """Fixed candidate sets, enumerated lookback -> units1 -> units2 -> activation."""

    lookbacks: Tuple[int, ...] = LOOKBACKS
    units1: Tuple[int, ...] = NEURONS_LAYER1
    units2: Tuple[int, ...] = NEURONS_LAYER2
    activations: Tuple[str, ...] = ACTIVATIONS
    optimizers: Tuple[str, ...] = OPTIMIZERS

    def __post_init__(self):
        if any(lb < 1 for lb in self.lookbacks):
            raise ValueError("lookback values must be positive")
        if any(u < 0 for u in self.units1 + self.units2):
            raise ValueError("hidden unit counts must be non-negative")
        if not self.optimizers:
            raise ValueError("at least one optimizer label is required")

    @property
    def size(self) -> int:
        return len(self.lookbacks) * len(self.units1) * len(self.units2) * len(self.activations)

    def candidates(self, seed: int) -> Iterator[Configuration]:
        for lb, n1, n2, act in itertools.product(self.lookbacks, self.units1, self.units2, self.activations):
            opt = self.optimizers[(lb + n1 + n2 + seed) % len(self.optimizers)]
            yield Configuration(lb, n1, n2, act, opt)


TRAINING_GRID = HyperparameterGrid()
# The ML Forecast page retrains with ReLU only
FORECAST_PAGE_GRID = HyperparameterGrid(activations=("ReLU",))


def activation_boost(table: Dict[str, float], activation: str) -> float:
    """Look up an activation multiplier; unknown labels use the last table entry."""
    if activation in table:
        return table[activation]
    return table[ACTIVATIONS[-1]]


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (not banker's rounding)."""
    return int(math.floor(value + 0.5))
