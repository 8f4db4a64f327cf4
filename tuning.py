"""
Synthetic hyperparameter selection.

Scores each grid candidate with a closed-form loss formula (nothing is fitted) and
keeps the candidate with the lowest validation loss.
"""

from typing import Optional, Sequence, Tuple

from config import LOSS_ACTIVATION_BOOST
from synthetic_model import (
    TRAINING_GRID,
    Configuration,
    HyperparameterGrid,
    SeriesPoint,
    SyntheticMetrics,
    activation_boost,
)


def compute_synthetic_metrics(history: Sequence[SeriesPoint], config: Configuration, seed: int) -> SyntheticMetrics:
    neurons_score = (config.hidden_units_1 + config.hidden_units_2) / 200
    boost = activation_boost(LOSS_ACTIVATION_BOOST, config.activation)

    base_loss = 0.01 + 0.002 * max(0, config.lookback - 3) + 0.0015 * neurons_score
    jitter = ((seed % 11) - 5) * 0.0006

    training_loss = max(0.001, base_loss * boost + jitter)
    validation_loss = max(0.001, training_loss + 0.0025 + abs(jitter) * 0.5)

    n = max(1, len(history))
    mae = 0.05 + config.lookback / 50 + (1 / n) * 0.1

    return SyntheticMetrics(training_loss, validation_loss, mae)


def tune_hyperparameters(
    history: Sequence[SeriesPoint],
    seed: int,
    grid: HyperparameterGrid = TRAINING_GRID,
) -> Optional[Tuple[Configuration, SyntheticMetrics]]:
    """Return the best (configuration, metrics) pair, or None for an empty grid.

    Candidate ``i`` is scored with seed ``seed + i``. Comparison is on the raw
    validation loss; ties keep the earlier candidate.
    """
    best: Optional[Tuple[Configuration, SyntheticMetrics]] = None
    for i, candidate in enumerate(grid.candidates(seed)):
        metrics = compute_synthetic_metrics(history, candidate, seed + i)
        if best is None or metrics.validation_loss < best[1].validation_loss:
            best = (candidate, metrics)
    return best
