import os, sys
import itertools
import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from config import OPTIMIZERS
from synthetic_model import (
    FORECAST_PAGE_GRID,
    TRAINING_GRID,
    Configuration,
    HyperparameterGrid,
    SeriesPoint,
)
from tuning import compute_synthetic_metrics, tune_hyperparameters

HISTORY = [SeriesPoint(2018, 100), SeriesPoint(2019, 110), SeriesPoint(2020, 120)]


def test_synthetic_metrics_values():
    cfg = Configuration(3, 64, 0, "ReLU", "Adam")
    m = compute_synthetic_metrics(HISTORY, cfg, 5)  # seed 5 -> zero jitter
    assert m.training_loss == pytest.approx(0.01048 * 0.95)
    assert m.validation_loss == pytest.approx(0.01048 * 0.95 + 0.0025)
    assert m.mean_absolute_error == pytest.approx(0.05 + 3 / 50 + 0.1 / 3)
    assert m.formatted() == {"trainingLoss": "0.0100", "validationLoss": "0.0125", "mae": "0.143"}


def test_synthetic_metrics_negative_jitter():
    cfg = Configuration(2, 32, 0, "Tanh", "SGD")
    m = compute_synthetic_metrics(HISTORY, cfg, 0)  # jitter -0.003
    train = (0.01 + 0.0015 * 0.16) * 0.98 - 0.003
    assert m.training_loss == pytest.approx(train)
    assert m.validation_loss == pytest.approx(train + 0.0025 + 0.0015)


def test_synthetic_metrics_empty_history():
    m = compute_synthetic_metrics([], Configuration(4, 32, 16, "Sigmoid", "Adam"), 0)
    assert m.mean_absolute_error == pytest.approx(0.05 + 4 / 50 + 0.1)


def test_unknown_activation_scores_like_sigmoid():
    a = compute_synthetic_metrics(HISTORY, Configuration(3, 64, 0, "Swish", "Adam"), 2)
    b = compute_synthetic_metrics(HISTORY, Configuration(3, 64, 0, "Sigmoid", "Adam"), 2)
    assert a == b


def test_training_grid_enumerates_every_combination_once():
    candidates = list(TRAINING_GRID.candidates(0))
    assert TRAINING_GRID.size == 240
    assert len(candidates) == 240
    keys = [(c.lookback, c.hidden_units_1, c.hidden_units_2, c.activation) for c in candidates]
    assert len(set(keys)) == 240
    expected = list(itertools.product(
        TRAINING_GRID.lookbacks, TRAINING_GRID.units1, TRAINING_GRID.units2, TRAINING_GRID.activations))
    assert keys == expected


def test_optimizer_label_uses_base_seed():
    for seed in (0, 1, 7):
        for c in TRAINING_GRID.candidates(seed):
            idx = (c.lookback + c.hidden_units_1 + c.hidden_units_2 + seed) % len(OPTIMIZERS)
            assert c.optimizer == OPTIMIZERS[idx]


@pytest.mark.parametrize("seed", [0, 1, 2, 5, 10, 37])
def test_tuning_returns_minimum_validation_loss(seed):
    config, metrics = tune_hyperparameters(HISTORY, seed)
    scored = [
        (compute_synthetic_metrics(HISTORY, c, seed + i).validation_loss, i, c)
        for i, c in enumerate(TRAINING_GRID.candidates(seed))
    ]
    best_loss, _, best_config = min(scored, key=lambda t: (t[0], t[1]))
    assert metrics.validation_loss == best_loss
    assert config == best_config


def test_tuning_ties_keep_first_candidate():
    # Lookbacks <= 3 share a base loss; candidates 0 and 11 share the same jitter
    grid = HyperparameterGrid(
        lookbacks=(1, 2, 3) * 4, units1=(32,), units2=(0,), activations=("ReLU",))
    config, metrics = tune_hyperparameters(HISTORY, 0, grid)
    twin = compute_synthetic_metrics(HISTORY, Configuration(3, 32, 0, "ReLU", "Adam"), 11)
    assert twin.validation_loss == metrics.validation_loss
    assert config.lookback == 1
    assert metrics.mean_absolute_error == pytest.approx(0.05 + 1 / 50 + 0.1 / 3)


def test_tuning_is_deterministic_and_idempotent():
    first = tune_hyperparameters(HISTORY, 3)
    second = tune_hyperparameters(HISTORY, 3)
    assert first == second
    assert first[1].formatted() == second[1].formatted()


def test_tuning_with_empty_history_still_succeeds():
    result = tune_hyperparameters([], 1)
    assert result is not None


def test_empty_grid_returns_none():
    assert tune_hyperparameters(HISTORY, 0, HyperparameterGrid(activations=())) is None


def test_forecast_page_grid_is_relu_only():
    assert FORECAST_PAGE_GRID.size == 80
    config, _ = tune_hyperparameters(HISTORY, 1, FORECAST_PAGE_GRID)
    assert config.activation == "ReLU"


def test_grid_rejects_invalid_values():
    with pytest.raises(ValueError):
        HyperparameterGrid(lookbacks=(0, 2))
    with pytest.raises(ValueError):
        HyperparameterGrid(units2=(-1,))
    with pytest.raises(ValueError):
        HyperparameterGrid(optimizers=())


def test_neurons_display():
    assert Configuration(3, 64, 0, "ReLU", "Adam").neurons_display == "64"
    assert Configuration(3, 64, 16, "ReLU", "Adam").neurons_display == "64, 16"
