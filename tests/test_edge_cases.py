import os, sys
import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from forecasting import backtest, evaluation_metrics, generate_forecast, predict_next, summary_metrics
from synthetic_model import Configuration, SeriesPoint
from tuning import tune_hyperparameters

CFG = Configuration(3, 64, 0, "ReLU", "Adam")


@pytest.mark.edge_case
def test_zero_history_forecasts_zero():
    """An all-zero series stays at zero."""
    history = [SeriesPoint(2000 + i, 0) for i in range(4)]
    assert generate_forecast(history, 3, CFG, 0) == [SeriesPoint(2004, 0), SeriesPoint(2005, 0), SeriesPoint(2006, 0)]


@pytest.mark.edge_case
def test_zero_horizon():
    assert generate_forecast([SeriesPoint(2000, 10)], 0, CFG, 0) == []


@pytest.mark.edge_case
def test_non_contiguous_years():
    """Gaps between years only change the slope denominator."""
    history = [SeriesPoint(1990, 100), SeriesPoint(2000, 200)]
    assert predict_next(history, Configuration(2, 32, 0, "ReLU", "Adam"), 2) == 152


@pytest.mark.edge_case
def test_large_values_stay_integer():
    history = [SeriesPoint(2000 + i, 10 ** 9 + i) for i in range(5)]
    out = generate_forecast(history, 2, CFG, 3)
    assert all(isinstance(p.value, int) for p in out)


@pytest.mark.edge_case
def test_backtest_too_short():
    history = [SeriesPoint(2000 + i, 10) for i in range(4)]
    assert backtest(history, CFG, 0) == []
    assert evaluation_metrics([]) == {"mae": None, "rmse": None, "mape": None, "r2": None}


@pytest.mark.edge_case
def test_summary_metrics_without_model_or_data():
    summary = summary_metrics(None, None, [], [], 0)
    assert summary["trainingLoss"] == "N/A"
    assert summary["mae"] == "N/A"
    assert summary["neuronsDisplay"] == "N/A"
    assert summary["cagr"] == "0.00%"
    assert summary["activation1"] is None


@pytest.mark.edge_case
def test_tuning_single_point_history():
    config, metrics = tune_hyperparameters([SeriesPoint(2020, 1)], 0)
    assert config.lookback >= 1
    assert metrics.validation_loss > metrics.training_loss
