"""
Iterative pseudo-forecast generation and evaluation helpers.

Every predicted value is appended to a rolling copy of the history before the next
step, so later steps average over earlier predictions.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.metrics import (
    mean_absolute_error,
    mean_absolute_percentage_error,
    mean_squared_error,
    r2_score,
)

from config import DEFAULT_TEST_FRACTION, FORECAST_ACTIVATION_BOOST, MIN_BACKTEST_ROWS
from synthetic_model import Configuration, SeriesPoint, activation_boost, round_half_up


def predict_next(history: Sequence[SeriesPoint], config: Configuration, seed: int) -> Optional[int]:
    """Predict the value following ``history``; None for an empty series."""
    if len(history) == 0:
        return None
    n = len(history)
    last = history[-1]
    window = history[max(0, n - config.lookback):]
    baseline = sum(p.value for p in window) / len(window) if window else last.value

    prev = history[max(0, n - config.lookback - 1)]
    span = last.year - prev.year
    # Duplicate years would make the span zero; treat that as a flat series
    raw_slope = (baseline - prev.value) / span if n > 1 and span != 0 else 0.0
    slope = max(-baseline * 0.5, min(baseline * 0.5, raw_slope))

    boost = activation_boost(FORECAST_ACTIVATION_BOOST, config.activation)
    jitter = ((seed % 5) - 2) * 0.01 * baseline
    noise = 0.02 * baseline
    return round_half_up(max(0.0, baseline + slope * boost - noise + jitter))


def generate_forecast(
    history: Sequence[SeriesPoint],
    horizon_years: int,
    config: Configuration,
    seed: int,
) -> List[SeriesPoint]:
    if len(history) == 0:
        return []

    start_year = history[-1].year
    rolling = list(history)
    points: List[SeriesPoint] = []
    for i in range(1, horizon_years + 1):
        predicted = predict_next(rolling, config, seed + i)
        point = SeriesPoint(start_year + i, max(0, predicted or 0))
        points.append(point)
        rolling.append(point)
    return points


def merge_for_display(history: Sequence[SeriesPoint], forecast: Sequence[SeriesPoint]) -> pd.DataFrame:
    """One frame with ``historical`` and ``forecast`` columns, ordered by year.

    Years present in both inputs keep both rows, history first.
    """
    rows = [{"year": p.year, "historical": p.value, "forecast": None} for p in history]
    rows += [{"year": p.year, "historical": None, "forecast": p.value} for p in forecast]
    merged = pd.DataFrame(rows, columns=["year", "historical", "forecast"])
    return merged.sort_values("year", kind="stable").reset_index(drop=True)


def backtest(
    history: Sequence[SeriesPoint],
    config: Configuration,
    seed_base: int,
    test_fraction: float = DEFAULT_TEST_FRACTION,
) -> List[Dict[str, int]]:
    """One-step-ahead predictions over the tail of the history.

    Each held-out year is predicted from all points before it.
    """
    n = len(history)
    if n < MIN_BACKTEST_ROWS:
        return []

    test_size = max(1, round_half_up(n * test_fraction))
    train_end = max(2, n - test_size)

    rows = []
    for idx, point in enumerate(history[train_end:]):
        predicted = predict_next(history[: train_end + idx], config, seed_base + idx) or 0
        actual = round_half_up(point.value)
        rows.append({
            "year": point.year,
            "actual": actual,
            "predicted": predicted,
            "error": predicted - actual,
        })
    return rows


def evaluation_metrics(rows: Sequence[Mapping[str, Any]]) -> Dict[str, Optional[float]]:
    """MAE, RMSE, MAPE (percent) and R2 over backtest rows."""
    pairs = [(r["actual"], r["predicted"]) for r in rows
             if r.get("actual") is not None and np.isfinite(r.get("predicted", np.nan))]
    if not pairs:
        return {"mae": None, "rmse": None, "mape": None, "r2": None}

    actual = np.array([a for a, _ in pairs], dtype=float)
    predicted = np.array([p for _, p in pairs], dtype=float)

    mae = float(mean_absolute_error(actual, predicted))
    rmse = float(np.sqrt(mean_squared_error(actual, predicted)))

    nonzero = actual != 0
    mape = None
    if nonzero.any():
        mape = float(mean_absolute_percentage_error(actual[nonzero], predicted[nonzero]) * 100)

    ss_tot = float(np.sum((actual - actual.mean()) ** 2))
    r2 = None if ss_tot == 0 or len(actual) < 2 else float(r2_score(actual, predicted))

    return {"mae": mae, "rmse": rmse, "mape": mape, "r2": r2}


def cagr(history: Sequence[SeriesPoint]) -> float:
    """Compound annual growth rate between first and last point, in percent."""
    if not history:
        return 0.0
    first, last = history[0], history[-1]
    years = (last.year - first.year) or 1
    if not first.value:
        return 0.0
    return ((last.value / first.value) ** (1 / years) - 1) * 100


def result_rows(backtest_rows: Sequence[Mapping[str, Any]], forecast: Sequence[SeriesPoint]) -> pd.DataFrame:
    """Backtest rows followed by forecast-only rows, ordered by year."""
    rows = [dict(r) for r in backtest_rows]
    rows += [{"year": p.year, "actual": None, "predicted": p.value, "error": None} for p in forecast]
    frame = pd.DataFrame(rows, columns=["year", "actual", "predicted", "error"])
    return frame.sort_values("year", kind="stable").reset_index(drop=True)


def _format_number(value: Optional[float], digits: int = 3) -> str:
    if value is None or not np.isfinite(value):
        return "N/A"
    return f"{value:.{digits}f}"


def _format_percent(value: Optional[float], digits: int = 2) -> str:
    if value is None or not np.isfinite(value):
        return "N/A"
    return f"{value:.{digits}f}%"


def format_activation(value: Any) -> Optional[str]:
    if not isinstance(value, str) or not value.strip():
        return None
    v = value.strip()
    if v.lower() == "relu":
        return "ReLu"
    return v


def summary_metrics(
    stored_metrics: Optional[Mapping[str, str]],
    config: Optional[Configuration],
    history: Sequence[SeriesPoint],
    backtest_rows: Sequence[Mapping[str, Any]],
    data_points: int,
) -> Dict[str, Any]:
    """Metric cards for the forecast page.

    Values stored with the trained model take precedence; computed backtest metrics
    fill in the rest, and anything else shows as N/A.
    """
    stored = dict(stored_metrics or {})
    computed = evaluation_metrics(backtest_rows)

    return {
        "trainingLoss": stored.get("trainingLoss", "N/A"),
        "validationLoss": stored.get("validationLoss", "N/A"),
        "mae": stored.get("mae", _format_number(computed["mae"], 3)),
        "cagr": f"{cagr(history):.2f}%",
        "dataPoints": data_points,
        "accuracy": stored.get("accuracy", "N/A"),
        "rmse": stored.get("rmse", _format_number(computed["rmse"], 3)),
        "mape": stored.get("mape", _format_percent(computed["mape"], 2)),
        "r2": stored.get("r2", _format_number(computed["r2"], 3)),
        "neuronsDisplay": config.neurons_display if config else "N/A",
        "lookback": config.lookback if config else None,
        "activation1": format_activation(config.activation) if config else None,
        "activation2": format_activation(config.activation) if config and config.hidden_units_2 else None,
    }
