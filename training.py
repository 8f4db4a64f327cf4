"""
Training and forecasting runs for one age bracket.

A training run tunes the synthetic configuration, then records it twice: appended to
the run history and written as the latest model for the bracket (replacing any
previous one). Forecast runs read that latest model back.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from config import (
    DEFAULT_HORIZON,
    FALLBACK_HORIZON_YEARS,
    LATEST_MODELS_COLLECTION,
    MIN_TRAINING_ROWS,
    MODELS_COLLECTION,
)
from data_io import DataError, load_age_series
from forecasting import backtest, generate_forecast, merge_for_display, result_rows, summary_metrics
from storage import DocumentStore
from synthetic_model import TRAINING_GRID, Configuration, HyperparameterGrid, SeriesPoint, SyntheticMetrics
from tuning import tune_hyperparameters

logger = logging.getLogger(__name__)


@dataclass
class TrainingResult:
    age_group: str
    config: Configuration
    metrics: SyntheticMetrics
    data_points: int
    train_seed: int
    document: Dict[str, Any]
    run_id: str


@dataclass
class ForecastRun:
    age_group: str
    history: List[SeriesPoint]
    forecast: List[SeriesPoint]
    merged: pd.DataFrame
    backtest_rows: List[Dict[str, int]]
    results: pd.DataFrame
    summary: Dict[str, Any] = field(default_factory=dict)


def parse_horizon_years(label: Optional[str]) -> int:
    """``"10 Years"`` -> 10; labels without a number fall back to 5."""
    match = re.search(r"\d+", label or "")
    return int(match.group(0)) if match else FALLBACK_HORIZON_YEARS


def config_to_document(config: Configuration) -> Dict[str, Any]:
    return {
        "lookback": config.lookback,
        "neuronsLayer1": config.hidden_units_1,
        "neuronsLayer2": config.hidden_units_2,
        "activation": config.activation,
        "optimizer": config.optimizer,
    }


def config_from_document(doc: Mapping[str, Any]) -> Configuration:
    try:
        return Configuration(
            lookback=int(doc["lookback"]),
            hidden_units_1=int(doc["neuronsLayer1"]),
            hidden_units_2=int(doc.get("neuronsLayer2") or 0),
            activation=str(doc["activation"]),
            optimizer=str(doc.get("optimizer", "")),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise DataError(f"Stored model has an invalid configuration: {e}") from e


def train_age_group(
    store: DocumentStore,
    age_group: str,
    horizon: str = DEFAULT_HORIZON,
    seed: int = 1,
    grid: HyperparameterGrid = TRAINING_GRID,
) -> TrainingResult:
    if not age_group:
        raise DataError("Please select an age bracket.")

    history = load_age_series(store, age_group)
    if len(history) < MIN_TRAINING_ROWS:
        raise DataError("Not enough data points for this age bracket.")

    best = tune_hyperparameters(history, seed, grid)
    if best is None:
        raise DataError("Hyperparameter tuning failed.")
    config, metrics = best

    document = {
        "ageGroup": age_group,
        "horizon": horizon,
        "horizonYears": parse_horizon_years(horizon),
        "tunedParams": config_to_document(config),
        "metrics": metrics.formatted(),
        "dataset": [{"year": p.year, "emigrants": p.value} for p in history],
        "trainSeed": seed,
        "savedAt": datetime.now(timezone.utc).isoformat(),
    }
    run_id = store.add(MODELS_COLLECTION, document)
    store.set(LATEST_MODELS_COLLECTION, age_group, document)
    logger.info(
        "trained %s: lookback=%d units=%s activation=%s val_loss=%.4f seed=%d",
        age_group, config.lookback, config.neurons_display, config.activation,
        metrics.validation_loss, seed,
    )
    return TrainingResult(age_group, config, metrics, len(history), seed, document, run_id)


def load_latest_model(store: DocumentStore, age_group: str) -> Optional[Dict[str, Any]]:
    return store.get(LATEST_MODELS_COLLECTION, age_group)


def training_history(store: DocumentStore, age_group: Optional[str] = None) -> pd.DataFrame:
    """Flattened list of past training runs, newest first."""
    rows = []
    for run_id, doc in store.stream(MODELS_COLLECTION):
        if age_group and doc.get("ageGroup") != age_group:
            continue
        params = doc.get("tunedParams", {})
        metrics = doc.get("metrics", {})
        rows.append({
            "run_id": run_id,
            "ageGroup": doc.get("ageGroup"),
            "savedAt": doc.get("savedAt"),
            "trainSeed": doc.get("trainSeed"),
            "lookback": params.get("lookback"),
            "activation": params.get("activation"),
            "optimizer": params.get("optimizer"),
            "validationLoss": metrics.get("validationLoss"),
        })
    frame = pd.DataFrame(rows, columns=["run_id", "ageGroup", "savedAt", "trainSeed", "lookback",
                                        "activation", "optimizer", "validationLoss"])
    return frame.sort_values("savedAt", ascending=False, kind="stable").reset_index(drop=True)


def run_forecast(
    store: DocumentStore,
    age_group: str,
    horizon_years: int,
    forecast_seed: int = 0,
    model: Optional[Mapping[str, Any]] = None,
) -> ForecastRun:
    """Forecast ``horizon_years`` ahead with the latest trained model for the bracket.

    The generator seed is the model's training seed plus ``forecast_seed``, so each
    "Generate" click gives a slightly different trajectory.
    """
    model = model if model is not None else load_latest_model(store, age_group)
    if model is None:
        raise DataError("No trained model found for this age bracket. Please train it first.")

    config = config_from_document(model.get("tunedParams") or {})
    history = load_age_series(store, age_group)
    seed = int(model.get("trainSeed") or 0) + forecast_seed

    forecast = generate_forecast(history, horizon_years, config, seed)
    merged = merge_for_display(history, forecast)
    rows = backtest(history, config, seed)
    summary = summary_metrics(model.get("metrics"), config, history, rows, len(merged))
    logger.info("forecast %s: %d years ahead, seed=%d", age_group, horizon_years, seed)

    return ForecastRun(
        age_group=age_group,
        history=history,
        forecast=forecast,
        merged=merged,
        backtest_rows=rows,
        results=result_rows(rows, forecast),
        summary=summary,
    )
