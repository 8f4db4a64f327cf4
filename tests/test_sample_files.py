from pathlib import Path
import os, sys
import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from config import AGE_COLLECTION
from data_io import load_age_groups, load_wide_table_with_checklist, seed_store_from_directory
from storage import MemoryDocumentStore
from training import run_forecast, train_age_group

DATA_DIR = Path(__file__).resolve().parents[1] / "data"
FILES = sorted(DATA_DIR.glob("*.csv"))


@pytest.mark.parametrize("path", FILES, ids=[p.name for p in FILES])
def test_sample_file_passes_checklist(path):
    with path.open("rb") as f:
        df, info = load_wide_table_with_checklist(f)
    assert info["error"] is None
    assert len(df) == 40
    assert df["Year"].is_monotonic_increasing
    assert (df[info["categories"]] >= 0).all().all()


@pytest.fixture(scope="module")
def seeded_store():
    store = MemoryDocumentStore()
    seed_store_from_directory(store, DATA_DIR)
    return store


def test_every_age_bracket_trains_and_forecasts(seeded_store):
    groups = load_age_groups(seeded_store)
    assert "Not Reported / No Response" not in groups
    assert len(groups) == 13
    for seed, group in enumerate(groups, start=1):
        train_age_group(seeded_store, group, seed=seed)
        run = run_forecast(seeded_store, group, 10)
        assert [p.year for p in run.forecast] == list(range(2021, 2031))
        assert all(isinstance(p.value, int) and p.value >= 0 for p in run.forecast)
        assert len(run.backtest_rows) == 8
    assert len(seeded_store.documents(AGE_COLLECTION)) == 40
