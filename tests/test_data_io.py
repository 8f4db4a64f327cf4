import os, sys, io
from pathlib import Path
import pandas as pd
import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from config import AGE_COLLECTION, DESTINATION_COLLECTION
from data_io import (
    DataError,
    delete_year_record,
    emigrants_value,
    import_wide_table,
    load_age_groups,
    load_age_series,
    load_wide_table_with_checklist,
    read_wide_csv,
    records_frame,
    seed_store_from_directory,
    upsert_year_record,
)
from storage import MemoryDocumentStore

DATA_DIR = Path(__file__).resolve().parents[1] / "data"


def _upload(text, name="upload.csv"):
    f = io.BytesIO(text.encode("utf-8")); f.name = name
    return f


def _age_store():
    store = MemoryDocumentStore()
    store.set(AGE_COLLECTION, "1990", {"Year": 1990, "20 - 24": {"emigrants": 100}, "25 - 29": 50,
                                       "Not Reported / No Response": {"emigrants": 3}})
    store.set(AGE_COLLECTION, "1988", {"Year": 1988, "20 - 24": {"emigrants": 80}, "25 - 29": 0})
    store.set(AGE_COLLECTION, "1989", {"Year": 1989, "20 - 24": {"emigrants": "n/a"}, "30 - 34": 7})
    store.set(AGE_COLLECTION, "bad", {"20 - 24": {"emigrants": 999}})
    return store


def test_emigrants_value():
    assert emigrants_value(5) == 5
    assert emigrants_value(2.5) == 2.5
    assert emigrants_value({"emigrants": 7}) == 7
    assert emigrants_value({"emigrants": "7"}) is None
    assert emigrants_value({"other": 7}) is None
    assert emigrants_value(None) is None
    assert emigrants_value(True) is None


def test_read_wide_csv():
    df = read_wide_csv(_upload("Year,20 - 24,25 - 29\n1991,10,20\n1990,\"1,500\",30\n"))
    assert df["Year"].tolist() == [1990, 1991]
    assert df["20 - 24"].tolist() == [1500, 10]


def test_read_wide_csv_semicolon_and_lowercase_year():
    df = read_wide_csv(_upload("year;USA;Canada\n2000;5;6\n2001;7;8\n"))
    assert list(df.columns) == ["Year", "USA", "Canada"]
    assert len(df) == 2


def test_read_wide_csv_duplicate_years_keep_last():
    df, info = load_wide_table_with_checklist(_upload("Year,A\n2000,1\n2000,2\n2001,3\n"))
    assert df["A"].tolist() == [2, 3]
    assert any(status == "warning" for status, _ in info["checklist"])


def test_read_wide_csv_errors():
    with pytest.raises(DataError):
        read_wide_csv(None)
    with pytest.raises(DataError):
        read_wide_csv(_upload(""))
    with pytest.raises(DataError):
        read_wide_csv(_upload("Country,Value\nUSA,1\n"))
    with pytest.raises(DataError):
        read_wide_csv(_upload("Year,Label\n2000,abc\n"))
    with pytest.raises(DataError):
        read_wide_csv(Path("/nonexistent/file.csv"))


def test_checklist_reports_success():
    df, info = load_wide_table_with_checklist(_upload("Year,A,B\n2000,1,2\n"))
    assert info["error"] is None
    assert info["categories"] == ["A", "B"]
    assert all(status == "ok" for status, _ in info["checklist"])


def test_import_wide_table_writes_one_document_per_year():
    store = MemoryDocumentStore()
    frame = pd.DataFrame({"Year": [2000, 2001], "USA": [10.0, None], "Japan": [2.5, 3.0]})
    assert import_wide_table(store, DESTINATION_COLLECTION, frame) == 2
    assert store.get(DESTINATION_COLLECTION, "2000") == {
        "Year": 2000, "USA": {"emigrants": 10}, "Japan": {"emigrants": 2.5}}
    assert "USA" not in store.get(DESTINATION_COLLECTION, "2001")


def test_import_requires_year_column():
    with pytest.raises(DataError):
        import_wide_table(MemoryDocumentStore(), AGE_COLLECTION, pd.DataFrame({"A": [1]}))


def test_load_age_groups_skips_year_and_not_reported():
    assert load_age_groups(_age_store()) == ["20 - 24", "25 - 29", "30 - 34"]


def test_load_age_series_filters_and_sorts():
    series = load_age_series(_age_store(), "20 - 24")
    assert [(p.year, p.value) for p in series] == [(1988, 80), (1990, 100)]
    # Zero values are skipped
    assert [(p.year, p.value) for p in load_age_series(_age_store(), "25 - 29")] == [(1990, 50)]
    assert load_age_series(_age_store(), "unknown") == []


def test_records_frame_and_crud():
    store = MemoryDocumentStore()
    upsert_year_record(store, DESTINATION_COLLECTION, 2001, {"USA": 5})
    upsert_year_record(store, DESTINATION_COLLECTION, 2000, {"USA": 3, "Japan": 1})
    upsert_year_record(store, DESTINATION_COLLECTION, 2000, {"Japan": None, "Canada": 2})
    frame = records_frame(store, DESTINATION_COLLECTION)
    assert frame["Year"].tolist() == [2000, 2001]
    assert list(frame.columns) == ["Year", "Canada", "USA"]
    assert frame.loc[0, "USA"] == 3

    assert delete_year_record(store, DESTINATION_COLLECTION, 2001) is True
    assert delete_year_record(store, DESTINATION_COLLECTION, 2001) is False
    assert records_frame(store, DESTINATION_COLLECTION)["Year"].tolist() == [2000]


def test_upsert_rejects_negative_counts():
    with pytest.raises(DataError):
        upsert_year_record(MemoryDocumentStore(), AGE_COLLECTION, 2000, {"20 - 24": -1})


def test_records_frame_empty_collection():
    frame = records_frame(MemoryDocumentStore(), AGE_COLLECTION)
    assert frame.empty and list(frame.columns) == ["Year"]


def test_seed_store_from_bundled_data():
    store = MemoryDocumentStore()
    imported = seed_store_from_directory(store, DATA_DIR)
    assert imported[AGE_COLLECTION] == 40
    assert len(load_age_series(store, "25 - 29")) == 40
    # Already-populated collections are left alone
    assert seed_store_from_directory(store, DATA_DIR) == {}


def test_seed_store_missing_directory(tmp_path):
    assert seed_store_from_directory(MemoryDocumentStore(), tmp_path) == {}
