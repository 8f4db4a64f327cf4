# === Emigration dataset loading, validation checklist and store access ===

import csv
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from config import AGE_COLLECTION, NOT_REPORTED_KEY, SAMPLE_FILES, YEAR_KEY
from storage import DocumentStore
from synthetic_model import SeriesPoint

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 1024 * 1024


class DataError(ValueError):
    """Raised for user-facing, recoverable data errors."""


def emigrants_value(raw: Any) -> Optional[float]:
    """A cell is either a bare number or ``{"emigrants": number}``."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return raw
    if isinstance(raw, Mapping) and "emigrants" in raw:
        v = raw.get("emigrants")
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return v
    return None


def _detect_encoding_and_sample(file_obj_or_path, sample_bytes: int = 4096):
    """Detect a reasonable text encoding and return (encoding, sample_text).
    Tries utf-8-sig, utf-8, then latin-1.
    """
    encodings_to_try = ["utf-8-sig", "utf-8", "latin-1"]
    if hasattr(file_obj_or_path, "read"):
        current_pos = file_obj_or_path.tell()
        try:
            data = file_obj_or_path.read(sample_bytes)
        finally:
            file_obj_or_path.seek(current_pos)
    else:
        with open(file_obj_or_path, "rb") as fb:
            data = fb.read(sample_bytes)

    if isinstance(data, str):
        return "utf-8", data
    for enc in encodings_to_try:
        try:
            return enc, (data or b"").decode(enc)
        except UnicodeDecodeError:
            continue
    return "utf-8", ""


def _infer_delimiter(sample_text: str) -> str:
    """Infer delimiter using csv.Sniffer with fallback to frequency counts."""
    try:
        return csv.Sniffer().sniff(sample_text, delimiters=[",", ";", "\t", "|"]).delimiter
    except csv.Error:
        counts = {d: sample_text.count(d) for d in (",", ";", "\t", "|")}
        best = max(counts.items(), key=lambda x: x[1])
        return best[0] if best[1] > 0 else ","


def load_wide_table_with_checklist(file_obj_or_path):
    """Load a wide yearly CSV (``Year`` + one column per category).

    Returns (frame, info). ``info["checklist"]`` holds (status, message) pairs and
    ``info["error"]`` is set when the file cannot be used.
    """
    checklist = []
    info = {"error": None}

    def add_check(status, message):
        checklist.append((status, message))

    def early_return_error(error_msg):
        info["error"] = error_msg
        info["checklist"] = checklist
        return pd.DataFrame(), info

    if file_obj_or_path is None:
        add_check("error", "No file provided")
        return early_return_error("No file provided.")

    is_uploaded_file = hasattr(file_obj_or_path, "read")
    file_path = str(file_obj_or_path) if isinstance(file_obj_or_path, (str, Path)) else None

    if is_uploaded_file:
        size_bytes = getattr(file_obj_or_path, "size", None)
        if size_bytes is None:
            current_pos = file_obj_or_path.tell()
            file_obj_or_path.seek(0, 2)
            size_bytes = file_obj_or_path.tell()
            file_obj_or_path.seek(current_pos)
    else:
        if not file_path or not os.path.exists(file_path):
            add_check("error", f"File not found: {file_path}")
            return early_return_error(f"File not found: {file_path}")
        size_bytes = os.path.getsize(file_path)

    if size_bytes == 0:
        add_check("error", "File is empty")
        return early_return_error("File is empty.")
    if size_bytes > MAX_UPLOAD_BYTES:
        add_check("error", f"File too large: {size_bytes / 1024:.1f} KB (max 1MB)")
        return early_return_error("File too large (max 1MB)")
    add_check("ok", f"File size: {size_bytes / 1024:.1f} KB")

    try:
        encoding, sample_text = _detect_encoding_and_sample(file_obj_or_path)
        delimiter = _infer_delimiter(sample_text)
        if is_uploaded_file:
            file_obj_or_path.seek(0)
        df = pd.read_csv(file_obj_or_path, sep=delimiter, encoding=encoding)
    except (OSError, ValueError, pd.errors.ParserError) as e:
        add_check("error", f"Failed to load file: {e}")
        return early_return_error(f"Failed to read file: {e}")
    add_check("ok", "Data loaded successfully")

    df.columns = [str(c).strip().strip("\"'") for c in df.columns]
    if df.empty:
        add_check("error", "No data rows found")
        return early_return_error("File is empty.")

    year_col = next((c for c in df.columns if c.lower() == YEAR_KEY.lower()), None)
    if year_col is None:
        add_check("error", f"Missing '{YEAR_KEY}' column")
        return early_return_error(f"A '{YEAR_KEY}' column is required.")
    df = df.rename(columns={year_col: YEAR_KEY})

    years = pd.to_numeric(df[YEAR_KEY], errors="coerce")
    if years.isna().any():
        add_check("warning", f"{int(years.isna().sum())} rows with an invalid year dropped")
    df = df.loc[years.notna()].copy()
    df[YEAR_KEY] = years[years.notna()].astype(int)

    value_cols = [c for c in df.columns if c != YEAR_KEY]
    numeric_cols = []
    for col in value_cols:
        converted = pd.to_numeric(df[col].astype(str).str.replace(",", "", regex=False), errors="coerce")
        if converted.notna().any():
            df[col] = converted
            numeric_cols.append(col)
    if not numeric_cols:
        add_check("error", "No numeric category columns found")
        return early_return_error("No numeric category columns found.")
    add_check("ok", f"{len(df)} years, {len(numeric_cols)} categories")

    if df[YEAR_KEY].duplicated().any():
        add_check("warning", "Duplicate years found; keeping the last row per year")
        df = df.drop_duplicates(subset=[YEAR_KEY], keep="last")

    df = df[[YEAR_KEY] + numeric_cols].sort_values(YEAR_KEY).reset_index(drop=True)
    info["checklist"] = checklist
    info.update({
        "n_rows": df.shape[0],
        "categories": numeric_cols,
        "delimiter_used": delimiter,
        "encoding_used": encoding,
    })
    return df, info


def read_wide_csv(file_obj_or_path) -> pd.DataFrame:
    df, info = load_wide_table_with_checklist(file_obj_or_path)
    if info.get("error"):
        raise DataError(info["error"])
    return df


def import_wide_table(store: DocumentStore, collection: str, frame: pd.DataFrame) -> int:
    """Write one document per year; existing years are replaced."""
    if YEAR_KEY not in frame.columns:
        raise DataError(f"A '{YEAR_KEY}' column is required.")
    count = 0
    for _, row in frame.iterrows():
        year = int(row[YEAR_KEY])
        doc: Dict[str, Any] = {YEAR_KEY: year}
        for col in frame.columns:
            if col == YEAR_KEY or pd.isna(row[col]):
                continue
            value = float(row[col])
            doc[col] = {"emigrants": int(value) if value.is_integer() else value}
        store.set(collection, str(year), doc)
        count += 1
    logger.info("imported %d yearly documents into %s", count, collection)
    return count


def seed_store_from_directory(store: DocumentStore, directory: Path) -> Dict[str, int]:
    """Import bundled CSVs into collections that are still empty."""
    imported = {}
    for collection, filename in SAMPLE_FILES.items():
        path = Path(directory) / filename
        if not store.is_empty(collection):
            continue
        if not path.exists():
            logger.warning("sample file missing: %s", path)
            continue
        imported[collection] = import_wide_table(store, collection, read_wide_csv(path))
    return imported


def load_age_groups(store: DocumentStore) -> List[str]:
    groups = set()
    for doc in store.documents(AGE_COLLECTION, order_by=YEAR_KEY):
        for key in doc:
            if key in (YEAR_KEY, NOT_REPORTED_KEY):
                continue
            groups.add(key)
    return sorted(groups)


def load_age_series(store: DocumentStore, age_group: str) -> List[SeriesPoint]:
    """Yearly emigrant counts for one age bracket; non-positive years are skipped."""
    points = []
    for doc in store.documents(AGE_COLLECTION, order_by=YEAR_KEY):
        year = doc.get(YEAR_KEY)
        if not isinstance(year, int) or isinstance(year, bool):
            continue
        value = emigrants_value(doc.get(age_group))
        if value is None or value <= 0:
            continue
        points.append(SeriesPoint(year, value))
    return sorted(points, key=lambda p: p.year)


def records_frame(store: DocumentStore, collection: str) -> pd.DataFrame:
    """Flatten a collection into one row per year for editing."""
    rows = []
    for doc in store.documents(collection, order_by=YEAR_KEY):
        row = {YEAR_KEY: doc.get(YEAR_KEY)}
        for key, raw in doc.items():
            if key != YEAR_KEY:
                row[key] = emigrants_value(raw)
        rows.append(row)
    if not rows:
        return pd.DataFrame(columns=[YEAR_KEY])
    frame = pd.DataFrame(rows)
    cols = [YEAR_KEY] + sorted(c for c in frame.columns if c != YEAR_KEY)
    return frame[cols].reset_index(drop=True)


def upsert_year_record(store: DocumentStore, collection: str, year: int, values: Mapping[str, float]) -> Dict[str, Any]:
    """Merge category values into the document for ``year``."""
    if any(v is not None and v < 0 for v in values.values()):
        raise DataError("Emigrant counts cannot be negative.")
    doc = store.get(collection, str(year)) or {YEAR_KEY: int(year)}
    for key, value in values.items():
        if key == YEAR_KEY:
            continue
        if value is None:
            doc.pop(key, None)
        else:
            doc[key] = {"emigrants": value}
    store.set(collection, str(year), doc)
    return doc


def delete_year_record(store: DocumentStore, collection: str, year: int) -> bool:
    return store.delete(collection, str(year))
