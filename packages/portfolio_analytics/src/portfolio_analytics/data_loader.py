"""Record store adapters and dataset preparation.

Handles three datasets:
1. Policies (listado de pólizas) -- one row per policy version
2. Registry links (entes registrados por asesor) -- advisor <-> entity
3. Advisors (lista de asesores) -- seeds the per-advisor breakdown
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Protocol

import pandas as pd
from loguru import logger

from portfolio_analytics.category_rules import classify_product
from portfolio_analytics.column_map import (
    ADVISOR_COLUMNS,
    LINK_COLUMNS,
    POLICY_COLUMNS,
    REQUIRED_ADVISOR_COLUMNS,
    REQUIRED_LINK_COLUMNS,
    REQUIRED_POLICY_COLUMNS,
    resolve_columns,
)
from portfolio_analytics.exceptions import DataLoadError
from portfolio_analytics.parsing import (
    clean_text,
    is_active_status,
    is_cancelled_status,
    normalize_period,
    parse_date,
    parse_premium,
)

Record = Mapping[str, Any]

_TEXT_COLUMNS = (
    "policy_number",
    "entity_text",
    "direct_code",
    "policyholder",
    "product",
    "company",
    "cancellation_reason",
    "status",
    "payment_method",
)
_READABLE_SUFFIXES = (".xlsx", ".xls", ".csv")


class RecordStore(Protocol):
    """Anything that can hand over a materialized dataset by id."""

    def fetch(self, dataset_id: str) -> Sequence[Record]: ...


class InMemoryRecordStore:
    """Record store backed by plain lists of dicts (tests, embedding callers)."""

    def __init__(self, datasets: Mapping[str, Sequence[Record]] | None = None) -> None:
        self._datasets = {k: list(v) for k, v in (datasets or {}).items()}

    def fetch(self, dataset_id: str) -> list[Record]:
        if dataset_id not in self._datasets:
            logger.warning("Dataset {dataset} not found in memory store", dataset=dataset_id)
            return []
        return list(self._datasets[dataset_id])


class FileRecordStore:
    """Record store reading CSV/Excel workbooks from a directory."""

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)

    def fetch(self, dataset_id: str) -> list[Record]:
        path = self._locate(dataset_id)
        if path is None:
            logger.warning(
                "Dataset {dataset} not found in {dir}, treating as empty",
                dataset=dataset_id,
                dir=self.data_dir,
            )
            return []
        df = _read_file(path)
        logger.debug("Read {n} rows from {path}", n=len(df), path=path.name)
        df = df.astype(object).where(df.notna(), None)
        return df.to_dict("records")

    def _locate(self, dataset_id: str) -> Path | None:
        path = self.data_dir / dataset_id
        if path.is_file():
            return path
        for suffix in _READABLE_SUFFIXES:
            candidate = path.with_suffix(suffix)
            if candidate.is_file():
                return candidate
        return None


def _read_file(path: Path) -> pd.DataFrame:
    """Read a CSV or Excel file into a DataFrame."""
    suffix = path.suffix.lower()
    try:
        if suffix == ".csv":
            return pd.read_csv(path, dtype=str, keep_default_na=False, na_values=[""])
        return pd.read_excel(path)
    except Exception as e:
        raise DataLoadError(f"Failed to read {path}: {e}") from e


def _to_frame(records: Sequence[Record]) -> pd.DataFrame:
    return pd.DataFrame.from_records(list(records))


def load_policies(records: Sequence[Record]) -> pd.DataFrame:
    """Build the normalized policy frame from raw records.

    Steps:
      1. Resolve header aliases -> canonical names
      2. Trim text fields, parse premiums and dates, normalize periods
      3. Flag cancelled / active statuses
      4. Classify each product into its category

    Missing required columns raise ColumnMismatchError; an empty dataset
    yields an empty frame with the full column set.
    """
    raw = _to_frame(records)
    if raw.empty:
        df = pd.DataFrame({col: pd.Series(dtype=object) for col in POLICY_COLUMNS})
    else:
        df = resolve_columns(raw, "policies", POLICY_COLUMNS, REQUIRED_POLICY_COLUMNS)
    df = df.copy()

    for col in _TEXT_COLUMNS:
        df[col] = df[col].map(clean_text).astype(object)
    df["premium"] = df["premium"].map(parse_premium).astype(float)
    # Plain date objects (None when absent); a datetime64 column would turn gaps into NaT.
    for col in ("effective_date", "cancellation_date"):
        df[col] = pd.Series([parse_date(v) for v in df[col]], index=df.index, dtype=object)
    for col in ("production_year", "production_month"):
        df[col] = df[col].map(normalize_period).astype(object)

    df["is_cancelled"] = df["status"].map(is_cancelled_status).astype(bool)
    df["is_active"] = df["status"].map(is_active_status).astype(bool)
    df["category"] = df["product"].map(classify_product).astype(object)

    logger.debug("Prepared {n} policy rows", n=len(df))
    return df


def load_links(records: Sequence[Record]) -> pd.DataFrame:
    """Registry links as (advisor, entity) text pairs, in input order."""
    raw = _to_frame(records)
    if raw.empty:
        return pd.DataFrame({col: pd.Series(dtype=object) for col in LINK_COLUMNS})
    df = resolve_columns(raw, "links", LINK_COLUMNS, REQUIRED_LINK_COLUMNS).copy()
    for col in LINK_COLUMNS:
        df[col] = df[col].map(clean_text).astype(object)
    return df


def load_advisors(records: Sequence[Record]) -> list[str]:
    """Distinct non-empty advisor names, in first-appearance order."""
    raw = _to_frame(records)
    if raw.empty:
        return []
    df = resolve_columns(raw, "advisors", ADVISOR_COLUMNS, REQUIRED_ADVISOR_COLUMNS)
    names = (clean_text(v) for v in df["advisor"])
    return list(dict.fromkeys(n for n in names if n))
