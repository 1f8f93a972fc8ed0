from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from utilization.config import Settings
from utilization.grist import Columns, GristClient

logger = logging.getLogger(__name__)

FILE_SUFFIXES = (".csv", ".xlsx")
NUMERIC_COLUMNS = ["Year", "Billable", "Non_Billable", "Target", "Person", "id"]


def find_table_file(data_dir: Path, table_id: str) -> Optional[Path]:
    """``Utilization_Targets`` -> ``<data_dir>/utilization_targets.csv`` (or ``.xlsx``)."""
    if not data_dir.is_dir():
        return None
    wanted = table_id.lower()
    for path in sorted(data_dir.iterdir()):
        if path.suffix.lower() in FILE_SUFFIXES and path.stem.lower() == wanted:
            return path
    return None


def file_signature(path: Path) -> Tuple[str, float]:
    return (str(path), path.stat().st_mtime)


def numericize(df: pd.DataFrame, cols: List[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            converted = pd.to_numeric(df[col], errors="coerce")
            # Keep text columns (e.g. "85%") as-is; the normalizer handles them.
            if converted.notna().sum() == df[col].notna().sum():
                df[col] = converted
    return df


@lru_cache(maxsize=8)
def _read_table_cached(sig: Tuple[str, float]) -> pd.DataFrame:
    path = Path(sig[0])
    if path.suffix.lower() == ".xlsx":
        df = pd.read_excel(path)
    else:
        df = pd.read_csv(path)
    df.columns = [str(c).strip() for c in df.columns]
    if "id" not in df.columns:
        # Grist row ids are 1-based row positions.
        df.insert(0, "id", range(1, len(df) + 1))
    return numericize(df, NUMERIC_COLUMNS)


def _rows(df: pd.DataFrame) -> List[Dict[str, Any]]:
    clean = df.astype(object).where(df.notna(), None)
    return clean.to_dict(orient="records")


class LocalTableSource:
    """Reads tables exported from the Grist document as CSV/XLSX files."""

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)

    def read_table(self, table_id: str) -> pd.DataFrame:
        path = find_table_file(self.data_dir, table_id)
        if path is None:
            raise FileNotFoundError(f"No CSV/XLSX file for table {table_id!r} in {self.data_dir}")
        return _read_table_cached(file_signature(path)).copy()

    def fetch_records(self, table_id: str) -> List[Dict[str, Any]]:
        return _rows(self.read_table(table_id))

    def fetch_table(self, table_id: str) -> Columns:
        df = self.read_table(table_id)
        return {col: [row[col] for row in _rows(df)] for col in df.columns}


def make_source(cfg: Settings) -> GristClient | LocalTableSource:
    if cfg.source == "grist":
        logger.info("Using Grist document %s at %s", cfg.grist_doc_id, cfg.grist_server)
        return GristClient(cfg.grist_server, cfg.grist_doc_id or "", cfg.grist_api_key, timeout=cfg.request_timeout)
    logger.info("Using local tables in %s", cfg.data_dir)
    return LocalTableSource(cfg.data_dir)
