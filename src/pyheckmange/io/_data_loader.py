"""Data loading utilities."""

from __future__ import annotations

from pathlib import Path

import pandas as pd

_READERS = {
    "csv": lambda p: pd.read_csv(p),
    "dat": lambda p: pd.read_csv(p, sep=r"\s+"),
    "txt": lambda p: pd.read_csv(p, sep=r"\s+"),
    "xlsx": lambda p: pd.read_excel(p),
    "xls": lambda p: pd.read_excel(p),
    "parquet": lambda p: pd.read_parquet(p),
}


def load_data(path: str | Path, *, file_type: str | None = None) -> pd.DataFrame:
    """Load survey or administrative data from disk.

    Parameters
    ----------
    path : str or Path
        Path to data file.
    file_type : str or None
        Force file type ("csv", "dat", "txt", "xlsx", "xls", "parquet").
        Auto-detected from the suffix if None; unknown suffixes are read
        as CSV.

    Returns
    -------
    df : pd.DataFrame
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Data file not found: {path}")

    if file_type is None:
        file_type = path.suffix.lower().lstrip(".")

    reader = _READERS.get(file_type, _READERS["csv"])
    return reader(path)
