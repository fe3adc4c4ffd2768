"""Base result container and guarded arithmetic shared by all analyses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pandas as pd


@dataclass(frozen=True)
class AnalysisResult:
    """Immutable container for a single analysis output.

    Fields:
        name: Unique identifier for the analysis (e.g., "entity_breakdown").
        title: Human-readable display title.
        data: Dict of DataFrames. Single-frame results use ``{"main": df}``.
        summary: Brief text summary of findings.
        metadata: Scalar extras (totals, shares, counts).
    """

    name: str
    title: str = ""
    data: dict[str, pd.DataFrame] = field(default_factory=dict)
    summary: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def df(self) -> pd.DataFrame:
        """Convenience: return the 'main' DataFrame, or empty if missing."""
        return self.data.get("main", pd.DataFrame())

    @classmethod
    def from_df(
        cls,
        name: str,
        title: str,
        df: pd.DataFrame,
        *,
        summary: str = "",
        metadata: dict[str, Any] | None = None,
        extra: dict[str, pd.DataFrame] | None = None,
    ) -> AnalysisResult:
        """Create a result around a main DataFrame plus optional named extras."""
        data = {"main": df}
        if extra:
            data.update(extra)
        return cls(
            name=name,
            title=title,
            data=data,
            summary=summary,
            metadata=dict(metadata) if metadata else {},
        )


def safe_percentage(numerator: float, denominator: float) -> float:
    """Compute percentage with zero-division and NaN guard. Returns 0-100."""
    if denominator == 0 or pd.isna(denominator):
        return 0.0
    return round((numerator / denominator) * 100, 2)


def safe_ratio(numerator: float, denominator: float, decimals: int = 2) -> float:
    """Compute ratio with zero-division and NaN guard."""
    if denominator == 0 or pd.isna(denominator):
        return 0.0
    return round(numerator / denominator, decimals)


def count_entities(codes: pd.Series) -> int:
    """Distinct resolved entity codes (unresolved rows carry an empty code)."""
    return int(codes[codes != ""].nunique())


def resolved_only(df: pd.DataFrame) -> pd.DataFrame:
    return df[df["resolved"]]
