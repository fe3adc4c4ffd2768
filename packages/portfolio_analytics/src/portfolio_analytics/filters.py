"""Facet filters and self-excluding dynamic filter options.

Each facet gets one boolean mask over the policy frame. A record passes the
filter set when it passes every mask; the options shown for facet F come
from records passing every mask except F's own.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, fields, replace

import pandas as pd

from portfolio_analytics.exceptions import QueryError
from portfolio_analytics.parsing import clean_text, normalize_period
from portfolio_analytics.resolver import UNASSIGNED_ADVISOR

FACETS = ("year", "month", "status", "advisor", "entity", "category", "product")

FACET_COLUMNS: dict[str, str] = {
    "year": "production_year",
    "month": "production_month",
    "status": "status",
    "advisor": "advisor",
    "entity": "entity_name",
    "category": "category",
    "product": "product",
}

# Spanish query parameter names accepted alongside the facet names.
PARAM_ALIASES: dict[str, str] = {
    "anio": "year",
    "año": "year",
    "mes": "month",
    "estado": "status",
    "comercial": "advisor",
    "asesor": "advisor",
    "ente": "entity",
    "ramo": "category",
    "producto": "product",
}

ALL_VALUES = "Todos"
_NUMERIC_FACETS = {"year", "month"}


def _normalize_value(facet: str, value: object) -> str:
    if facet in _NUMERIC_FACETS:
        return normalize_period(value)
    return clean_text(value)


def _split_values(facet: str, raw: object) -> frozenset[str]:
    if raw is None:
        return frozenset()
    if isinstance(raw, str):
        items: Iterable[object] = raw.split(",")
    elif isinstance(raw, Iterable):
        items = raw
    else:
        items = [raw]
    values = {_normalize_value(facet, item) for item in items}
    values.discard("")
    if ALL_VALUES in values:
        return frozenset()
    return frozenset(values)


@dataclass(frozen=True)
class FacetFilters:
    """Allowed values per facet; an empty set leaves the facet unrestricted."""

    year: frozenset[str] = frozenset()
    month: frozenset[str] = frozenset()
    status: frozenset[str] = frozenset()
    advisor: frozenset[str] = frozenset()
    entity: frozenset[str] = frozenset()
    category: frozenset[str] = frozenset()
    product: frozenset[str] = frozenset()

    @classmethod
    def from_params(cls, params: Mapping[str, object] | None = None, **kwargs: object) -> FacetFilters:
        """Build filters from query-style parameters.

        Accepts canonical facet names or their Spanish aliases. Values may be
        comma-separated strings, iterables or scalars; "Todos" clears the facet.
        """
        merged = {**(params or {}), **kwargs}
        values: dict[str, frozenset[str]] = {}
        for name, raw in merged.items():
            facet = PARAM_ALIASES.get(name.lower(), name.lower())
            if facet not in FACET_COLUMNS:
                raise QueryError(f"Unknown filter parameter: {name}", detail={"facets": list(FACETS)})
            values[facet] = values.get(facet, frozenset()) | _split_values(facet, raw)
        return cls(**values)

    def values(self, facet: str) -> frozenset[str]:
        return getattr(self, facet)

    def with_values(self, **changes: Iterable[object]) -> FacetFilters:
        """Copy with some facets replaced (values are normalized)."""
        return replace(self, **{k: _split_values(k, v) for k, v in changes.items()})

    @property
    def is_empty(self) -> bool:
        return not any(getattr(self, f.name) for f in fields(self))

    def as_dict(self) -> dict[str, list[str]]:
        return {facet: sorted(self.values(facet)) for facet in FACETS}


def facet_masks(df: pd.DataFrame, filters: FacetFilters) -> dict[str, pd.Series]:
    """One boolean mask per facet; unrestricted facets are all-True."""
    masks: dict[str, pd.Series] = {}
    for facet in FACETS:
        allowed = filters.values(facet)
        if allowed:
            masks[facet] = df[FACET_COLUMNS[facet]].isin(allowed)
        else:
            masks[facet] = pd.Series(True, index=df.index)
    return masks


def combine_masks(
    masks: Mapping[str, pd.Series],
    index: pd.Index,
    exclude: str | None = None,
) -> pd.Series:
    combined = pd.Series(True, index=index)
    for facet, mask in masks.items():
        if facet != exclude:
            combined &= mask
    return combined


def apply_filters(df: pd.DataFrame, filters: FacetFilters) -> pd.DataFrame:
    """Rows matching every facet."""
    masks = facet_masks(df, filters)
    return df[combine_masks(masks, df.index)]


def _option_sort_key(facet: str, value: str) -> tuple:
    if facet in _NUMERIC_FACETS:
        try:
            return (0, float(value), value)
        except ValueError:
            return (1, 0.0, value)
    return (0, 0.0, value)


def dynamic_filter_options(df: pd.DataFrame, filters: FacetFilters) -> dict[str, list[str]]:
    """Visible values per facet, each computed ignoring that facet's own restriction."""
    masks = facet_masks(df, filters)
    options: dict[str, list[str]] = {}
    for facet in FACETS:
        visible = df.loc[combine_masks(masks, df.index, exclude=facet), FACET_COLUMNS[facet]]
        values = {v for v in visible if v}
        if facet == "advisor":
            values.discard(UNASSIGNED_ADVISOR)
        options[facet] = sorted(values, key=lambda v, f=facet: _option_sort_key(f, v))
    return options
