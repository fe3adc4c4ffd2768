"""Entity identity resolution against the advisor registry.

Policies reference their entity through a free-text "Name - Code" field and,
sometimes, a direct code column. The registry links are the only source of
truth for which codes exist, what they are called and who advises them.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import pandas as pd
from loguru import logger

from portfolio_analytics.parsing import clean_text

UNASSIGNED_ADVISOR = "Sin Asesor"
CODE_SEPARATOR = " - "


def extract_code(identifier: object) -> str:
    """Code part of an entity identifier.

    "Acme Corp - 00231" -> "00231"; a bare "00231" is returned unchanged.
    Only the last separator counts, so names containing " - " still work.
    """
    text = clean_text(identifier)
    if CODE_SEPARATOR in text:
        return text.rsplit(CODE_SEPARATOR, 1)[1].strip()
    return text


@dataclass(frozen=True)
class EntityRegistry:
    """Canonical entities derived from registry links."""

    advisors: dict[str, str] = field(default_factory=dict)
    names: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_links(cls, links: pd.DataFrame) -> EntityRegistry:
        """Index links by code; for repeated codes the last link wins."""
        advisors: dict[str, str] = {}
        names: dict[str, str] = {}
        for advisor, identifier in zip(links["advisor"], links["entity"]):
            raw = clean_text(identifier)
            if not raw:
                continue
            code = extract_code(raw)
            if not code:
                continue
            advisors[code] = clean_text(advisor) or UNASSIGNED_ADVISOR
            names[code] = raw
        return cls(advisors=advisors, names=names)

    @property
    def codes(self) -> frozenset[str]:
        return frozenset(self.names)

    def resolve(self, entity_text: object, direct_code: object = None) -> str | None:
        """Canonical code for a policy, or None when neither field matches a known code."""
        code = extract_code(entity_text)
        if code and code in self.names:
            return code
        fallback = clean_text(direct_code)
        if fallback and fallback in self.names:
            return fallback
        return None

    def advisor_for(self, code: str | None) -> str:
        if code is None:
            return UNASSIGNED_ADVISOR
        return self.advisors.get(code, UNASSIGNED_ADVISOR)

    def name_for(self, code: str | None) -> str:
        if code is None:
            return ""
        return self.names.get(code, "")


def resolve_entities(policies: pd.DataFrame, registry: EntityRegistry) -> pd.DataFrame:
    """Add entity_code, entity_name, advisor and resolved columns.

    Unresolved rows get an empty code/name and the unassigned-advisor sentinel.
    """
    df = policies.copy()
    codes = [registry.resolve(text, direct) for text, direct in zip(df["entity_text"], df["direct_code"])]

    df["entity_code"] = pd.Series([c or "" for c in codes], index=df.index, dtype=object)
    df["entity_name"] = pd.Series([registry.name_for(c) for c in codes], index=df.index, dtype=object)
    df["advisor"] = pd.Series([registry.advisor_for(c) for c in codes], index=df.index, dtype=object)
    df["resolved"] = pd.Series([c is not None for c in codes], index=df.index, dtype=bool)

    unresolved = int((~df["resolved"]).sum())
    if unresolved:
        logger.debug(
            "{unresolved} of {total} policies did not resolve to a registered entity",
            unresolved=unresolved,
            total=len(df),
        )
    return df
