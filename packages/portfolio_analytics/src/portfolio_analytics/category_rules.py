"""Data-driven product -> category ("ramo") classification.

Each rule lists substrings; the first rule with any matching substring wins.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_CATEGORY = "OTROS"


@dataclass(frozen=True)
class CategoryRule:
    """Single classification rule.

    needles: ANY of these substrings triggers the rule.
    category: The category returned on match.
    case_sensitive: Match against the raw product name instead of its lowercase form.
    """

    needles: tuple[str, ...]
    category: str
    case_sensitive: bool = False

    def matches(self, product: str, product_lower: str) -> bool:
        haystack = product if self.case_sensitive else product_lower
        return any(needle in haystack for needle in self.needles)


# Ordered tuple -- first match wins. "ind.riesgo" sits with "riesgo" so the
# life-risk rule fires before any later substring can.
CATEGORY_RULES: tuple[CategoryRule, ...] = (
    CategoryRule(needles=("sanit",), category="SALUD"),
    CategoryRule(needles=("accid",), category="ACCIDENTES"),
    CategoryRule(needles=("agro",), category="DIVERSOS"),
    CategoryRule(needles=("ind.riesgo", "riesgo", "ahorro", "sialp"), category="VIDA RIESGO"),
    CategoryRule(needles=("decesos",), category="DECESOS"),
    CategoryRule(needles=("<A>",), category="AUTOS", case_sensitive=True),
    CategoryRule(needles=("<D>",), category="DIVERSOS", case_sensitive=True),
    # Fallbacks for unprefixed product names; every "<D>" line is DIVERSOS.
    CategoryRule(needles=("hogar",), category="HOGAR"),
    CategoryRule(needles=("auto",), category="AUTOS"),
)


def classify_product(product: object) -> str:
    """Return the category for a free-text product name, or OTROS if no rule matches."""
    name = "" if product is None else str(product)
    lowered = name.lower()
    for rule in CATEGORY_RULES:
        if rule.matches(name, lowered):
            return rule.category
    return DEFAULT_CATEGORY
