"""Collapse policy versions to one representative row per policy number."""

from __future__ import annotations

import pandas as pd
from loguru import logger

# Rows without a policy number all share this key and collapse together.
MISSING_POLICY_KEY = "S/N"


def deduplicate_policies(policies: pd.DataFrame) -> pd.DataFrame:
    """Keep one row per policy number, biased toward the cancelled version.

    The first row seen is kept unless a later row is cancelled; among several
    cancelled rows the last one wins. Output follows first-appearance order
    of each key.
    """
    keys = [number or MISSING_POLICY_KEY for number in policies["policy_number"]]

    shared = sum(1 for k in keys if k == MISSING_POLICY_KEY)
    if shared > 1:
        logger.warning(
            "{n} policies without a number share the '{key}' key and collapse into one",
            n=shared,
            key=MISSING_POLICY_KEY,
        )

    keep: dict[str, object] = {}
    for idx, key, cancelled in zip(policies.index, keys, policies["is_cancelled"]):
        if key not in keep or cancelled:
            keep[key] = idx

    result = policies.loc[list(keep.values())].copy()
    result["policy_number"] = list(keep.keys())
    result = result.reset_index(drop=True)

    dropped = len(policies) - len(result)
    if dropped:
        logger.debug("Deduplication dropped {n} duplicate rows", n=dropped)
    return result
