"""Column alias resolution and required column definitions."""

from __future__ import annotations

import pandas as pd

from portfolio_analytics.exceptions import ColumnMismatchError

POLICY_COLUMNS = (
    "policy_number",
    "entity_text",
    "direct_code",
    "policyholder",
    "product",
    "company",
    "premium",
    "effective_date",
    "cancellation_date",
    "cancellation_reason",
    "status",
    "payment_method",
    "production_year",
    "production_month",
)

REQUIRED_POLICY_COLUMNS = {
    "policy_number",
    "entity_text",
    "product",
    "premium",
    "status",
}

LINK_COLUMNS = ("advisor", "entity")
REQUIRED_LINK_COLUMNS = {"advisor", "entity"}

ADVISOR_COLUMNS = ("advisor",)
REQUIRED_ADVISOR_COLUMNS = {"advisor"}

# Maps normalized raw header -> canonical name.
COLUMN_ALIASES: dict[str, str] = {
    # policy_number
    "policy_number": "policy_number",
    "nºpóliza": "policy_number",
    "nº póliza": "policy_number",
    "npoliza": "policy_number",
    "poliza": "policy_number",
    "póliza": "policy_number",
    # entity_text
    "entity_text": "entity_text",
    "ente comercial": "entity_text",
    # direct_code
    "direct_code": "direct_code",
    "código": "direct_code",
    "codigo": "direct_code",
    # policyholder
    "policyholder": "policyholder",
    "tomador": "policyholder",
    # product
    "product": "product",
    "producto": "product",
    # company
    "company": "company",
    "abrev.cía": "company",
    "abrev.cia": "company",
    "compañía": "company",
    "compania": "company",
    # premium
    "premium": "premium",
    "p.produccion": "premium",
    "p.producción": "premium",
    # effective_date
    "effective_date": "effective_date",
    "f.efecto": "effective_date",
    # cancellation_date
    "cancellation_date": "cancellation_date",
    "f.anulación": "cancellation_date",
    "f.anulacion": "cancellation_date",
    # cancellation_reason
    "cancellation_reason": "cancellation_reason",
    "mot.anulación": "cancellation_reason",
    "mot.anulacion": "cancellation_reason",
    # status
    "status": "status",
    "estado": "status",
    # payment_method
    "payment_method": "payment_method",
    "forma pago": "payment_method",
    # production_year
    "production_year": "production_year",
    "año_prod": "production_year",
    "año prod": "production_year",
    "anio_prod": "production_year",
    # production_month
    "production_month": "production_month",
    "mes_prod": "production_month",
    "mes prod": "production_month",
    # links / advisors
    "advisor": "advisor",
    "asesor": "advisor",
    "entity": "entity",
    "ente": "entity",
}


def _normalize_header(col: object) -> str:
    return " ".join(str(col).split()).lower()


def resolve_columns(
    df: pd.DataFrame,
    dataset: str,
    expected: tuple[str, ...],
    required: set[str],
) -> pd.DataFrame:
    """Rename columns to canonical names and keep only *expected* ones.

    Optional expected columns absent from the input are added as nulls.
    Raises ColumnMismatchError if required columns are missing after resolution.
    """
    rename_map: dict[object, str] = {}
    for col in df.columns:
        key = _normalize_header(col)
        canonical = COLUMN_ALIASES.get(key)
        # First alias wins when a sheet carries two variants of one header.
        if canonical in expected and canonical not in rename_map.values():
            rename_map[col] = canonical

    result = df[list(rename_map)].rename(columns=rename_map)

    resolved = set(result.columns)
    missing = required - resolved
    if missing:
        raise ColumnMismatchError(dataset, missing=missing, available={str(c) for c in df.columns})

    for col in expected:
        if col not in resolved:
            result[col] = None
    return result[list(expected)]
