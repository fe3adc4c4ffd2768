"""Shared fixtures for portfolio_analytics tests."""

from __future__ import annotations

from datetime import date
from pathlib import Path

import pandas as pd
import pytest
from loguru import logger

from portfolio_analytics.data_loader import InMemoryRecordStore, load_links, load_policies
from portfolio_analytics.dedup import deduplicate_policies
from portfolio_analytics.engine import PortfolioEngine
from portfolio_analytics.resolver import EntityRegistry, resolve_entities
from portfolio_analytics.settings import Settings

AS_OF = date(2024, 6, 30)

POLICIES_ID = "listado_polizas.xlsx"
LINKS_ID = "entes_registrados_asesor.xlsx"
ADVISORS_ID = "lista_asesores.xlsx"


def _policy(
    number: str,
    ente: str,
    product: str,
    company: str,
    premium: str,
    effective: str,
    status: str,
    year: int,
    month: int,
    *,
    code: str = "",
    cancelled_on: str = "",
    reason: str = "",
    payment: str = "Anual",
) -> dict:
    """One raw policy row keyed by the source workbook headers."""
    return {
        "NºPóliza": number,
        "Ente Comercial": ente,
        "Código": code,
        "Tomador": f"Holder {number}",
        "Producto": product,
        "Abrev.Cía": company,
        "P.Produccion": premium,
        "F.Efecto": effective,
        "F.Anulación": cancelled_on,
        "Mot.Anulación": reason,
        "Estado": status,
        "Forma Pago": payment,
        "AÑO_PROD": year,
        "MES_Prod": month,
    }


SAMPLE_POLICIES = [
    _policy("P1", "Acme Corp - 00231", "<A> Auto Plus", "MAP", "350,00", "10/01/2023", "Vigor", 2023, 1),
    _policy("P2", "Acme Corp - 00231", "Hogar Total", "MAP", "120,50", "01/03/2023", "Vigor", 2023, 3),
    _policy(
        "P3",
        "Acme Corp - 00231",
        "<A> Auto Basico",
        "AXA",
        "200,00",
        "01/01/2022",
        "Anulada",
        2022,
        1,
        cancelled_on="01/06/2022",
        reason="Precio",
    ),
    _policy("P4", "Beta SL - 00400", "Decesos Familiar", "AXA", "80", "15/02/2024", "Vigor", 2024, 2),
    _policy(
        "P5",
        "Beta SL - 00400",
        "Sanitas Salud",
        "MAP",
        "1.234,56",
        "05/03/2024",
        "Vigor",
        2024,
        3,
        payment="Mensual",
    ),
    _policy(
        "P6", "Unknown - 99999", "Accidentes Plus", "AXA", "60,00", "20/03/2024", "Pendiente", 2024, 3, code="00500"
    ),
    _policy("P7", "Nobody - 77777", "Hogar Basico", "MAP", "90,00", "10/03/2024", "Vigor", 2024, 3),
    # Later cancelled version of P4 -- must replace the in-force row.
    _policy(
        "P4",
        "Beta SL - 00400",
        "Decesos Familiar",
        "AXA",
        "80",
        "15/02/2024",
        "Anulada",
        2024,
        2,
        cancelled_on="01/04/2024",
        reason="Impago",
    ),
]

SAMPLE_LINKS = [
    {"ASESOR": "Ana", "ENTE": "Acme Corp - 00231"},
    {"ASESOR": "Ana", "ENTE": "Beta SL - 00400"},
    {"ASESOR": "Luis", "ENTE": "Gamma - 00500"},
    {"ASESOR": "", "ENTE": "Delta - 00600"},
]

SAMPLE_ADVISORS = [{"ASESOR": "Ana"}, {"ASESOR": "Luis"}, {"ASESOR": "Marta"}]


def make_store(policies: list[dict], links: list[dict], advisors: list[dict] | None = None) -> InMemoryRecordStore:
    return InMemoryRecordStore({POLICIES_ID: policies, LINKS_ID: links, ADVISORS_ID: advisors or []})


def prepare_frame(policies: list[dict], links: list[dict]) -> pd.DataFrame:
    """Run raw records through load -> resolve -> dedup."""
    registry = EntityRegistry.from_links(load_links(links))
    return deduplicate_policies(resolve_entities(load_policies(policies), registry))


@pytest.fixture()
def sample_store() -> InMemoryRecordStore:
    return make_store(SAMPLE_POLICIES, SAMPLE_LINKS, SAMPLE_ADVISORS)


@pytest.fixture()
def engine(sample_store: InMemoryRecordStore) -> PortfolioEngine:
    return PortfolioEngine(sample_store, Settings(), as_of=AS_OF)


@pytest.fixture()
def prepared(engine: PortfolioEngine) -> pd.DataFrame:
    """Resolved, deduplicated sample policies."""
    return engine.prepare().policies


@pytest.fixture()
def sample_data_dir(tmp_path: Path) -> Path:
    """The sample datasets written as CSV files, under the workbook stems."""
    pd.DataFrame(SAMPLE_POLICIES).to_csv(tmp_path / "listado_polizas.csv", index=False)
    pd.DataFrame(SAMPLE_LINKS).to_csv(tmp_path / "entes_registrados_asesor.csv", index=False)
    pd.DataFrame(SAMPLE_ADVISORS).to_csv(tmp_path / "lista_asesores.csv", index=False)
    return tmp_path


@pytest.fixture()
def policy_row():
    """Factory for raw policy rows (workbook headers)."""
    return _policy


@pytest.fixture()
def store_factory():
    return make_store


@pytest.fixture()
def frame_factory():
    return prepare_frame


@pytest.fixture()
def log_messages():
    """Capture loguru messages emitted during the test."""
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    try:
        logger.remove(handler_id)
    except ValueError:
        pass
