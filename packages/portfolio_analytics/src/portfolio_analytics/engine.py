"""Query orchestrator shared by the CLI and embedding callers.

Every query fetches the raw datasets, prepares them (load -> resolve ->
dedup) and computes its result from scratch. Nothing is cached between
calls; a failure anywhere fails the whole query.
"""

from __future__ import annotations

import functools
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from typing import Any, TypeVar

import pandas as pd
from loguru import logger

from portfolio_analytics.analyses.association_rules import CrossSellResult, mine_rules
from portfolio_analytics.analyses.base import AnalysisResult, resolved_only
from portfolio_analytics.analyses.breakdowns import (
    advisor_breakdown,
    cancellation_reasons,
    category_breakdown,
    company_breakdown,
    compute_totals,
    entity_breakdown,
    product_breakdown,
    status_breakdown,
)
from portfolio_analytics.analyses.churn_risk import ChurnResult, score_policies
from portfolio_analytics.analyses.coverage import cross_sell_coverage
from portfolio_analytics.analyses.evolution import compute_evolution
from portfolio_analytics.analyses.insights import Insight, generate_insights
from portfolio_analytics.analyses.listing import Period, entity_portfolio, list_policies
from portfolio_analytics.analyses.pareto import pareto_concentration
from portfolio_analytics.analyses.seniority import seniority_cohorts
from portfolio_analytics.analyses.survival import survival_by_category
from portfolio_analytics.analyses.trend import month_over_month
from portfolio_analytics.data_loader import RecordStore, load_advisors, load_links, load_policies
from portfolio_analytics.dedup import deduplicate_policies
from portfolio_analytics.exceptions import AnalysisError, PortfolioError, QueryError
from portfolio_analytics.filters import FacetFilters, apply_filters, dynamic_filter_options
from portfolio_analytics.resolver import EntityRegistry, extract_code, resolve_entities
from portfolio_analytics.settings import Settings

T = TypeVar("T")


@dataclass(frozen=True)
class PreparedData:
    """Resolved and deduplicated policies plus the registry they were resolved against."""

    policies: pd.DataFrame
    registry: EntityRegistry
    advisors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class MetricsResult:
    totals: dict[str, Any]
    breakdowns: list[AnalysisResult]
    filter_options: dict[str, list[str]]
    insights: list[Insight]

    def breakdown(self, name: str) -> AnalysisResult:
        for result in self.breakdowns:
            if result.name == name:
                return result
        raise KeyError(name)


def _query(name: str) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Run a query atomically: library errors pass through, anything else becomes AnalysisError."""

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return func(*args, **kwargs)
            except PortfolioError:
                raise
            except Exception as e:
                logger.error("{name} failed: {error}", name=name, error=e)
                raise AnalysisError(name, e) from e

        return wrapper

    return decorator


class PortfolioEngine:
    """Stateless query surface over a record store."""

    def __init__(self, store: RecordStore, settings: Settings | None = None, as_of: date | None = None) -> None:
        self.store = store
        self.settings = settings or Settings()
        self._as_of = as_of

    @property
    def as_of(self) -> date:
        return self._as_of or date.today()

    def prepare(self) -> PreparedData:
        datasets = self.settings.datasets
        policies = load_policies(self.store.fetch(datasets.policies))
        links = load_links(self.store.fetch(datasets.links))
        advisors = load_advisors(self.store.fetch(datasets.advisors))

        registry = EntityRegistry.from_links(links)
        resolved = resolve_entities(policies, registry)
        deduped = deduplicate_policies(resolved)
        logger.debug(
            "Prepared {n} policies ({raw} raw rows, {codes} registered entities)",
            n=len(deduped),
            raw=len(policies),
            codes=len(registry.codes),
        )
        return PreparedData(policies=deduped, registry=registry, advisors=advisors)

    @_query("compute_metrics")
    def compute_metrics(self, filters: FacetFilters | None = None) -> MetricsResult:
        filters = filters or FacetFilters()
        data = self.prepare()
        full = data.policies
        # Unregistered policies stay out of every metric, the trend included.
        registered = resolved_only(full)
        df = apply_filters(registered, filters)
        logger.info(
            "Metrics over {n} of {total} registered policies ({skipped} unregistered skipped)",
            n=len(df),
            total=len(registered),
            skipped=len(full) - len(registered),
        )

        totals = compute_totals(df)
        linked = Counter(data.registry.advisors.values())
        coverage = cross_sell_coverage(df)
        pareto = pareto_concentration(df, self.settings.insights.pareto_top_fraction)
        categories = category_breakdown(df)
        products = product_breakdown(df)

        breakdowns = [
            entity_breakdown(df),
            advisor_breakdown(df, data.advisors, linked, filters.advisor),
            products,
            categories,
            company_breakdown(df),
            status_breakdown(df),
            cancellation_reasons(df),
            coverage,
            survival_by_category(df),
            pareto,
            seniority_cohorts(full, df, self.as_of),
        ]
        trend = month_over_month(registered, filters)
        if trend is not None:
            breakdowns.append(trend)
            totals["premium_change_pct"] = float(trend.df.loc[0, "change_pct"])

        insights = generate_insights(
            totals,
            coverage.metadata,
            pareto.metadata,
            categories.df,
            products.df,
            self.settings.insights,
        )
        return MetricsResult(
            totals=totals,
            breakdowns=breakdowns,
            filter_options=dynamic_filter_options(registered, filters),
            insights=insights,
        )

    @_query("compute_entity_evolution")
    def compute_entity_evolution(self, entity_id: str, filters: FacetFilters | None = None) -> AnalysisResult:
        data = self.prepare()
        code = self._entity_code(entity_id, data.registry)
        df = apply_filters(data.policies, filters or FacetFilters())
        df = df[df["entity_code"] == code]
        logger.info("Entity evolution for {code}: {n} policies", code=code, n=len(df))
        result = compute_evolution(df, data.registry.name_for(code), self.settings.early_cancellation_days)
        result.metadata.update(code=code, advisor=data.registry.advisor_for(code))
        return result

    @_query("compute_advisor_evolution")
    def compute_advisor_evolution(self, advisor_id: str) -> AnalysisResult:
        advisor = (advisor_id or "").strip()
        if not advisor:
            raise QueryError("An advisor name is required")
        data = self.prepare()
        df = data.policies
        df = df[df["resolved"] & (df["advisor"] == advisor)]
        logger.info("Advisor evolution for {advisor}: {n} policies", advisor=advisor, n=len(df))
        return compute_evolution(df, advisor, self.settings.early_cancellation_days)

    @_query("mine_cross_sell_rules")
    def mine_cross_sell_rules(
        self, advisor: str | None = None, filters: FacetFilters | None = None
    ) -> CrossSellResult:
        data = self.prepare()
        df = apply_filters(data.policies, filters or FacetFilters())
        if advisor:
            df = df[df["advisor"] == advisor.strip()]
        result = mine_rules(df, self.settings.mining)
        logger.info(
            "Cross-sell mining: {n} rules over {pop} entities",
            n=len(result.rules),
            pop=result.population,
        )
        return result

    @_query("score_churn_risk")
    def score_churn_risk(self, filters: FacetFilters | None = None) -> ChurnResult:
        data = self.prepare()
        df = apply_filters(data.policies, filters or FacetFilters())
        result = score_policies(df, self.as_of, self.settings.churn)
        logger.info(
            "Churn scoring: {n} at-risk entries ({high} high risk), baseline {baseline:.3f}",
            n=len(result.entries),
            high=result.high_risk,
            baseline=result.baseline,
        )
        return result

    @_query("list_policies")
    def list_policies(self, filters: FacetFilters | None = None, period: Period | None = None) -> AnalysisResult:
        if period is not None:
            period = _validate_period(period)
        data = self.prepare()
        df = apply_filters(data.policies, filters or FacetFilters())
        return list_policies(df, self.as_of, period)

    @_query("entity_portfolio")
    def entity_portfolio(self, entity_code: str) -> AnalysisResult:
        data = self.prepare()
        code = self._entity_code(entity_code, data.registry)
        rules = mine_rules(data.policies, self.settings.mining).rules
        return entity_portfolio(
            data.policies,
            code,
            data.registry.name_for(code),
            data.registry.advisor_for(code),
            rules,
        )

    @staticmethod
    def _entity_code(entity_id: str, registry: EntityRegistry) -> str:
        code = extract_code(entity_id)
        if not code:
            raise QueryError("An entity code is required")
        if code not in registry.codes:
            raise QueryError(f"Unknown entity: {entity_id}", detail={"code": code})
        return code


def _validate_period(period: Period) -> Period:
    try:
        start_year, start_month, end_year, end_month = (int(v) for v in period)
    except (TypeError, ValueError) as e:
        raise QueryError(f"Invalid period {period!r}: expected four integers") from e
    if not (1 <= start_month <= 12 and 1 <= end_month <= 12):
        raise QueryError(f"Invalid period {period!r}: months must be 1-12")
    if (start_year, start_month) > (end_year, end_month):
        raise QueryError(f"Invalid period {period!r}: start is after end")
    return start_year, start_month, end_year, end_month
