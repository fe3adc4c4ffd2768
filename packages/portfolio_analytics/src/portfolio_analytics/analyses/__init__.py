"""Analyses over the resolved, deduplicated policy frame."""

from portfolio_analytics.analyses.association_rules import AssociationRule, CrossSellResult, mine_rules
from portfolio_analytics.analyses.base import AnalysisResult
from portfolio_analytics.analyses.churn_risk import ChurnResult, ChurnRiskEntry, score_policies
from portfolio_analytics.analyses.insights import Insight, generate_insights

__all__ = [
    "AnalysisResult",
    "AssociationRule",
    "ChurnResult",
    "ChurnRiskEntry",
    "CrossSellResult",
    "Insight",
    "generate_insights",
    "mine_rules",
    "score_policies",
]
