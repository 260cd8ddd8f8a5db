"""Aggregation and normalization of evaluator weights."""

from .aggregator import WeightAggregator, round_weight
from .models import (
    AggregatedWeights,
    CriterionWeight,
    InviteResult,
    WeightSummary,
)

__all__ = [
    "WeightAggregator",
    "round_weight",
    "AggregatedWeights",
    "CriterionWeight",
    "InviteResult",
    "WeightSummary",
]
