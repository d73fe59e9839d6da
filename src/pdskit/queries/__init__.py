"""Report requests and their evaluation."""
from .base import Combination, ReportRequest
from .histogram import HistogramRequest
from .passive import PassiveLossRequest
from .query_engine import EpochEvaluation, Evaluation, QueryEvaluator

__all__ = [
    "Combination",
    "ReportRequest",
    "HistogramRequest",
    "PassiveLossRequest",
    "EpochEvaluation",
    "Evaluation",
    "QueryEvaluator",
]
