"""Jobs, criteria and evaluators: models, file loading and the job service."""

from .client import JobServiceClient
from .loader import JobLoader
from .models import Criterion, Evaluator, Job, JobWithEvaluations

__all__ = [
    "Criterion",
    "Evaluator",
    "Job",
    "JobLoader",
    "JobServiceClient",
    "JobWithEvaluations",
]
