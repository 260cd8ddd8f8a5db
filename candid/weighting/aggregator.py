"""Aggregation of HR evaluator weights into one weight per criterion."""

import uuid
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from candid.core.exceptions import EvaluatorStateError, ValidationError
from candid.core.logging import get_logger
from candid.core.settings import CandidSettings
from candid.jobs.models import Criterion, Evaluator, Job

from .models import AggregatedWeights, CriterionWeight, InviteResult, WeightSummary

logger = get_logger(__name__)


def round_weight(value: float, precision: int = 2) -> float:
    """Round half-up on the exact binary value of ``value``.

    This matches how weights are displayed (``0.125 -> 0.13``) rather than
    Python's round-half-even.
    """
    quantum = Decimal(1).scaleb(-precision)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


class WeightAggregator:
    """
    Combines evaluator weight submissions into a single weight vector.

    For every criterion the aggregated weight is:
        mean(weights[c] of submitted evaluators, missing keys counted as 0)
    or, when nobody has submitted yet, the criterion's declared baseline.
    Each value is rounded independently, so the total may drift from 1.0
    by up to half a rounding unit per criterion.

    The aggregator holds only its rounding precision and validation
    tolerance; every method is a pure function of its arguments.
    """

    def __init__(self, precision: int = 2, tolerance: float = 0.01) -> None:
        """
        Initialize the aggregator.

        Args:
            precision: Decimal places aggregated weights are rounded to.
            tolerance: Allowed distance of a weight total from 1.0.
        """
        if precision < 0:
            raise ValueError(f"Precision must be non-negative, got {precision}")
        if not 0.0 < tolerance < 1.0:
            raise ValueError(f"Tolerance must be in (0, 1), got {tolerance}")

        self.precision = precision
        self.tolerance = tolerance

    @classmethod
    def from_settings(cls, settings: CandidSettings) -> "WeightAggregator":
        """Create an aggregator configured from ``settings.weighting``."""
        return cls(
            precision=settings.weighting.precision,
            tolerance=settings.weighting.tolerance,
        )

    def _round(self, value: float) -> float:
        return round_weight(value, self.precision)

    def _contributions(
        self, criteria: Sequence[Criterion], evaluators: Iterable[Evaluator]
    ) -> list[tuple[Criterion, float, int]]:
        submitted = [e for e in evaluators if e.submitted]
        rows = []
        for criterion in criteria:
            if submitted:
                values = [e.weights.get(criterion.name, 0.0) for e in submitted]
                mean = sum(values) / len(values)
            else:
                mean = criterion.weight
            rows.append((criterion, self._round(mean), len(submitted)))
        return rows

    def aggregate(
        self,
        criteria: Sequence[Criterion],
        evaluators: Iterable[Evaluator],
    ) -> AggregatedWeights:
        """
        Aggregate submitted evaluator weights per criterion.

        Unsubmitted evaluators are ignored entirely, whatever their weights.

        Args:
            criteria: Non-empty criteria with unique names, in display order.
            evaluators: Invited and submitted evaluators, possibly empty.

        Returns:
            Mapping of every criterion name to its rounded weight, in
            criteria order.
        """
        return {
            criterion.name: weight
            for criterion, weight, _ in self._contributions(criteria, evaluators)
        }

    def total(self, weights: Mapping[str, float]) -> float:
        """Sum of the weight values."""
        return sum(weights.values())

    def is_valid(self, weights: Mapping[str, float]) -> bool:
        """Check that the weights sum to 1.0 within the tolerance."""
        return abs(self.total(weights) - 1.0) < self.tolerance

    def normalize(self, weights: Mapping[str, float]) -> AggregatedWeights:
        """
        Rescale weights so they sum to 1.0.

        All-zero weights are spread equally. Values are rounded once, with no
        re-balancing pass, so the result is only valid within tolerance and
        a second call may still move values by one rounding unit.

        Args:
            weights: Weights keyed by criterion name.

        Returns:
            Normalized weights in the same key order.
        """
        if not weights:
            return {}

        total = self.total(weights)
        if total == 0:
            equal = self._round(1 / len(weights))
            return {name: equal for name in weights}

        return {name: self._round(value / total) for name, value in weights.items()}

    def resolve(self, job: Job, evaluators: Iterable[Evaluator]) -> AggregatedWeights:
        """
        Weights that apply to ``job``.

        Single-HR jobs use their declared baseline; multi-HR jobs aggregate
        the evaluators' submissions.
        """
        if not job.uses_multiple_hr:
            return {c.name: self._round(c.weight) for c in job.criteria}
        return self.aggregate(job.criteria, evaluators)

    def summarize(self, job: Job, evaluators: Iterable[Evaluator]) -> WeightSummary:
        """
        Build the per-criterion breakdown shown next to the weight sliders.

        Args:
            job: Job whose criteria are weighted.
            evaluators: Evaluators invited to the job.

        Returns:
            WeightSummary with aggregated weights, totals and evaluator counts.
        """
        evaluators = list(evaluators)
        submitted = sum(1 for e in evaluators if e.submitted)

        if job.uses_multiple_hr:
            rows = self._contributions(job.criteria, evaluators)
        else:
            rows = [(c, self._round(c.weight), 0) for c in job.criteria]

        criteria = [
            CriterionWeight(
                name=criterion.name,
                baseline=criterion.weight,
                weight=weight,
                contributors=contributors,
            )
            for criterion, weight, contributors in rows
        ]
        weights = {c.name: c.weight for c in criteria}

        return WeightSummary(
            job_id=job.id,
            uses_multiple_hr=job.uses_multiple_hr,
            criteria=criteria,
            total=self.total(weights),
            valid=self.is_valid(weights),
            submitted_count=submitted,
            pending_count=len(evaluators) - submitted,
        )

    def add_evaluator(self, job: Job, name: str, email: str) -> InviteResult:
        """
        Create an evaluator for ``job``.

        The new evaluator starts invited, with an equal share of weight on
        every criterion as the form default. That default never reaches
        ``aggregate`` until the evaluator submits. The job itself is not
        modified; persisting the evaluator is up to the caller.

        Name and e-mail are stripped before the check, so whitespace-only
        values are refused as well as empty ones.

        Returns:
            InviteResult, refused when the name or e-mail is blank.
        """
        name = (name or "").strip()
        email = (email or "").strip()

        if not name or not email:
            reason = "name is required" if not name else "email is required"
            logger.info("evaluator_rejected", job_id=job.id, reason=reason)
            return InviteResult(accepted=False, reason=reason)

        share = 1 / len(job.criteria)
        evaluator = Evaluator(
            id=f"new-{uuid.uuid4().hex[:12]}",
            name=name,
            email=email,
            weights={c.name: share for c in job.criteria},
            submitted=False,
        )
        logger.info(
            "evaluator_invited",
            job_id=job.id,
            evaluator_id=evaluator.id,
            email=email,
        )
        return InviteResult(accepted=True, evaluator=evaluator)

    def submit(
        self,
        job: Job,
        evaluator: Evaluator,
        weights: Mapping[str, float],
        submitted_at: datetime | None = None,
    ) -> Evaluator:
        """
        Record an evaluator's weight submission.

        Returns a submitted copy of ``evaluator``; the original is untouched.

        Raises:
            EvaluatorStateError: If the evaluator has already submitted.
            ValidationError: If a weight names an unknown criterion or lies
                outside [0, 1].
        """
        if evaluator.submitted:
            raise EvaluatorStateError(
                f"Evaluator '{evaluator.id}' has already submitted weights",
                evaluator_id=evaluator.id,
            )

        known = set(job.criterion_names)
        errors = []
        for name, value in weights.items():
            if name not in known:
                errors.append(f"unknown criterion '{name}'")
            elif not 0.0 <= value <= 1.0:
                errors.append(f"weight for '{name}' must be between 0 and 1")
        if errors:
            raise ValidationError(
                f"Invalid submission from '{evaluator.id}': " + "; ".join(errors)
            )

        missing = [name for name in job.criterion_names if name not in weights]
        logger.info(
            "weights_submitted",
            job_id=job.id,
            evaluator_id=evaluator.id,
            missing_criteria=missing,
        )

        return evaluator.model_copy(
            update={
                "weights": dict(weights),
                "submitted": True,
                "submitted_at": submitted_at or datetime.now(UTC),
            }
        )

    def finalize(
        self,
        job: Job,
        evaluators: Iterable[Evaluator],
        on_finalize: Callable[[AggregatedWeights], Any],
    ) -> AggregatedWeights:
        """
        Confirm the weights for ``job`` and hand them to ``on_finalize``.

        Weights that do not sum to 1.0 are normalized first. The callback is
        called exactly once; anything it raises propagates to the caller.

        Returns:
            The finalized weights.
        """
        weights = self.resolve(job, evaluators)
        normalized = not self.is_valid(weights)
        if normalized:
            weights = self.normalize(weights)

        on_finalize(weights)
        logger.info(
            "weights_finalized",
            job_id=job.id,
            normalized=normalized,
            total=self.total(weights),
        )
        return weights
