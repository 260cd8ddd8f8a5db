"""Data models for weight aggregation results."""

from typing import Any

from pydantic import BaseModel, Field

from candid.jobs.models import Evaluator

# Criterion name -> weight, in the job's criteria order.
AggregatedWeights = dict[str, float]


class InviteResult(BaseModel):
    """Outcome of inviting an evaluator.

    A refused invite is a normal result, not an error: ``accepted`` is False
    and ``reason`` says which field was missing.
    """

    accepted: bool = Field(..., description="Whether the evaluator was created")
    evaluator: Evaluator | None = Field(None, description="The new evaluator")
    reason: str | None = Field(None, description="Why the invite was refused")

    def __bool__(self) -> bool:
        return self.accepted


class CriterionWeight(BaseModel):
    """Aggregated weight of a single criterion with metadata."""

    name: str = Field(..., description="Criterion name", min_length=1)
    baseline: float = Field(..., description="Job creator's declared weight", ge=0.0)
    weight: float = Field(..., description="Aggregated weight", ge=0.0)
    contributors: int = Field(
        ..., description="Number of submitted evaluators averaged", ge=0
    )

    @property
    def uses_baseline(self) -> bool:
        """True when nobody has submitted and the baseline was used."""
        return self.contributors == 0


class WeightSummary(BaseModel):
    """Everything the presentation layer needs to render a job's weights."""

    job_id: str | None = Field(None, description="Job identifier")
    uses_multiple_hr: bool = Field(..., description="Whether evaluators apply")
    criteria: list[CriterionWeight] = Field(
        ..., description="Per-criterion weights in display order"
    )
    total: float = Field(..., description="Sum of the aggregated weights")
    valid: bool = Field(..., description="Whether the total is close enough to 1")
    submitted_count: int = Field(..., ge=0)
    pending_count: int = Field(..., ge=0)

    @property
    def weights(self) -> AggregatedWeights:
        """The aggregated weights as a plain mapping."""
        return {c.name: c.weight for c in self.criteria}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for reporting."""
        return {
            "job_id": self.job_id,
            "uses_multiple_hr": self.uses_multiple_hr,
            "weights": self.weights,
            "total": self.total,
            "valid": self.valid,
            "evaluators": {
                "submitted": self.submitted_count,
                "pending": self.pending_count,
            },
            "criteria": [
                {
                    "name": c.name,
                    "baseline": c.baseline,
                    "weight": c.weight,
                    "contributors": c.contributors,
                }
                for c in self.criteria
            ],
        }
