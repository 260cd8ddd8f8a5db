"""Data models for jobs, evaluation criteria and HR evaluators.

Field names are snake_case in Python and job files; the job service speaks
camelCase (``usesMultipleHR``, ``submittedAt``, ``finalWeights``), so every
model accepts both and serializes with aliases for the wire.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from candid.core.exceptions import ValidationError

DEFAULT_NEW_CRITERION_WEIGHT = 0.1


class Criterion(BaseModel):
    """A named evaluation dimension with the job creator's baseline weight."""

    name: str = Field(..., description="Criterion name, unique within a job")
    weight: float = Field(..., description="Baseline weight", ge=0.0, le=1.0)
    description: str | None = Field(None, description="Optional description")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Criterion names are identities, so blank names are rejected."""
        v = v.strip()
        if not v:
            raise ValueError("Criterion name is required")
        return v


class Job(BaseModel):
    """A job posting and its ordered evaluation criteria."""

    model_config = ConfigDict(populate_by_name=True)

    id: str | None = Field(None, description="Job identifier assigned by the service")
    title: str = Field(..., description="Job title", min_length=1)
    description: str = Field("", description="Job description")
    department: str = Field("", description="Owning department")
    location: str = Field("", description="Job location")
    uses_multiple_hr: bool = Field(
        False,
        alias="usesMultipleHR",
        description="Whether several HR evaluators weight the criteria",
    )
    criteria: list[Criterion] = Field(
        ..., description="Evaluation criteria in display order", min_length=1
    )
    final_weights: dict[str, float] | None = Field(
        None, alias="finalWeights", description="Confirmed weights, once finalized"
    )
    created_at: datetime | None = Field(None, alias="createdAt")
    updated_at: datetime | None = Field(None, alias="updatedAt")

    @field_validator("criteria")
    @classmethod
    def validate_unique_names(cls, v: list[Criterion]) -> list[Criterion]:
        """Ensure criterion names are unique within the job."""
        seen: set[str] = set()
        for criterion in v:
            if criterion.name in seen:
                raise ValueError(f"Duplicate criterion name: '{criterion.name}'")
            seen.add(criterion.name)
        return v

    @property
    def criterion_names(self) -> list[str]:
        """Criterion names in display order."""
        return [c.name for c in self.criteria]

    def get_criterion(self, name: str) -> Criterion | None:
        """Return the criterion called ``name``, if any."""
        for criterion in self.criteria:
            if criterion.name == name:
                return criterion
        return None

    def baseline_weights(self) -> dict[str, float]:
        """Declared weights keyed by criterion name, in display order."""
        return {c.name: c.weight for c in self.criteria}

    def total_weight(self) -> float:
        """Sum of the declared criterion weights."""
        return sum(c.weight for c in self.criteria)

    def is_weight_valid(self, tolerance: float = 0.01) -> bool:
        """Check that the declared weights sum to 1.0 within ``tolerance``."""
        return abs(self.total_weight() - 1.0) < tolerance

    def normalize_criteria(self, precision: int = 2) -> None:
        """Rescale the declared weights in place so they sum to 1.0.

        Each weight becomes ``weight / total`` rounded half-up to
        ``precision`` places. When every weight is zero they are all set to
        an unrounded ``1 / n``.
        """
        from candid.weighting.aggregator import round_weight

        total = self.total_weight()
        if total == 0:
            for criterion in self.criteria:
                criterion.weight = 1 / len(self.criteria)
            return

        for criterion in self.criteria:
            criterion.weight = round_weight(criterion.weight / total, precision)

    def add_criterion(
        self,
        name: str,
        weight: float = DEFAULT_NEW_CRITERION_WEIGHT,
        description: str | None = None,
    ) -> Criterion:
        """Append a new criterion to the job.

        Raises:
            ValidationError: If the name is blank, already used, or the
                weight is outside [0, 1].
        """
        try:
            criterion = Criterion(name=name, weight=weight, description=description)
        except ValueError as e:
            raise ValidationError(f"Invalid criterion: {e}") from e

        if self.get_criterion(criterion.name) is not None:
            raise ValidationError(f"Duplicate criterion name: '{criterion.name}'")

        self.criteria.append(criterion)
        return criterion

    def remove_criterion(self, name: str) -> Criterion:
        """Remove the criterion called ``name``.

        Raises:
            ValidationError: If no such criterion exists or it is the last one.
        """
        criterion = self.get_criterion(name)
        if criterion is None:
            raise ValidationError(f"Unknown criterion: '{name}'")
        if len(self.criteria) == 1:
            raise ValidationError("At least one criterion is required")

        self.criteria.remove(criterion)
        return criterion


class Evaluator(BaseModel):
    """An HR reviewer invited to weight a job's criteria.

    An evaluator is ``invited`` until they submit, then ``submitted``;
    there is no way back.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Evaluator identifier", min_length=1)
    name: str = Field(..., description="Display name", min_length=1)
    email: str = Field(..., description="Contact e-mail", min_length=1)
    weights: dict[str, float] = Field(
        default_factory=dict, description="Weight per criterion name"
    )
    submitted: bool = Field(False, description="Whether weights were submitted")
    submitted_at: datetime | None = Field(None, alias="submittedAt")

    @field_validator("weights")
    @classmethod
    def validate_weights(cls, v: dict[str, float]) -> dict[str, float]:
        """Ensure every weight lies in [0, 1]."""
        for name, weight in v.items():
            if not 0.0 <= weight <= 1.0:
                raise ValueError(
                    f"Weight for '{name}' must be between 0 and 1, got {weight}"
                )
        return v

    @model_validator(mode="after")
    def validate_submission_state(self) -> "Evaluator":
        """An unsubmitted evaluator cannot carry a submission time."""
        if self.submitted_at is not None and not self.submitted:
            raise ValueError("'submitted_at' is only allowed once submitted")
        return self

    @property
    def status(self) -> str:
        """Either ``"submitted"`` or ``"invited"``."""
        return "submitted" if self.submitted else "invited"


class JobWithEvaluations(Job):
    """A job together with the evaluators weighting its criteria."""

    evaluators: list[Evaluator] = Field(
        default_factory=list, description="Invited and submitted evaluators"
    )

    @property
    def submitted_evaluators(self) -> list[Evaluator]:
        return [e for e in self.evaluators if e.submitted]

    @property
    def pending_evaluators(self) -> list[Evaluator]:
        return [e for e in self.evaluators if not e.submitted]

    def to_job(self) -> Job:
        """Drop the evaluators and return the plain job."""
        return Job.model_validate(self.model_dump(exclude={"evaluators"}))
