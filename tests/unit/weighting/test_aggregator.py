"""Unit tests for WeightAggregator."""

from datetime import UTC, datetime

import pytest

from candid.core.exceptions import EvaluatorStateError, ValidationError
from candid.core.settings import CandidSettings
from candid.jobs.models import Criterion, Evaluator, Job
from candid.weighting import WeightAggregator, round_weight


def make_evaluator(
    evaluator_id: str, weights: dict[str, float], submitted: bool = True
) -> Evaluator:
    return Evaluator(
        id=evaluator_id,
        name=f"Evaluator {evaluator_id}",
        email=f"hr{evaluator_id}@candidai.com",
        weights=weights,
        submitted=submitted,
    )


AB = [Criterion(name="A", weight=0.5), Criterion(name="B", weight=0.5)]


class TestRoundWeight:
    """Tests for half-up rounding."""

    def test_rounds_half_up(self) -> None:
        """Test exact halves round away from zero."""
        assert round_weight(0.125) == 0.13
        assert round_weight(0.375) == 0.38

    def test_uses_exact_binary_value(self) -> None:
        """Test values stored just below a half round down."""
        assert round_weight(2.675) == 2.67
        assert round_weight(1.005) == 1.0

    def test_precision(self) -> None:
        """Test other precisions."""
        assert round_weight(0.12345, precision=3) == 0.123
        assert round_weight(0.5, precision=0) == 1.0


class TestWeightAggregatorInit:
    """Tests for WeightAggregator initialization."""

    def test_defaults(self) -> None:
        """Test default precision and tolerance."""
        aggregator = WeightAggregator()
        assert aggregator.precision == 2
        assert aggregator.tolerance == 0.01

    def test_invalid_precision(self) -> None:
        """Test negative precision is rejected."""
        with pytest.raises(ValueError, match="Precision"):
            WeightAggregator(precision=-1)

    @pytest.mark.parametrize("tolerance", [0.0, 1.0, -0.5])
    def test_invalid_tolerance(self, tolerance: float) -> None:
        """Test tolerance outside (0, 1) is rejected."""
        with pytest.raises(ValueError, match="Tolerance"):
            WeightAggregator(tolerance=tolerance)

    def test_from_settings(self) -> None:
        """Test configuration from settings."""
        settings = CandidSettings(
            _skip_file_loading=True,
            weighting={"precision": 3, "tolerance": 0.005},
        )
        aggregator = WeightAggregator.from_settings(settings)
        assert aggregator.precision == 3
        assert aggregator.tolerance == 0.005


class TestAggregate:
    """Tests for aggregate()."""

    def test_no_evaluators_uses_baseline(
        self, aggregator: WeightAggregator, criteria: list[Criterion]
    ) -> None:
        """Test every criterion falls back to its declared weight."""
        result = aggregator.aggregate(criteria, [])
        assert result == {c.name: c.weight for c in criteria}

    def test_two_evaluators_are_averaged(self, aggregator: WeightAggregator) -> None:
        """Test 0.6/0.4 and 0.2/0.8 average to 0.40/0.60."""
        evaluators = [
            make_evaluator("1", {"A": 0.6, "B": 0.4}),
            make_evaluator("2", {"A": 0.2, "B": 0.8}),
        ]
        result = aggregator.aggregate(AB, evaluators)
        assert result == {"A": 0.4, "B": 0.6}

    def test_identical_submissions(self, aggregator: WeightAggregator) -> None:
        """Test identical submissions aggregate to the rounded submission."""
        weights = {"A": 0.333, "B": 0.667}
        evaluators = [make_evaluator(str(i), weights) for i in range(3)]
        result = aggregator.aggregate(AB, evaluators)
        assert result == {"A": 0.33, "B": 0.67}

    def test_result_follows_criteria_order(
        self,
        aggregator: WeightAggregator,
        criteria: list[Criterion],
        john: Evaluator,
    ) -> None:
        """Test keys come out in criteria order whatever the weight order."""
        reordered = john.model_copy(
            update={"weights": dict(reversed(list(john.weights.items())))}
        )
        result = aggregator.aggregate(criteria, [reordered])
        assert list(result) == [c.name for c in criteria]

    def test_missing_key_counts_as_zero(self, aggregator: WeightAggregator) -> None:
        """Test a submitted evaluator without a criterion contributes 0."""
        evaluators = [
            make_evaluator("1", {"A": 0.8, "B": 0.2}),
            make_evaluator("2", {"A": 0.6}),
        ]
        result = aggregator.aggregate(AB, evaluators)
        assert result == {"A": 0.7, "B": 0.1}

    def test_submitted_evaluators_averaged(
        self,
        aggregator: WeightAggregator,
        criteria: list[Criterion],
        john: Evaluator,
        alice: Evaluator,
    ) -> None:
        """Test averaging two realistic submissions."""
        result = aggregator.aggregate(criteria, [john, alice])
        assert result == {
            "React Experience": 0.45,
            "UI/UX Skills": 0.35,
            "Problem Solving": 0.2,
        }
        assert aggregator.is_valid(result)

    def test_unsubmitted_evaluators_ignored(
        self,
        aggregator: WeightAggregator,
        criteria: list[Criterion],
        john: Evaluator,
        bob: Evaluator,
    ) -> None:
        """Test pending evaluators never influence the result."""
        before = aggregator.aggregate(criteria, [john, bob])

        changed = bob.model_copy(
            update={
                "weights": {
                    "React Experience": 0.0,
                    "UI/UX Skills": 0.0,
                    "Problem Solving": 1.0,
                }
            }
        )
        after = aggregator.aggregate(criteria, [john, changed])

        assert before == after
        assert after == aggregator.aggregate(criteria, [john])

    def test_only_unsubmitted_uses_baseline(
        self,
        aggregator: WeightAggregator,
        criteria: list[Criterion],
        bob: Evaluator,
    ) -> None:
        """Test pending evaluators alone leave the baseline in place."""
        result = aggregator.aggregate(criteria, [bob])
        assert result == {c.name: c.weight for c in criteria}

    def test_baseline_is_rounded(self, aggregator: WeightAggregator) -> None:
        """Test baseline weights are rounded like averages."""
        criteria = [
            Criterion(name="A", weight=0.333),
            Criterion(name="B", weight=0.667),
        ]
        assert aggregator.aggregate(criteria, []) == {"A": 0.33, "B": 0.67}

    def test_rounding_drift_is_kept(self, aggregator: WeightAggregator) -> None:
        """Test equal thirds round to 0.33 each and are not corrected."""
        criteria = [Criterion(name=n, weight=0.0) for n in ("A", "B", "C")]
        evaluator = make_evaluator("1", {"A": 1 / 3, "B": 1 / 3, "C": 1 / 3})
        result = aggregator.aggregate(criteria, [evaluator])
        assert result == {"A": 0.33, "B": 0.33, "C": 0.33}
        assert aggregator.total(result) == pytest.approx(0.99)

    def test_referentially_transparent(
        self,
        aggregator: WeightAggregator,
        criteria: list[Criterion],
        john: Evaluator,
        alice: Evaluator,
        bob: Evaluator,
    ) -> None:
        """Test repeated calls agree and inputs are left untouched."""
        evaluators = [john, alice, bob]
        snapshot = [e.model_dump() for e in evaluators]

        first = aggregator.aggregate(criteria, evaluators)
        second = aggregator.aggregate(criteria, evaluators)

        assert first == second
        assert [e.model_dump() for e in evaluators] == snapshot

    def test_accepts_generator(
        self,
        aggregator: WeightAggregator,
        criteria: list[Criterion],
        john: Evaluator,
    ) -> None:
        """Test evaluators may be any iterable."""
        result = aggregator.aggregate(criteria, (e for e in [john]))
        assert result["React Experience"] == 0.5


class TestIsValid:
    """Tests for is_valid()."""

    def test_sums_to_one(self, aggregator: WeightAggregator) -> None:
        """Test a total of exactly 1 is valid."""
        assert aggregator.is_valid({"A": 0.5, "B": 0.5})

    def test_sums_below_one(self, aggregator: WeightAggregator) -> None:
        """Test a real shortfall is invalid."""
        assert not aggregator.is_valid({"A": 0.5, "B": 0.3})

    def test_sums_above_one(self, aggregator: WeightAggregator) -> None:
        """Test an excess is invalid."""
        assert not aggregator.is_valid({"A": 0.7, "B": 0.5})

    def test_rounding_drift_within_tolerance(
        self, aggregator: WeightAggregator
    ) -> None:
        """Test small display drift is absorbed."""
        assert aggregator.is_valid({"A": 0.335, "B": 0.335, "C": 0.335})

    def test_custom_tolerance(self) -> None:
        """Test a wider tolerance accepts more drift."""
        assert WeightAggregator(tolerance=0.05).is_valid({"A": 0.5, "B": 0.46})
        assert not WeightAggregator().is_valid({"A": 0.5, "B": 0.46})


class TestNormalize:
    """Tests for normalize()."""

    def test_all_zero_spreads_equally(self, aggregator: WeightAggregator) -> None:
        """Test zero weights are distributed equally."""
        assert aggregator.normalize({"A": 0.0, "B": 0.0}) == {"A": 0.5, "B": 0.5}

    def test_all_zero_three_criteria(self, aggregator: WeightAggregator) -> None:
        """Test the equal share is rounded."""
        result = aggregator.normalize({"A": 0, "B": 0, "C": 0})
        assert result == {"A": 0.33, "B": 0.33, "C": 0.33}

    def test_rescales_by_total(self, aggregator: WeightAggregator) -> None:
        """Test 0.3/0.3 becomes 0.5/0.5."""
        assert aggregator.normalize({"A": 0.3, "B": 0.3}) == {"A": 0.5, "B": 0.5}

    def test_rescales_uneven(self, aggregator: WeightAggregator) -> None:
        """Test an underweighted vector is scaled up proportionally."""
        result = aggregator.normalize({"A": 0.6, "B": 0.2})
        assert result == {"A": 0.75, "B": 0.25}
        assert aggregator.is_valid(result)

    def test_keeps_key_order(self, aggregator: WeightAggregator) -> None:
        """Test the mapping order is preserved."""
        result = aggregator.normalize({"Z": 0.2, "A": 0.2, "M": 0.1})
        assert list(result) == ["Z", "A", "M"]

    def test_does_not_mutate_input(self, aggregator: WeightAggregator) -> None:
        """Test the input mapping is left alone."""
        weights = {"A": 0.3, "B": 0.3}
        aggregator.normalize(weights)
        assert weights == {"A": 0.3, "B": 0.3}

    def test_empty_mapping(self, aggregator: WeightAggregator) -> None:
        """Test an empty mapping normalizes to an empty mapping."""
        assert aggregator.normalize({}) == {}

    @pytest.mark.parametrize(
        "weights",
        [
            {"A": 0.5, "B": 0.5},
            {"A": 0.4, "B": 0.3, "C": 0.3},
            {"A": 0.25, "B": 0.25, "C": 0.25, "D": 0.25},
            {"A": 0.6, "B": 0.395},
            {"A": 0.45, "B": 0.35, "C": 0.2},
            {"A": 0.1, "B": 0.2, "C": 0.3, "D": 0.4},
        ],
    )
    def test_valid_weights_stay_valid(
        self, aggregator: WeightAggregator, weights: dict[str, float]
    ) -> None:
        """Test normalizing valid weights keeps them valid."""
        assert aggregator.is_valid(weights)
        assert aggregator.is_valid(aggregator.normalize(weights))

    def test_thirds_drift_out_of_tolerance(self, aggregator: WeightAggregator) -> None:
        """Test rounding drift is kept, not re-balanced, for equal thirds."""
        weights = {"A": 1 / 3, "B": 1 / 3, "C": 1 / 3}
        assert aggregator.is_valid(weights)

        result = aggregator.normalize(weights)

        assert result == {"A": 0.33, "B": 0.33, "C": 0.33}
        assert aggregator.total(result) == pytest.approx(0.99)
        assert not aggregator.is_valid(result)

    @pytest.mark.parametrize(
        "weights",
        [
            {"A": 0.3, "B": 0.3},
            {"A": 0.6, "B": 0.2},
            {"A": 0.7, "B": 0.7, "C": 0.1},
            {"A": 0.45, "B": 0.35, "C": 0.2},
        ],
    )
    def test_approximately_idempotent(
        self, aggregator: WeightAggregator, weights: dict[str, float]
    ) -> None:
        """Test a second normalization moves values by at most one unit."""
        once = aggregator.normalize(weights)
        twice = aggregator.normalize(once)
        for name in weights:
            assert twice[name] == pytest.approx(once[name], abs=0.01 + 1e-9)


class TestResolve:
    """Tests for resolve()."""

    def test_single_hr_uses_baseline(
        self,
        aggregator: WeightAggregator,
        criteria: list[Criterion],
        john: Evaluator,
    ) -> None:
        """Test evaluators are ignored for single-HR jobs."""
        job = Job(title="Single", uses_multiple_hr=False, criteria=criteria)
        assert aggregator.resolve(job, [john]) == job.baseline_weights()

    def test_multi_hr_aggregates(
        self, aggregator: WeightAggregator, job: Job, john: Evaluator
    ) -> None:
        """Test multi-HR jobs aggregate submissions."""
        assert aggregator.resolve(job, [john]) == john.weights


class TestSummarize:
    """Tests for summarize()."""

    def test_summary_fields(
        self,
        aggregator: WeightAggregator,
        job: Job,
        john: Evaluator,
        alice: Evaluator,
        bob: Evaluator,
    ) -> None:
        """Test totals, counts and per-criterion details."""
        summary = aggregator.summarize(job, [john, alice, bob])

        assert summary.job_id == "job-1"
        assert summary.submitted_count == 2
        assert summary.pending_count == 1
        assert summary.valid is True
        assert summary.total == pytest.approx(1.0)
        assert summary.weights == aggregator.aggregate(job.criteria, [john, alice])

        react = summary.criteria[0]
        assert react.name == "React Experience"
        assert react.baseline == 0.4
        assert react.weight == 0.45
        assert react.contributors == 2
        assert not react.uses_baseline

    def test_summary_without_submissions(
        self, aggregator: WeightAggregator, job: Job, bob: Evaluator
    ) -> None:
        """Test criteria report the baseline when nobody submitted."""
        summary = aggregator.summarize(job, [bob])
        assert all(c.uses_baseline for c in summary.criteria)
        assert summary.pending_count == 1
        assert summary.weights == job.baseline_weights()

    def test_summary_single_hr(
        self,
        aggregator: WeightAggregator,
        criteria: list[Criterion],
        john: Evaluator,
    ) -> None:
        """Test single-HR summaries show the baseline."""
        job = Job(title="Single", uses_multiple_hr=False, criteria=criteria)
        summary = aggregator.summarize(job, [john])
        assert summary.weights == job.baseline_weights()
        assert summary.submitted_count == 1

    def test_summary_to_dict(
        self, aggregator: WeightAggregator, job: Job, john: Evaluator
    ) -> None:
        """Test dictionary form for reporting."""
        data = aggregator.summarize(job, [john]).to_dict()
        assert data["weights"] == john.weights
        assert data["evaluators"] == {"submitted": 1, "pending": 0}
        assert data["criteria"][0]["contributors"] == 1


class TestAddEvaluator:
    """Tests for add_evaluator()."""

    def test_creates_invited_evaluator(
        self, aggregator: WeightAggregator, job: Job
    ) -> None:
        """Test a new evaluator starts pending with an equal split."""
        result = aggregator.add_evaluator(job, "Carol White", "carol@candidai.com")

        assert result.accepted
        assert result
        evaluator = result.evaluator
        assert evaluator is not None
        assert evaluator.name == "Carol White"
        assert evaluator.email == "carol@candidai.com"
        assert evaluator.submitted is False
        assert evaluator.submitted_at is None
        assert evaluator.id.startswith("new-")
        assert list(evaluator.weights) == job.criterion_names
        for weight in evaluator.weights.values():
            assert weight == pytest.approx(1 / 3)

    def test_ids_are_unique(self, aggregator: WeightAggregator, job: Job) -> None:
        """Test every invite gets its own id."""
        ids = {
            aggregator.add_evaluator(job, "Carol", "carol@candidai.com").evaluator.id
            for _ in range(20)
        }
        assert len(ids) == 20

    def test_job_is_not_modified(self, aggregator: WeightAggregator, job: Job) -> None:
        """Test inviting leaves the job alone."""
        before = job.model_dump()
        aggregator.add_evaluator(job, "Carol", "carol@candidai.com")
        assert job.model_dump() == before

    @pytest.mark.parametrize(
        ("name", "email", "reason"),
        [
            ("", "carol@candidai.com", "name is required"),
            ("Carol", "", "email is required"),
            ("   ", "carol@candidai.com", "name is required"),
            ("", "", "name is required"),
        ],
    )
    def test_rejects_blank_fields(
        self,
        aggregator: WeightAggregator,
        job: Job,
        name: str,
        email: str,
        reason: str,
    ) -> None:
        """Test blank name or e-mail is refused without raising."""
        result = aggregator.add_evaluator(job, name, email)
        assert not result.accepted
        assert not result
        assert result.evaluator is None
        assert result.reason == reason

    def test_new_evaluator_does_not_affect_aggregate(
        self, aggregator: WeightAggregator, job: Job, john: Evaluator
    ) -> None:
        """Test the equal-split default is cosmetic until submission."""
        invited = aggregator.add_evaluator(job, "Carol", "carol@candidai.com")
        assert invited.evaluator is not None
        assert aggregator.aggregate(
            job.criteria, [john, invited.evaluator]
        ) == aggregator.aggregate(job.criteria, [john])


class TestSubmit:
    """Tests for submit()."""

    def test_marks_submitted(
        self, aggregator: WeightAggregator, job: Job, bob: Evaluator
    ) -> None:
        """Test the invited -> submitted transition."""
        when = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)
        weights = {"React Experience": 0.2, "UI/UX Skills": 0.5, "Problem Solving": 0.3}

        submitted = aggregator.submit(job, bob, weights, submitted_at=when)

        assert submitted.submitted is True
        assert submitted.submitted_at == when
        assert submitted.weights == weights
        assert submitted.id == bob.id
        assert bob.submitted is False

    def test_defaults_submission_time(
        self, aggregator: WeightAggregator, job: Job, bob: Evaluator
    ) -> None:
        """Test the submission time defaults to now."""
        submitted = aggregator.submit(job, bob, {"React Experience": 1.0})
        assert submitted.submitted_at is not None
        assert submitted.submitted_at.tzinfo is not None

    def test_submission_is_counted(
        self, aggregator: WeightAggregator, job: Job, john: Evaluator, bob: Evaluator
    ) -> None:
        """Test the submitted copy joins the aggregate."""
        weights = {"React Experience": 0.3, "UI/UX Skills": 0.3, "Problem Solving": 0.4}
        submitted = aggregator.submit(job, bob, weights)
        result = aggregator.aggregate(job.criteria, [john, submitted])
        assert result == {
            "React Experience": 0.4,
            "UI/UX Skills": 0.3,
            "Problem Solving": 0.3,
        }

    def test_resubmission_rejected(
        self, aggregator: WeightAggregator, job: Job, john: Evaluator
    ) -> None:
        """Test an evaluator can submit only once."""
        with pytest.raises(EvaluatorStateError, match="already submitted") as exc_info:
            aggregator.submit(job, john, {"React Experience": 1.0})
        assert exc_info.value.evaluator_id == "1"

    def test_unknown_criterion_rejected(
        self, aggregator: WeightAggregator, job: Job, bob: Evaluator
    ) -> None:
        """Test weights must name the job's criteria."""
        with pytest.raises(ValidationError, match="unknown criterion 'Leadership'"):
            aggregator.submit(job, bob, {"Leadership": 0.5})

    def test_out_of_range_rejected(
        self, aggregator: WeightAggregator, job: Job, bob: Evaluator
    ) -> None:
        """Test weights must lie in [0, 1]."""
        with pytest.raises(ValidationError, match="between 0 and 1"):
            aggregator.submit(job, bob, {"React Experience": 1.5})


class TestFinalize:
    """Tests for finalize()."""

    def test_valid_weights_passed_through(
        self,
        aggregator: WeightAggregator,
        job: Job,
        john: Evaluator,
        alice: Evaluator,
    ) -> None:
        """Test valid aggregates reach the callback unchanged."""
        calls: list[dict[str, float]] = []

        result = aggregator.finalize(job, [john, alice], calls.append)

        assert calls == [result]
        assert result == aggregator.aggregate(job.criteria, [john, alice])

    def test_invalid_weights_normalized(self, aggregator: WeightAggregator) -> None:
        """Test an underweighted aggregate is normalized before the callback."""
        job = Job(title="Analyst", uses_multiple_hr=True, criteria=AB)
        evaluators = [make_evaluator("1", {"A": 0.6, "B": 0.2})]
        calls: list[dict[str, float]] = []

        result = aggregator.finalize(job, evaluators, calls.append)

        assert result == {"A": 0.75, "B": 0.25}
        assert calls == [result]

    def test_callback_called_once(
        self, aggregator: WeightAggregator, job: Job, john: Evaluator
    ) -> None:
        """Test the callback fires exactly once per finalize."""
        counter = {"calls": 0}

        def on_finalize(weights: dict[str, float]) -> None:
            counter["calls"] += 1

        aggregator.finalize(job, [john], on_finalize)
        assert counter["calls"] == 1

    def test_callback_errors_propagate(
        self, aggregator: WeightAggregator, job: Job, john: Evaluator
    ) -> None:
        """Test callback failures are not retried or swallowed."""
        attempts = []

        def on_finalize(weights: dict[str, float]) -> None:
            attempts.append(weights)
            raise RuntimeError("service down")

        with pytest.raises(RuntimeError, match="service down"):
            aggregator.finalize(job, [john], on_finalize)
        assert len(attempts) == 1

    def test_single_hr_finalizes_baseline(
        self, aggregator: WeightAggregator, criteria: list[Criterion], john: Evaluator
    ) -> None:
        """Test single-HR jobs finalize their declared weights."""
        job = Job(title="Single", uses_multiple_hr=False, criteria=criteria)
        result = aggregator.finalize(job, [john], lambda w: None)
        assert result == job.baseline_weights()
