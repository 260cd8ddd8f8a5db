"""Shared pytest fixtures for Candid tests."""

from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path

import pytest

from candid.core.logging import configure_logging, reset_logging
from candid.core.settings import get_cached_settings
from candid.jobs.models import Criterion, Evaluator, Job
from candid.weighting import WeightAggregator


@pytest.fixture(autouse=True)
def clean_global_state() -> Iterator[None]:
    """Reset logging configuration and cached settings around each test.

    Module-level loggers are cached on first use, so logging is configured
    before every test to keep them on the stdlib pipeline.
    """
    configure_logging(level="WARNING", json_output=True)
    yield
    reset_logging()
    get_cached_settings.cache_clear()


@pytest.fixture
def fixtures_dir() -> Path:
    """Return path to the fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def jobs_dir(fixtures_dir: Path) -> Path:
    """Return path to the job file fixtures."""
    return fixtures_dir / "jobs"


@pytest.fixture
def frontend_job_path(jobs_dir: Path) -> Path:
    """Multi-HR job with two submitted evaluators and one pending."""
    return jobs_dir / "frontend_developer.yaml"


@pytest.fixture
def aggregator() -> WeightAggregator:
    """Aggregator with default precision and tolerance."""
    return WeightAggregator()


@pytest.fixture
def criteria() -> list[Criterion]:
    """Three criteria whose baselines sum to 1."""
    return [
        Criterion(name="React Experience", weight=0.4),
        Criterion(name="UI/UX Skills", weight=0.3),
        Criterion(name="Problem Solving", weight=0.3),
    ]


@pytest.fixture
def job(criteria: list[Criterion]) -> Job:
    """Multi-HR job over the shared criteria."""
    return Job(
        id="job-1",
        title="Senior Frontend Developer",
        department="Engineering",
        location="Remote",
        uses_multiple_hr=True,
        criteria=criteria,
    )


@pytest.fixture
def john() -> Evaluator:
    """Submitted evaluator."""
    return Evaluator(
        id="1",
        name="John Smith",
        email="john.smith@candidai.com",
        weights={"React Experience": 0.5, "UI/UX Skills": 0.3, "Problem Solving": 0.2},
        submitted=True,
        submitted_at=datetime(2023, 7, 15, tzinfo=UTC),
    )


@pytest.fixture
def alice() -> Evaluator:
    """Submitted evaluator."""
    return Evaluator(
        id="2",
        name="Alice Johnson",
        email="alice.johnson@candidai.com",
        weights={"React Experience": 0.4, "UI/UX Skills": 0.4, "Problem Solving": 0.2},
        submitted=True,
        submitted_at=datetime(2023, 7, 16, tzinfo=UTC),
    )


@pytest.fixture
def bob() -> Evaluator:
    """Invited evaluator who has not submitted yet."""
    return Evaluator(
        id="3",
        name="Bob Lee",
        email="bob.lee@candidai.com",
        weights={
            "React Experience": 0.9,
            "UI/UX Skills": 0.05,
            "Problem Solving": 0.05,
        },
        submitted=False,
    )
