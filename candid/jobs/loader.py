"""Loader for job files: a job, its criteria and its evaluators in one YAML."""

from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from candid.core.exceptions import ValidationError
from candid.core.logging import get_logger
from candid.jobs.models import Evaluator, JobWithEvaluations
from candid.jobs.parser import YAMLParser, locate

logger = get_logger(__name__)


class JobLoader:
    """Load and validate job files.

    Example file:

        title: Senior Frontend Developer
        uses_multiple_hr: true
        criteria:
          - name: React Experience
            weight: 0.4
        evaluators:
          - id: "1"
            name: John Smith
            email: john.smith@candidai.com
            weights: {React Experience: 0.5}
            submitted: true
    """

    def __init__(self) -> None:
        self.parser = YAMLParser()

    def load_file(self, file_path: str | Path) -> JobWithEvaluations:
        """Load a job from a YAML file.

        Raises:
            ParseError: If YAML parsing fails.
            ValidationError: If validation fails.
        """
        file_path = Path(file_path)
        data = self.parser.parse_file(file_path)
        job = self._process_data(data, str(file_path))
        logger.debug(
            "job_file_loaded",
            path=str(file_path),
            criteria=len(job.criteria),
            evaluators=len(job.evaluators),
        )
        return job

    def load_string(self, content: str) -> JobWithEvaluations:
        """Load a job from a YAML string.

        Raises:
            ParseError: If YAML parsing fails.
            ValidationError: If validation fails.
        """
        data = self.parser.parse_string(content)
        return self._process_data(data, None)

    def save_evaluator(self, file_path: str | Path, evaluator: Evaluator) -> None:
        """Insert or replace (by id) an evaluator in a job file.

        The rest of the file, comments included, is left as it was.

        Raises:
            ParseError: If the file cannot be parsed.
            ValidationError: If the file's ``evaluators`` entry is not a list.
        """
        file_path = Path(file_path)
        data = self.parser.parse_file(file_path)
        entry = evaluator.model_dump(mode="json", exclude_none=True)

        evaluators = data.setdefault("evaluators", [])
        if not isinstance(evaluators, list):
            raise ValidationError(
                "'evaluators' must be a list", file_path=str(file_path)
            )

        for existing in evaluators:
            if isinstance(existing, dict) and str(existing.get("id")) == evaluator.id:
                existing.clear()
                existing.update(entry)
                break
        else:
            evaluators.append(entry)

        self.parser.dump_file(data, file_path)
        logger.debug("evaluator_saved", path=str(file_path), evaluator_id=evaluator.id)

    def _process_data(
        self, data: dict[str, Any], file_path: str | None
    ) -> JobWithEvaluations:
        try:
            job = JobWithEvaluations.model_validate(data)
        except PydanticValidationError as e:
            errors = []
            first_line: int | None = None
            for error in e.errors():
                loc = ".".join(str(x) for x in error["loc"])
                line = locate(data, error["loc"])
                if first_line is None:
                    first_line = line
                where = f" (line {line})" if line is not None else ""
                errors.append(f"{loc}: {error['msg']}{where}")

            error_msg = "Model validation failed:\n  " + "\n  ".join(errors)
            raise ValidationError(
                error_msg, line=first_line, file_path=file_path
            ) from e

        self._validate_semantics(job, file_path)
        return job

    def _validate_semantics(
        self, job: JobWithEvaluations, file_path: str | None
    ) -> None:
        """Check evaluator ids are unique and weights name known criteria."""
        errors = []
        known = set(job.criterion_names)
        seen_ids: set[str] = set()

        for i, evaluator in enumerate(job.evaluators):
            if evaluator.id in seen_ids:
                errors.append(
                    f"Duplicate evaluator ID '{evaluator.id}' at evaluators[{i}]"
                )
            seen_ids.add(evaluator.id)

            for name in evaluator.weights:
                if name not in known:
                    errors.append(
                        f"evaluators[{i}].weights: unknown criterion '{name}'"
                    )

        if errors:
            error_msg = "Semantic validation failed:\n  " + "\n  ".join(errors)
            raise ValidationError(error_msg, file_path=file_path)
