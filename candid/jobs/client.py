"""HTTP client for the remote job service."""

import json
from collections.abc import Mapping, Sequence
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError as PydanticValidationError

from candid.core.exceptions import (
    JobServiceConnectionError,
    JobServiceResponseError,
    JobServiceTimeoutError,
)
from candid.core.logging import get_logger
from candid.core.settings import CandidSettings
from candid.jobs.models import Job

logger = get_logger(__name__)

JOBS_PATH = "/api/jobs"


def _job_path(job_id: str, action: str | None = None) -> str:
    """Path of one job, with the id escaped as a single path segment."""
    path = f"{JOBS_PATH}/{quote(job_id, safe='')}"
    return f"{path}/{action}" if action else path


class JobServiceClient:
    """
    Synchronous client for the job service REST API.

    Every failure is logged and raised as a JobServiceError subclass whose
    ``retryable`` flag tells the caller whether to offer a retry. The client
    never retries on its own.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        api_token: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: Service root, e.g. ``https://jobs.example.com``.
            timeout: Request timeout in seconds.
            api_token: Optional bearer token.
            transport: Optional httpx transport (used by tests).
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        headers = {"Accept": "application/json"}
        if api_token:
            headers["Authorization"] = f"Bearer {api_token}"

        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            headers=headers,
            transport=transport,
            follow_redirects=True,
            max_redirects=5,
        )

    @classmethod
    def from_settings(
        cls,
        settings: CandidSettings,
        transport: httpx.BaseTransport | None = None,
    ) -> "JobServiceClient":
        """Create a client configured from ``settings.job_service``."""
        service = settings.job_service
        token = service.api_token.get_secret_value() if service.api_token else None
        return cls(
            base_url=service.base_url,
            timeout=service.timeout_seconds,
            api_token=token,
            transport=transport,
        )

    def __enter__(self) -> "JobServiceClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    def _request(
        self, method: str, path: str, payload: Any | None = None
    ) -> httpx.Response:
        try:
            response = self._client.request(method, path, json=payload)
        except httpx.TimeoutException as e:
            logger.warning("job_service_timeout", method=method, path=path)
            raise JobServiceTimeoutError(
                f"Job service request timed out after {self.timeout}s",
                timeout_seconds=self.timeout,
                cause=e,
            ) from e
        except httpx.ConnectError as e:
            logger.warning("job_service_unreachable", method=method, path=path)
            raise JobServiceConnectionError(
                f"Failed to connect to {self.base_url}",
                base_url=self.base_url,
                cause=e,
            ) from e
        except httpx.RequestError as e:
            logger.warning(
                "job_service_request_failed", method=method, path=path, error=str(e)
            )
            raise JobServiceConnectionError(
                f"Job service request failed: {e}",
                base_url=self.base_url,
                cause=e,
            ) from e

        if response.status_code >= 400:
            logger.warning(
                "job_service_error_status",
                method=method,
                path=path,
                status_code=response.status_code,
            )
            raise JobServiceResponseError(
                f"Job service returned error status {response.status_code}",
                status_code=response.status_code,
                response_body=response.text,
            )

        return response

    def _parse_json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise JobServiceResponseError(
                f"Invalid JSON response: {e}",
                status_code=response.status_code,
                response_body=response.text,
            ) from e

    def _parse_job(self, response: httpx.Response) -> Job:
        data = self._parse_json(response)
        try:
            return Job.model_validate(data)
        except PydanticValidationError as e:
            raise JobServiceResponseError(
                f"Invalid job format: {e}",
                status_code=response.status_code,
                response_body=response.text,
            ) from e

    @staticmethod
    def _job_payload(job: Job) -> dict[str, Any]:
        return job.model_dump(
            mode="json", by_alias=True, exclude_none=True, exclude={"id"}
        )

    def list_jobs(self) -> list[Job]:
        """Fetch all jobs."""
        response = self._request("GET", JOBS_PATH)
        data = self._parse_json(response)
        if not isinstance(data, list):
            raise JobServiceResponseError(
                "Expected a list of jobs",
                status_code=response.status_code,
                response_body=response.text,
            )
        try:
            return [Job.model_validate(item) for item in data]
        except PydanticValidationError as e:
            raise JobServiceResponseError(
                f"Invalid job format: {e}",
                status_code=response.status_code,
                response_body=response.text,
            ) from e

    def get_job(self, job_id: str) -> Job:
        """Fetch a single job."""
        return self._parse_job(self._request("GET", _job_path(job_id)))

    def create_job(self, job: Job) -> Job:
        """Create a job and return it as stored by the service."""
        response = self._request("POST", JOBS_PATH, self._job_payload(job))
        created = self._parse_job(response)
        logger.info("job_created", job_id=created.id)
        return created

    def update_job(self, job_id: str, job: Job) -> Job:
        """Replace an existing job."""
        response = self._request("PUT", _job_path(job_id), self._job_payload(job))
        return self._parse_job(response)

    def delete_job(self, job_id: str) -> None:
        """Delete a job."""
        self._request("DELETE", _job_path(job_id))
        logger.info("job_deleted", job_id=job_id)

    def refine_weights(
        self, job_id: str, hr_weights: Sequence[Mapping[str, float]]
    ) -> Job:
        """Send every evaluator's weights so the service can refine the job."""
        payload = {"hrWeights": [dict(w) for w in hr_weights]}
        response = self._request("PUT", _job_path(job_id, "refine-weights"), payload)
        return self._parse_job(response)

    def finalize_weights(self, job_id: str, weights: Mapping[str, float]) -> Job:
        """Store the confirmed weights for a job."""
        response = self._request(
            "PUT", _job_path(job_id, "finalize-weights"), {"weights": dict(weights)}
        )
        logger.info("job_weights_finalized", job_id=job_id)
        return self._parse_job(response)
