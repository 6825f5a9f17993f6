"""
Execution Dispatcher

Validates a submission, resolves its version, sends it to the execution
service once and turns the response into an ExecutionResult.
"""

import logging
from typing import Optional

from release_tour.errors import TransportError, ValidationError
from release_tour.models import (
    NO_OUTPUT_SENTINEL,
    ExecutionFailure,
    ExecutionResult,
    ExecutionSuccess,
    FailureKind,
    SubmissionPayload,
)
from release_tour.version_resolver import VersionResolver

logger = logging.getLogger(__name__)


def build_payload(code: str, version: str, env_vars: Optional[str] = None) -> SubmissionPayload:
    """
    Construct a submission payload.

    Raises:
        ValidationError: If the code is blank or the version is empty
    """
    if not code.strip():
        raise ValidationError("Please enter some code to run")
    if not version or not version.strip():
        raise ValidationError("Cannot submit code without a target version")
    return SubmissionPayload(code=code, version=version, env_vars=env_vars or None)


class ExecutionDispatcher:
    """Sends code to the execution service, one request per submit."""

    def __init__(self, executor, resolver: VersionResolver):
        """
        Initialize ExecutionDispatcher.

        Args:
            executor: Object with `async run(payload) -> dict` returning
                normalized response fields (see api_client.normalize_run_response)
            resolver: Version resolver used to pick the target version
        """
        self.executor = executor
        self.resolver = resolver

    async def submit(
        self,
        code: str,
        selector_version: Optional[str] = None,
        lesson_file_path: Optional[str] = None,
        env_vars: Optional[str] = None,
    ) -> ExecutionResult:
        """
        Run code remotely.

        Args:
            code: Code to execute
            selector_version: Version chosen in the UI, if any
            lesson_file_path: File path of the current lesson, if any
            env_vars: Environment string such as "GOEXPERIMENT=jsonv2"

        Returns:
            ExecutionSuccess, or ExecutionFailure for transport or code errors

        Raises:
            ValidationError: If the code is blank (no request is sent)
        """
        if not code.strip():
            raise ValidationError("Please enter some code to run")

        version = self.resolver.resolve(selector_version, code, lesson_file_path)
        payload = build_payload(code, version, env_vars)

        logger.info(f"▶️ [ExecutionDispatcher] Submitting {len(code)} chars for version {version}")
        try:
            response = await self.executor.run(payload)
        except TransportError as e:
            logger.warning(f"⚠️ [ExecutionDispatcher] Execution request failed: {e}")
            return ExecutionFailure(error_message=str(e), partial_output="", kind=FailureKind.TRANSPORT)

        error = response.get("error")
        if error:
            return ExecutionFailure(
                error_message=error,
                partial_output=response.get("output") or "",
                kind=FailureKind.EXECUTION,
            )

        return ExecutionSuccess(
            output=response.get("output") or NO_OUTPUT_SENTINEL,
            used_version=response.get("used_version"),
            detected_version=response.get("detected_version"),
            execution_time=response.get("execution_time"),
        )
