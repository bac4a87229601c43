"""
Exception hierarchy for the plan generation pipeline.

Every error carries a machine-readable ``code`` so clients can branch on it
without parsing English messages. Recoverable errors (malformed plans,
generator failures, unresolvable task names, projection failures) are handled
inside the services; only the fatal ones reach the HTTP layer.
"""
from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette import status


class DreamPathError(Exception):
    """Base class for all application-level errors."""

    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


# ---------------------------------------------------------------------------
# Recovered inside the pipeline
# ---------------------------------------------------------------------------


class MalformedPlanError(DreamPathError):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "MALFORMED_PLAN"


class EmptyMaterializationError(MalformedPlanError):
    code = "EMPTY_MATERIALIZATION"

    def __init__(self):
        super().__init__(message="Plan did not produce any goal with resolvable tasks.")


class GeneratorUnavailableError(DreamPathError):
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "GENERATOR_UNAVAILABLE"


class GeneratorTimeoutError(GeneratorUnavailableError):
    http_status = status.HTTP_504_GATEWAY_TIMEOUT
    code = "GENERATOR_TIMEOUT"

    def __init__(self, timeout_seconds: float):
        super().__init__(
            message=f"Plan generator did not answer within {timeout_seconds:g}s.",
            details={"timeout_seconds": timeout_seconds},
        )


class TaskNameUnresolvableError(DreamPathError):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "TASK_NAME_UNRESOLVABLE"

    def __init__(self, task_entry: Any):
        super().__init__(
            message="Task entry has no usable name.",
            details={"task": repr(task_entry)[:200]},
        )


class DiscoveryProjectionError(DreamPathError):
    code = "DISCOVERY_PROJECTION_FAILED"


class AlreadyHasPlanError(DreamPathError):
    http_status = status.HTTP_409_CONFLICT
    code = "PLAN_ALREADY_GENERATED"

    def __init__(self, dream_id: Any):
        super().__init__(
            message="Dream already has a generated plan.",
            details={"dream_id": str(dream_id)},
        )


# ---------------------------------------------------------------------------
# Surfaced to the caller
# ---------------------------------------------------------------------------


class DreamNotFoundError(DreamPathError):
    http_status = status.HTTP_404_NOT_FOUND
    code = "DREAM_NOT_FOUND"

    def __init__(self, dream_id: Any):
        super().__init__(message="Dream not found", details={"dream_id": str(dream_id)})


class PersistenceWriteError(DreamPathError):
    code = "PLAN_PERSISTENCE_FAILED"


class ConcurrentPlanGenerationError(DreamPathError):
    http_status = status.HTTP_409_CONFLICT
    code = "PLAN_GENERATION_IN_PROGRESS"

    def __init__(self, dream_id: Any):
        super().__init__(
            message="Another plan generation for this dream finished first; retry to see its result.",
            details={"dream_id": str(dream_id)},
        )


class DiscoveryPlanExistsError(DreamPathError):
    http_status = status.HTTP_409_CONFLICT
    code = "DISCOVERY_PLAN_EXISTS"

    def __init__(self, dream_id: Any):
        super().__init__(
            message="Discovery plan already generated for this dream",
            details={"dream_id": str(dream_id)},
        )


async def dreampath_exception_handler(request: Request, exc: DreamPathError) -> JSONResponse:
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())
