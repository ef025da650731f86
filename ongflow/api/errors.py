"""Mapping from domain error kinds to HTTP responses.

Every failure leaves the API as

    {"success": false, "error": {"kind": ..., "message": ...}}

with ``error.detail`` (the exception repr) added only in development.
"""

from __future__ import annotations

from fastapi.responses import JSONResponse

from ongflow.domain.exceptions import OngFlowError

KIND_STATUS: dict[str, int] = {
    "VALIDATION_ERROR": 400,
    "WRONG_CHANNEL": 400,
    "NOT_FOUND": 404,
    "INVALID_STATE_TRANSITION": 409,
    "CONFLICT": 409,
    "PARTIAL_BATCH_FAILURE": 200,
    "EXTERNAL_SYSTEM_UNAVAILABLE": 503,
    "INTERNAL_ERROR": 500,
}


def status_for_kind(kind: str) -> int:
    return KIND_STATUS.get(kind, 500)


def error_response(
    kind: str,
    message: str,
    include_detail: bool = False,
    exc: Exception | None = None,
    status_code: int | None = None,
) -> JSONResponse:
    error: dict[str, object] = {"kind": kind, "message": message}
    if include_detail and exc is not None:
        error["detail"] = repr(exc)
    return JSONResponse(
        status_code=status_code or status_for_kind(kind),
        content={"success": False, "error": error},
    )


def domain_error_response(exc: OngFlowError, include_detail: bool) -> JSONResponse:
    return error_response(exc.kind, str(exc), include_detail=include_detail, exc=exc)
