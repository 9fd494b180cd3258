# app/core/response.py
from typing import Any, Optional, Dict
from pydantic import BaseModel, ConfigDict
from fastapi.responses import JSONResponse
import traceback
from app.core.config import settings
from app.core.checklist import Checklist, ChecklistItem


class ErrorDetail(BaseModel):
    """Detailed error information for debugging"""
    field: Optional[str] = None
    message: str
    code: Optional[str] = None


class ResponseModel(BaseModel):
    """Envelope shared by every route.

    Payment routes also carry the request checklist plus route specific
    top-level fields such as ``paymentId``.
    """
    model_config = ConfigDict(extra="allow")

    success: bool
    error: Optional[str] = None
    data: Optional[Any] = None
    checklist: Optional[list[ChecklistItem]] = None


class ErrorResponseModel(ResponseModel):
    """Error response with optional details"""
    success: bool = False
    error_code: Optional[str] = None
    details: Optional[list[ErrorDetail]] = None
    # Only included in development
    debug_info: Optional[Dict[str, Any]] = None


def _checklist_payload(checklist: Checklist | None) -> Optional[list[dict]]:
    return checklist.to_list() if checklist is not None else None


def success_response(
    data: Any = None,
    checklist: Checklist | None = None,
    status_code: int = 200,
    **extra: Any,
) -> JSONResponse:
    """Create a success response. Extra keyword fields are placed at the top level."""
    payload = ResponseModel(
        success=True,
        data=data,
        checklist=None,
        **extra,
    ).model_dump(mode="json", exclude_none=True)
    checklist_items = _checklist_payload(checklist)
    if checklist_items is not None:
        payload["checklist"] = checklist_items
    return JSONResponse(status_code=status_code, content=payload)


def error_response(
    error: str,
    checklist: Checklist | None = None,
    status_code: int = 400,
    error_code: Optional[str] = None,
    details: Optional[list[ErrorDetail]] = None,
    data: Any = None,
) -> JSONResponse:
    """Error response with optional checklist, error codes and details"""
    if not details and not error_code:
        payload = ResponseModel(success=False, error=error, data=data).model_dump(
            mode="json", exclude_none=True
        )
    else:
        debug_info = None
        if settings.DEBUG:
            debug_info = {
                "traceback": traceback.format_exc(),
                "environment": settings.ENVIRONMENT,
            }

        payload = ErrorResponseModel(
            error=error,
            error_code=error_code,
            details=details,
            data=data,
            debug_info=debug_info,
        ).model_dump(mode="json", exclude_none=True)

    checklist_items = _checklist_payload(checklist)
    if checklist_items is not None:
        payload["checklist"] = checklist_items
    return JSONResponse(status_code=status_code, content=payload)


def validation_error_response(
    errors: list[Dict[str, Any]],
    status_code: int = 422
) -> JSONResponse:
    """Create a standardized validation error response"""
    details = []
    for err in errors:
        loc = err.get("loc", [])
        field = ".".join(str(x) for x in loc if x != "body")
        details.append(ErrorDetail(
            field=field or (str(loc[-1]) if loc else None),
            message=err.get("msg", "Validation error"),
            code="VALIDATION_ERROR"
        ))

    return error_response(
        error="Invalid request parameters",
        details=details,
        status_code=status_code,
        error_code="VALIDATION_ERROR"
    )
