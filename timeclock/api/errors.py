import logging
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ApiError(HTTPException):
    """HTTPException that also carries per-field validation issues."""

    def __init__(self, status_code: int, detail: str, issues: Optional[Dict[str, List[str]]] = None):
        super().__init__(status_code=status_code, detail=detail)
        self.issues = issues


def validation_issues(errors) -> Dict[str, List[str]]:
    issues: Dict[str, List[str]] = {}
    for error in errors:
        loc = [part for part in error.get("loc", ()) if isinstance(part, str)]
        # Drop the "body"/"query"/"path" prefix
        field = loc[1] if len(loc) > 1 else (loc[0] if loc else "body")
        issues.setdefault(field, []).append(error.get("msg", "Invalid value"))
    return issues


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    content = {"error": exc.detail}
    issues = getattr(exc, "issues", None)
    if issues:
        content["issues"] = issues
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "Validation failed", "issues": validation_issues(exc.errors())},
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
