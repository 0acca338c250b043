"""
API Exception Handlers

Maps every failure to the `{success: false, error}` envelope:

- request parameter validation -> 400
- report errors -> their own status (400 invalid filters, 404 unknown export)
- unreachable database -> 503 with `dataSource: "unavailable"`
- anything else -> 500, detail logged server-side only
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog

from edureports.database.connection import DatabaseUnavailableError
from edureports.reporting.errors import ReportError
from edureports.reporting.formatter import error_envelope

logger = structlog.get_logger(__name__)


def _describe_validation(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("query", "path", "body")]
        name = ".".join(location) or "request"
        if error.get("type") == "missing":
            messages.append(f"{name} is required")
        else:
            messages.append(f"Invalid value for {name}: {error.get('msg')}")
    return "; ".join(messages) or "Invalid request parameters"


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = _describe_validation(exc)
    logger.info("Rejected request parameters", path=request.url.path, error=message)
    return JSONResponse(status_code=400, content=error_envelope(message))


async def report_exception_handler(request: Request, exc: ReportError) -> JSONResponse:
    logger.info("Report request failed", path=request.url.path, status_code=exc.status_code, error=str(exc))
    return JSONResponse(status_code=exc.status_code, content=error_envelope(str(exc)))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def database_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Database unavailable", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=503,
        content=error_envelope("Database unavailable", dataSource="unavailable"),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error", path=request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content=error_envelope("Internal server error"))


def register_exception_handlers(app: FastAPI) -> None:
    """Install the envelope-producing handlers on an app"""
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ReportError, report_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(OperationalError, database_exception_handler)
    app.add_exception_handler(InterfaceError, database_exception_handler)
    app.add_exception_handler(DatabaseUnavailableError, database_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
