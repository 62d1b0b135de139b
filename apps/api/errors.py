"""Error envelope shared by every API failure: {"error": {code, message, request_id}}."""
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from packages.db import StoreUnavailableError
from packages.request_context import request_id_var
from services.analytics.engine import UnknownComputationError

logger = logging.getLogger("runstats.api.errors")


def error_body(code: str, message: str, details: dict | None = None) -> dict:
    body = {"code": code, "message": message, "request_id": request_id_var.get() or "-"}
    if details:
        body["details"] = details
    return {"error": body}


def error_response(status_code: int, code: str, message: str, details: dict | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_body(code, message, details))


async def _http_error(request: Request, exc: HTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    details = exc.detail if isinstance(exc.detail, dict) else None
    return error_response(exc.status_code, f"http_{exc.status_code}", message, details)


async def _store_unavailable(request: Request, exc: StoreUnavailableError):
    logger.warning("store_unavailable %s %s: %s", request.method, request.url.path, exc)
    return error_response(503, "store_unavailable", str(exc))


async def _unknown_computation(request: Request, exc: UnknownComputationError):
    return error_response(404, "unknown_computation", f"Unknown computation kind: {exc}")


async def _unhandled(request: Request, exc: Exception):
    logger.exception("unhandled_exception %s %s", request.method, request.url.path)
    return error_response(500, "internal_error", "Internal server error")


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(HTTPException, _http_error)
    app.add_exception_handler(StoreUnavailableError, _store_unavailable)
    app.add_exception_handler(UnknownComputationError, _unknown_computation)
    app.add_exception_handler(Exception, _unhandled)
