import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from packages.config import CORS_ORIGINS
from packages.error_reporting import init_error_reporting
from packages.logging_utils import setup_logging
from packages.metrics import inc, observe
from packages.request_context import request_id_var
from .errors import install_error_handlers
from .routes import analytics as analytics_routes
from .routes import health as health_routes
from .routes import metrics as metrics_routes
from .routes import results as results_routes

ROUTERS = (health_routes, metrics_routes, analytics_routes, results_routes)
PREFIXES = ("", "/api", "/api/v1")

setup_logging()
init_error_reporting("api", enable_fastapi=True)
logger = logging.getLogger("runstats.api")

app = FastAPI(title="Running Analytics API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)
install_error_handlers(app)


@app.middleware("http")
async def track_request(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    token = request_id_var.set(request_id)
    started = time.perf_counter()
    status = "ERR"
    try:
        response = await call_next(request)
        status = response.status_code
        response.headers["x-request-id"] = request_id
        return response
    finally:
        elapsed = time.perf_counter() - started
        inc("http_requests_total", path=request.url.path, status=status)
        observe("http_request_duration_seconds", elapsed)
        logger.info("%s %s -> %s %.1fms", request.method, request.url.path, status, elapsed * 1000)
        request_id_var.reset(token)


for prefix in PREFIXES:
    for module in ROUTERS:
        app.include_router(module.router, prefix=prefix)
