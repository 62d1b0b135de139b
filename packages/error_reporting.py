import logging
import os

try:  # Optional dependency
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration
    from sentry_sdk.integrations.starlette import StarletteIntegration
except ImportError:  # pragma: no cover - optional
    sentry_sdk = None
    FastApiIntegration = None
    LoggingIntegration = None
    StarletteIntegration = None

from .request_context import computation_var


_enabled = False


def _sample_rate(key: str) -> float:
    raw = os.getenv(key, "")
    try:
        return min(max(float(raw), 0.0), 1.0) if raw else 0.0
    except ValueError:
        return 0.0


def _tag_computation(event, hint):
    label = computation_var.get()
    if label:
        event.setdefault("tags", {})["computation"] = label.split("#", 1)[0]
    return event


def init_error_reporting(service_name: str, enable_fastapi: bool = False) -> bool:
    """Start Sentry when RUNSTATS_SENTRY_DSN is set; returns whether it is on."""
    global _enabled
    dsn = os.getenv("RUNSTATS_SENTRY_DSN")
    if not dsn or sentry_sdk is None:
        _enabled = False
        return False

    integrations = [LoggingIntegration(level=logging.INFO, event_level=logging.ERROR)]
    if enable_fastapi:
        integrations.extend([FastApiIntegration(), StarletteIntegration()])

    sentry_sdk.init(
        dsn=dsn,
        environment=os.getenv("RUNSTATS_ENV", os.getenv("RUN_MODE", "prod")),
        release=os.getenv("RUNSTATS_RELEASE"),
        traces_sample_rate=_sample_rate("RUNSTATS_SENTRY_TRACES_SAMPLE_RATE"),
        integrations=integrations,
        before_send=_tag_computation,
        send_default_pii=False,
    )
    sentry_sdk.set_tag("service", service_name)
    _enabled = True
    return True


def capture_computation_failure(kind: str, exc: BaseException) -> None:
    """Forward a failed computation to Sentry; no-op when reporting is off."""
    if not _enabled:
        return
    sentry_sdk.capture_exception(exc, tags={"computation": kind})
