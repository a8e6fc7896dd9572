# /liquidator/core/logger.py
import logging
import structlog
from structlog.contextvars import bind_contextvars
import sentry_sdk
from prometheus_client import Counter
from liquidator.core.config import settings
import json
import hmac
import hashlib
import os

# --- Prometheus Metrics ---
CYCLES_RUN = Counter("liquidator_cycles_run_total", "Total number of completed scan cycles")
BORROWERS_SCANNED = Counter("liquidator_borrowers_scanned_total", "Health records decoded across all pools")
HEALTH_CHUNKS_FAILED = Counter("liquidator_health_chunks_failed_total", "Health-scan multicall chunks that failed")
LIQUIDATIONS = Counter("liquidator_liquidations_total", "Liquidation attempts by outcome", ["outcome"])
QUOTE_FAILURES = Counter("liquidator_quote_failures_total", "Swap venue quotes that produced no result", ["venue"])
ALERTS_FAILED = Counter("liquidator_alert_failures_total", "Alert messages that could not be delivered")
ERRORS_LOGGED = Counter("liquidator_errors_logged_total", "Total number of errors logged", ["level"])

SIGNING_KEY = (
    settings.LOG_SIGNING_KEY.get_secret_value().encode()
    if settings.LOG_SIGNING_KEY
    else b"insecure"
)

# Tests monkey-patch this to redirect the audit trail.
AUDIT_FILE = os.path.join(settings.SESSION_DIR, "audit.log")


def sign_and_append(logger, method_name: str, event_dict: dict) -> dict:
    """Structlog processor that signs each event and appends it to the audit log.

    The line format is ``<json payload>|<hex hmac-sha256>``; the payload is
    serialized with sorted keys so the signature can be recomputed.
    """
    if method_name in ("error", "critical", "exception"):
        ERRORS_LOGGED.labels(method_name).inc()

    payload = json.dumps(event_dict, sort_keys=True, default=str)
    sig = hmac.new(SIGNING_KEY, payload.encode(), hashlib.sha256).hexdigest()

    audit_file = str(AUDIT_FILE)
    try:
        with open(audit_file, "a", encoding="utf-8") as f:
            f.write(payload + "|" + sig + "\n")
    except FileNotFoundError:
        # Session directory isn't present yet, create it lazily.
        os.makedirs(os.path.dirname(audit_file), exist_ok=True)
        with open(audit_file, "a", encoding="utf-8") as f:
            f.write(payload + "|" + sig + "\n")

    event_dict["signature"] = sig
    return event_dict


def configure_logging():
    if settings.SENTRY_DSN:
        sentry_sdk.init(dsn=settings.SENTRY_DSN, traces_sample_rate=1.0)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            sign_and_append,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(settings.LOG_LEVEL)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str):
    return structlog.get_logger(name)


def set_cycle_counter(counter: int):
    bind_contextvars(cycle_counter=counter)


configure_logging()
log = get_logger("Liquidator.System")
