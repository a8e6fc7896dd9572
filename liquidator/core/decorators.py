# /liquidator/core/decorators.py
# Retry policy for idempotent network reads (indexer pages, fee lookups).
from tenacity import RetryCallState, retry, stop_after_attempt, wait_exponential
from liquidator.core.logger import get_logger

log = get_logger(__name__)

RETRY_ATTEMPTS = 3


def log_retry(retry_state: RetryCallState):
    error = retry_state.outcome.exception() if retry_state.outcome else None
    log.warning(
        "NETWORK_CALL_RETRYING",
        call=getattr(retry_state.fn, "__qualname__", str(retry_state.fn)),
        attempt=retry_state.attempt_number,
        sleep=retry_state.next_action.sleep if retry_state.next_action else None,
        error=str(error),
    )


retriable_network_call = retry(
    stop=stop_after_attempt(RETRY_ATTEMPTS),
    wait=wait_exponential(multiplier=1, min=1, max=5),
    before_sleep=log_retry,
    reraise=True,  # callers see the last real error, not RetryError
)
