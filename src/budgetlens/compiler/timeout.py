"""Statement timeout validation.

SET LOCAL statement_timeout doesn't accept bind parameters, so this module
is the only place where a value ends up inside query text. the value has to
pass the bounds check first.
"""

import structlog

from budgetlens.result import Err, Ok, Result

log = structlog.get_logger(__name__)

DEFAULT_QUERY_TIMEOUT_MS = 30_000
MIN_QUERY_TIMEOUT_MS = 1_000  # 1 second
MAX_QUERY_TIMEOUT_MS = 300_000  # 5 minutes


class TimeoutValidationError(ValueError):
    """Raised (or returned) when a statement timeout is out of bounds."""

    def __init__(self, message: str, field: str = "timeout_ms", bound: int | None = None) -> None:
        super().__init__(message)
        self.field = field
        self.bound = bound


def validate_timeout(timeout_ms: object) -> Result[int, TimeoutValidationError]:
    """Check that a timeout is an integer within [1000, 300000] milliseconds.

    bool is a subclass of int in python so it gets rejected explicitly,
    otherwise True would sneak through as 1ms and fail with a confusing
    lower-bound message.
    """
    if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, int):
        error = TimeoutValidationError(
            f"timeout_ms must be an integer number of milliseconds, got: {timeout_ms!r}"
        )
        log.warning("timeout_rejected", reason="not_integer", value=repr(timeout_ms))
        return Err(error)

    if timeout_ms < MIN_QUERY_TIMEOUT_MS:
        log.warning("timeout_rejected", reason="below_minimum", value=timeout_ms)
        return Err(
            TimeoutValidationError(
                f"timeout_ms must be at least {MIN_QUERY_TIMEOUT_MS}ms, got: {timeout_ms}",
                bound=MIN_QUERY_TIMEOUT_MS,
            )
        )

    if timeout_ms > MAX_QUERY_TIMEOUT_MS:
        log.warning("timeout_rejected", reason="above_maximum", value=timeout_ms)
        return Err(
            TimeoutValidationError(
                f"timeout_ms must be at most {MAX_QUERY_TIMEOUT_MS}ms, got: {timeout_ms}",
                bound=MAX_QUERY_TIMEOUT_MS,
            )
        )

    return Ok(timeout_ms)


def statement_timeout_sql(
    timeout_ms: object = DEFAULT_QUERY_TIMEOUT_MS,
) -> Result[str, TimeoutValidationError]:
    """Build the SET LOCAL statement for a validated timeout (postgres only)."""
    validated = validate_timeout(timeout_ms)
    if isinstance(validated, Err):
        return validated
    return Ok(f"SET LOCAL statement_timeout = {validated.value}")
