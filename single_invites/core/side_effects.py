import logging
from collections.abc import Callable
from typing import Any

from single_invites.core.ports.email import EmailResult

logger = logging.getLogger(__name__)


def run_isolated(description: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> bool:
    """
    Run a post-commit side effect (email, admin notification).

    Failures are logged and reported as False; they never propagate into the
    state transition that triggered them.
    """
    try:
        result = fn(*args, **kwargs)
    except Exception:
        logger.exception("Side effect failed: %s", description)
        return False

    if isinstance(result, EmailResult):
        results = [result]
    elif isinstance(result, list):
        results = [r for r in result if isinstance(r, EmailResult)]
    else:
        return True

    failed = [r for r in results if not r.delivered]
    for r in failed:
        logger.warning("Side effect reported failure: %s (%s)", description, r.error)
    return not failed
