"""
Thread-safe rate-limited logging of rejected operations.

A replayed or misconfigured operation tends to be resubmitted in a loop;
logging every rejection would bury everything else. Each distinct key is
logged at most once per TTL window.
"""
import logging
import threading
from typing import Optional

from cachetools import TTLCache

logger = logging.getLogger(__name__)

_REJECTION_LOG_TTL = 60

_rejection_log_cache = TTLCache(maxsize=1024, ttl=_REJECTION_LOG_TTL)
_rejection_log_cache_lock = threading.RLock()


def rate_limited_log(
    message: str,
    level: str = "warning",
    key: Optional[str] = None,
    logger_instance: Optional[logging.Logger] = None
) -> bool:
    """
    Log a message unless the same key was logged within the TTL window.

    Args:
        message: Message to log
        level: Log level (debug, info, warning, error, critical)
        key: De-duplication key; defaults to level + message
        logger_instance: Logger to use (defaults to module logger)

    Returns:
        True if the message was emitted, False if it was suppressed
    """
    log_instance = logger_instance or logger
    log_method = getattr(log_instance, level.lower(), log_instance.warning)
    cache_key = key or f"{level}:{message}"

    with _rejection_log_cache_lock:
        if cache_key in _rejection_log_cache:
            return False
        _rejection_log_cache[cache_key] = True

    log_method(message)
    return True


def clear_rate_limit_cache() -> None:
    """Forget every suppressed key."""
    with _rejection_log_cache_lock:
        _rejection_log_cache.clear()
