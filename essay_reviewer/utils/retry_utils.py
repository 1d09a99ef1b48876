"""
Retrying calls to the evaluation model when the provider asks us to slow down.
"""
import time
import random
import logging
from functools import wraps

logger = logging.getLogger(__name__)


def retry_with_exponential_backoff(
    max_retries=2,
    base_delay=1,
    max_delay=60,
    backoff_factor=2,
    exceptions=(Exception,),
    sleep=time.sleep,
):
    """
    Retry decorator with exponential backoff.

    If the raised exception carries a ``retry_after`` attribute (seconds), the
    wait before the next attempt is at least that long, still capped by
    ``max_delay``.

    Args:
        max_retries (int): Maximum number of retries before giving up
        base_delay (float): Initial delay between retries in seconds
        max_delay (float): Maximum delay between retries in seconds
        backoff_factor (float): Multiplicative factor for delay after each retry
        exceptions (tuple): Exception types to catch and retry on
        sleep (callable): Function used to wait, replaceable in tests

    Returns:
        Decorated function with retry logic
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            retries = 0
            delay = base_delay

            while True:
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    retries += 1
                    if retries > max_retries:
                        logger.error(f"Maximum retries ({max_retries}) exceeded. Last error: {str(e)}")
                        raise

                    jitter = random.uniform(0, 0.1 * delay)
                    wait = max(delay + jitter, getattr(e, "retry_after", None) or 0)
                    sleep_time = min(wait, max_delay)

                    logger.warning(
                        f"Attempt {retries}/{max_retries} failed with error: {str(e)}. "
                        f"Retrying in {sleep_time:.2f} seconds..."
                    )

                    sleep(sleep_time)
                    delay = min(delay * backoff_factor, max_delay)

        return wrapper

    return decorator
