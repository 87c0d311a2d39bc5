"""Utility functions and helpers for the hostedctl application."""
import functools
import logging
import subprocess
import time
from contextlib import contextmanager
from typing import Any, Callable, Optional, Type, TypeVar

from ..config import Config
from ..errors import CloudError, HostedCtlError, ReconcileError, WaitTimeoutError

T = TypeVar('T')

logger = logging.getLogger(__name__)

NOISY_LOGGERS = ("botocore", "boto3", "urllib3", "kubernetes", "s3transfer")


def setup_logging(debug_mode: bool = False) -> None:
    """Configure root logging for a CLI run.

    Args:
        debug_mode: Force DEBUG level regardless of LOG_LEVEL
    """
    level = logging.DEBUG if debug_mode else getattr(logging, Config.LOG_LEVEL, logging.INFO)
    logging.basicConfig(
        level=level,
        format=Config.LOG_FORMAT,
        handlers=[logging.StreamHandler()],
        force=True,
    )
    # Disable debug logging for noisy libraries
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def redact_sensitive_data(data: Any) -> Any:
    """Recursively redact sensitive data from dictionaries and lists.

    Args:
        data: Input data that might contain sensitive information

    Returns:
        Data with sensitive values redacted
    """
    if isinstance(data, dict):
        return {
            k: "[REDACTED]" if any(
                redact_key.lower() in k.lower()
                for redact_key in Config.REDACT_KEYS
            ) else redact_sensitive_data(v)
            for k, v in data.items()
        }
    elif isinstance(data, (list, tuple)):
        return [redact_sensitive_data(item) for item in data]
    return data


class RetryError(Exception):
    """Raised when a retried call keeps failing."""
    pass


def retry(
    attempts: Optional[int] = None,
    delay: Optional[float] = None,
    exceptions: tuple[Type[Exception], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
):
    """Decorator for retrying a function with a fixed backoff.

    Args:
        attempts: Total number of attempts, including the first one
        delay: Seconds to wait between attempts
        exceptions: Tuple of exceptions to catch and retry on
        sleep: Sleep function, replaceable in tests

    Returns:
        Decorated function with retry logic
    """
    if attempts is None:
        attempts = Config.APPLY_ATTEMPTS
    if delay is None:
        delay = Config.APPLY_BACKOFF

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            last_exception = None
            for attempt in range(1, attempts + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    last_exception = e
                    if attempt < attempts:
                        logger.warning(
                            f"Attempt {attempt} failed: {str(e)}. "
                            f"Retrying in {delay:.0f}s..."
                        )
                        sleep(delay)

            raise RetryError(
                f"Failed after {attempts} attempts. Last error: {str(last_exception)}"
            ) from last_exception
        return wrapper
    return decorator


def wait_until(
    predicate: Callable[[], bool],
    interval: float,
    timeout: float,
    description: str = "condition",
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> None:
    """Poll ``predicate`` until it returns True.

    The predicate is evaluated immediately, then every ``interval`` seconds.
    Exceptions raised by the predicate end the wait and propagate unchanged,
    which is how callers signal a definite failure.

    Args:
        predicate: Callable returning True once the condition holds
        interval: Seconds between evaluations
        timeout: Maximum seconds to wait
        description: Human readable name used in the timeout message
        sleep: Sleep function, replaceable in tests
        clock: Monotonic clock, replaceable in tests

    Raises:
        WaitTimeoutError: If the condition does not hold within ``timeout``
    """
    deadline = clock() + timeout
    while True:
        if predicate():
            return
        if clock() >= deadline:
            raise WaitTimeoutError(f"timed out after {timeout:.0f}s waiting for {description}")
        sleep(interval)


def run_command(
    cmd: list[str],
    *,
    check: bool = True,
    capture_output: bool = False,
    cwd: Optional[str] = None,
) -> subprocess.CompletedProcess:
    """Run an external command, logging it and its failure output."""
    cmd_str = ' '.join(cmd)
    logger.debug(f"💻 Running: {cmd_str}")
    try:
        result = subprocess.run(
            cmd,
            check=check,
            text=True,
            cwd=cwd,
            stdout=subprocess.PIPE if capture_output else None,
            stderr=subprocess.PIPE if capture_output else None,
        )
        if capture_output:
            logger.debug(f"🟢 Output:\n{result.stdout}")
        return result
    except subprocess.CalledProcessError as e:
        msg = f"❌ Command failed: {cmd_str} (exit code: {e.returncode})"
        if capture_output:
            msg += f"\nStdout:\n{e.stdout}\nStderr:\n{e.stderr}"
        logger.error(msg)
        raise


@contextmanager
def step(description: str, error: Type[HostedCtlError] = ReconcileError):
    """Log a progress line around one orchestrator step.

    Failures are re-raised with the step named in the message and the
    original error chained as the cause. hostedctl errors keep their class
    (cloud errors become ``ReconcileError``); anything else is wrapped in
    ``error``.
    """
    logger.info(f"🔧 {description}...")
    try:
        yield
    except HostedCtlError as e:
        logger.error(f"❌ {description} failed")
        wrapper = ReconcileError if isinstance(e, CloudError) else type(e)
        raise wrapper(f"{description} failed: {e}") from e
    except Exception as e:
        logger.error(f"❌ {description} failed")
        raise error(f"{description} failed: {e}") from e
