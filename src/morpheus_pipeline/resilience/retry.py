"""Retry policy with exponential backoff and server wait hints for model calls."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, TypeVar

from pydantic import BaseModel, Field

from morpheus_pipeline.core.exceptions import MorpheusError, NetworkError

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

WaitCallback = Callable[[float, bool], None]
"""Called as ``on_wait(delay, server_hinted)`` right before each sleep."""


class RetryPolicy(BaseModel):
    """Configurable retry policy with exponential backoff.

    Attributes:
        max_retries: Maximum number of retry attempts (0 = no retries).
        initial_delay: Delay in seconds before the first backoff retry.
            Doubles after every backoff wait.
        max_delay: Cap for the computed delay (server hints are not capped).
        jitter: If ``True``, the computed delay is drawn uniformly from
            ``[0, delay]``.
        retryable_exceptions: Exception types retried when the exception
            itself does not say otherwise.
    """

    max_retries: int = Field(default=3, ge=0, le=50)
    initial_delay: float = Field(default=2.0, ge=0.0)
    max_delay: float = Field(default=60.0, ge=0.0)
    jitter: bool = False
    retryable_exceptions: tuple[type[Exception], ...] = (NetworkError, TimeoutError)

    model_config = {"arbitrary_types_allowed": True}

    def _is_retryable(self, exc: Exception) -> bool:
        """Determine whether an exception should be retried.

        An exception class below :class:`MorpheusError` that overrides
        ``is_retryable`` decides for itself; anything else is retried when it
        is an instance of ``retryable_exceptions``.
        """
        if isinstance(exc, MorpheusError):
            for klass in type(exc).__mro__:
                if klass is MorpheusError:
                    break
                if "is_retryable" in klass.__dict__:
                    return bool(exc.is_retryable)
        elif hasattr(exc, "is_retryable"):
            return bool(exc.is_retryable)

        return isinstance(exc, self.retryable_exceptions)

    def _compute_delay(self, step: int) -> float:
        """Backoff delay for the given step (0-indexed): ``initial_delay * 2^step``."""
        delay: float = min(self.initial_delay * (2 ** step), self.max_delay)
        if self.jitter:
            delay = random.uniform(0, delay)  # noqa: S311
        return delay

    @staticmethod
    def _server_wait(exc: Exception) -> float | None:
        wait = getattr(exc, "retry_after", None)
        if isinstance(wait, (int, float)) and wait > 0:
            return float(wait)
        return None

    async def execute(
        self,
        fn: Callable[..., Awaitable[_T]],
        *args: Any,
        on_wait: WaitCallback | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        **kwargs: Any,
    ) -> _T:
        """Execute *fn* with retry logic.

        Non-retryable exceptions propagate on the first attempt. A retryable
        exception carrying a positive ``retry_after`` is waited for verbatim
        and does not advance the backoff step.

        Args:
            fn: An async callable to execute.
            *args: Positional arguments forwarded to *fn*.
            on_wait: Optional observer notified before every sleep.
            sleep: Awaitable sleep function (injectable for tests).
            **kwargs: Keyword arguments forwarded to *fn*.

        Returns:
            The return value of *fn*.

        Raises:
            Exception: The last exception raised by *fn* once retries are
                exhausted, or the first non-retryable one.
        """
        step = 0

        for attempt in range(1 + self.max_retries):
            try:
                return await fn(*args, **kwargs)
            except Exception as exc:
                if not self._is_retryable(exc):
                    raise

                if attempt >= self.max_retries:
                    logger.warning(
                        "Retry exhausted after %d attempt(s): %s",
                        attempt + 1,
                        exc,
                    )
                    raise

                server_wait = self._server_wait(exc)
                if server_wait is not None:
                    delay = server_wait
                else:
                    delay = self._compute_delay(step)
                    step += 1

                logger.info(
                    "Retry attempt %d/%d after %.2fs%s: %s",
                    attempt + 1,
                    self.max_retries,
                    delay,
                    " (server hint)" if server_wait is not None else "",
                    exc,
                )
                if on_wait is not None:
                    on_wait(delay, server_wait is not None)
                await sleep(delay)

        raise AssertionError("unreachable")  # pragma: no cover
