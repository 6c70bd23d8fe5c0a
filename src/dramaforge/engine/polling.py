"""Bounded fixed-interval polling of asynchronous provider tasks."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence

from dramaforge.config import get_logger
from dramaforge.exceptions import DramaForgeError, GenerationTimeoutError, ProviderError
from dramaforge.providers.models import GenerationResult

logger = get_logger(__name__)

DEFAULT_TERMINAL_KEYWORDS = ("not found", "failed")


class PollPolicy:
    """Interval, attempt ceiling and terminal-error rules for one poll loop."""

    def __init__(
        self,
        interval: float = 5.0,
        max_attempts: int = 60,
        terminal_keywords: Sequence[str] = DEFAULT_TERMINAL_KEYWORDS,
    ) -> None:
        """Initialize the policy.

        Args:
            interval: Seconds to wait before each poll.
            max_attempts: Polls allowed before the job times out.
            terminal_keywords: Substrings that mark a poll error as final.
        """
        self.interval = interval
        self.max_attempts = max(1, max_attempts)
        self.terminal_keywords = tuple(terminal_keywords)

    def is_terminal_error(self, error: Exception) -> bool:
        """Decide whether a poll error ends the job or is retried."""
        message = error.message if isinstance(error, DramaForgeError) else str(error)
        return any(keyword in message for keyword in self.terminal_keywords)

    async def poll_until_complete(
        self,
        poll: Callable[[], Awaitable[GenerationResult]],
        job: str = "",
    ) -> GenerationResult:
        """Poll until a result carries a media URL.

        Raises:
            ProviderError: The provider reported a failed task status.
            GenerationTimeoutError: The attempt ceiling was reached.
            Exception: Any poll error classified as terminal, unchanged.
        """
        for attempt in range(1, self.max_attempts + 1):
            await asyncio.sleep(self.interval)
            try:
                result = await poll()
            except Exception as e:
                if self.is_terminal_error(e):
                    logger.error(
                        "Poll hit terminal error",
                        job=job,
                        attempt=attempt,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    raise
                logger.warning(
                    f"Poll attempt {attempt}/{self.max_attempts} failed, retrying",
                    job=job,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                continue

            logger.debug(
                "Poll attempt", job=job, attempt=attempt, status=result.status
            )
            if result.is_complete:
                return result
            if result.provider_failed:
                raise ProviderError(f"Provider task failed with status {result.status}")

        raise GenerationTimeoutError(self.max_attempts, self.interval)
