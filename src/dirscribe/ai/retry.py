"""Retrying provider invocation with exponential backoff.

A single invocation moves through ``ATTEMPTING -> (BACKOFF -> ATTEMPTING)*
-> SUCCEEDED | FATALLY_FAILED``. Transport failures, rate limiting, server
errors, undecodable bodies and replies that break the comment contract all
draw from the same retry budget.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from dirscribe.ai.client import (
    ProviderClient,
    ProviderError,
    ProviderHTTPError,
    ProviderParseError,
    ProviderTransportError,
)
from dirscribe.config import INITIAL_BACKOFF_MS, MAX_RETRIES, DirscribeError
from dirscribe.contracts import CommentContract, validate_summary
from dirscribe.models import ChatMessage, UnifiedResult

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]


class ContractViolationError(ProviderError):
    """Raised when a well-formed reply does not match the comment contract."""


class InvocationError(DirscribeError):
    """Raised when an invocation fails for good."""

    def __init__(self, message: str, attempts: int, last_error: Exception) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class InvocationState(Enum):
    """States of a single retrying invocation."""

    ATTEMPTING = "attempting"
    BACKOFF = "backoff"
    SUCCEEDED = "succeeded"
    FATALLY_FAILED = "fatally_failed"


@dataclass
class RetryState:
    """Mutable bookkeeping owned by one in-flight invocation."""

    backoff_ms: int
    attempt: int = 0
    state: InvocationState = InvocationState.ATTEMPTING
    last_error: Exception | None = None

    def transition(self, new_state: InvocationState) -> None:
        logger.debug(f"Invocation state: {self.state.value} -> {new_state.value}")
        self.state = new_state


def is_retryable(error: Exception) -> bool:
    """Determine if a failed attempt should be retried."""
    if isinstance(error, ProviderHTTPError):
        return error.is_rate_limited or error.is_server_error
    return isinstance(
        error, ProviderTransportError | ProviderParseError | ContractViolationError
    )


class RetryingInvoker:
    """Wrap ``ProviderClient.chat`` with validation and exponential backoff."""

    def __init__(
        self,
        max_retries: int = MAX_RETRIES,
        initial_backoff_ms: int = INITIAL_BACKOFF_MS,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        """Initialize the invoker.

        Args:
            max_retries: Retries allowed after the first attempt
            initial_backoff_ms: First backoff delay, doubled after every retry
            sleep: Coroutine used to wait between attempts (seconds)
        """
        self.max_retries = max_retries
        self.initial_backoff_ms = initial_backoff_ms
        self._sleep = sleep

    async def invoke(
        self,
        client: ProviderClient,
        messages: Sequence[ChatMessage],
        contract: CommentContract | None,
        file_path: str | Path,
        is_diff_mode: bool = False,
    ) -> UnifiedResult:
        """Call the provider until it yields a usable reply.

        Args:
            client: Provider client to call
            messages: Messages to send on every attempt
            contract: Comment contract the reply must satisfy
            file_path: File the reply is for (used in log messages)
            is_diff_mode: Skip contract validation for diff summaries

        Returns:
            The first reply that passed validation

        Raises:
            InvocationError: On a non-retryable error or once retries run out
        """
        retry = RetryState(backoff_ms=self.initial_backoff_ms)

        while True:
            try:
                result = await client.chat(messages)
                if not is_diff_mode and not validate_summary(result.content, contract):
                    raise ContractViolationError(
                        f"Reply for {file_path} does not match the comment contract"
                    )
            except ProviderError as error:
                retry.last_error = error
            else:
                retry.transition(InvocationState.SUCCEEDED)
                if retry.attempt:
                    logger.info(f"{file_path}: succeeded after {retry.attempt} retries")
                return result

            error = retry.last_error
            if not is_retryable(error):
                retry.transition(InvocationState.FATALLY_FAILED)
                logger.error(f"{file_path}: not retrying {type(error).__name__}: {error}")
                raise InvocationError(
                    f"API request failed: {error}", retry.attempt + 1, error
                ) from error

            if retry.attempt >= self.max_retries:
                retry.transition(InvocationState.FATALLY_FAILED)
                logger.error(f"{file_path}: all {self.max_retries} retries exhausted")
                raise InvocationError(
                    f"Max retries exceeded. Last error: {error}", retry.attempt + 1, error
                ) from error

            retry.transition(InvocationState.BACKOFF)
            logger.info(
                f"{file_path}: {type(error).__name__}, retrying in {retry.backoff_ms}ms "
                f"(attempt {retry.attempt + 1}/{self.max_retries})"
            )
            await self._sleep(retry.backoff_ms / 1000)
            retry.attempt += 1
            retry.backoff_ms *= 2
            retry.transition(InvocationState.ATTEMPTING)
