"""Tests for the retrying invoker."""

from unittest.mock import AsyncMock

import pytest

from dirscribe.ai.client import (
    ProviderHTTPError,
    ProviderParseError,
    ProviderTransportError,
)
from dirscribe.ai.retry import (
    ContractViolationError,
    InvocationError,
    InvocationState,
    RetryingInvoker,
    RetryState,
    is_retryable,
)
from dirscribe.contracts import lookup_contract
from dirscribe.models import ChatMessage, UnifiedResult

MESSAGES = [ChatMessage(role="user", content="Summarize.")]
PY_CONTRACT = lookup_contract("py")
VALID_PY_SUMMARY = "'''\n[DIRSCRIBE]\nDoes things.\n[/DIRSCRIBE]\n'''"


def make_client(*replies):
    """Mock client whose chat() yields ``replies`` in order (exceptions are raised)."""
    client = AsyncMock()
    client.chat.side_effect = list(replies)
    return client


class TestIsRetryable:
    @pytest.mark.parametrize("status_code", [429, 500, 502, 503])
    def test_retryable_statuses(self, status_code):
        assert is_retryable(ProviderHTTPError(status_code, ""))

    @pytest.mark.parametrize("status_code", [400, 401, 403, 404])
    def test_fatal_statuses(self, status_code):
        assert not is_retryable(ProviderHTTPError(status_code, ""))

    def test_other_provider_failures_are_retryable(self):
        assert is_retryable(ProviderTransportError("timeout"))
        assert is_retryable(ProviderParseError("bad body"))
        assert is_retryable(ContractViolationError("bad shape"))


class TestRetryingInvoker:
    """Test retry, backoff and validation behavior."""

    def setup_method(self):
        self.sleep = AsyncMock()
        self.invoker = RetryingInvoker(sleep=self.sleep)

    @pytest.mark.asyncio
    async def test_first_valid_reply_returned(self):
        client = make_client(UnifiedResult(content=VALID_PY_SUMMARY))

        result = await self.invoker.invoke(client, MESSAGES, PY_CONTRACT, "a.py")

        assert result.content == VALID_PY_SUMMARY
        client.chat.assert_awaited_once_with(MESSAGES)
        self.sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rate_limit_then_success_sleeps_once(self):
        client = make_client(
            ProviderHTTPError(429, "rate limited"),
            UnifiedResult(content=VALID_PY_SUMMARY),
        )

        result = await self.invoker.invoke(client, MESSAGES, PY_CONTRACT, "a.py")

        assert result.content == VALID_PY_SUMMARY
        assert client.chat.await_count == 2
        self.sleep.assert_awaited_once_with(1.0)

    @pytest.mark.asyncio
    async def test_invalid_replies_exhaust_retries(self):
        client = make_client(*[UnifiedResult(content="no structure")] * 7)

        with pytest.raises(InvocationError) as exc_info:
            await self.invoker.invoke(client, MESSAGES, PY_CONTRACT, "a.py")

        assert client.chat.await_count == 7
        assert exc_info.value.attempts == 7
        assert str(exc_info.value).startswith("Max retries exceeded. Last error: ")
        assert isinstance(exc_info.value.last_error, ContractViolationError)

    @pytest.mark.asyncio
    async def test_backoff_doubles(self):
        client = make_client(*[ProviderHTTPError(503, "busy")] * 7)

        with pytest.raises(InvocationError):
            await self.invoker.invoke(client, MESSAGES, PY_CONTRACT, "a.py")

        delays = [call.args[0] for call in self.sleep.await_args_list]
        assert delays == [1.0, 2.0, 4.0, 8.0, 16.0, 32.0]

    @pytest.mark.asyncio
    async def test_client_error_fails_immediately(self):
        client = make_client(ProviderHTTPError(401, "unauthorized"))

        with pytest.raises(InvocationError) as exc_info:
            await self.invoker.invoke(client, MESSAGES, PY_CONTRACT, "a.py")

        assert client.chat.await_count == 1
        assert str(exc_info.value) == "API request failed: HTTP 401: unauthorized"
        self.sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_extension_never_validates(self):
        client = make_client(*[UnifiedResult(content=VALID_PY_SUMMARY)] * 7)

        with pytest.raises(InvocationError):
            await self.invoker.invoke(client, MESSAGES, None, "data.xyz")

        assert client.chat.await_count == 7

    @pytest.mark.asyncio
    async def test_diff_mode_skips_validation(self):
        client = make_client(UnifiedResult(content="Renamed a function."))

        result = await self.invoker.invoke(
            client, MESSAGES, PY_CONTRACT, "a.py", is_diff_mode=True
        )

        assert result.content == "Renamed a function."
        assert client.chat.await_count == 1

    @pytest.mark.asyncio
    async def test_custom_budget(self):
        invoker = RetryingInvoker(max_retries=2, initial_backoff_ms=10, sleep=self.sleep)
        client = make_client(*[ProviderTransportError("timeout")] * 3)

        with pytest.raises(InvocationError) as exc_info:
            await invoker.invoke(client, MESSAGES, PY_CONTRACT, "a.py")

        assert exc_info.value.attempts == 3
        assert [c.args[0] for c in self.sleep.await_args_list] == [0.01, 0.02]


class TestRetryState:
    def test_transition_updates_state(self):
        state = RetryState(backoff_ms=1000)
        assert state.state is InvocationState.ATTEMPTING

        state.transition(InvocationState.BACKOFF)

        assert state.state is InvocationState.BACKOFF
