"""Pydantic models for provider wire formats and summarization results."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class ChatMessage(BaseModel):
    """A single chat message sent to a provider."""

    role: str
    content: str


class UnifiedResult(BaseModel):
    """Provider-agnostic decoded reply."""

    content: str
    total_tokens: int | None = None


# Deepseek (OpenAI-style chat completions)


class DeepseekRequest(BaseModel):
    """Chat-completion request body."""

    model: str
    messages: list[ChatMessage]
    temperature: float | None = None
    max_tokens: int | None = None
    stream: bool = False


class DeepseekChoice(BaseModel):
    message: ChatMessage


class DeepseekUsage(BaseModel):
    total_tokens: int


class DeepseekResponse(BaseModel):
    """Chat-completion response body."""

    choices: list[DeepseekChoice] = Field(min_length=1)
    usage: DeepseekUsage | None = None


# Anthropic messages API


class AnthropicRequest(BaseModel):
    """Messages API request body."""

    model: str
    messages: list[ChatMessage]
    max_tokens: int
    temperature: float


class AnthropicContent(BaseModel):
    type: str
    text: str


class AnthropicUsage(BaseModel):
    input_tokens: int
    output_tokens: int


class AnthropicResponse(BaseModel):
    """Messages API response body."""

    content: list[AnthropicContent] = Field(min_length=1)
    usage: AnthropicUsage | None = None


# Ollama generate API


class OllamaRequest(BaseModel):
    """Generate API request body."""

    model: str
    prompt: str
    stream: bool = False


class OllamaResponse(BaseModel):
    """Generate API response body."""

    response: str
    done: bool = True


class FileEntry(BaseModel):
    """A discovered file and the text handed to the summarizer.

    ``content`` holds the raw file text, or the file's unified diff in diff
    mode.
    """

    model_config = ConfigDict(frozen=True)

    path: Path
    content: str


class SummaryResult(BaseModel):
    """Outcome of summarizing one file.

    Exactly one of ``summary`` and ``error`` is set.
    """

    path: Path
    summary: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def text(self) -> str:
        """Summary text, or the formatted error for failed files."""
        return self.summary if self.summary is not None else (self.error or "")
