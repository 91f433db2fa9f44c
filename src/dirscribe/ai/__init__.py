"""AI summarization for dirscribe.

Provider clients, the retry policy, the concurrency scheduler and the
orchestrating engine that turns file contents into comment-block summaries.
"""

from .client import (
    AnthropicClient,
    DeepseekClient,
    OllamaClient,
    ProviderClient,
    ProviderError,
    ProviderHTTPError,
    ProviderParseError,
    ProviderTransportError,
    create_client,
)
from .orchestrator import SummarizationEngine, apply_summaries, summarize
from .prompts import TemplateError, load_prompt_templates
from .retry import ContractViolationError, InvocationError, RetryingInvoker
from .scheduler import ConcurrencyScheduler

__all__ = [
    "ProviderClient",
    "DeepseekClient",
    "AnthropicClient",
    "OllamaClient",
    "create_client",
    "ProviderError",
    "ProviderHTTPError",
    "ProviderParseError",
    "ProviderTransportError",
    "RetryingInvoker",
    "ContractViolationError",
    "InvocationError",
    "ConcurrencyScheduler",
    "SummarizationEngine",
    "summarize",
    "apply_summaries",
    "TemplateError",
    "load_prompt_templates",
]
