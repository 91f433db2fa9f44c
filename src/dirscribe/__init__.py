"""dirscribe - combine a directory's files into one blob, optionally summarized by an LLM.

Library API for external projects:

    from dirscribe import FileEntry, Settings, summarize, apply_summaries
    from dirscribe import load_prompt_templates

    files = [FileEntry(path=path, content=path.read_text())]
    template = load_prompt_templates()["summary"]
    settings = Settings.for_provider("anthropic", api_key="sk-...")

    results = asyncio.run(summarize(files, template, settings=settings))
    apply_summaries(files, results)
"""

__version__ = "0.1.0"

from dirscribe.ai import (
    InvocationError,
    ProviderError,
    SummarizationEngine,
    TemplateError,
    apply_summaries,
    load_prompt_templates,
    summarize,
)
from dirscribe.config import (
    Config,
    ConfigurationError,
    DirscribeError,
    ProviderName,
    Settings,
)
from dirscribe.contracts import (
    COMMENT_CONTRACTS,
    SUMMARY_END,
    SUMMARY_START,
    CommentContract,
    lookup_contract,
    validate_summary,
)
from dirscribe.models import FileEntry, SummaryResult
from dirscribe.progress import ProgressCallback, ProgressEvent, ProgressEventType
from dirscribe.writer import SummaryFormatError, SummaryWriter

__all__ = [
    "__version__",
    # Entry points
    "summarize",
    "apply_summaries",
    "SummarizationEngine",
    "load_prompt_templates",
    # Configuration
    "Config",
    "Settings",
    "ProviderName",
    # Contracts
    "COMMENT_CONTRACTS",
    "CommentContract",
    "SUMMARY_START",
    "SUMMARY_END",
    "lookup_contract",
    "validate_summary",
    # Data
    "FileEntry",
    "SummaryResult",
    "SummaryWriter",
    # Progress
    "ProgressCallback",
    "ProgressEvent",
    "ProgressEventType",
    # Exception hierarchy
    "DirscribeError",
    "ConfigurationError",
    "ProviderError",
    "InvocationError",
    "SummaryFormatError",
    "TemplateError",
]
