"""Summarization pipeline: file content → prompt → provider → validated summary.

This module is the entry point the rest of dirscribe uses to turn a list of
files into comment-shaped summaries and, optionally, write them back.
"""

import asyncio
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path

from dirscribe.ai.client import ProviderClient, create_client
from dirscribe.ai.prompts import build_messages, build_prompt
from dirscribe.ai.retry import RetryingInvoker
from dirscribe.ai.scheduler import ConcurrencyScheduler
from dirscribe.config import Settings
from dirscribe.contracts import COMMENT_CONTRACTS, CommentContract, contract_for_path
from dirscribe.models import FileEntry, SummaryResult
from dirscribe.progress import ProgressCallback, ProgressNotifier
from dirscribe.writer import SummaryFormatError, SummaryWriter

logger = logging.getLogger(__name__)


def format_file_error(path: Path, error: Exception) -> str:
    """Error text stored in place of a summary for a failed file."""
    return f"Error: Error processing file {path}: {error}"


class SummarizationEngine:
    """Summarize many files concurrently with one provider client."""

    def __init__(
        self,
        client: ProviderClient,
        max_concurrent_requests: int = 1,
        invoker: RetryingInvoker | None = None,
        contracts: Mapping[str, CommentContract] = COMMENT_CONTRACTS,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            client: Provider client shared by every request
            max_concurrent_requests: Size of the permit pool
            invoker: Retry policy (creates a default if None)
            contracts: Comment contract registry
            progress_callback: Optional callback receiving progress events
        """
        self.client = client
        self.scheduler = ConcurrencyScheduler(max_concurrent_requests)
        self.invoker = invoker or RetryingInvoker()
        self.contracts = contracts
        self.progress_callback = progress_callback

    @classmethod
    def from_settings(
        cls,
        client: ProviderClient,
        settings: Settings,
        contracts: Mapping[str, CommentContract] = COMMENT_CONTRACTS,
        progress_callback: ProgressCallback | None = None,
    ) -> "SummarizationEngine":
        return cls(
            client,
            max_concurrent_requests=settings.max_concurrent_requests,
            invoker=RetryingInvoker(settings.max_retries, settings.initial_backoff_ms),
            contracts=contracts,
            progress_callback=progress_callback,
        )

    async def summarize(
        self,
        files: Sequence[FileEntry],
        template: str,
        is_diff_mode: bool = False,
    ) -> list[SummaryResult]:
        """Summarize every file.

        Failures are recorded per file and never abort the batch.

        Args:
            files: Files to summarize, in output order
            template: Prompt template containing the content placeholder
            is_diff_mode: Whether ``files`` carry diffs instead of file content

        Returns:
            One result per input file, in input order

        Raises:
            TemplateError: If the template has no content placeholder
        """
        prompts = [
            build_prompt(
                template,
                entry.content,
                contract_for_path(entry.path, self.contracts),
                is_diff_mode,
            )
            for entry in files
        ]

        notifier = ProgressNotifier(self.progress_callback, total=len(files))
        notifier.started(f"Summarizing {len(files)} files", model=self.client.model)
        logger.info(
            f"Summarizing {len(files)} files with {self.client.model} "
            f"(max {self.scheduler.max_concurrent_requests} concurrent requests)"
        )

        def make_task(entry: FileEntry, prompt: str):
            async def task() -> str:
                try:
                    result = await self.invoker.invoke(
                        self.client,
                        build_messages(prompt),
                        contract_for_path(entry.path, self.contracts),
                        entry.path,
                        is_diff_mode,
                    )
                except Exception:
                    notifier.file_done(entry.path, ok=False)
                    raise
                notifier.file_done(entry.path, ok=True)
                return result.content

            return task

        outcomes = await self.scheduler.run_all(
            [make_task(entry, prompt) for entry, prompt in zip(files, prompts)]
        )

        results = []
        for entry, outcome in zip(files, outcomes):
            if outcome.error is not None:
                logger.error(f"Failed to summarize {entry.path}: {outcome.error}")
                error = format_file_error(entry.path, outcome.error)
                results.append(SummaryResult(path=entry.path, error=error))
            else:
                results.append(SummaryResult(path=entry.path, summary=outcome.value))

        failed = sum(1 for result in results if not result.ok)
        notifier.completed(
            f"Summarized {len(results) - failed} of {len(results)} files", failed=failed
        )
        return results

    def summarize_sync(
        self,
        files: Sequence[FileEntry],
        template: str,
        is_diff_mode: bool = False,
    ) -> list[SummaryResult]:
        """Synchronous version of summarize for non-async contexts."""
        return asyncio.run(self.summarize(files, template, is_diff_mode))


async def summarize(
    files: Sequence[FileEntry],
    template: str,
    is_diff_mode: bool = False,
    settings: Settings | None = None,
    contracts: Mapping[str, CommentContract] = COMMENT_CONTRACTS,
    progress_callback: ProgressCallback | None = None,
) -> list[SummaryResult]:
    """Summarize files with a client built from ``settings``.

    Args:
        files: Files to summarize
        template: Prompt template containing the content placeholder
        is_diff_mode: Whether ``files`` carry diffs
        settings: Run settings (read from the environment if None)
        contracts: Comment contract registry
        progress_callback: Optional callback receiving progress events

    Returns:
        One result per input file, in input order

    Raises:
        ConfigurationError: If the provider cannot be configured
    """
    settings = settings or Settings.from_env()
    async with create_client(settings) as client:
        engine = SummarizationEngine.from_settings(
            client, settings, contracts=contracts, progress_callback=progress_callback
        )
        return await engine.summarize(files, template, is_diff_mode)


def apply_summaries(
    files: Sequence[FileEntry],
    summaries: Sequence[SummaryResult],
    contracts: Mapping[str, CommentContract] = COMMENT_CONTRACTS,
    writer: SummaryWriter | None = None,
) -> list[Path]:
    """Write successful summaries to the top of their files.

    Failed summaries and write errors are logged, never raised.

    Args:
        files: Files that were summarized
        summaries: Results from ``summarize``, aligned with ``files``
        contracts: Comment contract registry
        writer: Writer to use (creates a default if None)

    Returns:
        Paths that were rewritten
    """
    writer = writer or SummaryWriter(contracts)
    written = []

    for entry, result in zip(files, summaries):
        if not result.ok or result.summary is None:
            logger.warning(f"Skipping {entry.path}: no summary to write")
            continue
        try:
            writer.apply(entry.path, result.summary)
        except (OSError, ValueError, SummaryFormatError) as e:
            logger.error(f"Error writing summary to {entry.path}: {e}")
            continue
        written.append(entry.path)

    logger.info(f"Wrote summaries to {len(written)} of {len(files)} files")
    return written
