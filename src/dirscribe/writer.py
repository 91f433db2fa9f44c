"""Write generated summaries to the top of source files.

A file carries at most one summary block, and it sits at the very top.
Applying a summary first strips any earlier block, so repeated runs
replace the block instead of stacking new ones.
"""

import logging
import os
import shutil
import tempfile
from collections.abc import Callable, Mapping
from datetime import datetime
from pathlib import Path

from dirscribe.config import DirscribeError
from dirscribe.contracts import (
    COMMENT_CONTRACTS,
    SUMMARY_END,
    SUMMARY_START,
    CommentContract,
    contract_for_path,
    validate_summary,
)

logger = logging.getLogger(__name__)

TIMESTAMP_LABEL = "Last updated:"

# Sentinel must show up within this many leading lines to count as a block
SENTINEL_SEARCH_LINES = 3

# Loose heuristic: enclosure lines such as "/*" or "'''" are short
MAX_DELIMITER_LENGTH = 4

LINE_COMMENT_PREFIXES = ("#", "//")


class SummaryFormatError(DirscribeError):
    """Raised when a summary is not safe to embed as a comment."""


def looks_like_comment_block(summary: str) -> bool:
    """Loose check that a summary is comment-shaped.

    Accepts text whose first and last lines are short enclosure lines, or
    whose lines all start with the comment prefix of the first line.
    """
    lines = summary.split("\n")
    if len(lines[0]) <= MAX_DELIMITER_LENGTH and len(lines[-1]) <= MAX_DELIMITER_LENGTH:
        return True

    prefix = "#" if lines[0].lstrip().startswith("#") else "//"
    return all(line.lstrip().startswith(prefix) for line in lines)


def line_comment_prefix(summary: str) -> str | None:
    """Comment prefix shared by every line of ``summary``, if any."""
    lines = summary.strip().split("\n")
    for prefix in LINE_COMMENT_PREFIXES:
        if all(line.lstrip().startswith(prefix) for line in lines):
            return prefix
    return None


def _find_opening(lines: list[str]) -> int | None:
    return next(
        (i for i, line in enumerate(lines[:SENTINEL_SEARCH_LINES]) if SUMMARY_START in line),
        None,
    )


def _find_closing(lines: list[str], opening: int) -> int | None:
    return next(
        (i for i in range(opening + 1, len(lines)) if SUMMARY_END in lines[i]),
        None,
    )


def has_sentinels(summary: str) -> bool:
    """Whether ``summary`` carries sentinels that ``strip_summary_block`` can find."""
    lines = summary.strip().split("\n")
    opening = _find_opening(lines)
    return opening is not None and _find_closing(lines, opening) is not None


def strip_summary_block(content: str, contract: CommentContract | None = None) -> str:
    """Remove a summary block from the top of ``content``.

    The block runs from the line before the opening sentinel through the
    closing sentinel, an optional timestamp line and the closing delimiter.
    Content without a block at the top is returned unchanged, and the
    remainder keeps its original line endings.

    Args:
        content: File content
        contract: Contract of the file, used to recognise the closing delimiter

    Returns:
        The content with the block removed
    """
    lines = content.split("\n")

    opening = _find_opening(lines)
    if opening is None:
        return content

    closing = _find_closing(lines, opening)
    if closing is None:
        logger.warning(
            "Found an opening summary sentinel without a closing one, leaving content as is"
        )
        return content

    start = max(opening - 1, 0)
    end = closing + 1
    if end < len(lines) and TIMESTAMP_LABEL in lines[end]:
        end += 1
    # A block opening on line 0 has no enclosure lines
    if opening > 0 and end < len(lines):
        if _is_closing_delimiter(lines[end], contract, lines[start].strip()):
            end += 1

    return "\n".join(lines[:start] + lines[end:])


def _is_closing_delimiter(
    line: str,
    contract: CommentContract | None,
    opener: str,
) -> bool:
    stripped = line.strip()
    # Line-comment blocks close with the same line they open with
    if stripped == opener:
        return True
    if contract is not None:
        return stripped == contract.closing_delimiter
    return len(stripped) <= MAX_DELIMITER_LENGTH


def insert_timestamp(
    summary: str,
    contract: CommentContract | None = None,
    now: datetime | None = None,
    prefix: str | None = None,
) -> str:
    """Insert a ``Last updated`` line before the summary's last line.

    Args:
        summary: Validated summary block
        contract: Contract of the target file; line contracts prefix the timestamp
        now: Timestamp to use (defaults to the current local time)
        prefix: Explicit prefix for the timestamp line, overriding the contract

    Returns:
        The summary with the timestamp line added
    """
    stamp = (now or datetime.now().astimezone()).isoformat(timespec="seconds")
    if prefix is None:
        prefix = f"{contract.start} " if contract is not None and contract.line_mode else ""

    lines = summary.strip().split("\n")
    lines.insert(len(lines) - 1, f"{prefix}{TIMESTAMP_LABEL} {stamp}")
    return "\n".join(lines)


class SummaryWriter:
    """Persist summaries as comment blocks at the top of files."""

    def __init__(
        self,
        contracts: Mapping[str, CommentContract] = COMMENT_CONTRACTS,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the writer.

        Args:
            contracts: Comment contract registry
            now: Clock used for the timestamp line (defaults to local time)
        """
        self.contracts = contracts
        self._now = now or (lambda: datetime.now().astimezone())

    def check(self, path: Path, summary: str) -> bool:
        """Verify a summary may be embedded in ``path``.

        Returns:
            True if the summary satisfies the file's contract, False if only
            the loose comment heuristic accepted it

        Raises:
            SummaryFormatError: If the summary is not comment-shaped or lacks
                the sentinel lines
        """
        if validate_summary(summary, contract_for_path(path, self.contracts)):
            return True

        if not looks_like_comment_block(summary.strip()):
            raise SummaryFormatError(
                "Summary is not a correctly formatted comment. (doesn't start with a "
                "comment char on every line or doesn't have starting or ending line "
                "with multi line comment enclosure)"
            )
        if not has_sentinels(summary):
            raise SummaryFormatError(
                f"Summary has no {SUMMARY_START} and {SUMMARY_END} sentinel lines, "
                "so it could not be replaced on a later run"
            )
        return False

    def apply(self, path: Path, summary: str) -> None:
        """Replace the summary block at the top of ``path``.

        Args:
            path: File to rewrite
            summary: Summary text returned by the provider

        Raises:
            SummaryFormatError: If the summary fails the precondition check
            UnicodeDecodeError: If the file is not UTF-8
            OSError: If the file cannot be read or written
        """
        contract = contract_for_path(path, self.contracts)
        prefix = None
        if not self.check(path, summary):
            comment = line_comment_prefix(summary)
            prefix = f"{comment} " if comment else ""

        content = path.read_bytes().decode("utf-8")
        remainder = strip_summary_block(content, contract)
        block = insert_timestamp(summary, contract, self._now(), prefix=prefix)

        _atomic_write(path, f"{block}\n{remainder}")
        logger.info(f"Wrote summary to {path}")


def _atomic_write(path: Path, content: str) -> None:
    """Replace ``path`` with ``content`` via a temporary sibling file."""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        shutil.copymode(path, tmp_path)
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
