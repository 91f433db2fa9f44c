"""Rendering and delivery of the aggregated output blob."""

import logging
from collections.abc import Sequence
from pathlib import Path

import pyperclip

from dirscribe.ai.prompts import fill_template
from dirscribe.config import DirscribeError
from dirscribe.models import FileEntry, SummaryResult

logger = logging.getLogger(__name__)


class OutputError(DirscribeError):
    """Raised when the output cannot be delivered."""


def render_output(
    files: Sequence[FileEntry],
    summaries: Sequence[SummaryResult] | None = None,
    is_diff_mode: bool = False,
    applied_count: int | None = None,
) -> str:
    """Render the file list followed by contents, diffs or summaries.

    Args:
        files: Selected files, in order
        summaries: Summaries aligned with ``files`` (summary mode when given)
        is_diff_mode: Whether file entries hold diffs
        applied_count: Number of files rewritten with their summary, if applied

    Returns:
        The aggregated text
    """
    parts = ["File Paths:\n"]
    parts.extend(f"{entry.path}\n" for entry in files)
    parts.append("\n")
    parts.append("File Summaries:\n\n" if summaries is not None else "File Contents:\n\n")

    if summaries is not None:
        if applied_count is not None:
            parts.append(
                f"\nSummaries have been written to the top of {applied_count} files.\n"
            )
        parts.extend(
            f"\nSummary of {entry.path}:\n\n{result.text}\n"
            for entry, result in zip(files, summaries)
        )
    elif is_diff_mode:
        parts.extend(f"\nDiff of {entry.path}:\n\n{entry.content}\n" for entry in files)
    else:
        parts.extend(
            f"\nFile Content of {entry.path}:\n\n{entry.content}\n" for entry in files
        )

    return "".join(parts)


def apply_outer_template(content: str, template_path: Path) -> str:
    """Embed the rendered output in a user template file.

    Raises:
        TemplateError: If the template lacks the content placeholder
        OSError: If the template cannot be read
    """
    template = template_path.read_text(encoding="utf-8")
    return fill_template(template, content)


def write_output(content: str, output_path: Path | None = None) -> str:
    """Write the output to a file, or to the clipboard when no path is given.

    Returns:
        A message describing where the output went

    Raises:
        OutputError: If the destination cannot be written
    """
    if output_path is not None:
        try:
            output_path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise OutputError(f"Failed to write output to {output_path}: {e}") from e
        return f"Successfully processed directory and written output to {output_path}"

    try:
        pyperclip.copy(content)
    except pyperclip.PyperclipException as e:
        raise OutputError(f"Failed to set clipboard contents: {e}") from e
    logger.debug(f"Copied {len(content)} characters to the clipboard")
    return "Successfully processed directory and copied output to clipboard"
