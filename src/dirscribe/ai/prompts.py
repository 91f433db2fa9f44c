"""Prompt templates and prompt assembly for file summaries."""

import logging
from importlib import resources
from pathlib import Path

from dirscribe.config import DirscribeError
from dirscribe.contracts import CommentContract, structure_instructions
from dirscribe.models import ChatMessage
from dirscribe.writer import strip_summary_block

logger = logging.getLogger(__name__)

CONTENT_PLACEHOLDER = "${${CONTENT}$}$"

SUMMARY_TEMPLATE = "summary"
DIFF_TEMPLATE = "summary-diff"
KEYWORDS_TEMPLATE = "summary-keywords"

TEMPLATE_NAMES = (SUMMARY_TEMPLATE, DIFF_TEMPLATE, KEYWORDS_TEMPLATE)


class TemplateError(DirscribeError):
    """Raised when a template is missing or lacks the content placeholder."""


def load_prompt_templates(directory: Path | None = None) -> dict[str, str]:
    """Load the packaged prompt templates.

    Args:
        directory: Optional directory whose ``*.txt`` files replace packaged
            templates with the same stem

    Returns:
        Mapping from template name to template text

    Raises:
        TemplateError: If a template lacks the content placeholder
    """
    package_dir = resources.files("dirscribe") / "prompts"
    templates = {
        name: (package_dir / f"{name}.txt").read_text(encoding="utf-8")
        for name in TEMPLATE_NAMES
    }

    if directory is not None:
        for path in sorted(directory.glob("*.txt")):
            logger.debug(f"Overriding prompt template '{path.stem}' from {path}")
            templates[path.stem] = path.read_text(encoding="utf-8")

    for name, template in templates.items():
        if CONTENT_PLACEHOLDER not in template:
            raise TemplateError(
                f"Prompt template '{name}' must contain the placeholder '{CONTENT_PLACEHOLDER}'"
            )

    return templates


def select_template_name(is_diff_mode: bool, uses_keywords: bool = False) -> str:
    """Pick the template for the current run mode."""
    if is_diff_mode:
        return DIFF_TEMPLATE
    if uses_keywords:
        return KEYWORDS_TEMPLATE
    return SUMMARY_TEMPLATE


def fill_template(template: str, content: str) -> str:
    """Substitute ``content`` for the placeholder.

    Raises:
        TemplateError: If the template has no placeholder
    """
    if CONTENT_PLACEHOLDER not in template:
        raise TemplateError(
            f"Template must contain the placeholder '{CONTENT_PLACEHOLDER}'"
        )
    return template.replace(CONTENT_PLACEHOLDER, content)


def build_prompt(
    template: str,
    content: str,
    contract: CommentContract | None,
    is_diff_mode: bool = False,
) -> str:
    """Assemble the prompt for one file.

    Any existing summary block is removed from the content first so the
    model summarizes the code rather than the previous summary. Outside
    diff mode the structure the reply must follow is appended.
    """
    if is_diff_mode:
        return fill_template(template, content)

    prompt = fill_template(template, strip_summary_block(content, contract))
    return prompt + structure_instructions(contract)


def build_messages(prompt: str) -> list[ChatMessage]:
    return [ChatMessage(role="user", content=prompt)]
