"""Comment contracts for embedding generated summaries in source files.

Each file extension maps to the comment delimiters a summary must use so it
can sit at the top of the file without breaking it. Block contracts wrap
the summary between a start and end delimiter; line contracts require
every line to carry the same prefix.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Final

SUMMARY_START: Final = "[DIRSCRIBE]"
SUMMARY_END: Final = "[/DIRSCRIBE]"

# End-delimiter marker for languages without block comments
LINE_MODE: Final = "single line"

MIN_SUMMARY_LINES = 4


@dataclass(frozen=True)
class CommentContract:
    """Delimiter pair a summary must use for a given file type."""

    start: str
    end: str

    @property
    def line_mode(self) -> bool:
        """Whether every summary line must be prefixed with ``start``."""
        return self.end == LINE_MODE

    @property
    def opening_sentinel(self) -> str:
        return f"{self.start} {SUMMARY_START}" if self.line_mode else SUMMARY_START

    @property
    def closing_sentinel(self) -> str:
        return f"{self.start} {SUMMARY_END}" if self.line_mode else SUMMARY_END

    @property
    def closing_delimiter(self) -> str:
        return self.start if self.line_mode else self.end


def _block(start: str, end: str) -> CommentContract:
    return CommentContract(start, end)


def _line(prefix: str) -> CommentContract:
    return CommentContract(prefix, LINE_MODE)


_C_STYLE = _block("/*", "*/")
_HTML_STYLE = _block("<!--", "-->")
_HASH = _line("#")
_DOUBLE_SLASH = _line("//")
_DOUBLE_DASH = _line("--")
_SEMICOLON = _line(";")
_PERCENT = _line("%")

COMMENT_CONTRACTS: dict[str, CommentContract] = {
    # C family and friends
    "c": _C_STYLE,
    "h": _C_STYLE,
    "cc": _C_STYLE,
    "cpp": _C_STYLE,
    "cxx": _C_STYLE,
    "hpp": _C_STYLE,
    "hh": _C_STYLE,
    "cs": _C_STYLE,
    "m": _C_STYLE,
    "mm": _C_STYLE,
    "java": _C_STYLE,
    "kt": _C_STYLE,
    "kts": _C_STYLE,
    "scala": _C_STYLE,
    "groovy": _C_STYLE,
    "gradle": _C_STYLE,
    "go": _C_STYLE,
    "rs": _C_STYLE,
    "swift": _C_STYLE,
    "dart": _C_STYLE,
    "php": _C_STYLE,
    "sol": _C_STYLE,
    "proto": _C_STYLE,
    # Web
    "js": _C_STYLE,
    "jsx": _C_STYLE,
    "mjs": _C_STYLE,
    "cjs": _C_STYLE,
    "ts": _C_STYLE,
    "tsx": _C_STYLE,
    "css": _C_STYLE,
    "scss": _C_STYLE,
    "sass": _DOUBLE_SLASH,
    "less": _C_STYLE,
    "html": _HTML_STYLE,
    "htm": _HTML_STYLE,
    "xml": _HTML_STYLE,
    "svg": _HTML_STYLE,
    "vue": _HTML_STYLE,
    "svelte": _HTML_STYLE,
    "md": _HTML_STYLE,
    "markdown": _HTML_STYLE,
    # Scripting
    "py": _block("'''", "'''"),
    "pyi": _block("'''", "'''"),
    "rb": _block("=begin", "=end"),
    "lua": _block("--[[", "]]"),
    "jl": _block("#=", "=#"),
    "hs": _block("{-", "-}"),
    "ml": _block("(*", "*)"),
    "fs": _block("(*", "*)"),
    "ps1": _block("<#", "#>"),
    "sh": _HASH,
    "bash": _HASH,
    "zsh": _HASH,
    "fish": _HASH,
    "pl": _HASH,
    "pm": _HASH,
    "r": _HASH,
    "ex": _HASH,
    "exs": _HASH,
    "nim": _HASH,
    "cr": _HASH,
    "zig": _DOUBLE_SLASH,
    "sql": _DOUBLE_DASH,
    "elm": _DOUBLE_DASH,
    "clj": _SEMICOLON,
    "cljs": _SEMICOLON,
    "el": _SEMICOLON,
    "lisp": _SEMICOLON,
    "scm": _SEMICOLON,
    "erl": _PERCENT,
    "tex": _PERCENT,
    "vim": _line('"'),
    # Config and infrastructure
    "yaml": _HASH,
    "yml": _HASH,
    "toml": _HASH,
    "ini": _SEMICOLON,
    "cfg": _HASH,
    "conf": _HASH,
    "properties": _HASH,
    "env": _HASH,
    "dockerfile": _HASH,
    "cmake": _HASH,
    "mk": _HASH,
    "makefile": _HASH,
    "nix": _HASH,
    "tf": _C_STYLE,
    "tfvars": _HASH,
    "hcl": _C_STYLE,
    "bicep": _C_STYLE,
    "graphql": _HASH,
}


def lookup_contract(
    extension: str,
    contracts: Mapping[str, CommentContract] = COMMENT_CONTRACTS,
) -> CommentContract | None:
    """Look up the comment contract for a file extension.

    Args:
        extension: Extension with or without the leading dot
        contracts: Registry to search

    Returns:
        The contract, or None when the extension is unknown
    """
    return contracts.get(extension.lstrip(".").lower())


def contract_for_path(
    path: str | Path,
    contracts: Mapping[str, CommentContract] = COMMENT_CONTRACTS,
) -> CommentContract | None:
    """Look up the comment contract for a file path.

    Extension-less files such as ``Dockerfile`` or ``Makefile`` are looked
    up by name.
    """
    path = Path(path)
    return lookup_contract(path.suffix or path.name, contracts)


def validate_summary(text: str, contract: CommentContract | None) -> bool:
    """Check generated text against the structural contract.

    The first two lines must be the opening delimiter and opening
    sentinel, the last two the closing sentinel and closing delimiter.
    Unknown extensions (no contract) never validate.

    Args:
        text: Generated summary text
        contract: Contract for the target file, if any

    Returns:
        True if the text can be embedded as a summary block
    """
    if contract is None:
        return False

    lines = text.strip().split("\n")
    if len(lines) < MIN_SUMMARY_LINES:
        return False

    first, second = lines[0].strip(), lines[1].strip()
    second_last, last = lines[-2].strip(), lines[-1].strip()

    return (
        first == contract.start
        and second == contract.opening_sentinel
        and second_last == contract.closing_sentinel
        and last == contract.closing_delimiter
    )


def render_block(contract: CommentContract, body: str) -> str:
    """Render ``body`` into the exact block shape ``validate_summary`` accepts."""
    if contract.line_mode:
        body_lines = [f"{contract.start} {line}".rstrip() for line in body.split("\n")]
    else:
        body_lines = body.split("\n")
    return "\n".join(
        [
            contract.start,
            contract.opening_sentinel,
            *body_lines,
            contract.closing_sentinel,
            contract.closing_delimiter,
        ]
    )


def structure_instructions(contract: CommentContract | None) -> str:
    """Prompt suffix describing the block structure the model must return."""
    if contract is None:
        return (
            "\n\nPlease make sure to return the summary as a comment block "
            "appropriately formatted for the language, with this structure: "
            "line 1: , line 2: [DIRSCRIBE], line N-1: [/DIRSCRIBE], line N: . "
            "Lines 1 and N should be empty."
        )

    if contract.line_mode:
        prefix = contract.start
        return (
            f"\n\nPlease make sure to start every line of the summary with '{prefix}'. "
            f"Please use the following structure: line 1: '{prefix}', "
            f"line 2: '{prefix} {SUMMARY_START}', lines 3 to N -2: *the summary*, "
            f"line N-1: '{prefix} {SUMMARY_END}', line N: '{prefix}'"
        )

    return (
        f"\n\nPlease use the following structure: line 1: '{contract.start}', "
        f"line 2: '{SUMMARY_START}', lines 3 to N -2: *the summary*, "
        f"line N-1: '{SUMMARY_END}', line N: '{contract.end}'"
    )
