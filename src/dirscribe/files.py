"""File discovery: walk a directory and select the files to aggregate."""

import logging
import os
from collections.abc import Collection, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pathspec

from dirscribe.models import FileEntry

logger = logging.getLogger(__name__)

WILDCARD = "*"

TEXT_EXTENSIONS = frozenset(
    {
        # Programming languages
        "rs", "py", "js", "ts", "java", "c", "cpp", "h", "hpp", "cs", "go", "rb",
        "php", "swift", "kt", "scala", "sh", "bash", "pl", "r", "sql", "m", "mm",
        # Web
        "html", "htm", "css", "scss", "sass", "less", "xml", "svg",
        # Data formats
        "json", "yaml", "yml", "toml", "ini", "conf", "config",
        # Documentation
        "md", "markdown", "txt", "rtf", "rst", "asciidoc", "adoc",
        # Config files
        "gitignore", "env", "dockerignore", "editorconfig",
        # Build files
        "cmake", "make", "mak", "gradle",
    }
)  # fmt: skip

EXTENSIONLESS_TEXT_FILES = frozenset(
    {
        "Dockerfile", "Makefile", "README", "LICENSE", "Cargo.lock", "package.json",
        ".gitignore", ".env", ".dockerignore", ".editorconfig",
    }
)  # fmt: skip

SNIFF_BYTES = 1024

SKIPPED_DIRS = frozenset({".git"})


@dataclass
class FileFilters:
    """Selection rules for file discovery.

    Attributes:
        suffixes: Extensions (or exact file names) to include; ``*`` selects likely text files
        use_gitignore: Skip files matched by ``.gitignore`` files in the tree
        exclude_paths: Relative path prefixes to skip
        include_paths: Relative path prefixes to keep (all when empty)
        or_keywords: Keep files containing at least one of these
        and_keywords: Keep files containing all of these
        exclude_keywords: Skip files containing any of these
        only_paths: Restrict to these relative paths (used in diff mode)
    """

    suffixes: Sequence[str]
    use_gitignore: bool = True
    exclude_paths: Sequence[str] = field(default_factory=list)
    include_paths: Sequence[str] = field(default_factory=list)
    or_keywords: Sequence[str] = field(default_factory=list)
    and_keywords: Sequence[str] = field(default_factory=list)
    exclude_keywords: Sequence[str] = field(default_factory=list)
    only_paths: Collection[str] | None = None

    @property
    def uses_keywords(self) -> bool:
        return bool(self.or_keywords or self.and_keywords)


def is_likely_text_file(path: Path) -> bool:
    """Guess whether ``path`` holds text, by name, extension, or a UTF-8 sniff."""
    if path.name in EXTENSIONLESS_TEXT_FILES:
        return True

    if path.suffix and path.suffix[1:].lower() in TEXT_EXTENSIONS:
        return True

    try:
        with path.open("rb") as f:
            sample = f.read(SNIFF_BYTES)
    except OSError:
        return False

    try:
        sample.decode("utf-8")
    except UnicodeDecodeError as e:
        # A multi-byte character cut off by the sample boundary is still text
        return e.start >= len(sample) - 3 and e.reason == "unexpected end of data"
    return True


def matches_suffix(path: Path, suffixes: Sequence[str]) -> bool:
    if WILDCARD in suffixes:
        return is_likely_text_file(path)
    if path.suffix:
        return path.suffix[1:] in suffixes
    return path.name in suffixes


def matches_keywords(content: str, filters: FileFilters) -> bool:
    """Apply exclude, or and and keyword rules to file content."""
    if any(keyword in content for keyword in filters.exclude_keywords):
        return False
    if filters.or_keywords and not any(k in content for k in filters.or_keywords):
        return False
    if filters.and_keywords and not all(k in content for k in filters.and_keywords):
        return False
    return True


def load_gitignore(root: Path) -> pathspec.PathSpec | None:
    gitignore_path = root / ".gitignore"
    if not gitignore_path.exists():
        return None
    try:
        lines = gitignore_path.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        logger.warning(f"Could not read {gitignore_path}: {e}")
        return None
    return pathspec.PathSpec.from_lines("gitwildmatch", lines)


def _matches_prefix(relative: str, prefixes: Sequence[str]) -> bool:
    return any(relative.startswith(prefix) for prefix in prefixes)


def _is_ignored(
    path: Path,
    specs: Sequence[tuple[Path, pathspec.PathSpec]],
    is_dir: bool = False,
) -> bool:
    # Each .gitignore matches paths relative to its own directory
    for base, spec in specs:
        relative = path.relative_to(base).as_posix()
        if spec.match_file(relative + "/" if is_dir else relative):
            return True
    return False


def iter_candidate_paths(root: Path, filters: FileFilters) -> list[Path]:
    """Walk ``root`` and return files passing the path-based filters, sorted.

    A ``.gitignore`` found in any walked directory applies to everything
    beneath that directory, on top of the ones above it.
    """
    inherited: dict[Path, list[tuple[Path, pathspec.PathSpec]]] = {}
    candidates = []

    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        specs = inherited.pop(current, [])
        if filters.use_gitignore:
            spec = load_gitignore(current)
            if spec is not None:
                specs = [*specs, (current, spec)]

        kept_dirs = []
        for name in sorted(dirnames):
            if name in SKIPPED_DIRS:
                continue
            if _is_ignored(current / name, specs, is_dir=True):
                continue
            kept_dirs.append(name)
            inherited[current / name] = specs
        dirnames[:] = kept_dirs

        for name in sorted(filenames):
            path = current / name
            relative = path.relative_to(root).as_posix()

            if filters.only_paths is not None and relative not in filters.only_paths:
                continue
            if _is_ignored(path, specs):
                continue
            if not matches_suffix(path, filters.suffixes):
                continue
            if _matches_prefix(relative, filters.exclude_paths):
                continue
            if filters.include_paths and not _matches_prefix(relative, filters.include_paths):
                continue
            candidates.append(path)

    return candidates


def collect_files(root: Path, filters: FileFilters) -> list[FileEntry]:
    """Discover files under ``root`` and read their content.

    Args:
        root: Directory to walk
        filters: Selection rules

    Returns:
        Ordered file entries; unreadable files are logged and skipped

    Raises:
        FileNotFoundError: If ``root`` is not a directory
    """
    if not root.is_dir():
        raise FileNotFoundError(f"Directory not found: {root}")

    entries = []
    for path in iter_candidate_paths(root, filters):
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Error processing file {path}: {e}")
            continue
        if matches_keywords(content, filters):
            entries.append(FileEntry(path=path, content=content))

    logger.info(f"Selected {len(entries)} files under {root}")
    return entries
