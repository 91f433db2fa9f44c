"""Git diff access for diff mode, backed by GitPython."""

import logging
from pathlib import Path

from git import Commit, Repo
from git.exc import (
    BadName,
    BadObject,
    GitCommandError,
    InvalidGitRepositoryError,
    NoSuchPathError,
)

from dirscribe.config import DirscribeError

logger = logging.getLogger(__name__)


class GitDiffError(DirscribeError):
    """Raised when the repository or a revision cannot be read."""


class GitDiffSource:
    """Changed files and per-file unified diffs between two points in history.

    ``start`` only compares that commit with the working tree, ``start`` and
    ``end`` compare the two commits, and neither compares HEAD with the
    working tree.
    """

    def __init__(
        self,
        root: Path,
        start_commit: str | None = None,
        end_commit: str | None = None,
    ) -> None:
        """Open the repository containing ``root``.

        Raises:
            GitDiffError: If ``root`` is not inside a git repository
        """
        self.root = root.resolve()
        self.start_commit = start_commit
        self.end_commit = end_commit
        try:
            self.repo = Repo(self.root, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise GitDiffError(f"Failed to open git repository at {root}: {e}") from e

        if self.repo.working_tree_dir is None:
            raise GitDiffError(f"Repository at {root} has no working tree")
        self.repo_root = Path(self.repo.working_tree_dir).resolve()

    @property
    def revisions(self) -> list[str]:
        if self.start_commit and self.end_commit:
            return [self.start_commit, self.end_commit]
        if self.start_commit:
            return [self.start_commit]
        if self.end_commit:
            return ["HEAD", self.end_commit]
        return ["HEAD"]

    def _resolve_commit(self, rev: str, name: str) -> Commit:
        try:
            obj = self.repo.rev_parse(rev)
        except (BadName, BadObject, ValueError, IndexError) as e:
            raise GitDiffError(f"Invalid {name}: {rev}") from e
        if obj.type != "commit":
            raise GitDiffError(f"{name} is not a valid commit")
        return obj

    def validate(self) -> None:
        """Check that the configured commits exist and are in order.

        Raises:
            GitDiffError: If a commit cannot be resolved or ``start_commit``
                is not an ancestor of ``end_commit``
        """
        start = end = None
        if self.start_commit:
            start = self._resolve_commit(self.start_commit, "start_commit_id")
        if self.end_commit:
            end = self._resolve_commit(self.end_commit, "end_commit_id")

        if start is not None and end is not None:
            try:
                is_ancestor = self.repo.is_ancestor(start, end)
            except GitCommandError as e:
                raise GitDiffError(f"Failed to check commit relationship: {e}") from e
            if not is_ancestor:
                raise GitDiffError("start_commit_id must be an ancestor of end_commit_id")

    def _diff(self, *args: str) -> str:
        try:
            return self.repo.git.diff(*args)
        except GitCommandError as e:
            raise GitDiffError(f"git diff failed: {e.stderr.strip() or e}") from e

    def changed_files(self) -> set[str]:
        """Changed files as POSIX paths relative to ``root``.

        Files outside ``root`` are left out.
        """
        names = self._diff("--name-only", *self.revisions).splitlines()
        changed = set()
        for name in names:
            path = self.repo_root / name
            if path.is_relative_to(self.root):
                changed.add(path.relative_to(self.root).as_posix())
        logger.debug(f"{len(changed)} changed files between {' and '.join(self.revisions)}")
        return changed

    def diff_for_file(self, path: Path) -> str:
        """Unified diff of a single file."""
        relative = path.resolve().relative_to(self.repo_root).as_posix()
        return self._diff(*self.revisions, "--", relative)
