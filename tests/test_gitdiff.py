"""Tests for the git diff source."""

from pathlib import Path
from unittest.mock import Mock, patch

import pytest
from git.exc import BadName, GitCommandError, InvalidGitRepositoryError

from dirscribe.gitdiff import GitDiffError, GitDiffSource


@pytest.fixture
def mock_repo(tmp_path):
    """Patch Repo so the working tree is ``tmp_path``."""
    with patch("dirscribe.gitdiff.Repo") as repo_cls:
        repo = Mock()
        repo.working_tree_dir = str(tmp_path)
        repo_cls.return_value = repo
        yield repo


class TestRevisions:
    @pytest.mark.parametrize(
        "start, end, expected",
        [
            (None, None, ["HEAD"]),
            ("abc", None, ["abc"]),
            ("abc", "def", ["abc", "def"]),
            (None, "def", ["HEAD", "def"]),
        ],
    )
    def test_revision_arguments(self, tmp_path, mock_repo, start, end, expected):
        assert GitDiffSource(tmp_path, start, end).revisions == expected


class TestGitDiffSource:
    """Test diff queries against a mocked repository."""

    def test_changed_files_relative_to_root(self, tmp_path, mock_repo):
        (tmp_path / "pkg").mkdir()
        mock_repo.git.diff.return_value = "pkg/a.py\nREADME.md\npkg/sub/b.py"

        source = GitDiffSource(tmp_path / "pkg", "abc")

        assert source.changed_files() == {"a.py", "sub/b.py"}
        mock_repo.git.diff.assert_called_once_with("--name-only", "abc")

    def test_diff_for_file(self, tmp_path, mock_repo):
        mock_repo.git.diff.return_value = "@@ -1 +1 @@"

        source = GitDiffSource(tmp_path, "abc", "def")
        diff = source.diff_for_file(tmp_path / "src" / "a.py")

        assert diff == "@@ -1 +1 @@"
        mock_repo.git.diff.assert_called_once_with("abc", "def", "--", "src/a.py")

    def test_git_failure_wrapped(self, tmp_path, mock_repo):
        mock_repo.git.diff.side_effect = GitCommandError(
            "diff", 128, stderr="fatal: bad revision 'nope'"
        )

        with pytest.raises(GitDiffError, match="bad revision"):
            GitDiffSource(tmp_path, "nope").changed_files()

    def test_not_a_repository(self, tmp_path):
        with patch("dirscribe.gitdiff.Repo", side_effect=InvalidGitRepositoryError("x")):
            with pytest.raises(GitDiffError, match="Failed to open git repository"):
                GitDiffSource(tmp_path)

    def test_bare_repository(self, tmp_path, mock_repo):
        mock_repo.working_tree_dir = None

        with pytest.raises(GitDiffError, match="no working tree"):
            GitDiffSource(Path(tmp_path))


class TestValidate:
    """Test commit checks against a mocked repository."""

    def test_valid_range(self, tmp_path, mock_repo):
        start, end = Mock(type="commit"), Mock(type="commit")
        mock_repo.rev_parse.side_effect = [start, end]
        mock_repo.is_ancestor.return_value = True

        GitDiffSource(tmp_path, "abc", "def").validate()

        mock_repo.is_ancestor.assert_called_once_with(start, end)

    def test_unknown_revision(self, tmp_path, mock_repo):
        mock_repo.rev_parse.side_effect = BadName("nope")

        with pytest.raises(GitDiffError, match="Invalid start_commit_id: nope"):
            GitDiffSource(tmp_path, "nope").validate()

    def test_non_commit_object(self, tmp_path, mock_repo):
        mock_repo.rev_parse.return_value = Mock(type="blob")

        with pytest.raises(GitDiffError, match="start_commit_id is not a valid commit"):
            GitDiffSource(tmp_path, "abc:file.py").validate()

    def test_start_not_ancestor(self, tmp_path, mock_repo):
        mock_repo.rev_parse.side_effect = [Mock(type="commit"), Mock(type="commit")]
        mock_repo.is_ancestor.return_value = False

        with pytest.raises(GitDiffError, match="must be an ancestor"):
            GitDiffSource(tmp_path, "def", "abc").validate()

    def test_start_only_skips_ancestry(self, tmp_path, mock_repo):
        mock_repo.rev_parse.return_value = Mock(type="commit")

        GitDiffSource(tmp_path, "abc").validate()

        mock_repo.is_ancestor.assert_not_called()
