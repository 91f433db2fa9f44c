"""Tests for file discovery and filtering."""

from pathlib import Path

import pytest

from dirscribe.files import (
    FileFilters,
    collect_files,
    is_likely_text_file,
    matches_keywords,
    matches_suffix,
)


@pytest.fixture
def project(tmp_path):
    """A small project tree with a .gitignore."""
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "main.py").write_text("import os\nprint('main')\n")
    (tmp_path / "src" / "util.py").write_text("def helper():\n    return 1\n")
    (tmp_path / "src" / "notes.md").write_text("# Notes\n")
    (tmp_path / "build").mkdir()
    (tmp_path / "build" / "gen.py").write_text("generated = True\n")
    (tmp_path / "secret.py").write_text("TOKEN = 'x'\n")
    (tmp_path / "Makefile").write_text("all:\n\techo hi\n")
    (tmp_path / "image.bin").write_bytes(b"\xff\xfe\x00\x81" * 64)
    (tmp_path / ".gitignore").write_text("build/\nsecret.py\n")
    return tmp_path


def relative_paths(entries, root):
    return [entry.path.relative_to(root).as_posix() for entry in entries]


class TestCollectFiles:
    """Test directory walking with filters."""

    def test_gitignore_respected(self, project):
        entries = collect_files(project, FileFilters(suffixes=["py"]))

        assert relative_paths(entries, project) == ["src/main.py", "src/util.py"]
        assert entries[0].content == "import os\nprint('main')\n"

    def test_gitignore_can_be_disabled(self, project):
        entries = collect_files(project, FileFilters(suffixes=["py"], use_gitignore=False))

        assert relative_paths(entries, project) == [
            "secret.py",
            "build/gen.py",
            "src/main.py",
            "src/util.py",
        ]

    def test_wildcard_selects_text_files(self, project):
        entries = collect_files(project, FileFilters(suffixes=["*"]))

        paths = relative_paths(entries, project)
        assert ".gitignore" in paths
        assert "Makefile" in paths
        assert "src/notes.md" in paths
        assert "image.bin" not in paths

    def test_extensionless_suffix_matches_name(self, project):
        entries = collect_files(project, FileFilters(suffixes=["Makefile"]))

        assert relative_paths(entries, project) == ["Makefile"]

    def test_include_and_exclude_paths(self, project):
        filters = FileFilters(
            suffixes=["py", "md"], include_paths=["src"], exclude_paths=["src/notes"]
        )

        entries = collect_files(project, filters)

        assert relative_paths(entries, project) == ["src/main.py", "src/util.py"]

    def test_keyword_filters(self, project):
        filters = FileFilters(suffixes=["py"], or_keywords=["print", "return"])
        assert len(collect_files(project, filters)) == 2

        filters = FileFilters(suffixes=["py"], and_keywords=["import", "print"])
        assert relative_paths(collect_files(project, filters), project) == ["src/main.py"]

        filters = FileFilters(suffixes=["py"], exclude_keywords=["helper"])
        assert relative_paths(collect_files(project, filters), project) == ["src/main.py"]

    def test_only_paths(self, project):
        filters = FileFilters(suffixes=["py"], only_paths={"src/util.py"})

        assert relative_paths(collect_files(project, filters), project) == ["src/util.py"]

    def test_nested_gitignore_applies_to_its_directory(self, tmp_path):
        (tmp_path / "sub").mkdir()
        (tmp_path / "other").mkdir()
        (tmp_path / "sub" / ".gitignore").write_text("secret.py\n")
        (tmp_path / "sub" / "secret.py").write_text("x = 1")
        (tmp_path / "sub" / "ok.py").write_text("y = 2")
        (tmp_path / "other" / "secret.py").write_text("z = 3")

        entries = collect_files(tmp_path, FileFilters(suffixes=["py"]))

        assert relative_paths(entries, tmp_path) == ["other/secret.py", "sub/ok.py"]

    def test_nested_gitignore_ignores_directories(self, tmp_path):
        (tmp_path / "pkg" / "cache").mkdir(parents=True)
        (tmp_path / "pkg" / ".gitignore").write_text("cache/\n")
        (tmp_path / "pkg" / "cache" / "gen.py").write_text("a = 1")
        (tmp_path / "pkg" / "mod.py").write_text("b = 2")

        entries = collect_files(tmp_path, FileFilters(suffixes=["py"]))

        assert relative_paths(entries, tmp_path) == ["pkg/mod.py"]

    def test_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            collect_files(tmp_path / "nope", FileFilters(suffixes=["py"]))

    def test_undecodable_file_skipped(self, tmp_path):
        (tmp_path / "bad.py").write_bytes(b"\xff\xfe\xfa")
        (tmp_path / "good.py").write_text("ok")

        entries = collect_files(tmp_path, FileFilters(suffixes=["py"]))

        assert relative_paths(entries, tmp_path) == ["good.py"]


class TestMatchers:
    def test_matches_suffix(self):
        assert matches_suffix(Path("a/b.rs"), ["rs", "py"])
        assert not matches_suffix(Path("a/b.rsx"), ["rs"])

    def test_text_detection_by_extension(self, tmp_path):
        assert is_likely_text_file(tmp_path / "never_created.toml")

    def test_text_detection_by_sniffing(self, tmp_path):
        text = tmp_path / "data.unknown"
        text.write_text("plain words")
        binary = tmp_path / "blob.unknown"
        binary.write_bytes(b"\x00\xff\xfe\xfd")

        assert is_likely_text_file(text)
        assert not is_likely_text_file(binary)

    def test_uses_keywords(self):
        assert FileFilters(suffixes=["py"], and_keywords=["x"]).uses_keywords
        assert not FileFilters(suffixes=["py"], exclude_keywords=["x"]).uses_keywords

    def test_matches_keywords_exclude_wins(self):
        filters = FileFilters(suffixes=["py"], or_keywords=["a"], exclude_keywords=["b"])
        assert not matches_keywords("a b", filters)
        assert matches_keywords("a", filters)
