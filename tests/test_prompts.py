"""Tests for prompt templates and prompt assembly."""

import pytest

from dirscribe.ai.prompts import (
    CONTENT_PLACEHOLDER,
    DIFF_TEMPLATE,
    KEYWORDS_TEMPLATE,
    SUMMARY_TEMPLATE,
    TEMPLATE_NAMES,
    TemplateError,
    build_messages,
    build_prompt,
    fill_template,
    load_prompt_templates,
    select_template_name,
)
from dirscribe.contracts import lookup_contract, structure_instructions


class TestLoadPromptTemplates:
    def test_packaged_templates_have_placeholder(self):
        templates = load_prompt_templates()

        assert set(templates) == set(TEMPLATE_NAMES)
        for template in templates.values():
            assert CONTENT_PLACEHOLDER in template

    def test_directory_overrides_by_stem(self, tmp_path):
        (tmp_path / "summary.txt").write_text(f"Custom: {CONTENT_PLACEHOLDER}")

        templates = load_prompt_templates(tmp_path)

        assert templates[SUMMARY_TEMPLATE] == f"Custom: {CONTENT_PLACEHOLDER}"
        assert templates[DIFF_TEMPLATE] == load_prompt_templates()[DIFF_TEMPLATE]

    def test_override_without_placeholder_rejected(self, tmp_path):
        (tmp_path / "summary-diff.txt").write_text("No placeholder here")

        with pytest.raises(TemplateError, match="summary-diff"):
            load_prompt_templates(tmp_path)


class TestSelectTemplateName:
    def test_modes(self):
        assert select_template_name(False) == SUMMARY_TEMPLATE
        assert select_template_name(False, uses_keywords=True) == KEYWORDS_TEMPLATE
        assert select_template_name(True, uses_keywords=True) == DIFF_TEMPLATE


class TestBuildPrompt:
    """Test prompt assembly for one file."""

    def test_fill_template(self):
        assert fill_template(f"<{CONTENT_PLACEHOLDER}>", "x") == "<x>"

    def test_fill_template_requires_placeholder(self):
        with pytest.raises(TemplateError):
            fill_template("nothing", "x")

    def test_appends_structure_instructions(self):
        contract = lookup_contract("py")

        prompt = build_prompt(f"Summarize: {CONTENT_PLACEHOLDER}", "x = 1", contract)

        assert prompt == "Summarize: x = 1" + structure_instructions(contract)

    def test_existing_summary_removed_from_content(self):
        content = "'''\n[DIRSCRIBE]\nOld summary.\n[/DIRSCRIBE]\n'''\nx = 1"

        prompt = build_prompt(CONTENT_PLACEHOLDER, content, lookup_contract("py"))

        assert "Old summary." not in prompt
        assert prompt.startswith("x = 1")

    def test_diff_mode_uses_content_verbatim(self):
        diff = "@@ -1 +1 @@\n-old\n+new"

        prompt = build_prompt(f"Diff: {CONTENT_PLACEHOLDER}", diff, None, is_diff_mode=True)

        assert prompt == f"Diff: {diff}"

    def test_build_messages(self):
        messages = build_messages("hello")

        assert len(messages) == 1
        assert messages[0].role == "user"
        assert messages[0].content == "hello"
