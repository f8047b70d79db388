"""Tests for LLM response helpers."""

from notegram.common.llm_utils import extract_parameters, normalize_answer, strip_code_fences


class TestStripCodeFences:
    def test_removes_fences(self):
        raw = "```\nWork\n```"
        assert strip_code_fences(raw) == "Work"

    def test_empty_input(self):
        assert strip_code_fences("") == ""
        assert strip_code_fences(None) == ""


class TestNormalizeAnswer:
    def test_strips_quotes_and_emphasis(self):
        assert normalize_answer('"Work"') == "work"
        assert normalize_answer("**Ideas**.") == "ideas"

    def test_plain_answer(self):
        assert normalize_answer("  None \n") == "none"


class TestExtractParameters:
    def test_extracts_values(self):
        raw = "title: [Quarterly planning]\ntopic: finance"
        values = extract_parameters(raw, ["title", "topic"])
        assert values == {"title": "Quarterly planning", "topic": "finance"}

    def test_case_insensitive_names(self):
        values = extract_parameters("Title: Trip to Rome", ["title"])
        assert values["title"] == "Trip to Rome"

    def test_missing_title_is_untitled(self):
        values = extract_parameters("something unrelated", ["title"])
        assert values["title"] == "Untitled"

    def test_missing_other_parameter_uses_name(self):
        values = extract_parameters("title: Hello", ["title", "project"])
        assert values["project"] == "project"

    def test_list_markers_tolerated(self):
        values = extract_parameters("- title: Groceries", ["title"])
        assert values["title"] == "Groceries"
