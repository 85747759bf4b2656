"""Unit tests for artifact validation (ideaforge.ui.validation)."""

from __future__ import annotations

import pytest

from ideaforge.ui.models import ArtifactKind, GeneratedArtifact, IssueKind, ValidationIssue
from ideaforge.ui.validation import (
    check_completeness,
    check_leakage,
    check_syntax,
    needs_retry,
    validate_artifact,
    validate_content,
)


def _kinds(issues) -> set[IssueKind]:
    return {issue.kind for issue in issues}


class TestCheckSyntax:
    @pytest.mark.unit
    def test_valid_script(self, component_source):
        assert check_syntax(component_source("Header")) is None

    @pytest.mark.unit
    def test_unbalanced(self, broken_source):
        issue = check_syntax(broken_source)
        assert issue is not None
        assert issue.kind is IssueKind.SYNTAX_ERROR
        assert issue.fatal
        assert issue.location.startswith("line ")

    @pytest.mark.unit
    def test_jsx_rejected(self):
        assert check_syntax("function A() { return <div>hi</div>; }") is not None


class TestCheckLeakage:
    @pytest.mark.unit
    def test_clean(self, component_source):
        assert check_leakage(component_source("Header")) == []

    @pytest.mark.unit
    def test_markdown_and_prose(self):
        text = "## Usage\nconst a = 1;\n---\nHere's how it works."
        issues = check_leakage(text)
        messages = [issue.message for issue in issues]
        assert "Contains a markdown heading" in messages
        assert "Contains a markdown horizontal rule" in messages
        assert "Contains explanatory prose" in messages
        assert _kinds(issues) == {IssueKind.MARKDOWN_LEAKAGE}
        prose = next(i for i in issues if i.message == "Contains explanatory prose")
        assert prose.location == "line 4"

    @pytest.mark.unit
    def test_leakage_is_not_fatal(self):
        issue = ValidationIssue(kind=IssueKind.MARKDOWN_LEAKAGE, message="x")
        assert not issue.fatal


class TestCheckCompleteness:
    @pytest.mark.unit
    def test_too_short(self):
        issues = check_completeness("React.createElement('div')", 200)
        assert len(issues) == 1
        assert "too short" in issues[0].message

    @pytest.mark.unit
    def test_no_create_element(self):
        issues = check_completeness("x" * 300, 200)
        assert [i.message for i in issues] == ["No React.createElement calls found"]


class TestValidateContent:
    @pytest.mark.unit
    def test_valid_component(self, component_source):
        assert validate_content(component_source("TaskList"), "TaskList", 200) == []

    @pytest.mark.unit
    def test_missing_binding_only(self, component_source):
        source = component_source("TaskList").replace("window.TaskList = TaskList;\n", "")
        issues = validate_content(source, "TaskList", 200)
        assert _kinds(issues) == {IssueKind.MISSING_BINDING}
        assert not needs_retry(issues)

    @pytest.mark.unit
    def test_undeclared_component(self, component_source):
        source = component_source("Other") + "window.TaskList = Other;\n"
        issues = validate_content(source, "TaskList", 200)
        assert any(
            i.kind is IssueKind.INCOMPLETE and "never declared" in i.message for i in issues
        )

    @pytest.mark.unit
    def test_empty_content(self):
        issues = validate_content("", "TaskList", 200)
        assert IssueKind.INCOMPLETE in _kinds(issues)
        assert IssueKind.MISSING_BINDING in _kinds(issues)
        assert needs_retry(issues)

    @pytest.mark.unit
    def test_validate_artifact(self, component_source):
        artifact = GeneratedArtifact(
            filename="Header.js",
            name="Header",
            content=component_source("Header"),
            kind=ArtifactKind.NAVIGATION,
        )
        assert validate_artifact(artifact, 200) == []


class TestNeedsRetry:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "kind, expected",
        [
            (IssueKind.SYNTAX_ERROR, True),
            (IssueKind.INCOMPLETE, True),
            (IssueKind.MARKDOWN_LEAKAGE, True),
            (IssueKind.MISSING_BINDING, False),
        ],
    )
    def test_kinds(self, kind, expected):
        assert needs_retry([ValidationIssue(kind=kind, message="m")]) is expected

    @pytest.mark.unit
    def test_no_issues(self):
        assert not needs_retry([])
