"""Unit tests for the text-transform pipeline (ideaforge.ui.sanitize).

Tests cover:
- Each transform on typical model output
- Leading prose stripped without cutting leading code
- Component references routed through resolveComponent, known names included
- Idempotence of the whole pipeline
- Binding detection and repair
"""

from __future__ import annotations

import pytest

from ideaforge.ui.sanitize import (
    ensure_binding,
    fix_class_keys,
    has_binding,
    is_declared,
    is_prose_line,
    qualify_create_element,
    qualify_hooks,
    remove_react_destructuring,
    route_component_references,
    sanitize,
    strip_exports,
    strip_fences,
    strip_imports,
    strip_leading_prose,
)
from ideaforge.ui.validation import check_syntax

MODEL_OUTPUT = """Here's the component you asked for:

```javascript
import React, { useState } from 'react';
import './styles.css';
const { useEffect } = React;

export default function TaskList({ items }) {
  const [filter, setFilter] = useState('all');
  useEffect(() => {}, []);
  return createElement('div', { class: 'p-4' },
    React.createElement(TaskItem, { filter }),
    React.createElement(window.Header, null),
    React.createElement(Fragment, null)
  );
}

function TaskItem(props) {
  return React.createElement('li', null, props.filter);
}
```
"""

ASYNC_HELPER_SOURCE = """async function loadTasks() {
  return [];
}

function Header() {
  return React.createElement('header', null);
}

window.Header = Header;
"""

IIFE_SOURCE = """(() => {
  function Header() {
    return React.createElement('header', null);
  }
  window.Header = Header;
})();
"""


class TestTransforms:
    @pytest.mark.unit
    def test_strip_fences(self):
        assert strip_fences("```js\nconst a = 1;\n```\n") == "const a = 1;\n"

    @pytest.mark.unit
    def test_strip_leading_prose(self):
        text = "Sure, here you go.\n\nconst a = 1;\n"
        assert strip_leading_prose(text) == "const a = 1;\n"

    @pytest.mark.unit
    def test_strip_leading_prose_without_code(self):
        assert strip_leading_prose("just words") == "just words"

    @pytest.mark.unit
    def test_strip_leading_prose_markdown(self):
        text = "### Header\n- uses hooks\n**Note:** plain script.\n\nconst a = 1;\n"
        assert strip_leading_prose(text) == "const a = 1;\n"

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "line",
        [
            "async function loadTasks() {",
            "(() => {",
            "window.Header = Header;",
            "React.render(x);",
            "document.title = 'Tasks';",
            "return null",
        ],
    )
    def test_code_lines_are_not_prose(self, line):
        assert not is_prose_line(line)

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "line", ["", "Sure, here you go.", "Here's the component you asked for:", "> quoted"]
    )
    def test_prose_lines(self, line):
        assert is_prose_line(line)

    @pytest.mark.unit
    @pytest.mark.parametrize("source", [ASYNC_HELPER_SOURCE, IIFE_SOURCE])
    def test_strip_leading_prose_keeps_leading_code(self, source):
        assert strip_leading_prose(source) == source
        assert strip_leading_prose("Here is the component:\n\n" + source) == source

    @pytest.mark.unit
    def test_strip_imports_and_requires(self):
        text = (
            "import React from 'react';\n"
            "import 'x.css';\n"
            "const lodash = require('lodash');\n"
            "const a = 1;\n"
        )
        assert strip_imports(text) == "const a = 1;\n"

    @pytest.mark.unit
    def test_strip_exports(self):
        text = "export default function A() {}\nexport const b = 1;\nexport default A;\nexport { A, b };\n"
        assert strip_exports(text) == "function A() {}\nconst b = 1;\n"

    @pytest.mark.unit
    def test_remove_react_destructuring(self):
        text = "const { useState, useEffect } = React;\nconst a = 1;\n"
        assert remove_react_destructuring(text) == "const a = 1;\n"

    @pytest.mark.unit
    def test_qualify_hooks(self):
        text = "const [a, b] = useState(0); React.useEffect(f); obj.useMemo(x);"
        assert qualify_hooks(text) == (
            "const [a, b] = React.useState(0); React.useEffect(f); obj.useMemo(x);"
        )

    @pytest.mark.unit
    def test_qualify_create_element(self):
        assert qualify_create_element("createElement('a')") == "React.createElement('a')"
        assert qualify_create_element("React.createElement('a')") == "React.createElement('a')"

    @pytest.mark.unit
    def test_fix_class_keys(self):
        assert fix_class_keys("{ class: 'p-2', 'class': 'x' }") == "{ className: 'p-2', className: 'x' }"


class TestRouteComponentReferences:
    @pytest.mark.unit
    def test_foreign_reference_routed(self):
        text = "React.createElement(Header, null)"
        assert route_component_references(text) == "React.createElement(resolveComponent('Header'), null)"

    @pytest.mark.unit
    def test_window_reference_routed(self):
        text = "React.createElement(window.Sidebar)"
        assert route_component_references(text) == "React.createElement(resolveComponent('Sidebar'))"

    @pytest.mark.unit
    def test_local_and_own_names_untouched(self):
        text = "function Row() {}\nReact.createElement(Row, null); React.createElement(TaskList, null);"
        assert route_component_references(text, own_name="TaskList") == text

    @pytest.mark.unit
    def test_fragment(self):
        assert route_component_references("React.createElement(Fragment, null)") == (
            "React.createElement(React.Fragment, null)"
        )

    @pytest.mark.unit
    def test_window_alias_rewritten(self):
        text = "  const Header = window.Header;\n  const Card = window.Card || null;\n"
        assert route_component_references(text) == (
            "  const Header = resolveComponent('Header');\n"
            "  const Card = resolveComponent('Card');\n"
        )

    @pytest.mark.unit
    def test_own_alias_kept(self):
        text = "const Header = window.Header;"
        assert route_component_references(text, own_name="Header") == text

    @pytest.mark.unit
    def test_lowercase_elements_untouched(self):
        text = "React.createElement('div', null)"
        assert route_component_references(text) == text

    @pytest.mark.unit
    def test_known_names_in_object_values(self):
        text = "var pages = { home: HomePage, settings: SettingsPage };"
        assert route_component_references(text, known_names=["HomePage", "SettingsPage"]) == (
            "var pages = { home: resolveComponent('HomePage'), "
            "settings: resolveComponent('SettingsPage') };"
        )

    @pytest.mark.unit
    def test_known_name_in_conditional(self):
        text = "return open ? Modal : null;"
        assert route_component_references(text, known_names=["Modal"]) == (
            "return open ? resolveComponent('Modal') : null;"
        )

    @pytest.mark.unit
    def test_window_reference_with_fallback(self):
        text = "React.createElement(window.Header || 'div')"
        assert route_component_references(text) == (
            "React.createElement(resolveComponent('Header') || 'div')"
        )

    @pytest.mark.unit
    def test_shorthand_properties_expanded(self):
        text = "var slots = { Header, Footer };"
        assert route_component_references(text, known_names=["Header", "Footer"]) == (
            "var slots = { Header: resolveComponent('Header'), Footer: resolveComponent('Footer') };"
        )

    @pytest.mark.unit
    def test_keys_strings_and_comments_untouched(self):
        text = "// Header goes here\nvar labels = { Header: 'Header', title: \"Footer\" };\n"
        assert route_component_references(text, known_names=["Header", "Footer"]) == text

    @pytest.mark.unit
    def test_unknown_bare_names_and_globals_untouched(self):
        text = "var when = new Date(); var R = window.React; var list = Items || [];"
        assert route_component_references(text) == text

    @pytest.mark.unit
    def test_declared_known_names_untouched(self):
        text = "const { Header } = slots;\nfunction Footer() {}\nvar parts = [Header, Footer];"
        assert route_component_references(text, known_names=["Header", "Footer"]) == text

    @pytest.mark.unit
    def test_known_names_idempotent(self):
        text = "var slots = { Header, main: Card };\nreturn open ? window.Modal : Footer;"
        known = ["Header", "Card", "Modal", "Footer"]
        once = route_component_references(text, known_names=known)
        assert "window.Modal" not in once
        assert route_component_references(once, known_names=known) == once


class TestSanitize:
    @pytest.mark.unit
    def test_model_output_cleaned(self):
        result = sanitize(MODEL_OUTPUT, "TaskList")

        assert result.startswith("function TaskList")
        assert "```" not in result
        assert "import" not in result
        assert "export" not in result
        assert "const { useEffect } = React" not in result
        assert "React.useState('all')" in result
        assert "React.useEffect(" in result
        assert "React.createElement('div', { className: 'p-4' }" in result
        assert "React.createElement(TaskItem," in result
        assert "React.createElement(resolveComponent('Header'), null)" in result
        assert "React.createElement(React.Fragment, null)" in result
        assert result.endswith("}\n")

    @pytest.mark.unit
    def test_idempotent(self):
        once = sanitize(MODEL_OUTPUT, "TaskList")
        assert sanitize(once, "TaskList") == once

    @pytest.mark.unit
    def test_idempotent_on_clean_source(self, component_source):
        source = component_source("Header")
        assert sanitize(source, "Header") == source

    @pytest.mark.unit
    @pytest.mark.parametrize("source", [ASYNC_HELPER_SOURCE, IIFE_SOURCE])
    def test_leading_code_shapes_kept(self, source):
        result = sanitize(source, "Header")
        assert result == source
        assert check_syntax(result) is None

    @pytest.mark.unit
    def test_known_names_routed(self):
        source = (
            "function Router() {\n"
            "  var pages = { settings: SettingsPage };\n"
            "  return React.createElement(pages.settings, null);\n"
            "}\n"
            "window.Router = Router;\n"
        )
        result = sanitize(source, "Router", ["SettingsPage"])
        assert "{ settings: resolveComponent('SettingsPage') }" in result
        assert result.endswith("window.Router = Router;\n")

    @pytest.mark.unit
    def test_empty(self):
        assert sanitize("   \n", "X") == ""
        assert sanitize("```\n```", "X") == ""


class TestBinding:
    @pytest.mark.unit
    def test_is_declared(self):
        assert is_declared("const Header = () => null;", "Header")
        assert is_declared("function Header() {}", "Header")
        assert not is_declared("function HeaderBar() {}", "Header")

    @pytest.mark.unit
    def test_has_binding(self):
        assert has_binding("window.Header = Header;", "Header")
        assert not has_binding("if (window.Header == null) {}", "Header")

    @pytest.mark.unit
    def test_ensure_binding_appends(self):
        text, repaired = ensure_binding("function Header() {}\n", "Header")
        assert repaired
        assert text == "function Header() {}\n\nwindow.Header = Header;\n"

    @pytest.mark.unit
    def test_ensure_binding_noop(self):
        source = "function Header() {}\nwindow.Header = Header;\n"
        assert ensure_binding(source, "Header") == (source, False)
