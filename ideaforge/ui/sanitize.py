"""Ordered pipeline of pure text transforms applied to generated artifacts.

Model output is close to, but rarely exactly, a plain browser script: it
arrives wrapped in markdown fences, preceded by chatter, with ES-module
syntax and bare hook calls. Each transform below fixes one of those problems,
takes and returns text, and is idempotent. The whole pipeline is idempotent
too, so sanitising already-sanitised text is a no-op.

The last transform routes component references that cross artifact
boundaries through ``resolveComponent('<Name>')``; the runtime shim
resolves those lookups to the real component or to a visible placeholder.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable

HOOKS: tuple[str, ...] = (
    "useState",
    "useEffect",
    "useCallback",
    "useMemo",
    "useRef",
    "useContext",
    "useReducer",
    "useLayoutEffect",
)

LOOKUP_FUNCTION = "resolveComponent"

# Leading words that start a statement rather than a sentence.
CODE_WORDS: frozenset[str] = frozenset(
    {
        "async", "await", "break", "case", "catch", "class", "const", "continue",
        "debugger", "default", "delete", "do", "else", "export", "finally", "for",
        "function", "if", "import", "let", "new", "return", "switch", "throw", "try",
        "typeof", "var", "void", "while", "with", "yield",
        "window", "document", "console", "React", "ReactDOM",
    }
)

# Capitalised globals that are never generated components.
BROWSER_GLOBALS: frozenset[str] = frozenset(
    {
        "React", "ReactDOM", "Object", "Array", "JSON", "Math", "Date", "Promise",
        "Error", "TypeError", "Number", "String", "Boolean", "Symbol", "Map", "Set",
        "WeakMap", "WeakSet", "RegExp", "Intl", "URL", "URLSearchParams", "Event",
        "CustomEvent", "Node", "Element", "HTMLElement", "Image", "Audio", "FormData",
        "Blob", "File", "FileReader", "Notification", "IntersectionObserver",
        "ResizeObserver", "MutationObserver", "AbortController", "Headers", "Request",
        "Response", "WebSocket", "Worker", "Infinity", "NaN",
    }
)

_FENCE_RE = re.compile(r"^[ \t]*```[\w+-]*[ \t]*(?:\n|$)", re.MULTILINE)
_MARKDOWN_LINE_RE = re.compile(r"^[ \t]*(?:#{1,6}[ \t]|>[ \t]|[-*+][ \t]|\d+\.[ \t]|\*\*)")
_SENTENCE_LINE_RE = re.compile(
    r"^[ \t]*([A-Za-z][\w'’]*)[,:]?"
    r"(?:[ \t]+[\"“(]?\w[\w'’\"”,:!?()-]*\.?)*"
    r"[ \t]*[.:!?]?[ \t]*$"
)
_IMPORT_FROM_RE = re.compile(
    r"^[ \t]*import\s[^;'\"]*?\bfrom\s*['\"][^'\"\n]+['\"][ \t]*;?[ \t]*(?:\n|$)", re.MULTILINE
)
_IMPORT_BARE_RE = re.compile(r"^[ \t]*import\s*['\"][^'\"\n]+['\"][ \t]*;?[ \t]*(?:\n|$)", re.MULTILINE)
_REQUIRE_RE = re.compile(
    r"^[ \t]*(?:const|let|var)\s+[^=\n]+=\s*require\([^)\n]*\)[ \t]*;?[ \t]*(?:\n|$)", re.MULTILINE
)
_EXPORT_DECL_RE = re.compile(
    r"^([ \t]*)export\s+(?:default\s+)?(?=(?:async\s+)?(?:function|class|const|let|var)\b)",
    re.MULTILINE,
)
_EXPORT_NAME_RE = re.compile(
    r"^[ \t]*export\s+default\s+[A-Za-z_$][\w$]*[ \t]*;?[ \t]*(?:\n|$)", re.MULTILINE
)
_EXPORT_LIST_RE = re.compile(r"^[ \t]*export\s*\{[^}]*\}[ \t]*;?[ \t]*(?:\n|$)", re.MULTILINE)
_REACT_DESTRUCTURE_RE = re.compile(
    r"^[ \t]*(?:const|let|var)\s*\{[^}]*\}\s*=\s*(?:window\.)?React(?:DOM)?[ \t]*;?[ \t]*(?:\n|$)",
    re.MULTILINE,
)
_HOOK_RE = re.compile(r"(?<![.\w$])(" + "|".join(HOOKS) + r")\s*\(")
_CREATE_ELEMENT_RE = re.compile(r"(?<![.\w$])createElement\s*\(")
_CLASS_KEY_RE = re.compile(r"([{,]\s*)(?:class|'class'|\"class\")(\s*:)")
_WINDOW_ALIAS_RE = re.compile(
    r"^([ \t]*)(const|let|var)\s+([A-Z][\w$]*)\s*=\s*window\.\3\b[^;\n]*;?[ \t]*$",
    re.MULTILINE,
)
_LOCAL_DECL_RE = re.compile(r"\b(?:const|let|var|function|class)\s+([A-Z][\w$]*)")
_DESTRUCTURE_RE = re.compile(r"\b(?:const|let|var)\s*\{([^{}]*)\}\s*=")
_IDENTIFIER_RE = re.compile(r"[A-Za-z_$][\w$]*")
_TOKEN_RE = re.compile(
    r"(?P<skip>//[^\n]*|/\*.*?\*/|'(?:\\.|[^'\\\n])*'|\"(?:\\.|[^\"\\\n])*\"|`(?:\\.|[^`\\])*`)"
    r"|(?P<ref>(?<![\w$.])(?:window\.)?[A-Z][A-Za-z0-9$]*[a-z][A-Za-z0-9$]*(?![\w$.]))"
    r"|(?P<open>[({\[])"
    r"|(?P<close>[)}\]])",
    re.DOTALL,
)
_CREATE_ARG_RE = re.compile(r"React\.createElement\(\s*$")
_ASSIGN_RE = re.compile(r"\s*=(?![=>])")
_NEXT_CHAR_RE = re.compile(r"\s*(\S?)")


# ---------------------------------------------------------------------------
# Transforms
# ---------------------------------------------------------------------------


def strip_fences(text: str) -> str:
    """Remove markdown code-fence lines."""
    return _FENCE_RE.sub("", text)


def is_prose_line(line: str) -> bool:
    """True for blank lines, markdown and plain sentences.

    A line of words counts as a sentence unless its first word starts a
    statement (``async``, ``window``, ``React``...). Anything with operators,
    braces, semicolons or member access is code.
    """
    if not line.strip() or _MARKDOWN_LINE_RE.match(line):
        return True
    match = _SENTENCE_LINE_RE.match(line)
    return match is not None and match.group(1) not in CODE_WORDS


def strip_leading_prose(text: str) -> str:
    """Drop chatter lines before the first line that looks like code."""
    lines = text.splitlines(keepends=True)
    for index, line in enumerate(lines):
        if not is_prose_line(line):
            return "".join(lines[index:])
    return text


def strip_imports(text: str) -> str:
    """Remove ES-module imports and CommonJS requires; React is a global."""
    text = _IMPORT_FROM_RE.sub("", text)
    text = _IMPORT_BARE_RE.sub("", text)
    return _REQUIRE_RE.sub("", text)


def strip_exports(text: str) -> str:
    """Turn ``export [default] <decl>`` into ``<decl>`` and drop re-export lines."""
    text = _EXPORT_DECL_RE.sub(r"\1", text)
    text = _EXPORT_NAME_RE.sub("", text)
    return _EXPORT_LIST_RE.sub("", text)


def remove_react_destructuring(text: str) -> str:
    """Remove ``const { useState } = React;`` style lines."""
    return _REACT_DESTRUCTURE_RE.sub("", text)


def qualify_hooks(text: str) -> str:
    """``useState(`` -> ``React.useState(``."""
    return _HOOK_RE.sub(r"React.\1(", text)


def qualify_create_element(text: str) -> str:
    return _CREATE_ELEMENT_RE.sub("React.createElement(", text)


def fix_class_keys(text: str) -> str:
    """``{ class: 'x' }`` -> ``{ className: 'x' }`` in props objects."""
    return _CLASS_KEY_RE.sub(r"\1className\2", text)


def local_names(text: str) -> set[str]:
    """Capitalised names declared in *text*, destructured names included."""
    names = set(_LOCAL_DECL_RE.findall(text))
    for group in _DESTRUCTURE_RE.findall(text):
        names.update(_IDENTIFIER_RE.findall(group))
    return names


def route_component_references(
    text: str, own_name: str = "", known_names: Iterable[str] = ()
) -> str:
    """Send cross-artifact component references through the lookup.

    A reference becomes ``resolveComponent('<Name>')`` when it is
    ``window``-qualified, when *Name* is one of *known_names*, or when it is
    the element type passed to ``React.createElement``. That covers
    ``React.createElement(Header, ...)``, ``{ settings: SettingsPage }``,
    ``open ? Modal : null`` and ``window.Header || 'div'`` alike. An alias
    line such as ``const Header = window.Header;`` takes its value from the
    lookup instead.

    Left alone: names declared in *text*, *own_name*, browser globals,
    assignment targets (``window.Header = Header;``), object keys, member
    accesses, strings and comments. Shorthand properties are expanded
    (``{ Header }`` -> ``{ Header: resolveComponent('Header') }``).
    """

    def _alias(match: re.Match[str]) -> str:
        indent, keyword, name = match.groups()
        if name == own_name:
            return match.group(0)
        return f"{indent}{keyword} {name} = {LOOKUP_FUNCTION}('{name}');"

    text = _WINDOW_ALIAS_RE.sub(_alias, text)
    keep = local_names(text) | BROWSER_GLOBALS
    if own_name:
        keep.add(own_name)
    known = set(known_names)

    pieces: list[str] = []
    brackets: list[str] = []
    last = 0
    for match in _TOKEN_RE.finditer(text):
        if match.group("open"):
            brackets.append(match.group("open"))
            continue
        if match.group("close"):
            if brackets:
                brackets.pop()
            continue
        ref = match.group("ref")
        if not ref:
            continue

        start, end = match.span()
        qualified = ref.startswith("window.")
        name = ref[len("window."):] if qualified else ref
        direct = _CREATE_ARG_RE.search(text, max(0, start - 64), start) is not None
        if direct and name == "Fragment":
            replacement = "React.Fragment"
        elif name in keep or _ASSIGN_RE.match(text, end):
            continue
        else:
            before = text[max(0, start - 200):start].rstrip()
            following = _NEXT_CHAR_RE.match(text, end).group(1)
            in_object = brackets[-1:] == ["{"] and before[-1:] in ("{", ",")
            if in_object and following == ":":
                continue
            if not (qualified or direct or name in known):
                continue
            replacement = f"{LOOKUP_FUNCTION}('{name}')"
            if in_object and following in (",", "}") and not qualified:
                replacement = f"{name}: {replacement}"
        pieces.append(text[last:start])
        pieces.append(replacement)
        last = end
    pieces.append(text[last:])
    return "".join(pieces)


TEXT_TRANSFORMS: tuple[Callable[[str], str], ...] = (
    strip_fences,
    strip_leading_prose,
    strip_imports,
    strip_exports,
    remove_react_destructuring,
    qualify_hooks,
    qualify_create_element,
    fix_class_keys,
)


def sanitize(text: str, name: str = "", known_names: Iterable[str] = ()) -> str:
    """Run every transform in order, then normalise surrounding whitespace.

    *known_names* are the other artifacts of the run, generated or failed;
    bare references to them are routed through the lookup.
    """
    for transform in TEXT_TRANSFORMS:
        text = transform(text)
    text = route_component_references(text, own_name=name, known_names=known_names).strip()
    return f"{text}\n" if text else ""


# ---------------------------------------------------------------------------
# Binding repair
# ---------------------------------------------------------------------------


def is_declared(text: str, name: str) -> bool:
    """True when *name* is declared as a function, class or variable."""
    pattern = rf"\b(?:const|let|var|function|class)\s+{re.escape(name)}\b"
    return re.search(pattern, text) is not None


def has_binding(text: str, name: str) -> bool:
    return re.search(rf"\bwindow\.{re.escape(name)}\s*=(?!=)", text) is not None


def ensure_binding(text: str, name: str) -> tuple[str, bool]:
    """Append ``window.<name> = <name>;`` when missing.

    Returns:
        The (possibly) repaired text and whether a repair was made.
    """
    if has_binding(text, name):
        return text, False
    body = text.rstrip()
    return f"{body}\n\nwindow.{name} = {name};\n", True
