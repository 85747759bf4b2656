"""Shared pytest fixtures for the IdeaForge test suite.

Provides reusable fixtures for:
- A scripted, in-memory text-generation provider
- Valid generated component sources
- Run contexts wired to a recording progress log
- Temporary configuration and project stores
"""

from __future__ import annotations

import asyncio
import json
import re
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from ideaforge.config import Config, GenerationConfig, LocalProviderConfig
from ideaforge.context import CancellationToken, RunContext
from ideaforge.events import ProgressChannel, ProgressLog
from ideaforge.planning import prompts as planning_prompts
from ideaforge.providers.base import ChatMessage, CompletionOptions
from ideaforge.storage import FileSystemStore


# ---------------------------------------------------------------------------
# Generated sources
# ---------------------------------------------------------------------------


def make_component(name: str, extra: str = "") -> str:
    """Return a valid browser-script component bound as ``window.<name>``.

    *extra* is inserted as additional children and must end with ``,\\n``.
    """
    return (
        f"function {name}(props) {{\n"
        "  const [open, setOpen] = React.useState(false);\n"
        "  return React.createElement(\n"
        "    'div',\n"
        "    { className: 'p-4 bg-white rounded-lg shadow-md' },\n"
        f"    React.createElement('h2', {{ className: 'text-lg font-semibold' }}, '{name}'),\n"
        f"{extra}"
        "    React.createElement('button', { className: 'px-3 py-1 bg-blue-600 text-white rounded', "
        "onClick: function () { setOpen(!open); } }, open ? 'Hide' : 'Show')\n"
        "  );\n"
        "}\n"
        "\n"
        f"window.{name} = {name};\n"
    )


BROKEN_SOURCE = "function Broken( {\n  return React.createElement('div', null\n"


# ---------------------------------------------------------------------------
# Scripted provider
# ---------------------------------------------------------------------------

_COMPONENT_LINE = re.compile(r"^Component: (\w+)$", re.MULTILINE)

DEFAULT_PLANNING: dict[str, Any] = {
    planning_prompts.IDEA_SYSTEM: "Task Tracker\nA simple app to track daily tasks.",
    planning_prompts.REQUIREMENTS_SYSTEM: json.dumps(
        {
            "problem": "People forget their daily tasks",
            "goals": ["Add tasks", "Mark tasks as done"],
            "scope": "Single-user web app",
            "constraints": ["Runs in the browser"],
            "success_criteria": ["Tasks persist during a session"],
        }
    ),
    planning_prompts.CHECKLIST_SYSTEM: json.dumps(
        [{"text": "Set up the project", "done": False}, {"text": "Build the task list"}]
    ),
    planning_prompts.NOTES_SYSTEM: json.dumps(
        {
            "assumptions": ["Users are on desktop"],
            "decisions": ["Keep state in memory"],
            "contextLinks": [],
        }
    ),
    planning_prompts.UI_PLAN_SYSTEM: json.dumps(
        {
            "components": ["NavigationHeader", "TaskList"],
            "layout": "Header on top, task list below",
            "user_interactions": ["add a task"],
        }
    ),
}


class ScriptedProvider:
    """In-memory ``TextGenerationProvider``.

    Planning answers are keyed by the stage's system prompt; artifact answers
    by the ``Component: <Name>`` line of the prompt. A component script is a
    list consumed one entry per call, with the last entry repeating. Entries
    may be text, an exception instance (raised), or a callable taking the
    component name. Unscripted components get a valid source.
    """

    def __init__(
        self,
        planning: dict[str, Any] | None = None,
        components: dict[str, Any] | None = None,
        delay: float = 0.0,
    ) -> None:
        self.planning = dict(DEFAULT_PLANNING)
        self.planning.update(planning or {})
        self.components = {
            name: list(script) if isinstance(script, list) else [script]
            for name, script in (components or {}).items()
        }
        self.delay = delay
        self.calls: list[tuple[list[ChatMessage], CompletionOptions]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def complete(self, messages: list[ChatMessage], options: CompletionOptions) -> str:
        self.calls.append((messages, options))
        if self.delay:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            try:
                await asyncio.sleep(self.delay)
            finally:
                self.in_flight -= 1

        match = _COMPONENT_LINE.search(messages[-1].content)
        if match:
            name = match.group(1)
            script = self.components.get(name)
            if not script:
                value: Any = make_component
            elif len(script) > 1:
                value = script.pop(0)
            else:
                value = script[0]
        else:
            name = ""
            value = self.planning.get(options.system_instruction or "", "")

        if isinstance(value, BaseException):
            raise value
        if callable(value):
            return value(name)
        return value

    def component_calls(self, name: str) -> int:
        return sum(
            1
            for messages, _ in self.calls
            if (m := _COMPONENT_LINE.search(messages[-1].content)) and m.group(1) == name
        )

    def component_options(self, name: str) -> list[CompletionOptions]:
        return [
            options
            for messages, options in self.calls
            if (m := _COMPONENT_LINE.search(messages[-1].content)) and m.group(1) == name
        ]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def component_source() -> Callable[..., str]:
    """Factory for valid component sources."""
    return make_component


@pytest.fixture
def provider_factory() -> type[ScriptedProvider]:
    return ScriptedProvider


@pytest.fixture
def scripted_provider() -> ScriptedProvider:
    return ScriptedProvider()


@pytest.fixture
def generation_config() -> GenerationConfig:
    return GenerationConfig(max_attempts=2, max_parallel_generators=2)


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Configuration writing into a temporary directory."""
    return Config(
        provider=LocalProviderConfig(),
        generation=GenerationConfig(max_attempts=1, max_parallel_generators=2),
        output_dir=tmp_path / "output",
    )


@pytest.fixture
def progress_log() -> ProgressLog:
    return ProgressLog()


@pytest.fixture
def run_context(progress_log: ProgressLog) -> RunContext:
    """Run context whose channel records into ``progress_log``.

    The channel is not started; ``await ctx.progress.aclose()`` drains it.
    """
    return RunContext(ProgressChannel([progress_log]), CancellationToken(), run_id="test-run")


@pytest.fixture
def store(tmp_path: Path) -> FileSystemStore:
    return FileSystemStore(tmp_path / "projects")


@pytest.fixture
def broken_source() -> str:
    """Source that does not parse."""
    return BROKEN_SOURCE
