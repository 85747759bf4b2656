"""Unit tests for ReferenceResolver (ideaforge.ui.references).

Tests cover:
- page_name / find_routes / find_lookups
- scan: unresolved routes and names, exclusions
- plan: page specs with layout dependency, stub specs by kind
- resolve: synthesis through the generator, route map, single pass
"""

from __future__ import annotations

import pytest

from ideaforge.events import NodeStatus
from ideaforge.ui.generator import ComponentGenerator
from ideaforge.ui.models import (
    ArtifactKind,
    GeneratedArtifact,
    GenerationContext,
    ScanResult,
)
from ideaforge.ui.references import (
    RESOLVE_NODE,
    ReferenceResolver,
    find_lookups,
    find_routes,
    page_name,
)

CONTEXT = GenerationContext(title="Task Tracker", other_names=("Header", "TaskList"))


def _navigate(route: str) -> str:
    return (
        "    React.createElement('a', { href: '#', onClick: function () { "
        f"navigate('{route}'); }} }}, '{route}'),\n"
    )


def _lookup(name: str) -> str:
    return f"    React.createElement(resolveComponent('{name}'), null),\n"


def _artifact(source_factory, name: str, kind: ArtifactKind, extra: str = "") -> GeneratedArtifact:
    return GeneratedArtifact(
        filename=f"{name}.js", name=name, content=source_factory(name, extra), kind=kind
    )


class TestHelpers:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "route, expected",
        [("settings", "SettingsPage"), ("user-profile", "UserProfilePage"), ("reportsPage", "ReportsPage")],
    )
    def test_page_name(self, route, expected):
        assert page_name(route) == expected

    @pytest.mark.unit
    def test_find_routes(self):
        content = (
            "navigate('settings'); navigate(\"user-profile\", { replace: true });"
            "navigate(`item-${id}`); navigate('/absolute/path'); navigateTo('x');"
        )
        assert find_routes(content) == {"settings", "user-profile"}

    @pytest.mark.unit
    def test_find_lookups(self):
        content = "resolveComponent('StatsPanel'); resolveComponent( \"Sidebar\" ); resolveComponent(name)"
        assert find_lookups(content) == {"StatsPanel", "Sidebar"}


class TestScan:
    @pytest.mark.unit
    def test_unresolved_routes_and_names(self, component_source):
        header = _artifact(
            component_source,
            "Header",
            ArtifactKind.NAVIGATION,
            _navigate("settings") + _navigate("tasks") + _lookup("TaskList"),
        )
        tasks_page = _artifact(component_source, "TasksPage", ArtifactKind.PAGE)
        task_list = _artifact(
            component_source,
            "TaskList",
            ArtifactKind.DATA_DISPLAY,
            _lookup("StatsPanel") + _lookup("Card") + _lookup("App"),
        )

        resolver = ReferenceResolver(generator=None)  # type: ignore[arg-type]
        scan = resolver.scan([header, tasks_page, task_list], excluded={"Card"})

        assert scan.routes == frozenset({"settings"})
        assert scan.unresolved_names == frozenset({"StatsPanel"})
        assert not scan.empty

    @pytest.mark.unit
    def test_clean_artifacts(self, component_source):
        resolver = ReferenceResolver(generator=None)  # type: ignore[arg-type]
        scan = resolver.scan([_artifact(component_source, "Header", ArtifactKind.NAVIGATION)])
        assert scan.empty


class TestPlan:
    @pytest.mark.unit
    def test_pages_then_stubs(self, component_source):
        header = _artifact(component_source, "Header", ArtifactKind.NAVIGATION)
        scan = ScanResult(
            routes=frozenset({"settings", "about"}),
            unresolved_names=frozenset({"StatsChart", "ReportPage", "Helper", "AboutPage"}),
        )
        resolver = ReferenceResolver(generator=None)  # type: ignore[arg-type]
        specs = resolver.plan(scan, [header])

        assert [s.name for s in specs] == [
            "AboutPage",
            "SettingsPage",
            "Helper",
            "ReportPage",
            "StatsChart",
        ]
        pages = specs[:2]
        assert all(s.kind is ArtifactKind.PAGE for s in pages)
        assert [s.route for s in pages] == ["about", "settings"]
        assert all(s.layout_dependency == "Header" for s in pages)
        kinds = {s.name: s.kind for s in specs[2:]}
        assert kinds == {
            "Helper": ArtifactKind.GENERIC,
            "ReportPage": ArtifactKind.GENERIC,
            "StatsChart": ArtifactKind.VISUALIZATION,
        }

    @pytest.mark.unit
    def test_no_navigation_no_layout(self, component_source):
        resolver = ReferenceResolver(generator=None)  # type: ignore[arg-type]
        specs = resolver.plan(
            ScanResult(routes=frozenset({"settings"})),
            [_artifact(component_source, "TaskList", ArtifactKind.DATA_DISPLAY)],
        )
        assert specs[0].layout_dependency is None


class TestResolve:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_navigate_synthesises_page(
        self, provider_factory, run_context, progress_log, generation_config, component_source
    ):
        provider = provider_factory()
        resolver = ReferenceResolver(ComponentGenerator(provider, generation_config), max_parallel=2)
        header = _artifact(
            component_source, "Header", ArtifactKind.NAVIGATION, _navigate("settings")
        )

        outcome = await resolver.resolve(run_context, [header], CONTEXT)
        await run_context.progress.aclose()

        assert [a.name for a in outcome.artifacts] == ["SettingsPage"]
        assert outcome.artifacts[0].kind is ArtifactKind.PAGE
        assert outcome.routes == {"settings": "SettingsPage"}
        assert outcome.failures == []

        prompt = provider.calls[0][0][-1].content
        assert "navigate('settings')" in prompt
        assert "resolveComponent('Header')" in prompt

        rescan = resolver.scan([header, *outcome.artifacts])
        assert rescan.empty
        assert progress_log.statuses(RESOLVE_NODE) == [NodeStatus.IN_PROGRESS, NodeStatus.SUCCESS]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_route_spellings_share_one_page(
        self, provider_factory, run_context, generation_config, component_source
    ):
        provider = provider_factory()
        resolver = ReferenceResolver(ComponentGenerator(provider, generation_config))
        header = _artifact(
            component_source,
            "Header",
            ArtifactKind.NAVIGATION,
            _navigate("settings") + _navigate("Settings"),
        )

        outcome = await resolver.resolve(run_context, [header], CONTEXT)

        assert [a.name for a in outcome.artifacts] == ["SettingsPage"]
        assert provider.component_calls("SettingsPage") == 1
        assert outcome.routes == {"Settings": "SettingsPage", "settings": "SettingsPage"}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_routes_to_existing_pages_mapped(
        self, provider_factory, run_context, generation_config, component_source
    ):
        provider = provider_factory()
        resolver = ReferenceResolver(ComponentGenerator(provider, generation_config))
        header = _artifact(component_source, "Header", ArtifactKind.NAVIGATION, _navigate("tasks"))
        tasks_page = _artifact(component_source, "TasksPage", ArtifactKind.PAGE)

        outcome = await resolver.resolve(run_context, [header, tasks_page], CONTEXT)

        assert outcome.scan.empty
        assert provider.calls == []
        assert outcome.routes == {"tasks": "TasksPage"}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_stub_for_unknown_name(
        self, provider_factory, run_context, generation_config, component_source
    ):
        provider = provider_factory()
        resolver = ReferenceResolver(ComponentGenerator(provider, generation_config))
        task_list = _artifact(
            component_source, "TaskList", ArtifactKind.DATA_DISPLAY, _lookup("StatsPanel")
        )

        outcome = await resolver.resolve(run_context, [task_list], CONTEXT)

        assert [a.name for a in outcome.artifacts] == ["StatsPanel"]
        assert outcome.routes == {}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failed_synthesis_recorded(
        self, provider_factory, run_context, generation_config, component_source, broken_source
    ):
        provider = provider_factory(components={"SettingsPage": broken_source})
        resolver = ReferenceResolver(ComponentGenerator(provider, generation_config))
        header = _artifact(
            component_source, "Header", ArtifactKind.NAVIGATION, _navigate("settings")
        )

        outcome = await resolver.resolve(run_context, [header], CONTEXT)

        assert outcome.artifacts == []
        assert [f.name for f in outcome.failures] == ["SettingsPage"]
        assert outcome.routes == {}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_nothing_to_resolve(
        self, provider_factory, run_context, generation_config, component_source
    ):
        provider = provider_factory()
        resolver = ReferenceResolver(ComponentGenerator(provider, generation_config))

        outcome = await resolver.resolve(
            run_context, [_artifact(component_source, "Header", ArtifactKind.NAVIGATION)], CONTEXT
        )

        assert outcome.scan.empty
        assert outcome.artifacts == []
        assert provider.calls == []
