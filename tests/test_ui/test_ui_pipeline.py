"""Tests for the UI-generation sub-pipeline (ideaforge.ui.pipeline).

Tests cover:
- Multi-file generation end to end against a scripted provider
- Dropped artifacts leaving the bundle consistent
- Reference healing feeding routes into the bundle
- Fallback to, and failure of, the single-file strategy
- Cancellation passing straight through
"""

from __future__ import annotations

import pytest

from ideaforge.context import RunCancelled
from ideaforge.planning.models import DesignSystem, ProjectIdea, UIPlan, UIStrategy
from ideaforge.ui.manifest import ENTRY_FILENAME, MANIFEST_FILENAME, RUNTIME_FILENAME
from ideaforge.ui.pipeline import (
    SINGLE_FILE_NODE,
    UIGenerationError,
    UIGenerationPipeline,
    design_tokens,
)

PROJECT = ProjectIdea(title="Task Tracker", description="Track daily tasks")
PLAN = UIPlan(components=["NavigationHeader", "TaskList", "Card"], layout="Stacked")


def _app_prompts(provider) -> list[str]:
    return [
        messages[-1].content
        for messages, _ in provider.calls
        if messages[-1].content.startswith("Component: App\n")
    ]


class TestMultiFile:
    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_happy_path(self, provider_factory, run_context, generation_config):
        provider = provider_factory()
        pipeline = UIGenerationPipeline(provider, generation_config)

        result = await pipeline.run(run_context, PROJECT, PLAN)

        bundle = result.bundle
        assert result.strategy is UIStrategy.MULTI_FILE
        assert not result.fell_back
        assert set(bundle.registry) == {"NavigationHeader", "TaskList", "Card", "Footer", "App"}
        assert bundle.filenames[0] == RUNTIME_FILENAME
        assert bundle.filenames[-3:] == ["App.js", MANIFEST_FILENAME, ENTRY_FILENAME]
        assert bundle.failures == ()

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_failed_artifact_dropped_and_app_still_built(
        self, provider_factory, run_context, generation_config, broken_source, component_source
    ):
        fallback = "    false ? Card : null,\n"
        provider = provider_factory(
            components={
                "Card": broken_source,
                "App": lambda name: component_source(name, fallback),
            }
        )
        pipeline = UIGenerationPipeline(provider, generation_config)

        result = await pipeline.run(run_context, PROJECT, PLAN)

        bundle = result.bundle
        assert "Card" not in bundle.registry
        assert bundle.get("Card.js") is None
        assert "App" in bundle.registry
        assert [f.name for f in bundle.failures] == ["Card"]
        assert [f.name for f in result.failures] == ["Card"]
        assert provider.component_calls("Card") == generation_config.max_attempts + 1

        (app_prompt,) = _app_prompts(provider)
        assert "Card" not in app_prompt.split("resolveComponent: ", 1)[1].splitlines()[0]
        manifest = bundle.get(MANIFEST_FILENAME).content
        assert 'var failed = ["Card"];' in manifest
        assert "false ? resolveComponent('Card') : null," in bundle.get("App.js").content

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_navigation_route_synthesised(
        self, provider_factory, run_context, generation_config, component_source
    ):
        link = (
            "    React.createElement('a', { href: '#', onClick: function () { "
            "navigate('settings'); } }, 'Settings'),\n"
        )
        provider = provider_factory(
            components={"NavigationHeader": lambda name: component_source(name, link)}
        )
        pipeline = UIGenerationPipeline(provider, generation_config)

        result = await pipeline.run(run_context, PROJECT, PLAN)

        bundle = result.bundle
        assert bundle.routes == {"settings": "SettingsPage"}
        assert bundle.registry["SettingsPage"] == "SettingsPage.js"
        order = bundle.filenames
        assert order.index("SettingsPage.js") < order.index("App.js")
        (app_prompt,) = _app_prompts(provider)
        assert "Routes: settings." in app_prompt


class TestFallback:
    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_falls_back_to_single_file(
        self, provider_factory, run_context, generation_config, broken_source, component_source
    ):
        attempts = generation_config.max_attempts + 1
        provider = provider_factory(
            components={"App": [broken_source] * attempts + [component_source("App")]}
        )
        pipeline = UIGenerationPipeline(provider, generation_config)

        result = await pipeline.run(run_context, PROJECT, PLAN)

        assert result.fell_back
        assert result.strategy is UIStrategy.SINGLE_FILE
        assert "App failed validation" in result.primary_error
        assert result.bundle.registry == {"App": "App.js"}
        assert result.bundle.strategy == "single_file"
        assert "Single file:" in _app_prompts(provider)[-1]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_both_strategies_fail(
        self, provider_factory, run_context, generation_config, broken_source
    ):
        provider = provider_factory(components={"App": broken_source})
        pipeline = UIGenerationPipeline(provider, generation_config)

        with pytest.raises(UIGenerationError, match="single-file fallback failed"):
            await pipeline.run(run_context, PROJECT, PLAN)
        assert provider.component_calls("App") == 2 * (generation_config.max_attempts + 1)

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_single_file_strategy_requested(
        self, provider_factory, run_context, progress_log, generation_config
    ):
        provider = provider_factory()
        pipeline = UIGenerationPipeline(provider, generation_config)

        result = await pipeline.run(run_context, PROJECT, PLAN, UIStrategy.SINGLE_FILE)
        await run_context.progress.aclose()

        assert not result.fell_back
        assert len(provider.calls) == 1
        assert result.bundle.registry == {"App": "App.js"}
        assert progress_log.statuses(SINGLE_FILE_NODE)[-1].value == "success"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_cancellation_not_swallowed(self, provider_factory, run_context, generation_config):
        provider = provider_factory()
        pipeline = UIGenerationPipeline(provider, generation_config)
        run_context.token.cancel("user stop")

        with pytest.raises(RunCancelled):
            await pipeline.run(run_context, PROJECT, PLAN)
        assert provider.calls == []


class TestDesignTokens:
    @pytest.mark.unit
    def test_defaults_without_design_system(self):
        assert design_tokens(None).primary_color == "blue-600"
        assert design_tokens(UIPlan()).background_color == "gray-50"

    @pytest.mark.unit
    def test_design_system_overrides(self):
        plan = UIPlan(
            design_system=DesignSystem(
                primary_color="emerald-600", spacing_scale=["p-3"], component_patterns=[]
            )
        )
        tokens = design_tokens(plan)
        assert tokens.primary_color == "emerald-600"
        assert tokens.spacing_scale == ("p-3",)
        assert tokens.patterns == ("rounded-lg", "shadow-md")
