"""ReferenceResolver: heal references that only show up after generation.

Generated artifacts can call ``navigate('settings')`` for a page nobody
planned, or ``resolveComponent('StatsPanel')`` for a component that was never
generated. ``scan`` finds both; ``resolve`` synthesises a page per route and a
stub per remaining name through the ComponentGenerator.

Resolution makes exactly one pass. Artifacts synthesised here are added to
the bundle but are not scanned again, so a synthesised page that navigates to
yet another unknown route leaves that route to the runtime placeholder.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from ..context import RunContext
from ..events import NodeStatus
from ..utils import pascal_case
from .generator import UI_NODE, ComponentGenerator, generate_batch
from .models import (
    ROOT_CONTAINER_NAME,
    ArtifactFailure,
    ArtifactKind,
    ArtifactSpec,
    GeneratedArtifact,
    GenerationContext,
    ScanResult,
)
from .sanitize import LOOKUP_FUNCTION
from .spec_resolver import classify_kind

RESOLVE_NODE = "ResolveReferences"

_NAVIGATE_RE = re.compile(r"\bnavigate\(\s*(['\"`])(.*?)\1\s*[,)]")
_LOOKUP_RE = re.compile(LOOKUP_FUNCTION + r"\(\s*(['\"])([A-Za-z_$][\w$]*)\1\s*\)")
_SIMPLE_ROUTE_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_-]*$")


def page_name(route: str) -> str:
    """``settings`` -> ``SettingsPage``; ``user-profile`` -> ``UserProfilePage``."""
    base = pascal_case(route)
    return base if base.endswith("Page") else f"{base}Page"


def find_routes(content: str) -> set[str]:
    """Simple route identifiers passed to ``navigate(...)`` in *content*.

    Template-interpolated and path-like values are skipped.
    """
    return {
        route
        for _, route in _NAVIGATE_RE.findall(content)
        if _SIMPLE_ROUTE_RE.fullmatch(route)
    }


def find_lookups(content: str) -> set[str]:
    return {name for _, name in _LOOKUP_RE.findall(content)}


def route_map(artifacts: Iterable[GeneratedArtifact], pages: Iterable[str]) -> dict[str, str]:
    """Map every route navigated to in *artifacts* whose page is among *pages*.

    Routes differing only in spelling (``settings`` and ``Settings``) share a page.
    """
    pages = set(pages)
    routes: set[str] = set()
    for artifact in artifacts:
        routes |= find_routes(artifact.content)
    return {route: page_name(route) for route in sorted(routes) if page_name(route) in pages}


@dataclass
class ResolutionOutcome:
    """What one resolution pass added."""

    scan: ScanResult
    artifacts: list[GeneratedArtifact] = field(default_factory=list)
    failures: list[ArtifactFailure] = field(default_factory=list)
    routes: dict[str, str] = field(default_factory=dict)


class ReferenceResolver:
    """Discover unresolved routes and names, then synthesise the missing artifacts."""

    def __init__(self, generator: ComponentGenerator, max_parallel: int = 3) -> None:
        self.generator = generator
        self.max_parallel = max_parallel

    def scan(
        self, artifacts: Iterable[GeneratedArtifact], excluded: Iterable[str] = ()
    ) -> ScanResult:
        """Report routes without a page and lookups without an artifact.

        Names in *excluded* (artifacts that already failed) and the root
        container are never reported.
        """
        artifacts = list(artifacts)
        existing = {artifact.name for artifact in artifacts}
        skip = existing | set(excluded) | {ROOT_CONTAINER_NAME}

        routes: set[str] = set()
        names: set[str] = set()
        for artifact in artifacts:
            routes |= find_routes(artifact.content)
            names |= find_lookups(artifact.content)

        return ScanResult(
            routes=frozenset(r for r in routes if page_name(r) not in existing),
            unresolved_names=frozenset(n for n in names if n not in skip),
        )

    def plan(self, scan: ScanResult, artifacts: Iterable[GeneratedArtifact]) -> list[ArtifactSpec]:
        """Turn a scan into page specs (sorted by route) followed by stub specs."""
        artifacts = list(artifacts)
        existing = {artifact.name for artifact in artifacts}
        layout = next(
            (a.name for a in artifacts if a.kind is ArtifactKind.NAVIGATION), None
        )

        specs: list[ArtifactSpec] = []
        planned: set[str] = set()
        for route in sorted(scan.routes):
            name = page_name(route)
            if name in existing or name in planned:
                continue
            planned.add(name)
            specs.append(
                ArtifactSpec(
                    name=name, kind=ArtifactKind.PAGE, route=route, layout_dependency=layout
                )
            )

        for name in sorted(scan.unresolved_names):
            if name in existing or name in planned:
                continue
            planned.add(name)
            kind = classify_kind(name)
            if kind is ArtifactKind.PAGE:
                kind = ArtifactKind.GENERIC
            specs.append(ArtifactSpec(name=name, kind=kind))
        return specs

    async def resolve(
        self,
        ctx: RunContext,
        artifacts: list[GeneratedArtifact],
        context: GenerationContext,
        excluded: Iterable[str] = (),
    ) -> ResolutionOutcome:
        """Run the single resolution pass over *artifacts*."""
        excluded = tuple(excluded)
        scan = self.scan(artifacts, excluded)
        outcome = ResolutionOutcome(scan=scan)
        ctx.emit(RESOLVE_NODE, NodeStatus.IN_PROGRESS, parent_id=UI_NODE)
        existing = [artifact.name for artifact in artifacts]
        if scan.empty:
            outcome.routes = route_map(artifacts, existing)
            ctx.emit(RESOLVE_NODE, NodeStatus.SUCCESS, "no unresolved references", UI_NODE)
            return outcome

        specs = self.plan(scan, artifacts)
        names = tuple(dict.fromkeys([*context.other_names, *(s.name for s in specs)]))
        routes = tuple(s.route for s in specs if s.route)
        synth_context = context.model_copy(
            update={
                "other_names": names,
                "routes": (*context.routes, *routes),
                "failed_names": tuple(dict.fromkeys([*context.failed_names, *excluded])),
            }
        )

        batch = await generate_batch(ctx, self.generator, specs, synth_context, self.max_parallel)
        outcome.artifacts = batch.artifacts
        outcome.failures = batch.failures
        generated = [artifact.name for artifact in batch.artifacts]
        outcome.routes = route_map(artifacts, [*existing, *generated])

        message = (
            f"{len(scan.routes)} route(s), {len(scan.unresolved_names)} name(s); "
            f"{len(batch.artifacts)} synthesised, {len(batch.failures)} failed"
        )
        ctx.emit(RESOLVE_NODE, NodeStatus.SUCCESS, message, UI_NODE)
        return outcome
