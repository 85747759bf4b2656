"""Turn a loosely-structured UI plan into concrete artifact specs.

The root container is never part of the result: it is generated last by the
UI pipeline from the final artifact list (see ``container_spec``).
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from ..planning.models import UIPlan
from ..utils import is_identifier, pascal_case
from .models import ROOT_CONTAINER_NAME, ArtifactKind, ArtifactSpec

DEFAULT_SPECS: tuple[ArtifactSpec, ...] = (
    ArtifactSpec(name="Header", kind=ArtifactKind.NAVIGATION),
    ArtifactSpec(name="MainContent", kind=ArtifactKind.GENERIC),
    ArtifactSpec(name="Footer", kind=ArtifactKind.FOOTER),
)

DEFAULT_FOOTER = ArtifactSpec(name="Footer", kind=ArtifactKind.FOOTER)

# Authentication screens are excluded from generation.
AUTH_PATTERNS: tuple[str, ...] = (
    r"log[-_ ]?in",
    r"log[-_ ]?out",
    r"sign[-_ ]?(?:in|up|out)",
    r"regist(?:er|ration)",
    r"password",
    r"auth(?!or)",
    r"credential",
)
_AUTH_RE = re.compile("|".join(AUTH_PATTERNS), re.IGNORECASE)

# Any name containing one of these denotes the root container.
CONTAINER_KEYWORDS: tuple[str, ...] = ("app", "main", "container")

# Checked in order; the first keyword found in the lowercased name wins.
KIND_KEYWORDS: tuple[tuple[ArtifactKind, tuple[str, ...]], ...] = (
    (ArtifactKind.NAVIGATION, ("header", "navbar", "navigation", "topbar", "nav")),
    (ArtifactKind.SIDEBAR, ("sidebar", "menu", "drawer")),
    (ArtifactKind.FOOTER, ("footer",)),
    (ArtifactKind.MODAL, ("modal", "dialog", "popup")),
    (ArtifactKind.FORM, ("form", "input")),
    (ArtifactKind.DATA_DISPLAY, ("list", "table", "grid")),
    (ArtifactKind.CARD, ("card", "tile", "widget")),
    (ArtifactKind.VISUALIZATION, ("chart", "graph", "analytics")),
    (ArtifactKind.PAGE, ("page",)),
)


def is_auth_component(name: str) -> bool:
    return _AUTH_RE.search(name) is not None


def is_root_container(name: str) -> bool:
    """True for names that denote the root container (``App``, ``MainLayout``, ``PageContainer``...)."""
    lowered = name.lower()
    return any(keyword in lowered for keyword in CONTAINER_KEYWORDS)


def classify_kind(name: str, default: ArtifactKind = ArtifactKind.GENERIC) -> ArtifactKind:
    lowered = name.lower()
    for kind, keywords in KIND_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return kind
    return default


def container_spec() -> ArtifactSpec:
    return ArtifactSpec(name=ROOT_CONTAINER_NAME, kind=ArtifactKind.CONTAINER)


class ArtifactSpecResolver:
    """Resolve a UI plan into a non-empty, deduplicated, ordered spec list.

    Identical plans always resolve to identical lists.
    """

    def resolve(self, plan: UIPlan | None) -> list[ArtifactSpec]:
        names = self._usable_names(plan.components if plan is not None else [])
        if not names:
            return list(DEFAULT_SPECS)

        specs = [
            ArtifactSpec(name=name, kind=classify_kind(name))
            for name in names
            if not is_auth_component(name) and not is_root_container(name)
        ]

        kinds = {spec.kind for spec in specs}
        if ArtifactKind.NAVIGATION in kinds and ArtifactKind.FOOTER not in kinds:
            if all(spec.name != DEFAULT_FOOTER.name for spec in specs):
                specs.append(DEFAULT_FOOTER)

        if not specs:
            return list(DEFAULT_SPECS)
        return specs

    @staticmethod
    def _usable_names(components: Iterable[object]) -> list[str]:
        """Normalise to PascalCase identifiers, dropping blanks and duplicates."""
        seen: set[str] = set()
        names: list[str] = []
        for raw in components:
            if not isinstance(raw, str):
                continue
            name = pascal_case(raw)
            if not name or not is_identifier(name) or name in seen:
                continue
            seen.add(name)
            names.append(name)
        return names
