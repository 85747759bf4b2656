"""ManifestBuilder: assemble the final, immutable Bundle.

The bundle holds every generated artifact plus three bootstrap artifacts:

* ``runtime.js``: ``resolveComponent`` (component or placeholder),
  ``resolveRoute``, ``navigate``/``useRoute`` and a small shared store.
* ``manifest.js``: the symbol registry; reports which declared symbols
  actually loaded and mounts the root container.
* ``index.html``: the entry document loading scripts in dependency order
  (runtime, components, pages, root container, manifest).
"""

from __future__ import annotations

from collections.abc import Iterable

from .models import (
    ROOT_CONTAINER_NAME,
    ArtifactFailure,
    ArtifactKind,
    Bundle,
    DesignTokens,
    DuplicateArtifactError,
    GeneratedArtifact,
)
from .rendering import TemplateRenderer

RUNTIME_FILENAME = "runtime.js"
MANIFEST_FILENAME = "manifest.js"
ENTRY_FILENAME = "index.html"
BOOTSTRAP_FILENAMES: tuple[str, ...] = (RUNTIME_FILENAME, MANIFEST_FILENAME, ENTRY_FILENAME)

# The app starts on this route; synthesized pages are only reached through navigate().
INITIAL_ROUTE = "home"


def load_rank(artifact: GeneratedArtifact) -> int:
    """Components load first, then pages, then the root container."""
    if artifact.kind is ArtifactKind.CONTAINER:
        return 2
    if artifact.kind is ArtifactKind.PAGE:
        return 1
    return 0


class ManifestBuilder:
    """Build a Bundle from generated artifacts."""

    def __init__(self, renderer: TemplateRenderer | None = None) -> None:
        self.renderer = renderer or TemplateRenderer()

    def build(
        self,
        artifacts: Iterable[GeneratedArtifact],
        *,
        title: str = "",
        failures: Iterable[ArtifactFailure] = (),
        routes: dict[str, str] | None = None,
        tokens: DesignTokens | None = None,
        strategy: str = "multi_file",
        root_name: str = ROOT_CONTAINER_NAME,
    ) -> Bundle:
        """Return the bundle for *artifacts*.

        Raises:
            DuplicateArtifactError: If two artifacts share a filename, or an
                artifact collides with a bootstrap filename.
        """
        generated = list(artifacts)
        seen: set[str] = set(BOOTSTRAP_FILENAMES)
        for artifact in generated:
            if artifact.filename in seen:
                raise DuplicateArtifactError(artifact.filename)
            seen.add(artifact.filename)

        ordered = sorted(generated, key=load_rank)
        failures = list(failures)
        routes = dict(routes or {})
        tokens = tokens or DesignTokens()
        title = " ".join(title.split()) or "Generated App"

        registry = {artifact.name: artifact.filename for artifact in ordered}
        issues = {artifact.filename: artifact.issues for artifact in ordered if artifact.issues}
        scripts = [RUNTIME_FILENAME, *(a.filename for a in ordered), MANIFEST_FILENAME]

        runtime = self._bootstrap(
            RUNTIME_FILENAME,
            self.renderer.render(
                "runtime.js.j2",
                {"title": title, "routes": routes, "initial_route": INITIAL_ROUTE},
            ),
        )
        manifest = self._bootstrap(
            MANIFEST_FILENAME,
            self.renderer.render(
                "manifest.js.j2",
                {
                    "title": title,
                    "registry": registry,
                    "failed": [failure.name for failure in failures],
                    "root": root_name,
                },
            ),
        )
        entry = self._bootstrap(
            ENTRY_FILENAME,
            self.renderer.render(
                "index.html.j2",
                {"title": title, "scripts": scripts, "background": tokens.background_color},
            ),
        )

        return Bundle(
            artifacts=(runtime, *ordered, manifest, entry),
            registry=registry,
            issues=issues,
            failures=tuple(failures),
            routes=routes,
            entry_filename=ENTRY_FILENAME,
            strategy=strategy,
        )

    @staticmethod
    def _bootstrap(filename: str, content: str) -> GeneratedArtifact:
        return GeneratedArtifact(
            filename=filename,
            name=filename.rsplit(".", 1)[0],
            content=content,
            kind=ArtifactKind.BOOTSTRAP,
        )
