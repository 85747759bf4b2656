"""Project persistence.

``PersistenceStore`` is the boundary the workflow engine writes through.
``FileSystemStore`` lays a project out as::

    <root>/
      index.json                  # one entry per saved project
      <run_id>/
        idea.txt
        requirements.md
        checklist.md
        notes.md                  # only when notes were produced
        ui_plan.json
        ui_strategy.txt
        chat_history.json
        project.json              # every document, machine-readable
        bundle.json               # registry, issues, failures, load order
        ui/<filename>             # one file per artifact

A project is first written to ``<root>/.<run_id>.partial`` and renamed into
place only once complete, so readers never observe a half-written project.
"""

from __future__ import annotations

import asyncio
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, Field

from .planning.models import (
    ChatTurn,
    ChecklistItem,
    DesignNotes,
    Requirements,
    UIPlan,
    checklist_to_markdown,
)
from .ui.models import ArtifactFailure, ArtifactKind, Bundle, GeneratedArtifact, ValidationIssue
from .utils import load_json, write_json

INDEX_FILENAME = "index.json"
BUNDLE_FILENAME = "bundle.json"
PROJECT_FILENAME = "project.json"
UI_DIRNAME = "ui"


class ProjectNotFoundError(FileNotFoundError):
    """No project is stored under the requested id."""

    def __init__(self, run_id: str) -> None:
        self.run_id = run_id
        super().__init__(f"Project not found: {run_id}")


class ProjectDocuments(BaseModel):
    """The planning documents saved alongside a bundle."""

    title: str = ""
    idea: str = ""
    requirements: Optional[Requirements] = None
    checklist: list[ChecklistItem] = Field(default_factory=list)
    notes: Optional[DesignNotes] = None
    ui_plan: Optional[UIPlan] = None
    strategy: str = "multi_file"
    history: list[ChatTurn] = Field(default_factory=list)
    created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


@runtime_checkable
class PersistenceStore(Protocol):
    """Where finished bundles go."""

    async def save(
        self, run_id: str, bundle: Bundle, documents: ProjectDocuments | None = None
    ) -> Any: ...

    async def load(self, run_id: str) -> Bundle: ...


class FileSystemStore:
    """Directory-per-project store with atomic writes.

    Attributes:
        root: Directory that holds every project and ``index.json``.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self._index_lock = asyncio.Lock()

    def project_dir(self, run_id: str) -> Path:
        if not run_id or "/" in run_id or "\\" in run_id or run_id.startswith("."):
            raise ValueError(f"Invalid project id: {run_id!r}")
        return self.root / run_id

    # ------------------------------------------------------------------
    # PersistenceStore
    # ------------------------------------------------------------------

    async def save(
        self, run_id: str, bundle: Bundle, documents: ProjectDocuments | None = None
    ) -> Path:
        """Write the project atomically and register it in the index.

        Returns:
            The project directory.
        """
        documents = documents or ProjectDocuments()
        target = await asyncio.to_thread(self._write_project, run_id, bundle, documents)
        async with self._index_lock:
            await asyncio.to_thread(self._register, run_id, bundle, documents)
        return target

    async def load(self, run_id: str) -> Bundle:
        """Rebuild the bundle saved under *run_id*.

        Raises:
            ProjectNotFoundError: If nothing is stored under *run_id*.
        """
        return await asyncio.to_thread(self._read_bundle, run_id)

    async def load_documents(self, run_id: str) -> ProjectDocuments:
        path = self.project_dir(run_id) / PROJECT_FILENAME
        if not path.is_file():
            raise ProjectNotFoundError(run_id)
        raw = await asyncio.to_thread(load_json, path)
        return ProjectDocuments.model_validate(raw)

    async def list_projects(self) -> list[dict[str, Any]]:
        """Index entries, newest first."""
        entries = await asyncio.to_thread(self._read_index)
        return sorted(entries, key=lambda e: e.get("created_at", ""), reverse=True)

    async def delete(self, run_id: str) -> None:
        """Remove a project and its index entry.

        Raises:
            ProjectNotFoundError: If nothing is stored under *run_id*.
        """
        target = self.project_dir(run_id)
        if not target.is_dir():
            raise ProjectNotFoundError(run_id)
        await asyncio.to_thread(shutil.rmtree, target)
        async with self._index_lock:
            await asyncio.to_thread(self._unregister, run_id)

    # ------------------------------------------------------------------
    # Synchronous helpers (run in a worker thread)
    # ------------------------------------------------------------------

    def _write_project(self, run_id: str, bundle: Bundle, documents: ProjectDocuments) -> Path:
        target = self.project_dir(run_id)
        partial = self.root / f".{run_id}.partial"
        self.root.mkdir(parents=True, exist_ok=True)
        if partial.exists():
            shutil.rmtree(partial)

        try:
            self._write_tree(partial, bundle, documents)
            if target.exists():
                stale = self.root / f".{run_id}.stale"
                os.replace(target, stale)
                os.replace(partial, target)
                shutil.rmtree(stale, ignore_errors=True)
            else:
                os.replace(partial, target)
        except BaseException:
            shutil.rmtree(partial, ignore_errors=True)
            raise
        return target

    @staticmethod
    def _write_tree(directory: Path, bundle: Bundle, documents: ProjectDocuments) -> None:
        ui_dir = directory / UI_DIRNAME
        ui_dir.mkdir(parents=True)

        (directory / "idea.txt").write_text(documents.idea, encoding="utf-8")
        requirements = documents.requirements or Requirements()
        (directory / "requirements.md").write_text(
            requirements.to_markdown(documents.title), encoding="utf-8"
        )
        (directory / "checklist.md").write_text(
            checklist_to_markdown(documents.checklist), encoding="utf-8"
        )
        if documents.notes is not None:
            (directory / "notes.md").write_text(documents.notes.to_markdown(), encoding="utf-8")
        write_json(
            documents.ui_plan.model_dump(mode="json") if documents.ui_plan else {},
            directory / "ui_plan.json",
        )
        (directory / "ui_strategy.txt").write_text(documents.strategy, encoding="utf-8")
        write_json(
            [turn.model_dump(mode="json") for turn in documents.history],
            directory / "chat_history.json",
        )
        write_json(documents.model_dump(mode="json"), directory / PROJECT_FILENAME)

        for artifact in bundle.artifacts:
            (ui_dir / artifact.filename).write_text(artifact.content, encoding="utf-8")
        write_json(_bundle_metadata(bundle), directory / BUNDLE_FILENAME)

    def _read_bundle(self, run_id: str) -> Bundle:
        directory = self.project_dir(run_id)
        meta_path = directory / BUNDLE_FILENAME
        if not meta_path.is_file():
            raise ProjectNotFoundError(run_id)
        meta = load_json(meta_path)

        artifacts = []
        for entry in meta["artifacts"]:
            content = (directory / UI_DIRNAME / entry["filename"]).read_text(encoding="utf-8")
            artifacts.append(
                GeneratedArtifact(
                    filename=entry["filename"],
                    name=entry["name"],
                    content=content,
                    kind=ArtifactKind(entry["kind"]),
                    issues=tuple(ValidationIssue.model_validate(i) for i in entry.get("issues", [])),
                    attempts=entry.get("attempts", 1),
                )
            )
        return Bundle(
            artifacts=tuple(artifacts),
            registry=meta.get("registry", {}),
            issues={
                filename: tuple(ValidationIssue.model_validate(i) for i in issues)
                for filename, issues in meta.get("issues", {}).items()
            },
            failures=tuple(ArtifactFailure.model_validate(f) for f in meta.get("failures", [])),
            routes=meta.get("routes", {}),
            entry_filename=meta.get("entry_filename", "index.html"),
            strategy=meta.get("strategy", "multi_file"),
        )

    def _read_index(self) -> list[dict[str, Any]]:
        path = self.root / INDEX_FILENAME
        if not path.is_file():
            return []
        data = load_json(path)
        return data if isinstance(data, list) else []

    def _write_index(self, entries: list[dict[str, Any]]) -> None:
        path = self.root / INDEX_FILENAME
        tmp = self.root / f".{INDEX_FILENAME}.tmp"
        write_json(entries, tmp)
        os.replace(tmp, path)

    def _register(self, run_id: str, bundle: Bundle, documents: ProjectDocuments) -> None:
        entries = [e for e in self._read_index() if e.get("id") != run_id]
        entries.append(
            {
                "id": run_id,
                "title": documents.title,
                "created_at": documents.created_at,
                "strategy": bundle.strategy,
                "artifacts": len(bundle.artifacts),
                "failures": len(bundle.failures),
            }
        )
        self._write_index(entries)

    def _unregister(self, run_id: str) -> None:
        self._write_index([e for e in self._read_index() if e.get("id") != run_id])


def _bundle_metadata(bundle: Bundle) -> dict[str, Any]:
    """Everything in the bundle except artifact contents."""
    data = bundle.model_dump(mode="json")
    data["artifacts"] = [
        {key: value for key, value in artifact.items() if key != "content"}
        for artifact in data["artifacts"]
    ]
    data["load_order"] = [a.filename for a in bundle.artifacts if a.filename != bundle.entry_filename]
    return data
