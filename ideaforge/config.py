"""IdeaForge configuration.

Centralised, typed configuration for the whole workflow. All settings use
Pydantic v2 models so they can be validated at construction time and serialised
to/from JSON or environment variables without boiler-plate.

The text-generation backend is selected through a tagged union discriminated
on ``kind``; every consumer matches it exhaustively (see
``ideaforge.providers.create_provider``).
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Provider variants
# ---------------------------------------------------------------------------


class OpenAIProviderConfig(BaseModel):
    """OpenAI chat-completions backend."""

    kind: Literal["openai"] = "openai"
    api_key: str = Field(default="", exclude=True)
    model: str = Field(default="gpt-4o")
    base_url: str = Field(default="https://api.openai.com/v1")
    timeout: int = Field(default=120, ge=10, description="Per-request timeout in seconds")


class AnthropicProviderConfig(BaseModel):
    """Anthropic messages backend."""

    kind: Literal["anthropic"] = "anthropic"
    api_key: str = Field(default="", exclude=True)
    model: str = Field(default="claude-3-5-sonnet-20241022")
    base_url: str = Field(default="https://api.anthropic.com/v1")
    max_tokens: int = Field(default=4096, ge=256)
    timeout: int = Field(default=120, ge=10, description="Per-request timeout in seconds")


class LocalProviderConfig(BaseModel):
    """Local Ollama server."""

    kind: Literal["local"] = "local"
    base_url: str = Field(default="http://localhost:11434")
    model: str = Field(default="llama3.1:8b")
    timeout: int = Field(default=120, ge=10, description="Per-request timeout in seconds")


ProviderConfig = Annotated[
    Union[OpenAIProviderConfig, AnthropicProviderConfig, LocalProviderConfig],
    Field(discriminator="kind"),
]

PROVIDER_KINDS: tuple[str, ...] = ("openai", "anthropic", "local")


# ---------------------------------------------------------------------------
# Generation knobs
# ---------------------------------------------------------------------------


class GenerationConfig(BaseModel):
    """Tuning knobs for artifact generation."""

    max_attempts: int = Field(
        default=2,
        ge=0,
        description="Escalated retries after the first attempt (max_attempts + 1 calls per artifact)",
    )
    max_parallel_generators: int = Field(
        default=3, ge=1, description="Maximum concurrent artifact generations"
    )
    min_artifact_length: int = Field(
        default=200, ge=1, description="Artifacts shorter than this are flagged incomplete"
    )
    temperature: float = Field(default=0.7, ge=0.0, le=2.0, description="Planning stages")
    code_temperature: float = Field(default=0.5, ge=0.0, le=2.0, description="Artifact generation")


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


class Config(BaseModel):
    """Global IdeaForge configuration.

    Instances are typically created once by the caller and passed to
    ``WorkflowEngine``; nothing in the package reads configuration from
    process-wide state after construction.
    """

    provider: ProviderConfig = Field(default_factory=LocalProviderConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    output_dir: Path = Field(default=Path("./output"))
    projects_dirname: str = Field(default="projects")

    @property
    def projects_dir(self) -> Path:
        """Root directory that ``FileSystemStore`` writes projects into."""
        return self.output_dir / self.projects_dirname

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path | None = None) -> Path:
        """Persist the configuration to a JSON file.

        API keys are excluded from the output.

        Args:
            path: Destination file. Defaults to ``<output_dir>/config.json``.

        Returns:
            The resolved path where the file was written.
        """
        target = path or (self.output_dir / "config.json")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            IDEAFORGE_PROVIDER (openai | anthropic | local), IDEAFORGE_MODEL,
            IDEAFORGE_LOCAL_URL, IDEAFORGE_TIMEOUT, OPENAI_API_KEY,
            ANTHROPIC_API_KEY, IDEAFORGE_OUTPUT_DIR, IDEAFORGE_MAX_ATTEMPTS,
            IDEAFORGE_MAX_PARALLEL.

        Raises:
            ValueError: If ``IDEAFORGE_PROVIDER`` names an unknown backend.
        """
        kind = os.environ.get("IDEAFORGE_PROVIDER", "local").strip().lower()
        if kind not in PROVIDER_KINDS:
            raise ValueError(
                f"Unknown provider {kind!r}; expected one of {', '.join(PROVIDER_KINDS)}"
            )

        provider_kwargs: dict[str, Any] = {}
        if os.environ.get("IDEAFORGE_MODEL"):
            provider_kwargs["model"] = os.environ["IDEAFORGE_MODEL"]
        if os.environ.get("IDEAFORGE_TIMEOUT"):
            provider_kwargs["timeout"] = int(os.environ["IDEAFORGE_TIMEOUT"])

        provider: OpenAIProviderConfig | AnthropicProviderConfig | LocalProviderConfig
        if kind == "openai":
            provider = OpenAIProviderConfig(
                api_key=os.environ.get("OPENAI_API_KEY", ""), **provider_kwargs
            )
        elif kind == "anthropic":
            provider = AnthropicProviderConfig(
                api_key=os.environ.get("ANTHROPIC_API_KEY", ""), **provider_kwargs
            )
        else:
            if os.environ.get("IDEAFORGE_LOCAL_URL"):
                provider_kwargs["base_url"] = os.environ["IDEAFORGE_LOCAL_URL"]
            provider = LocalProviderConfig(**provider_kwargs)

        generation_kwargs: dict[str, Any] = {}
        if os.environ.get("IDEAFORGE_MAX_ATTEMPTS"):
            generation_kwargs["max_attempts"] = int(os.environ["IDEAFORGE_MAX_ATTEMPTS"])
        if os.environ.get("IDEAFORGE_MAX_PARALLEL"):
            generation_kwargs["max_parallel_generators"] = int(
                os.environ["IDEAFORGE_MAX_PARALLEL"]
            )

        return cls(
            provider=provider,
            generation=GenerationConfig(**generation_kwargs),
            output_dir=Path(os.environ.get("IDEAFORGE_OUTPUT_DIR", "./output")),
        )
