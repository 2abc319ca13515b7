"""Configuration model for an isolation run.

A single ``IsolateConfig`` is constructed once (by the CLI or a caller)
and passed explicitly to every pipeline stage; no stage reads ambient
process state such as ``os.getcwd()`` or argv.

Key Concepts:
    IsolateConfig: What to isolate (``input``), where to publish
        (``output``), how to discover entries (``pattern``/``ignore``) and
        which collaborators to use (``tracer``/``archiver``).
    from_env(): ``ISOLATOR_*`` environment overrides.
        Precedence: kwargs > env vars > field defaults.

Tags:
    config, settings, pydantic, isolation
"""

from __future__ import annotations

import os
import uuid
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

from isolator.core.errors import ConfigurationError

DEFAULT_PATTERN = "**/*.{js,json}"
DEFAULT_IGNORE = ("node_modules",)
LOCKFILES = ("yarn.lock", "package-lock.json", "pnpm-lock.yaml")
MANIFEST_NAME = "package.json"
ARCHIVE_NAME = "deploy.zip"


class IsolateConfig(BaseModel):
    """Configuration for a single isolation run.

    Example::

        config = IsolateConfig(
            input=Path("packages/web"),
            output=Path("dist/web.zip"),
            pattern="**/*.js",
        )
    """

    # What to isolate
    input: Path | None = Field(
        default=None,
        description="Package directory to isolate",
    )
    output: Path | None = Field(
        default=None,
        description="Destination path for the produced archive",
    )
    pattern: str = Field(
        default=DEFAULT_PATTERN,
        description="Glob (relative to the package dir) selecting entry files",
    )
    ignore: list[str] = Field(
        default_factory=lambda: list(DEFAULT_IGNORE),
        description="Directory names never matched by the entry glob",
    )

    # Workspace detection
    lockfiles: list[str] = Field(
        default_factory=lambda: list(LOCKFILES),
        description="Marker files identifying the workspace root",
    )
    manifest_name: str = Field(
        default=MANIFEST_NAME,
        description="Root manifest copied into every isolated output",
    )
    max_depth: int = Field(
        default=256,
        ge=1,
        description="Upper bound on directories visited while locating the root",
    )

    # Collaborators
    tracer: Literal["scan", "nft"] = Field(
        default="scan",
        description="Closure tracer: built-in import scanner or @vercel/nft via node",
    )
    archiver: Literal["zipfile", "zip"] = Field(
        default="zipfile",
        description="Archiver: Python zipfile or the external zip command",
    )
    strict_archive: bool = Field(
        default=False,
        description="Treat archiver failures as fatal instead of logging them",
    )

    verbose: bool = Field(default=False, description="Enable verbose output")

    # Internal
    run_id: str = Field(default="", description="Unique run identifier (auto-generated)")

    @model_validator(mode="after")
    def _set_defaults(self) -> IsolateConfig:
        if not self.run_id:
            self.run_id = uuid.uuid4().hex[:12]
        return self

    def require_paths(self) -> tuple[Path, Path]:
        """Return absolute ``(input, output)`` or raise ``ConfigurationError``.

        Called before any filesystem work so a missing parameter never
        leaves a staging directory behind.
        """
        input_path, output_path = self.input, self.output
        if input_path is None or output_path is None:
            missing = [name for name in ("input", "output") if getattr(self, name) is None]
            raise ConfigurationError(
                "Required input and output: pass an input (-i, --input) and an output (-o, --output). "
                "Input is the package to isolate (i.e. 'packages/web'); "
                "output is where the zip is written (i.e. 'packages/web/deploy.zip').",
                missing=missing,
            )
        return input_path.absolute(), output_path.absolute()

    @classmethod
    def from_env(cls, **overrides: Any) -> IsolateConfig:
        """Create config from ISOLATOR_* environment variables."""
        env_map = {
            "input": "ISOLATOR_INPUT",
            "output": "ISOLATOR_OUTPUT",
            "pattern": "ISOLATOR_PATTERN",
            "ignore": "ISOLATOR_IGNORE",
            "tracer": "ISOLATOR_TRACER",
            "archiver": "ISOLATOR_ARCHIVER",
            "strict_archive": "ISOLATOR_STRICT_ARCHIVE",
            "verbose": "ISOLATOR_VERBOSE",
        }
        values: dict[str, Any] = {}
        for field_name, env_var in env_map.items():
            env_val = os.environ.get(env_var)
            if env_val is not None:
                if field_name == "ignore":
                    values[field_name] = [i.strip() for i in env_val.split(",") if i.strip()]
                elif field_name in ("strict_archive", "verbose"):
                    values[field_name] = env_val.lower() in ("true", "1", "yes")
                else:
                    values[field_name] = env_val
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
