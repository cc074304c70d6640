"""Configuration for the read-all pipeline."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Union

import yaml
from pydantic import BaseModel, Field

from filerange.core.constants import (
    DEFAULT_CONCURRENCY_LIMIT,
    DEFAULT_DESIRED_BUNDLE_SIZE_BYTES,
    DEFAULT_MAX_WORKERS,
    DEFAULT_OUTPUT_BUFFER_SIZE,
    DEFAULT_USES_REDISTRIBUTION,
)

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in _TRUE_VALUES


class ReadAllConfig(BaseModel):
    """Split, concurrency and buffering options for reading many files."""

    desired_bundle_size_bytes: int = Field(
        DEFAULT_DESIRED_BUNDLE_SIZE_BYTES,
        gt=0,
        description="Maximum byte length of one work item",
    )
    uses_redistribution: bool = Field(
        DEFAULT_USES_REDISTRIBUTION,
        description="Shuffle work items before reading to balance load",
    )
    concurrency_limit: int = Field(
        DEFAULT_CONCURRENCY_LIMIT,
        gt=0,
        description="Maximum record sources open at once in this process",
    )
    max_workers: int = Field(
        DEFAULT_MAX_WORKERS,
        gt=0,
        description="Reader threads; extra threads queue on the limiter",
    )
    output_buffer_size: int = Field(
        DEFAULT_OUTPUT_BUFFER_SIZE,
        gt=0,
        description="Records buffered between readers and the consumer",
    )

    @classmethod
    def from_env(cls) -> "ReadAllConfig":
        return cls(
            desired_bundle_size_bytes=int(
                os.getenv(
                    "FILERANGE_BUNDLE_SIZE_BYTES", str(DEFAULT_DESIRED_BUNDLE_SIZE_BYTES)
                )
            ),
            uses_redistribution=_env_bool(
                "FILERANGE_USES_REDISTRIBUTION", DEFAULT_USES_REDISTRIBUTION
            ),
            concurrency_limit=int(
                os.getenv("FILERANGE_CONCURRENCY_LIMIT", str(DEFAULT_CONCURRENCY_LIMIT))
            ),
            max_workers=int(os.getenv("FILERANGE_MAX_WORKERS", str(DEFAULT_MAX_WORKERS))),
            output_buffer_size=int(
                os.getenv("FILERANGE_OUTPUT_BUFFER_SIZE", str(DEFAULT_OUTPUT_BUFFER_SIZE))
            ),
        )

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "ReadAllConfig":
        """
        Load from a YAML mapping; a top-level ``filerange`` key is unwrapped.

        Raises:
            ValueError: If the document is not a mapping
        """
        with open(path, "r", encoding="utf-8") as handle:
            data: Any = yaml.safe_load(handle) or {}
        if isinstance(data, dict) and isinstance(data.get("filerange"), dict):
            data = data["filerange"]
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        return cls(**data)

    def merged(self, **overrides: Any) -> "ReadAllConfig":
        """Return a copy with the non-None overrides applied."""
        updates: Dict[str, Any] = {k: v for k, v in overrides.items() if v is not None}
        return self.model_validate({**self.model_dump(), **updates})


__all__ = ["ReadAllConfig"]
