"""Configuration for notebook-doc."""

import os
from typing import Optional

from pydantic import BaseModel, Field

ENV_MAX_FRAME_DEPTH = "NOTEBOOK_DOC_MAX_FRAME_DEPTH"


class NotebookConfig(BaseModel):
    """Limits applied by the output store."""
    max_frame_depth: int = Field(default=32, ge=1)

    @classmethod
    def from_env(cls) -> "NotebookConfig":
        """Build a config, taking overrides from environment variables."""
        data = {}
        if ENV_MAX_FRAME_DEPTH in os.environ:
            data["max_frame_depth"] = os.environ[ENV_MAX_FRAME_DEPTH]
        return cls(**data)


_config: Optional[NotebookConfig] = None


def get_config() -> NotebookConfig:
    """Return the process-wide config, reading the environment on first use."""
    global _config
    if _config is None:
        _config = NotebookConfig.from_env()
    return _config


def set_config(config: Optional[NotebookConfig]) -> None:
    """Replace the process-wide config. ``None`` re-reads the environment next time."""
    global _config
    _config = config
