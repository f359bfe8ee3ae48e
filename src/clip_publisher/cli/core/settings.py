"""Settings resolution for CLI commands.

The root ``--config`` option points every command at a YAML overlay; without
it the process-wide settings (env and ``clip-publisher.yaml``) are used.
"""

from __future__ import annotations

from pathlib import Path

from ...config import PipelineSettings, get_settings, load_settings

_config_path: Path | None = None


def use_config(path: Path | None) -> None:
    global _config_path
    _config_path = path


def cli_settings() -> PipelineSettings:
    if _config_path is not None:
        return load_settings(_config_path)
    return get_settings()
