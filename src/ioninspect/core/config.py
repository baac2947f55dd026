"""Optional YAML configuration for default inspection options."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import yaml

COLOR_MODES = ("auto", "always", "never")
_KNOWN_KEYS = {"skip_bytes", "limit_bytes", "color"}


class ConfigError(Exception):
    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


@dataclass(frozen=True)
class InspectConfig:
    skip_bytes: int = 0
    limit_bytes: int = 0
    color: str = "auto"


def get_user_config_path() -> Path:
    """Get platform-appropriate user config file path."""
    if os.name == "nt":  # Windows
        base = os.environ.get("APPDATA", os.path.expanduser("~"))
        return Path(base) / "ioninspect" / "config.yaml"
    else:  # macOS, Linux
        return Path.home() / ".config" / "ioninspect" / "config.yaml"


def parse_config(text: str) -> InspectConfig:
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise ConfigError([f"invalid YAML: {exc}"]) from exc
    if not isinstance(data, dict):
        raise ConfigError(["config must be a mapping"])

    errors: list[str] = []
    for key in sorted(set(data) - _KNOWN_KEYS, key=str):
        errors.append(f"unknown key '{key}'")

    counts: dict[str, int] = {}
    for key in ("skip_bytes", "limit_bytes"):
        value = data.get(key, 0)
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            errors.append(f"{key} must be a non-negative integer")
        else:
            counts[key] = value

    color = data.get("color", "auto")
    if color not in COLOR_MODES:
        errors.append(f"color must be one of {', '.join(COLOR_MODES)}")

    if errors:
        raise ConfigError(errors)
    return InspectConfig(skip_bytes=counts["skip_bytes"], limit_bytes=counts["limit_bytes"], color=color)


def load_config(path: str | Path | None = None) -> InspectConfig:
    """Load an explicit config file, else the user config if present, else defaults."""
    if path is None:
        candidate = get_user_config_path()
        if not candidate.is_file():
            return InspectConfig()
    else:
        candidate = Path(path)
        if not candidate.is_file():
            raise ConfigError([f"config file not found: {candidate}"])
    try:
        text = candidate.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError([f"could not read {candidate}: {exc}"]) from exc
    return parse_config(text)
