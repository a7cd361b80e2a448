"""Reconciler configuration: defaults, TOML/JSON files and environment overrides."""

from __future__ import annotations

import json
import logging
import os
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping

from tokenlens.core.types import (
    DEFAULT_CONTEXT_METRICS,
    ContextMetrics,
    DesignTokenDictionary,
    Framework,
)

logger = logging.getLogger(__name__)

ENV_PREFIX = "TOKENLENS_"

DEFAULTS: dict[str, Any] = {
    "framework": Framework.HTML_CSS.value,
    "color_delta_e_threshold": 0.05,
    "pixel_threshold": 2.0,
    "high_confidence": 70,
    "low_confidence": 60,
    "major_delta": 8.0,
}


class ConfigError(ValueError):
    """Raised when a configuration file or value cannot be used."""


@dataclass
class ReconcilerConfig:
    framework: Framework = Framework.HTML_CSS
    tokens: DesignTokenDictionary = field(default_factory=DesignTokenDictionary)
    metrics: ContextMetrics = DEFAULT_CONTEXT_METRICS
    color_delta_e_threshold: float = 0.05  # max ΔE for a color token match
    pixel_threshold: float = 2.0  # max px difference for a length token match
    high_confidence: int = 70  # pairs at or above count as high confidence
    low_confidence: int = 60  # pairs below count as low confidence
    major_delta: float = 8.0  # |delta| above this is a major mismatch

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> ReconcilerConfig:
        data = {**DEFAULTS, **{k: v for k, v in mapping.items() if v is not None}}
        try:
            config = cls(
                framework=Framework(str(data["framework"]).lower()),
                tokens=DesignTokenDictionary.from_dict(data.get("tokens")),
                metrics=(
                    ContextMetrics.from_dict(data["metrics"])
                    if data.get("metrics") else DEFAULT_CONTEXT_METRICS
                ),
                color_delta_e_threshold=float(data["color_delta_e_threshold"]),
                pixel_threshold=float(data["pixel_threshold"]),
                high_confidence=int(data["high_confidence"]),
                low_confidence=int(data["low_confidence"]),
                major_delta=float(data["major_delta"]),
            )
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"invalid configuration: {exc}") from exc

        root_font_size = data.get("root_font_size")
        if root_font_size is not None:
            config.metrics = replace(config.metrics, root_font_size=_positive(root_font_size, "root_font_size"))
        viewport = data.get("viewport")
        if viewport is not None:
            width, height = _parse_viewport(viewport)
            config.metrics = replace(
                config.metrics,
                viewport_width=width,
                viewport_height=height,
                visual_viewport_width=width,
                visual_viewport_height=height,
            )
        return config


def _positive(value: Any, name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be a number, got {value!r}") from exc
    if number <= 0:
        raise ConfigError(f"{name} must be positive, got {value!r}")
    return number


def _parse_viewport(value: Any) -> tuple[float, float]:
    """``"1280x720"`` or ``[1280, 720]`` -> (width, height)."""
    parts = value.lower().split("x") if isinstance(value, str) else list(value)
    if len(parts) != 2:
        raise ConfigError(f"viewport must be WIDTHxHEIGHT, got {value!r}")
    return _positive(parts[0], "viewport width"), _positive(parts[1], "viewport height")


def _load_file(path: Path) -> dict[str, Any]:
    try:
        if path.suffix == ".json":
            data = json.loads(path.read_text(encoding="utf-8"))
        else:
            with path.open("rb") as fh:
                data = tomllib.load(fh)
    except (OSError, json.JSONDecodeError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"cannot read config {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"config {path} must contain a table/object at top level")
    return data.get("tokenlens", data)


def load_config(
    config_path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> ReconcilerConfig:
    """Load configuration from environment, optional TOML/JSON file, and defaults."""
    environ = os.environ if environ is None else environ
    env_map: dict[str, Any] = {}
    for key, value in environ.items():
        if key.startswith(ENV_PREFIX):
            env_map[key[len(ENV_PREFIX):].lower()] = value

    file_map: dict[str, Any] = {}
    path = Path(config_path) if config_path is not None else Path("tokenlens.toml")
    if path.exists():
        file_map = _load_file(path)
        logger.debug("loaded config from %s", path)
    elif config_path is not None:
        raise ConfigError(f"config file not found: {path}")

    merged = {**file_map, **env_map}
    return ReconcilerConfig.from_mapping(merged)
