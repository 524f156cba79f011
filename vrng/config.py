"""
vrng.config
-----------

Typed configuration for processes that run a VRNG consumer (the CLI, host
services). The coordinator itself takes explicit constructor arguments; this
module only decides what those arguments default to.

- Dataclasses with sane defaults:
    * CoordinatorSettings: normalization method, first provider id, history size.
    * MetricsSettings: optional Prometheus exporter.
    * Config: the whole bundle.

- load_config(): defaults ← file (JSON or YAML) ← environment ← overrides.

Environment variables (prefix: VRNG_*)
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
VRNG_NORMALIZATION_METHOD=hash_with_request_id   # name or 0|1|2
VRNG_FIRST_REQUEST_ID=1
VRNG_HISTORY_CAPACITY=256
VRNG_METRICS_ENABLED=true|false
VRNG_METRICS_PORT=9119
VRNG_CONFIG=/path/to/vrng.yaml

Notes
-----
- Malformed numbers and booleans fall back to the previous layer's value.
- An unknown normalization method is *not* defaulted: loading fails with
  InvalidNormalizationMethod, matching the coordinator's construction rule.
"""

from __future__ import annotations

import dataclasses
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .history import BLOCKHASH_WINDOW
from .normalize import parse_method
from .types import NormalizationMethod

# -----------------------------
# Helpers: parsing
# -----------------------------


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name)
    return v if v is not None and v != "" else default


def _parse_bool(v: Optional[str], default: bool) -> bool:
    if v is None:
        return default
    vv = v.strip().lower()
    if vv in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if vv in {"0", "false", "f", "no", "n", "off"}:
        return False
    return default


def _parse_int(v: Optional[str], default: int) -> int:
    if v is None:
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _load_file_config(path: Path) -> Dict[str, Any]:
    """JSON first, then YAML. A missing file is an empty config."""
    if not path.exists() or not path.is_file():
        return {}
    text = path.read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        data = yaml.safe_load(text)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"config file {path} must contain a mapping")
    return data


# -----------------------------
# Dataclasses
# -----------------------------


@dataclass(frozen=True)
class CoordinatorSettings:
    normalization_method: str = NormalizationMethod.HASH_WITH_REQUEST_ID.name.lower()
    first_request_id: int = 1
    history_capacity: int = BLOCKHASH_WINDOW

    @property
    def method(self) -> NormalizationMethod:
        return parse_method(self.normalization_method)


@dataclass(frozen=True)
class MetricsSettings:
    enabled: bool = False
    port: int = 9119
    addr: str = "0.0.0.0"


@dataclass(frozen=True)
class Config:
    coordinator: CoordinatorSettings = dataclasses.field(default_factory=CoordinatorSettings)
    metrics: MetricsSettings = dataclasses.field(default_factory=MetricsSettings)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "coordinator": dataclasses.asdict(self.coordinator),
            "metrics": dataclasses.asdict(self.metrics),
        }


# -----------------------------
# Loader
# -----------------------------


def _apply_overrides(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """
    Shallow merge: keys in overrides replace keys in base; dictionaries merge 1-level deep.
    """
    out = dict(base)
    for k, v in overrides.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            nv = dict(out[k])
            nv.update(v)
            out[k] = nv
        else:
            out[k] = v
    return out


def load_config(
    file_path: Optional[Path] = None, overrides: Optional[Dict[str, Any]] = None
) -> Config:
    """
    Build a Config from (defaults) ← file (JSON/YAML) ← environment ← overrides.
    """
    d: Dict[str, Any] = Config().to_dict()

    path_env = _env("VRNG_CONFIG")
    p = file_path or (Path(path_env) if path_env else None)
    if p:
        file_cfg = _load_file_config(Path(p))
        if file_cfg:
            d = _apply_overrides(d, file_cfg)

    coord = dict(d.get("coordinator", {}))
    metrics = dict(d.get("metrics", {}))

    coord.update(
        {
            "normalization_method": str(
                _env("VRNG_NORMALIZATION_METHOD", None)
                or coord.get("normalization_method", CoordinatorSettings.normalization_method)
            ),
            "first_request_id": _parse_int(
                _env("VRNG_FIRST_REQUEST_ID"),
                coord.get("first_request_id", CoordinatorSettings.first_request_id),
            ),
            "history_capacity": _parse_int(
                _env("VRNG_HISTORY_CAPACITY"),
                coord.get("history_capacity", CoordinatorSettings.history_capacity),
            ),
        }
    )
    metrics.update(
        {
            "enabled": _parse_bool(
                _env("VRNG_METRICS_ENABLED"), metrics.get("enabled", MetricsSettings.enabled)
            ),
            "port": _parse_int(_env("VRNG_METRICS_PORT"), metrics.get("port", MetricsSettings.port)),
        }
    )

    d["coordinator"] = coord
    d["metrics"] = metrics

    if overrides:
        d = _apply_overrides(d, overrides)

    cfg = Config(
        coordinator=CoordinatorSettings(**d["coordinator"]),
        metrics=MetricsSettings(**d["metrics"]),
    )
    return _sanity(cfg)


def _sanity(cfg: Config) -> Config:
    """
    Canonicalize the method name (failing on unknown methods) and clamp
    numeric ranges; returns a possibly adjusted Config.
    """
    method = parse_method(cfg.coordinator.normalization_method).name.lower()
    first_id = max(0, cfg.coordinator.first_request_id)
    capacity = max(1, min(1_000_000, cfg.coordinator.history_capacity))
    port = max(0, min(65_535, cfg.metrics.port))

    return Config(
        coordinator=CoordinatorSettings(
            normalization_method=method,
            first_request_id=first_id,
            history_capacity=capacity,
        ),
        metrics=MetricsSettings(enabled=cfg.metrics.enabled, port=port, addr=cfg.metrics.addr),
    )


__all__ = [
    "CoordinatorSettings",
    "MetricsSettings",
    "Config",
    "load_config",
]
