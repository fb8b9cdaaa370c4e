"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local secrets and env overrides (gitignored)
  4. Environment variables        — ``SCOREPAD_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

The recommendation engine, the training pipeline and the CLI all receive an
``AppConfig`` instance — never raw dicts or scattered env var lookups.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Literal, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

# ── Sub-config models ─────────────────────────────────────────────────────────


class DatabaseConfig(BaseModel):
    """SQLite database connection settings."""

    model_config = ConfigDict(frozen=True)

    db_path: str = "data/db/scorepad.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = "data/logs/scorepad.log"
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class WindowPolicyConfig(BaseModel):
    """How many top entries of a ranked list count as "predicted".

    ``fixed`` windows always use ``limit``. ``dynamic`` windows scale with
    the candidate pool: ``clamp(ceil(pool_size * ratio), 1, limit)``.
    """

    model_config = ConfigDict(frozen=True)

    strategy: Literal["fixed", "dynamic"] = "dynamic"
    limit: int = 5
    ratio: float = 0.25

    @field_validator("limit")
    @classmethod
    def validate_limit(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Window limit must be >= 1, got {v}.")
        return v

    @field_validator("ratio")
    @classmethod
    def validate_ratio(cls, v: float) -> float:
        if not 0.0 < v <= 1.0:
            raise ValueError(f"Window ratio must be in (0.0, 1.0], got {v}.")
        return v


def _default_windows() -> dict[str, WindowPolicyConfig]:
    pair = WindowPolicyConfig(strategy="fixed", limit=2)
    dynamic = WindowPolicyConfig(strategy="dynamic", ratio=0.25, limit=5)
    return {
        "playerCounts": pair,
        "weekdays": pair,
        "timeSlots": pair,
        "gameModes": pair,
        "colors": WindowPolicyConfig(strategy="fixed", limit=4),
        "players": dynamic,
        "locations": dynamic,
        "games": dynamic,
    }


class RelationsConfig(BaseModel):
    """Ranked-list sizing and prediction-window policies.

    Attributes:
        default_list_size: Max entries kept in entity-to-entity lists.
        time_list_size: Max entries kept in bucket lists (weekday, time slot,
            player count, game mode).
        windows: Relation kind → window policy. Kinds missing here fall back
            to ``fallback_window``.
        fallback_window: Generic dynamic policy for unknown relation kinds.
    """

    model_config = ConfigDict(frozen=True)

    default_list_size: int = 50
    time_list_size: int = 50
    windows: dict[str, WindowPolicyConfig] = _default_windows()
    fallback_window: WindowPolicyConfig = WindowPolicyConfig()

    @model_validator(mode="after")
    def validate_sizes(self) -> "RelationsConfig":
        if self.default_list_size < 1 or self.time_list_size < 1:
            raise ValueError("Relation list sizes must be >= 1.")
        return self


class TrainingConfig(BaseModel):
    """Training pipeline parameters."""

    model_config = ConfigDict(frozen=True)

    batch_chunk_size: int = 200
    time_zone: str = "UTC"

    @field_validator("batch_chunk_size")
    @classmethod
    def validate_chunk_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"batch_chunk_size must be >= 1, got {v}.")
        return v

    @field_validator("time_zone")
    @classmethod
    def validate_time_zone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown time zone '{v}'.") from exc
        return v


class ColorsConfig(BaseModel):
    """System color palette used for color suggestions and fallbacks."""

    model_config = ConfigDict(frozen=True)

    transparent: str = "transparent"
    palette: list[str] = [
        "#10b981", "#3b82f6", "#f59e0b", "#ef4444", "#8b5cf6",
        "#ec4899", "#6366f1", "#14b8a6", "#84cc16", "#f97316",
        "#06b6d4", "#a855f7", "#eab308", "#22c55e", "#0ea5e9",
        "#f43f5e", "#64748b", "#78350f", "#000000", "#ffffff",
    ]

    @field_validator("palette")
    @classmethod
    def validate_palette(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("Color palette must not be empty.")
        return v


class RecommendationConfig(BaseModel):
    """Defaults for the suggestion entry points."""

    model_config = ConfigDict(frozen=True)

    default_player_limit: int = 4


class AppConfig(BaseModel):
    """Complete application configuration — the single source of truth.

    Constructed by ``load_config()`` which merges TOML + .env + environment.
    """

    model_config = ConfigDict(frozen=True)

    database: DatabaseConfig = DatabaseConfig()
    logging: LoggingConfig = LoggingConfig()
    relations: RelationsConfig = RelationsConfig()
    training: TrainingConfig = TrainingConfig()
    colors: ColorsConfig = ColorsConfig()
    recommendation: RecommendationConfig = RecommendationConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the specified ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    # 1. Load .env file (silently skip if missing)
    load_dotenv(dotenv_path=root / ".env", override=False)

    # 2. Load TOML config
    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    # 3. Apply SCOREPAD_* environment variable overrides
    raw = _apply_env_overrides(raw)

    # 4. Build and validate AppConfig
    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply SCOREPAD_* env vars to the raw config dict.

    Supported overrides:
      SCOREPAD_DB_PATH    → raw["database"]["db_path"]
      SCOREPAD_LOG_LEVEL  → raw["logging"]["level"]
      SCOREPAD_DEBUG      → raw["debug"]
    """
    if db_path := os.environ.get("SCOREPAD_DB_PATH"):
        raw.setdefault("database", {})["db_path"] = db_path

    if log_level := os.environ.get("SCOREPAD_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if debug := os.environ.get("SCOREPAD_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure.

    Window policies given in TOML are merged over the built-in table so a
    local override of one relation kind keeps the others.
    """
    relations_raw = dict(raw.get("relations", {}))
    windows = {
        kind: policy.model_dump() for kind, policy in _default_windows().items()
    }
    windows.update(relations_raw.pop("windows", {}))

    return AppConfig(
        database=DatabaseConfig(**raw.get("database", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        relations=RelationsConfig(windows=windows, **relations_raw),
        training=TrainingConfig(**raw.get("training", {})),
        colors=ColorsConfig(**raw.get("colors", {})),
        recommendation=RecommendationConfig(**raw.get("recommendation", {})),
        debug=raw.get("debug", False),
    )
