"""Layered TOML configuration with typed dataclass mapping.

Priority stack (highest wins):
    1. Hardcoded defaults (PlainspokeConfig())
    2. config/default.toml (bundled)
    3. config/profiles/{profile}.toml (profile delta)
    4. ~/.config/plainspoke/config.toml (user config)
    5. CLI overrides (dot-notation)

Secrets never live in TOML. Each client section names the environment
variable that carries its credential (``api_key_env``).
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any

# ---------------------------------------------------------------------------
# Typed config tree (frozen, slotted)
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class GeneralConfig:
    """Top-level general settings."""

    profile: str = "strict"
    log_level: str = "info"


@dataclass(frozen=True, slots=True)
class GenerationConfig:
    """Text-generation service (OpenAI-compatible chat completions)."""

    base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-4o-mini"
    api_key_env: str = "OPENAI_API_KEY"
    timeout_seconds: float = 60.0
    temperature: float = 0.9
    max_tokens: int = 4000

    @property
    def api_key(self) -> str:
        """Resolve the credential from the environment ("" when unset)."""
        return os.environ.get(self.api_key_env, "")


@dataclass(frozen=True, slots=True)
class DetectorEndpointConfig:
    """Connection settings for one AI-content detection vendor."""

    enabled: bool = True
    base_url: str = ""
    api_key_env: str = ""
    timeout_seconds: float = 30.0
    flag_threshold: float = 50.0

    @property
    def api_key(self) -> str:
        """Resolve the credential from the environment ("" when unset)."""
        if not self.api_key_env:
            return ""
        return os.environ.get(self.api_key_env, "")


def _gptzero_defaults() -> DetectorEndpointConfig:
    return DetectorEndpointConfig(
        base_url="https://api.gptzero.me",
        api_key_env="GPTZERO_API_KEY",
    )


def _sapling_defaults() -> DetectorEndpointConfig:
    return DetectorEndpointConfig(
        base_url="https://api.sapling.ai",
        api_key_env="SAPLING_API_KEY",
    )


@dataclass(frozen=True, slots=True)
class DetectionConfig:
    """AI detection vendors consulted after each generation stage."""

    gptzero: DetectorEndpointConfig = field(default_factory=_gptzero_defaults)
    sapling: DetectorEndpointConfig = field(default_factory=_sapling_defaults)


@dataclass(frozen=True, slots=True)
class RefinementConfig:
    """Stage-2 refinement policy."""

    enabled: bool = True
    threshold: float = 3.0


@dataclass(frozen=True, slots=True)
class LimitsConfig:
    """Input and abuse-guard limits (tier-independent)."""

    max_text_length: int = 10_000
    rate_per_minute: int = 10
    rate_per_hour: int = 100


@dataclass(frozen=True, slots=True)
class PromptsConfig:
    """Prompt assembly settings."""

    max_flagged_sentences: int = 15


@dataclass(frozen=True, slots=True)
class ServerConfig:
    """HTTP surface settings."""

    host: str = "127.0.0.1"
    port: int = 8000
    allowed_origins: tuple[str, ...] = ("http://localhost:5173", "http://localhost:3000")
    preflight_allow_origin: str = "*"
    supabase_url: str = ""
    supabase_key_env: str = "SUPABASE_SERVICE_ROLE_KEY"

    @property
    def supabase_key(self) -> str:
        """Resolve the service-role key from the environment ("" when unset)."""
        return os.environ.get(self.supabase_key_env, "")


@dataclass(frozen=True, slots=True)
class PlainspokeConfig:
    """Root configuration node."""

    general: GeneralConfig = field(default_factory=GeneralConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    refinement: RefinementConfig = field(default_factory=RefinementConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    prompts: PromptsConfig = field(default_factory=PromptsConfig)
    server: ServerConfig = field(default_factory=ServerConfig)


# ---------------------------------------------------------------------------
# Config loading helpers
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base. Lists replace, dicts recurse."""
    merged = dict(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _coerce_value(s: str) -> bool | int | float | str:
    """Coerce a CLI string value to its typed equivalent."""
    if s.lower() == "true":
        return True
    if s.lower() == "false":
        return False
    try:
        return int(s)
    except ValueError:
        pass
    try:
        return float(s)
    except ValueError:
        pass
    return s


def _apply_dot_override(raw: dict[str, Any], dot_key: str, str_value: str) -> None:
    """Apply a dot-notation override into the raw config dict.

    Example: _apply_dot_override(raw, "refinement.threshold", "8")
    sets raw["refinement"]["threshold"] = 8
    """
    parts = dot_key.split(".")
    target = raw
    for part in parts[:-1]:
        if part not in target:
            target[part] = {}
        target = target[part]
    target[parts[-1]] = _coerce_value(str_value)


def _load_toml_file(path: Path) -> dict[str, Any]:
    """Load and parse a TOML file, returning empty dict if not found."""
    if not path.is_file():
        return {}
    with open(path, "rb") as f:
        return tomllib.load(f)


def _load_bundled_toml(filename: str) -> dict[str, Any]:
    """Load a TOML file from the bundled config/ directory."""
    # Source checkout: walk up from this file to find the project root containing config/
    current = Path(__file__).resolve().parent
    for _ in range(5):
        config_path = current / "config" / filename
        if config_path.is_file():
            with open(config_path, "rb") as f:
                return tomllib.load(f)
        current = current.parent

    # Installed wheel: config/ is force-included as plainspoke/_config
    try:
        bundled = resources.files("plainspoke").joinpath("_config", *filename.split("/"))
        if bundled.is_file():
            return tomllib.loads(bundled.read_text(encoding="utf-8"))
    except (FileNotFoundError, TypeError):
        pass

    return {}


def _lists_to_tuples(data: dict[str, Any]) -> dict[str, Any]:
    """Convert lists to tuples in config dicts (for frozen dataclass compatibility)."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, dict):
            result[key] = _lists_to_tuples(value)
        elif isinstance(value, list):
            result[key] = tuple(value)
        else:
            result[key] = value
    return result


def _build_config(raw: dict[str, Any]) -> PlainspokeConfig:
    """Map a merged raw dict to the typed PlainspokeConfig tree."""
    raw = _lists_to_tuples(raw)

    general_raw = raw.get("general", {})
    generation_raw = raw.get("generation", {})
    detection_raw = dict(raw.get("detection", {}))
    refinement_raw = raw.get("refinement", {})
    limits_raw = raw.get("limits", {})
    prompts_raw = raw.get("prompts", {})
    server_raw = raw.get("server", {})

    # Vendor sections layer onto their own defaults, not the bare dataclass
    gptzero_base = _gptzero_defaults()
    sapling_base = _sapling_defaults()
    gptzero = DetectorEndpointConfig(
        **_deep_merge(_endpoint_dict(gptzero_base), detection_raw.pop("gptzero", {}))
    )
    sapling = DetectorEndpointConfig(
        **_deep_merge(_endpoint_dict(sapling_base), detection_raw.pop("sapling", {}))
    )

    return PlainspokeConfig(
        general=GeneralConfig(**general_raw),
        generation=GenerationConfig(**generation_raw),
        detection=DetectionConfig(gptzero=gptzero, sapling=sapling),
        refinement=RefinementConfig(**refinement_raw),
        limits=LimitsConfig(**limits_raw),
        prompts=PromptsConfig(**prompts_raw),
        server=ServerConfig(**server_raw),
    )


def _endpoint_dict(cfg: DetectorEndpointConfig) -> dict[str, Any]:
    return {
        "enabled": cfg.enabled,
        "base_url": cfg.base_url,
        "api_key_env": cfg.api_key_env,
        "timeout_seconds": cfg.timeout_seconds,
        "flag_threshold": cfg.flag_threshold,
    }


def load_config(
    profile: str | None = None,
    user_config_path: Path | None = None,
    cli_overrides: dict[str, str] | None = None,
) -> PlainspokeConfig:
    """Load configuration with 5-layer priority stack.

    Args:
        profile: Refinement profile name ("strict", "relaxed").
            If None, uses the value from default.toml.
        user_config_path: Path to user config TOML. Defaults to
            ~/.config/plainspoke/config.toml.
        cli_overrides: Dot-notation key→value pairs from CLI flags.

    Returns:
        Fully resolved, typed PlainspokeConfig.
    """
    # Layer 1: hardcoded defaults (implicit via dataclass defaults)
    # Layer 2: bundled default.toml
    raw = _load_bundled_toml("default.toml")

    effective_profile = profile
    if effective_profile is None:
        effective_profile = raw.get("general", {}).get("profile", "strict")

    # Layer 3: profile overrides
    profile_raw = _load_bundled_toml(f"profiles/{effective_profile}.toml")
    raw = _deep_merge(raw, profile_raw)
    raw = _deep_merge(raw, {"general": {"profile": effective_profile}})

    # Layer 4: user config
    if user_config_path is None:
        user_config_path = Path.home() / ".config" / "plainspoke" / "config.toml"
    user_raw = _load_toml_file(user_config_path)
    raw = _deep_merge(raw, user_raw)

    # Layer 5: CLI overrides
    if cli_overrides:
        for dot_key, str_value in cli_overrides.items():
            _apply_dot_override(raw, dot_key, str_value)

    return _build_config(raw)
