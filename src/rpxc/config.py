"""Configuration for rpxc.

Precedence, lowest to highest: model defaults, JSON config file,
RPXC_* environment variables, explicit overrides (CLI flags).
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from rpxc.errors import ConfigError
from rpxc.kernel.store import record_path_for

DEFAULT_CONFIG_NAME = "rpxc.json"

# Environment variable -> config field
ENV_VARS = {
    "RPXC_DEFINITION": "definition",
    "RPXC_IMAGE": "image",
    "RPXC_ENGINE": "engine",
    "RPXC_TARGET": "target",
    "RPXC_TOOL": "tool",
}

_PATH_FIELDS = ("definition", "workdir")


class RpxcConfig(BaseModel):
    """Settings for one toolchain environment."""
    definition: Path = Path("Dockerfile")
    image: str = "rpxc-rust"
    engine: Literal["docker", "podman", "host"] = "docker"
    engine_bin: Optional[str] = None  # defaults to the engine name
    target: str = "armv7-unknown-linux-gnueabihf"  # empty string: no --target flag
    tool: str = "cargo"
    algo: Literal["sha256", "sha1"] = "sha256"
    wrapper_name: str = ".rpxc.sh"
    workdir: Optional[Path] = None  # where the delegated command runs; cwd if unset

    model_config = ConfigDict(extra="forbid")

    @field_validator('image', 'tool')
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    @field_validator('wrapper_name')
    @classmethod
    def validate_wrapper_name(cls, v: str) -> str:
        if not v or "/" in v or "\\" in v:
            raise ValueError(f"wrapper_name must be a bare file name, got {v!r}")
        return v

    @property
    def wrapper_path(self) -> Path:
        return self.definition.parent / self.wrapper_name

    @property
    def record_path(self) -> Path:
        return record_path_for(self.definition)

    def target_args(self) -> list:
        return [f"--target={self.target}"] if self.target else []


def _load_json(path: Path) -> Dict[str, Any]:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {path}") from e
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Could not read config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    return data


def _resolve_relative(data: Dict[str, Any], base_dir: Path) -> Dict[str, Any]:
    resolved = dict(data)
    for key in _PATH_FIELDS:
        value = resolved.get(key)
        if isinstance(value, str) and value and not Path(value).is_absolute():
            resolved[key] = str(base_dir / value)
    return resolved


def load_config(
    config_path: Optional[Path] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
    search_dir: Optional[Path] = None,
) -> RpxcConfig:
    """Build the effective configuration.

    Args:
        config_path: Explicit JSON config file (must exist)
        overrides: Highest-precedence values; None entries are ignored
        environ: Environment mapping (defaults to os.environ)
        search_dir: Where to look for rpxc.json when config_path is None
                    (defaults to the current directory)

    Returns:
        Validated RpxcConfig with the definition path made absolute

    Raises:
        ConfigError: If the file is unreadable or the merged values are invalid
    """
    environ = os.environ if environ is None else environ
    data: Dict[str, Any] = {}

    if config_path is not None:
        config_path = Path(config_path)
        data.update(_resolve_relative(_load_json(config_path), config_path.resolve().parent))
    else:
        candidate = Path(search_dir or Path.cwd()) / DEFAULT_CONFIG_NAME
        if candidate.is_file():
            data.update(_resolve_relative(_load_json(candidate), candidate.resolve().parent))

    for var, field in ENV_VARS.items():
        if environ.get(var):
            data[field] = environ[var]

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        config = RpxcConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
    return config.model_copy(update={"definition": config.definition.resolve()})
