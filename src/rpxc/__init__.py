"""rpxc: cross-compilation environment provisioning with fingerprint-based rebuilds."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("rpxc")
except PackageNotFoundError:
    __version__ = "dev"

# Public API exports
# Note: run and ensure_environment are exported from rpxc.api, not from root
from rpxc.api import EnsureResult, StatusResult
from rpxc.codes import StageCode
from rpxc.config import RpxcConfig, load_config
from rpxc.errors import (
    ConfigError,
    DefinitionUnreadable,
    PersistFailed,
    ProvisioningFailed,
    RpxcError,
)

__all__ = [
    "__version__",
    "EnsureResult",
    "StatusResult",
    "StageCode",
    "RpxcConfig",
    "load_config",
    "RpxcError",
    "DefinitionUnreadable",
    "ProvisioningFailed",
    "PersistFailed",
    "ConfigError",
]
