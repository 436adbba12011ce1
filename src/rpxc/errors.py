"""Exception taxonomy for rpxc.

Every fatal condition raised before the delegated command runs derives from
RpxcError and names the stage that failed. A non-zero exit from the
delegated command is not an error and has no exception type.
"""

from typing import Optional

from rpxc.codes import StageCode


class RpxcError(Exception):
    """Base class for fatal rpxc failures."""

    code: StageCode = StageCode.PROVISIONING_FAILED

    def __init__(self, message: str, *, returncode: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.returncode = returncode

    def __str__(self) -> str:
        return self.message


class DefinitionUnreadable(RpxcError):
    """Toolchain definition bytes could not be read. Nothing was changed."""
    code = StageCode.DEFINITION_UNREADABLE


class ProvisioningFailed(RpxcError):
    """Environment build or wrapper generation failed.

    No fingerprint is persisted, so the next run is still stale.
    """
    code = StageCode.PROVISIONING_FAILED


class PersistFailed(RpxcError):
    """Fingerprint write failed after a successful build.

    The environment is valid but unrecorded; the next run rebuilds it.
    """
    code = StageCode.PERSIST_FAILED


class ConfigError(RpxcError):
    """Configuration file missing, malformed or invalid."""
    code = StageCode.CONFIG_INVALID
