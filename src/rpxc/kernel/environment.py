"""Environment handle, provisioning states and the engine collaborator."""

from enum import Enum
from pathlib import Path
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict


class ProvisionState(str, Enum):
    """Provisioning states for one ensure_environment() call.

    UNKNOWN -> PROVISIONING -> READY when the definition is stale,
    UNKNOWN -> READY when it is fresh. FAILED is terminal for the call.
    """
    UNKNOWN = "UNKNOWN"
    PROVISIONING = "PROVISIONING"
    READY = "READY"
    FAILED = "FAILED"


class EnvironmentHandle(BaseModel):
    """Reference to a provisioned, runnable build environment."""
    image: str  # image tag (or host label for the host engine)
    engine: str = "docker"
    wrapper: Optional[Path] = None  # generated entry-point script

    model_config = ConfigDict(frozen=True, extra="forbid")


class EnvironmentEngine:
    """Build-and-run service the provisioner delegates to.

    Subclasses implement the three operations the provisioner consumes.
    Failures in build() or entrypoint() must raise ProvisioningFailed.
    """

    name = "abstract"

    def build(self, definition_path: Path) -> EnvironmentHandle:
        """Build the environment described by the definition file."""
        raise NotImplementedError

    def entrypoint(self, handle: EnvironmentHandle) -> str:
        """Return the text of a wrapper script bound to handle."""
        raise NotImplementedError

    def execute(self, handle: EnvironmentHandle, command: str, args: Sequence[str]) -> int:
        """Run command with args inside the environment and return its exit code.

        Standard streams are inherited unmodified.
        """
        raise NotImplementedError
