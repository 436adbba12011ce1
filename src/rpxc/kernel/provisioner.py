"""Environment provisioner: rebuild-on-change, then delegate.

Staleness detection (local, cheap) is kept apart from provisioning
(external, expensive) so an unchanged definition skips all build work.
"""

from pathlib import Path
from typing import Optional, Sequence

from rpxc._internal.atomic_io import atomic_write_text
from rpxc.errors import DefinitionUnreadable, ProvisioningFailed

from .environment import EnvironmentEngine, EnvironmentHandle, ProvisionState
from .store import FingerprintStore

WRAPPER_MODE = 0o755


def read_definition(definition_path: Path) -> bytes:
    """Read toolchain definition bytes.

    Raises:
        DefinitionUnreadable: If the file cannot be read
    """
    try:
        return Path(definition_path).read_bytes()
    except OSError as e:
        raise DefinitionUnreadable(
            f"Cannot read toolchain definition {definition_path}: {e}"
        ) from e


class Provisioner:
    """Keeps one environment in step with its toolchain definition.

    The fingerprint is persisted only after the environment is built and
    its wrapper is in place, so a stored fingerprint always implies a
    usable environment. A failure anywhere in between leaves the previous
    record untouched and the next call still sees the definition as stale.
    """

    def __init__(
        self,
        definition_path: Path,
        store: FingerprintStore,
        engine: EnvironmentEngine,
        image: str,
        wrapper_path: Optional[Path] = None,
    ):
        self.definition_path = Path(definition_path)
        self.store = store
        self.engine = engine
        self.image = image
        self.wrapper_path = (
            Path(wrapper_path) if wrapper_path is not None
            else self.definition_path.with_name(".rpxc.sh")
        )
        self.state = ProvisionState.UNKNOWN
        self.provision_count = 0
        self.last_reason: Optional[str] = None

    @property
    def handle(self) -> EnvironmentHandle:
        return EnvironmentHandle(image=self.image, engine=self.engine.name, wrapper=self.wrapper_path)

    def staleness_reason(self, definition: bytes) -> Optional[str]:
        """Why the environment must be provisioned, or None if it can be reused."""
        record = self.store.load_record()
        if record is None:
            return "no fingerprint recorded"
        if record.fingerprint != self.store.compute_fingerprint(definition):
            return "toolchain definition changed"
        if record.image != self.image:
            return f"image changed ({record.image} -> {self.image})"
        if not self.wrapper_path.is_file():
            return "entry-point wrapper missing"
        return None

    def needs_provisioning(self, definition: bytes) -> bool:
        return self.staleness_reason(definition) is not None

    def ensure_environment(self, definition: Optional[bytes] = None) -> EnvironmentHandle:
        """Provision the environment if stale and return a handle to it.

        Args:
            definition: Definition bytes; read from definition_path when None

        Returns:
            Handle usable by run()

        Raises:
            DefinitionUnreadable: Definition could not be read (nothing changed)
            ProvisioningFailed: Build or wrapper generation failed (nothing persisted)
            PersistFailed: Environment built but the fingerprint was not recorded
        """
        self.state = ProvisionState.UNKNOWN
        if definition is None:
            definition = read_definition(self.definition_path)

        reason = self.staleness_reason(definition)
        self.last_reason = reason
        if reason is None:
            self.state = ProvisionState.READY
            return self.handle

        self.state = ProvisionState.PROVISIONING
        fingerprint = self.store.compute_fingerprint(definition)
        try:
            built = self.engine.build(self.definition_path)
            handle = built.model_copy(update={"wrapper": self.wrapper_path})
            self._write_wrapper(handle)
            self.store.persist(fingerprint, image=handle.image)
        except BaseException:
            self.state = ProvisionState.FAILED
            raise

        self.provision_count += 1
        self.state = ProvisionState.READY
        return handle

    def _write_wrapper(self, handle: EnvironmentHandle) -> None:
        script = self.engine.entrypoint(handle)
        try:
            atomic_write_text(self.wrapper_path, script, mode=WRAPPER_MODE)
        except OSError as e:
            raise ProvisioningFailed(
                f"Could not write entry-point wrapper {self.wrapper_path}: {e}"
            ) from e

    def run(self, handle: EnvironmentHandle, command: str, args: Sequence[str] = ()) -> int:
        """Run command inside the environment; its exit code is returned as is."""
        return self.engine.execute(handle, command, list(args))
