"""Public API for rpxc.

High-level functions that return complete, structured results. The CLI is a
thin layer over these; scripts and tests should use them instead of wiring
store, engine and provisioner by hand.
"""

from typing import List, Optional, Sequence, Tuple

from pydantic import BaseModel

from rpxc.config import RpxcConfig
from rpxc.engines import create_engine
from rpxc.kernel.environment import EnvironmentHandle, ProvisionState
from rpxc.kernel.provisioner import Provisioner, read_definition
from rpxc.kernel.store import FingerprintStore


class EnsureResult(BaseModel):
    """Outcome of ensure_environment()."""
    handle: EnvironmentHandle
    provisioned: bool  # False when the existing environment was reused
    reason: Optional[str] = None  # why provisioning happened
    fingerprint: str  # "<algo>:<hex>" of the definition now recorded
    state: ProvisionState


class StatusResult(BaseModel):
    """Freshness of an environment, computed without side effects."""
    definition: str
    fingerprint: str
    stored_fingerprint: Optional[str] = None
    stale: bool
    reason: Optional[str] = None


def build_provisioner(config: RpxcConfig, echo: bool = False) -> Provisioner:
    """Wire a file-backed store and the configured engine into a Provisioner."""
    engine = create_engine(
        config.engine,
        image=config.image,
        engine_bin=config.engine_bin,
        workdir=config.workdir,
        echo=echo,
    )
    return Provisioner(
        definition_path=config.definition,
        store=FingerprintStore.for_definition(config.definition, algo=config.algo),
        engine=engine,
        image=config.image,
        wrapper_path=config.wrapper_path,
    )


def check_environment(config: RpxcConfig, provisioner: Optional[Provisioner] = None) -> StatusResult:
    """Report whether the environment would be provisioned, without provisioning.

    Raises:
        DefinitionUnreadable: If the definition cannot be read
    """
    provisioner = provisioner or build_provisioner(config)
    definition = read_definition(config.definition)
    stored = provisioner.store.load_stored_fingerprint()
    reason = provisioner.staleness_reason(definition)
    return StatusResult(
        definition=str(config.definition),
        fingerprint=str(provisioner.store.compute_fingerprint(definition)),
        stored_fingerprint=str(stored) if stored is not None else None,
        stale=reason is not None,
        reason=reason,
    )


def ensure_environment(
    config: RpxcConfig,
    rebuild: bool = False,
    echo: bool = False,
    provisioner: Optional[Provisioner] = None,
) -> EnsureResult:
    """Provision the environment if its definition changed.

    Args:
        config: Effective configuration
        rebuild: Forget the stored fingerprint first, forcing a rebuild
        echo: Print engine commands as they run
        provisioner: Pre-built provisioner (defaults to build_provisioner(config))

    Raises:
        DefinitionUnreadable, ProvisioningFailed, PersistFailed
    """
    provisioner = provisioner or build_provisioner(config, echo=echo)
    definition = read_definition(provisioner.definition_path)
    if rebuild:
        provisioner.store.clear()

    before = provisioner.provision_count
    handle = provisioner.ensure_environment(definition)
    provisioned = provisioner.provision_count > before
    return EnsureResult(
        handle=handle,
        provisioned=provisioned,
        reason=provisioner.last_reason if provisioned else None,
        fingerprint=str(provisioner.store.compute_fingerprint(definition)),
        state=provisioner.state,
    )


def tool_command(config: RpxcConfig, subcommand: str, args: Sequence[str] = ()) -> Tuple[str, List[str]]:
    """Command and arguments delegated into the environment.

    The target flag follows the sub-command; caller arguments follow verbatim.
    """
    return config.tool, [subcommand, *config.target_args(), *args]


def run(
    config: RpxcConfig,
    subcommand: str,
    args: Sequence[str] = (),
    rebuild: bool = False,
    echo: bool = False,
    provisioner: Optional[Provisioner] = None,
) -> int:
    """Ensure the environment, then run `<tool> <subcommand> --target=... <args>` in it.

    Returns:
        The delegated command's exit code, uninterpreted
    """
    provisioner = provisioner or build_provisioner(config, echo=echo)
    result = ensure_environment(config, rebuild=rebuild, provisioner=provisioner)
    command, command_args = tool_command(config, subcommand, args)
    return provisioner.run(result.handle, command, command_args)
