"""Environment engines: the container tool (or the host) that builds and runs.

DockerEngine drives docker (or a CLI-compatible tool such as podman).
HostEngine runs commands directly on the host, with no container.
"""

import sys
from pathlib import Path
from typing import Dict, Optional, Sequence, Type

from rpxc._internal.process import run_capture, run_passthrough
from rpxc.errors import ProvisioningFailed
from rpxc.kernel.environment import EnvironmentEngine, EnvironmentHandle

SHEBANG = "#!/bin/bash"

# Shell convention for a command that does not exist.
COMMAND_NOT_FOUND = 127


def bind_wrapper_to_image(script: str, image: str) -> str:
    """Pin a helper script to an image by defining RPXC_IMAGE after its shebang.

    Scripts without a shebang get one prepended.
    """
    lines = script.splitlines(keepends=True)
    assignment = f"RPXC_IMAGE={image}\n"
    if lines and lines[0].startswith("#!"):
        first = lines[0] if lines[0].endswith("\n") else lines[0] + "\n"
        return first + assignment + "".join(lines[1:])
    return f"{SHEBANG}\n{assignment}{script}"


class DockerEngine(EnvironmentEngine):
    """Builds an image from the definition and runs commands through its helper script.

    The toolchain image prints its own runner script when started without
    arguments; that script becomes the entry-point wrapper.
    """

    name = "docker"

    def __init__(
        self,
        image: str,
        engine_bin: Optional[str] = None,
        workdir: Optional[Path] = None,
        echo: bool = False,
    ):
        self.image = image
        self.engine_bin = engine_bin or self.name
        self.workdir = Path(workdir) if workdir is not None else None
        self.echo = echo

    def build(self, definition_path: Path) -> EnvironmentHandle:
        definition_path = Path(definition_path)
        cmd = [
            self.engine_bin, "build",
            "-t", self.image,
            "-f", str(definition_path),
            str(definition_path.parent),
        ]
        try:
            returncode = run_passthrough(cmd, echo=self.echo)
        except OSError as e:
            raise ProvisioningFailed(f"Could not start {self.engine_bin}: {e}") from e
        if returncode != 0:
            raise ProvisioningFailed(
                f"{self.engine_bin} build failed for {self.image} (exit code {returncode})",
                returncode=returncode,
            )
        return EnvironmentHandle(image=self.image, engine=self.name)

    def entrypoint(self, handle: EnvironmentHandle) -> str:
        cmd = [self.engine_bin, "run", "--rm", handle.image]
        try:
            result = run_capture(cmd, echo=self.echo)
        except OSError as e:
            raise ProvisioningFailed(f"Could not start {self.engine_bin}: {e}") from e
        if result.returncode != 0:
            raise ProvisioningFailed(
                f"{self.engine_bin} run failed while generating the wrapper for "
                f"{handle.image} (exit code {result.returncode})",
                returncode=result.returncode,
            )
        if not result.stdout.strip():
            raise ProvisioningFailed(f"Image {handle.image} printed no entry-point script")
        return bind_wrapper_to_image(result.stdout, handle.image)

    def execute(self, handle: EnvironmentHandle, command: str, args: Sequence[str]) -> int:
        if handle.wrapper is None:
            raise ValueError(f"Handle for {handle.image} has no entry-point wrapper")
        cmd = [str(handle.wrapper), command, *args]
        return run_passthrough(cmd, cwd=self.workdir, echo=self.echo)


class PodmanEngine(DockerEngine):
    """Same CLI surface as docker."""
    name = "podman"


class HostEngine(EnvironmentEngine):
    """No container: build is a no-op and commands run directly on the host."""

    name = "host"

    def __init__(
        self,
        image: str = "host",
        engine_bin: Optional[str] = None,  # unused, accepted for create_engine()
        workdir: Optional[Path] = None,
        echo: bool = False,
    ):
        self.image = image
        self.workdir = Path(workdir) if workdir is not None else None
        self.echo = echo

    def build(self, definition_path: Path) -> EnvironmentHandle:
        return EnvironmentHandle(image=self.image, engine=self.name)

    def entrypoint(self, handle: EnvironmentHandle) -> str:
        return f'{SHEBANG}\nRPXC_IMAGE={handle.image}\nexec "$@"\n'

    def execute(self, handle: EnvironmentHandle, command: str, args: Sequence[str]) -> int:
        try:
            return run_passthrough([command, *args], cwd=self.workdir, echo=self.echo)
        except FileNotFoundError:
            print(f"rpxc: {command}: command not found", file=sys.stderr)
            return COMMAND_NOT_FOUND


ENGINES: Dict[str, Type[EnvironmentEngine]] = {
    DockerEngine.name: DockerEngine,
    PodmanEngine.name: PodmanEngine,
    HostEngine.name: HostEngine,
}


def create_engine(name: str, **kwargs) -> EnvironmentEngine:
    """Instantiate an engine by name.

    Raises:
        ValueError: If name is not a known engine
    """
    try:
        engine_cls = ENGINES[name]
    except KeyError:
        raise ValueError(
            f"Unknown engine: {name!r}. Supported: {', '.join(sorted(ENGINES))}"
        ) from None
    return engine_cls(**kwargs)
