"""Pytest configuration and shared fixtures.

No sys.path hacks - tests import from the installed rpxc package.
"""

from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import pytest

from rpxc.errors import ProvisioningFailed
from rpxc.kernel.environment import EnvironmentEngine, EnvironmentHandle
from rpxc.kernel.provisioner import Provisioner
from rpxc.kernel.store import FingerprintStore, MemoryBackend


class FakeEngine(EnvironmentEngine):
    """Records calls instead of talking to a container engine."""

    name = "fake"

    def __init__(self, image: str = "rpxc-test", exit_code: int = 0):
        self.image = image
        self.exit_code = exit_code
        self.fail_build = False
        self.interrupt_build = False
        self.fail_entrypoint = False
        self.builds: List[Path] = []
        self.executions: List[Tuple[str, List[str]]] = []

    def build(self, definition_path: Path) -> EnvironmentHandle:
        if self.interrupt_build:
            raise KeyboardInterrupt
        if self.fail_build:
            raise ProvisioningFailed("simulated build failure", returncode=1)
        self.builds.append(Path(definition_path))
        return EnvironmentHandle(image=self.image, engine=self.name)

    def entrypoint(self, handle: EnvironmentHandle) -> str:
        if self.fail_entrypoint:
            raise ProvisioningFailed("simulated wrapper failure")
        return f"#!/bin/bash\nRPXC_IMAGE={handle.image}\nexec \"$@\"\n"

    def execute(self, handle: EnvironmentHandle, command: str, args: Sequence[str]) -> int:
        self.executions.append((command, list(args)))
        return self.exit_code


@pytest.fixture
def definition_file(tmp_path) -> Path:
    path = tmp_path / "Dockerfile"
    path.write_bytes(b"FROM scratch\n")
    return path


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def memory_store() -> FingerprintStore:
    return FingerprintStore(MemoryBackend())


@pytest.fixture
def make_provisioner(definition_file, fake_engine, memory_store):
    def _make(store: Optional[FingerprintStore] = None, engine: Optional[EnvironmentEngine] = None):
        engine = engine or fake_engine
        return Provisioner(
            definition_path=definition_file,
            store=store or memory_store,
            engine=engine,
            image=engine.image,
        )
    return _make
