"""Tests for the docker and host engines."""

import shutil
import subprocess
import sys

import pytest

from rpxc import engines
from rpxc.engines import (
    COMMAND_NOT_FOUND,
    DockerEngine,
    HostEngine,
    PodmanEngine,
    bind_wrapper_to_image,
    create_engine,
)
from rpxc.errors import ProvisioningFailed
from rpxc.kernel.environment import EnvironmentHandle

RPXC_SCRIPT = "#!/bin/bash\n# raspberry-pi-cross-compiler helper\nexec docker run \"$RPXC_IMAGE\" \"$@\"\n"


class CommandRecorder:
    """Stands in for the subprocess helpers used by the engines."""

    def __init__(self, returncode=0, stdout=RPXC_SCRIPT):
        self.returncode = returncode
        self.stdout = stdout
        self.calls = []

    def passthrough(self, cmd, cwd=None, env=None, echo=False):
        self.calls.append(("passthrough", cmd, cwd))
        return self.returncode

    def capture(self, cmd, cwd=None, echo=False):
        self.calls.append(("capture", cmd, cwd))
        return subprocess.CompletedProcess(cmd, self.returncode, stdout=self.stdout)


@pytest.fixture
def recorder(monkeypatch):
    rec = CommandRecorder()
    monkeypatch.setattr(engines, "run_passthrough", rec.passthrough)
    monkeypatch.setattr(engines, "run_capture", rec.capture)
    return rec


class TestBindWrapper:

    def test_inserts_after_shebang(self):
        result = bind_wrapper_to_image(RPXC_SCRIPT, "rpxc-rust")
        lines = result.splitlines()
        assert lines[0] == "#!/bin/bash"
        assert lines[1] == "RPXC_IMAGE=rpxc-rust"
        assert lines[2] == "# raspberry-pi-cross-compiler helper"

    def test_shebang_without_newline(self):
        assert bind_wrapper_to_image("#!/bin/sh", "img") == "#!/bin/sh\nRPXC_IMAGE=img\n"

    def test_no_shebang_gets_one(self):
        result = bind_wrapper_to_image("echo hi\n", "img")
        assert result == "#!/bin/bash\nRPXC_IMAGE=img\necho hi\n"


class TestDockerEngine:

    def test_build_command(self, recorder, tmp_path):
        definition = tmp_path / "Dockerfile"
        handle = DockerEngine("rpxc-rust").build(definition)

        assert recorder.calls == [(
            "passthrough",
            ["docker", "build", "-t", "rpxc-rust", "-f", str(definition), str(tmp_path)],
            None,
        )]
        assert handle == EnvironmentHandle(image="rpxc-rust", engine="docker")

    def test_build_failure(self, recorder, tmp_path):
        recorder.returncode = 1
        with pytest.raises(ProvisioningFailed, match="exit code 1") as excinfo:
            DockerEngine("rpxc-rust").build(tmp_path / "Dockerfile")
        assert excinfo.value.returncode == 1

    def test_build_missing_engine_binary(self, monkeypatch, tmp_path):
        def missing(cmd, cwd=None, env=None, echo=False):
            raise FileNotFoundError(2, "No such file or directory", cmd[0])

        monkeypatch.setattr(engines, "run_passthrough", missing)
        with pytest.raises(ProvisioningFailed, match="Could not start docker"):
            DockerEngine("rpxc-rust").build(tmp_path / "Dockerfile")

    def test_entrypoint_binds_image(self, recorder):
        script = DockerEngine("rpxc-rust").entrypoint(EnvironmentHandle(image="rpxc-rust"))
        assert recorder.calls[0][1] == ["docker", "run", "--rm", "rpxc-rust"]
        assert script.startswith("#!/bin/bash\nRPXC_IMAGE=rpxc-rust\n")

    def test_entrypoint_failure(self, recorder):
        recorder.returncode = 125
        with pytest.raises(ProvisioningFailed, match="generating the wrapper"):
            DockerEngine("rpxc-rust").entrypoint(EnvironmentHandle(image="rpxc-rust"))

    def test_entrypoint_empty_output(self, recorder):
        recorder.stdout = "\n"
        with pytest.raises(ProvisioningFailed, match="no entry-point script"):
            DockerEngine("rpxc-rust").entrypoint(EnvironmentHandle(image="rpxc-rust"))

    def test_execute_runs_wrapper(self, recorder, tmp_path):
        recorder.returncode = 101
        handle = EnvironmentHandle(image="rpxc-rust", wrapper=tmp_path / ".rpxc.sh")
        engine = DockerEngine("rpxc-rust", workdir=tmp_path)

        code = engine.execute(handle, "cargo", ["build", "--target=armv7-unknown-linux-gnueabihf"])

        assert code == 101
        assert recorder.calls == [(
            "passthrough",
            [str(tmp_path / ".rpxc.sh"), "cargo", "build", "--target=armv7-unknown-linux-gnueabihf"],
            tmp_path,
        )]

    def test_execute_requires_wrapper(self, recorder):
        with pytest.raises(ValueError, match="no entry-point wrapper"):
            DockerEngine("rpxc-rust").execute(EnvironmentHandle(image="rpxc-rust"), "cargo", [])

    def test_custom_engine_binary(self, recorder, tmp_path):
        DockerEngine("rpxc-rust", engine_bin="/usr/local/bin/docker").build(tmp_path / "Dockerfile")
        assert recorder.calls[0][1][0] == "/usr/local/bin/docker"

    def test_podman(self, recorder, tmp_path):
        handle = PodmanEngine("rpxc-rust").build(tmp_path / "Dockerfile")
        assert recorder.calls[0][1][0] == "podman"
        assert handle.engine == "podman"


class TestHostEngine:

    @pytest.mark.skipif(shutil.which("false") is None, reason="requires false(1)")
    def test_false_yields_one(self):
        engine = HostEngine()
        assert engine.execute(engine.build(None), "false", []) == 1

    @pytest.mark.skipif(shutil.which("true") is None, reason="requires true(1)")
    def test_true_yields_zero(self):
        engine = HostEngine()
        assert engine.execute(engine.build(None), "true", []) == 0

    def test_arbitrary_exit_code(self):
        engine = HostEngine()
        handle = engine.build(None)
        assert engine.execute(handle, sys.executable, ["-c", "raise SystemExit(42)"]) == 42

    def test_args_forwarded_verbatim(self, tmp_path, capfd):
        engine = HostEngine(workdir=tmp_path)
        code = engine.execute(
            engine.build(None),
            sys.executable,
            ["-c", "import os, sys; print(os.getcwd()); print(sys.argv[1:])", "a b", "--x=1"],
        )
        out = capfd.readouterr().out.splitlines()
        assert code == 0
        assert out[0] == str(tmp_path.resolve())
        assert out[1] == "['a b', '--x=1']"

    def test_command_not_found(self, capsys):
        engine = HostEngine()
        code = engine.execute(engine.build(None), "rpxc-no-such-command", [])
        assert code == COMMAND_NOT_FOUND
        assert "command not found" in capsys.readouterr().err

    def test_entrypoint(self):
        script = HostEngine(image="host").entrypoint(EnvironmentHandle(image="host", engine="host"))
        assert script == '#!/bin/bash\nRPXC_IMAGE=host\nexec "$@"\n'


class TestCreateEngine:

    def test_known_engines(self):
        assert isinstance(create_engine("docker", image="x"), DockerEngine)
        assert isinstance(create_engine("podman", image="x"), PodmanEngine)
        assert isinstance(create_engine("host", image="x", engine_bin="ignored"), HostEngine)

    def test_unknown_engine(self):
        with pytest.raises(ValueError, match="Unknown engine"):
            create_engine("lxc", image="x")
