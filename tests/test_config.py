"""Tests for configuration loading and precedence."""

import json
from pathlib import Path

import pytest

from rpxc.config import RpxcConfig, load_config
from rpxc.errors import ConfigError


def _write_json(path: Path, data: dict) -> None:
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def test_defaults(tmp_path):
    config = load_config(environ={}, search_dir=tmp_path)
    assert config.image == "rpxc-rust"
    assert config.engine == "docker"
    assert config.tool == "cargo"
    assert config.target == "armv7-unknown-linux-gnueabihf"
    assert config.algo == "sha256"
    assert config.definition.is_absolute()
    assert config.definition.name == "Dockerfile"


def test_config_file_paths_relative_to_file(tmp_path):
    config_dir = tmp_path / "tools" / "rpxc"
    config_dir.mkdir(parents=True)
    config_path = config_dir / "rpxc.json"
    _write_json(config_path, {"definition": "Dockerfile", "image": "my-image", "workdir": "../.."})

    config = load_config(config_path=config_path, environ={})

    assert config.definition == (config_dir / "Dockerfile").resolve()
    assert config.image == "my-image"
    assert config.workdir.resolve() == tmp_path.resolve()
    assert config.wrapper_path == config.definition.parent / ".rpxc.sh"
    assert config.record_path == config.definition.parent / ".Dockerfile.fingerprint.json"


def test_discovers_rpxc_json(tmp_path):
    _write_json(tmp_path / "rpxc.json", {"tool": "cross"})
    config = load_config(environ={}, search_dir=tmp_path)
    assert config.tool == "cross"


def test_environment_overrides_file(tmp_path):
    _write_json(tmp_path / "rpxc.json", {"image": "from-file", "engine": "podman"})
    config = load_config(environ={"RPXC_IMAGE": "from-env"}, search_dir=tmp_path)
    assert config.image == "from-env"
    assert config.engine == "podman"


def test_overrides_win_and_none_ignored(tmp_path):
    config = load_config(
        overrides={"image": "from-flag", "tool": None},
        environ={"RPXC_IMAGE": "from-env", "RPXC_TOOL": "cross"},
        search_dir=tmp_path,
    )
    assert config.image == "from-flag"
    assert config.tool == "cross"


def test_empty_env_value_ignored(tmp_path):
    config = load_config(environ={"RPXC_IMAGE": ""}, search_dir=tmp_path)
    assert config.image == "rpxc-rust"


def test_missing_config_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(config_path=tmp_path / "absent.json", environ={})


def test_malformed_config_file(tmp_path):
    path = tmp_path / "rpxc.json"
    path.write_text("{", encoding="utf-8")
    with pytest.raises(ConfigError, match="Could not read"):
        load_config(config_path=path, environ={})


def test_config_must_be_object(tmp_path):
    path = tmp_path / "rpxc.json"
    path.write_text("[]", encoding="utf-8")
    with pytest.raises(ConfigError, match="JSON object"):
        load_config(config_path=path, environ={})


def test_unknown_field_rejected(tmp_path):
    path = tmp_path / "rpxc.json"
    _write_json(path, {"imag": "typo"})
    with pytest.raises(ConfigError, match="Invalid configuration"):
        load_config(config_path=path, environ={})


def test_unknown_engine_rejected(tmp_path):
    with pytest.raises(ConfigError):
        load_config(overrides={"engine": "lxc"}, environ={}, search_dir=tmp_path)


def test_blank_image_rejected():
    with pytest.raises(ValueError, match="must not be empty"):
        RpxcConfig(image="  ")


def test_wrapper_name_must_be_bare():
    with pytest.raises(ValueError, match="bare file name"):
        RpxcConfig(wrapper_name="../evil.sh")


def test_target_args():
    assert RpxcConfig().target_args() == ["--target=armv7-unknown-linux-gnueabihf"]
    assert RpxcConfig(target="").target_args() == []


def test_shipped_config_points_at_bundled_definition():
    repo_root = Path(__file__).resolve().parent.parent
    config = load_config(environ={}, search_dir=repo_root)

    assert config.definition == (repo_root / "tools" / "rpxc" / "Dockerfile").resolve()
    assert config.definition.is_file()
    assert config.workdir == repo_root.resolve()
