"""
test_config.py - 설정 로드 테스트

DoD:
- YAML 값이 기본값 위에 병합
- PORT/HOST 환경변수 우선
- 상대 경로는 프로젝트 루트 기준
"""

from pathlib import Path

import pytest

from src.app.config import (
    DEFAULT_CONFIG,
    PROJECT_ROOT,
    load_config,
    merge_config,
    resolve_paths,
)


class TestMergeConfig:
    def test_nested_override(self):
        merged = merge_config(
            {"server": {"host": "0.0.0.0", "port": 9090}},
            {"server": {"port": 8080}},
        )

        assert merged == {"server": {"host": "0.0.0.0", "port": 8080}}

    def test_base_not_mutated(self):
        base = {"server": {"port": 9090}}

        merge_config(base, {"server": {"port": 1}})

        assert base == {"server": {"port": 9090}}


class TestLoadConfig:
    def test_defaults_without_yaml(self, tmp_path: Path):
        config = load_config(config_path=tmp_path / "missing.yaml")

        assert config["server"]["port"] == 9090
        assert config["cors"]["allowed_origin"] == "https://msdf.kansei.graphics"
        assert config["outputs"]["isolate_requests"] is True
        assert config["generator"]["timeout_seconds"] is None

    def test_yaml_merged(self, tmp_path: Path):
        config_path = tmp_path / "custom.yaml"
        config_path.write_text(
            "server:\n  port: 8000\noutputs:\n  isolate_requests: false\n",
            encoding="utf-8",
        )

        config = load_config(config_path=config_path)

        assert config["server"]["port"] == 8000
        assert config["server"]["host"] == "0.0.0.0"
        assert config["outputs"]["isolate_requests"] is False

    def test_empty_yaml(self, tmp_path: Path):
        config_path = tmp_path / "empty.yaml"
        config_path.write_text("", encoding="utf-8")

        config = load_config(config_path=config_path)

        assert config["server"]["port"] == DEFAULT_CONFIG["server"]["port"]

    def test_env_overrides_yaml(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ):
        config_path = tmp_path / "custom.yaml"
        config_path.write_text("server:\n  port: 8000\n", encoding="utf-8")
        monkeypatch.setenv("PORT", "7070")
        monkeypatch.setenv("HOST", "127.0.0.1")

        config = load_config(config_path=config_path)

        assert config["server"]["port"] == 7070
        assert config["server"]["host"] == "127.0.0.1"

    def test_config_path_from_env(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ):
        config_path = tmp_path / "env.yaml"
        config_path.write_text("server:\n  force_https: false\n", encoding="utf-8")
        monkeypatch.setenv("MSDF_ATLAS_CONFIG", str(config_path))

        config = load_config()

        assert config["server"]["force_https"] is False

    def test_relative_paths_resolved(self, tmp_path: Path):
        config = load_config(config_path=tmp_path / "missing.yaml")

        assert config["paths"]["output_dir"] == PROJECT_ROOT / "output"
        assert config["generator"]["binary_dir"] == PROJECT_ROOT / "bin"
        assert config["generator"]["binary_path"] is None

    def test_overrides_applied_last(self, tmp_path: Path):
        config = load_config(
            config_path=tmp_path / "missing.yaml",
            overrides={"paths": {"output_dir": str(tmp_path / "out")}},
        )

        assert config["paths"]["output_dir"] == tmp_path / "out"


class TestResolvePaths:
    def test_absolute_kept(self, tmp_path: Path):
        config = {"paths": {"upload_dir": str(tmp_path / "u")}}

        resolve_paths(config, root=Path("/srv/app"))

        assert config["paths"]["upload_dir"] == tmp_path / "u"

    def test_relative_joined(self):
        config = {"paths": {"upload_dir": "uploads"}}

        resolve_paths(config, root=Path("/srv/app"))

        assert config["paths"]["upload_dir"] == Path("/srv/app/uploads")
