"""
Pytest fixtures for the atlas service tests.

구성:
- 외부 생성기 대역: /bin/sh 스크립트 (성공/실패/부분 출력/지연)
- 앱 설정: tmp_path 아래 uploads/output/logs
- TestClient: lifespan 포함
"""

import os
from collections.abc import Callable, Generator
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.app.config import load_config
from src.app.main import create_app

ALLOWED_ORIGIN = "https://msdf.kansei.graphics"

# =============================================================================
# Fake Generator Scripts
# =============================================================================

# 받은 인자를 <script>.args에 한 줄씩 기록하고 출력 파일 3종 생성
SUCCESS_SCRIPT = """#!/bin/sh
printf '%s\\n' "$@" > "$0.args"
while [ $# -gt 0 ]; do
  case "$1" in
    -arfont|-imageout|-json)
      shift
      printf 'atlas' > "$1"
      ;;
  esac
  shift
done
exit 0
"""

FAIL_SCRIPT = """#!/bin/sh
printf '%s\\n' "$@" > "$0.args"
echo "Error: failed to load font" >&2
exit 3
"""

# 이미지만 쓰고 정상 종료
PARTIAL_SCRIPT = """#!/bin/sh
while [ $# -gt 0 ]; do
  case "$1" in
    -imageout)
      shift
      printf 'png' > "$1"
      ;;
  esac
  shift
done
exit 0
"""

SLOW_SCRIPT = """#!/bin/sh
exec sleep 5
exit 0
"""


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """호스트 환경변수가 설정/바이너리 해석에 섞이지 않도록."""
    for name in ("MSDF_ATLAS_GEN_BINARY", "MSDF_ATLAS_CONFIG", "PORT", "HOST"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def make_generator(tmp_path: Path) -> Callable[..., Path]:
    """
    생성기 대역 스크립트 작성 함수.

    기본적으로 실행 권한 없이 생성 (ensure_executable 검증용).
    """
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir(exist_ok=True)

    def _make(
        body: str = SUCCESS_SCRIPT,
        name: str = "msdf-atlas-gen-linux",
        executable: bool = False,
    ) -> Path:
        script = bin_dir / name
        script.write_text(body, encoding="utf-8")
        os.chmod(script, 0o755 if executable else 0o644)
        return script

    return _make


@pytest.fixture
def fake_generator(make_generator: Callable[..., Path]) -> Path:
    """성공 스크립트."""
    return make_generator(SUCCESS_SCRIPT)


@pytest.fixture
def recorded_args() -> Callable[[Path], list[str]]:
    """대역 스크립트가 받은 인자 목록을 읽는 함수."""

    def _read(script: Path) -> list[str]:
        args_path = script.with_name(script.name + ".args")
        return args_path.read_text(encoding="utf-8").splitlines()

    return _read


# =============================================================================
# App Fixtures
# =============================================================================


def build_test_config(tmp_path: Path, binary: Path, **sections: dict) -> dict:
    """tmp_path 기반 설정 (default.yaml 무시)."""
    overrides: dict = {
        "paths": {
            "upload_dir": str(tmp_path / "uploads"),
            "output_dir": str(tmp_path / "output"),
            "logs_dir": str(tmp_path / "logs"),
            "lock_dir": str(tmp_path / ".locks"),
        },
        "generator": {"binary_path": str(binary)},
        "retention": {"sweep_interval_seconds": 0},
        "outputs": {"lock_retry_interval": 0.05, "lock_max_retries": 3},
    }
    for section, values in sections.items():
        overrides.setdefault(section, {}).update(values)

    return load_config(
        config_path=tmp_path / "no-such-config.yaml",
        overrides=overrides,
    )


@pytest.fixture
def config_factory(tmp_path: Path) -> Callable[..., dict]:
    """섹션 override가 가능한 설정 생성 함수."""

    def _factory(binary: Path, **sections: dict) -> dict:
        return build_test_config(tmp_path, binary, **sections)

    return _factory


@pytest.fixture
def app_config(tmp_path: Path, fake_generator: Path) -> dict:
    return build_test_config(tmp_path, fake_generator)


@pytest.fixture
def app(app_config: dict) -> FastAPI:
    return create_app(app_config)


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """FastAPI TestClient (lifespan 실행)."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def font_bytes() -> bytes:
    """폰트 대역 바이트 (생성기 대역은 내용을 읽지 않음)."""
    return b"\x00\x01\x00\x00fake-ttf"
