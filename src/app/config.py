"""
설정 로드: default.yaml + 환경변수

우선순위 (높은 것이 이김):
1. 환경변수 (PORT, HOST)
2. MSDF_ATLAS_CONFIG가 가리키는 YAML 또는 프로젝트 루트 default.yaml
3. DEFAULT_CONFIG

상대 경로(paths.*, generator.binary_dir)는 프로젝트 루트 기준으로 해석.
"""

import copy
import os
from pathlib import Path
from typing import Any

import yaml

PROJECT_ROOT = Path(__file__).parent.parent.parent

CONFIG_PATH_ENV = "MSDF_ATLAS_CONFIG"

DEFAULT_CONFIG: dict[str, Any] = {
    "server": {
        "host": "0.0.0.0",
        "port": 9090,
        "force_https": True,
    },
    "cors": {
        "allowed_origin": "https://msdf.kansei.graphics",
    },
    "paths": {
        "upload_dir": "uploads",
        "output_dir": "output",
        "logs_dir": "logs",
        "lock_dir": ".locks",
    },
    "generator": {
        "binary_path": None,
        "binary_dir": "bin",
        "timeout_seconds": None,
    },
    "outputs": {
        "isolate_requests": True,
        "lock_retry_interval": 0.5,
        "lock_max_retries": 10,
    },
    "retention": {
        "output_ttl_hours": 24,
        "upload_ttl_hours": 1,
        "sweep_interval_seconds": 3600,
    },
}

# 프로젝트 루트 기준으로 해석할 경로 키
_PATH_KEYS = (
    ("paths", "upload_dir"),
    ("paths", "output_dir"),
    ("paths", "logs_dir"),
    ("paths", "lock_dir"),
    ("generator", "binary_dir"),
    ("generator", "binary_path"),
)


def merge_config(base: dict, override: dict) -> dict:
    """중첩 dict 병합 (override 우선, base는 변경하지 않음)."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_yaml(config_path: Path) -> dict:
    """YAML 설정 파일 로드 (없거나 비어 있으면 빈 dict)."""
    if not config_path.exists():
        return {}

    with open(config_path, encoding="utf-8") as f:
        data: dict[Any, Any] | None = yaml.safe_load(f)
        return data or {}


def resolve_paths(config: dict, root: Path = PROJECT_ROOT) -> dict:
    """상대 경로 → root 기준 절대 경로 (Path 객체)."""
    for section, key in _PATH_KEYS:
        value = config.get(section, {}).get(key)
        if value is None:
            continue
        path = Path(value)
        config[section][key] = path if path.is_absolute() else root / path
    return config


def apply_env_overrides(config: dict) -> dict:
    """PORT, HOST 환경변수 반영."""
    if os.environ.get("PORT"):
        config["server"]["port"] = int(os.environ["PORT"])
    if os.environ.get("HOST"):
        config["server"]["host"] = os.environ["HOST"]
    return config


def load_config(
    config_path: Path | None = None,
    overrides: dict | None = None,
) -> dict:
    """
    설정 로드.

    Args:
        config_path: YAML 경로 (None이면 환경변수 또는 default.yaml)
        overrides: 최우선 적용할 값 (테스트용)

    Returns:
        병합/경로 해석이 끝난 설정 dict
    """
    if config_path is None:
        env_path = os.environ.get(CONFIG_PATH_ENV)
        config_path = Path(env_path) if env_path else PROJECT_ROOT / "default.yaml"

    config = merge_config(DEFAULT_CONFIG, load_yaml(config_path))
    config = apply_env_overrides(config)
    if overrides:
        config = merge_config(config, overrides)
    return resolve_paths(config)
