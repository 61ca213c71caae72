"""
Core layer: 요청 → 프로세스 계약의 핵심 모듈.

역할:
- 인자 벡터 구성 (셸 해석 없음), 바이너리 실행
- 출력 네임스페이스, 락, 원자적 쓰기
- run log, 보관 정책
"""

from .command import build_command, format_command, parse_generation_config
from .executor import ensure_executable, resolve_binary, run_generator
from .ids import artifact_base_name, generate_run_id, generate_upload_name
from .locks import atomic_write_json, name_lock
from .logging import complete_run_log, create_run_log, emit_warning, save_run_log
from .outputs import OutputNamespace
from .retention import PurgeResult, RetentionConfig, purge_expired, sweep

__all__ = [
    # command
    "build_command",
    "format_command",
    "parse_generation_config",
    # executor
    "ensure_executable",
    "resolve_binary",
    "run_generator",
    # ids
    "artifact_base_name",
    "generate_run_id",
    "generate_upload_name",
    # locks
    "atomic_write_json",
    "name_lock",
    # logging
    "complete_run_log",
    "create_run_log",
    "emit_warning",
    "save_run_log",
    # outputs
    "OutputNamespace",
    # retention
    "PurgeResult",
    "RetentionConfig",
    "purge_expired",
    "sweep",
]
