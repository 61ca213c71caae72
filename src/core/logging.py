"""
Run logging: run log schema, events, warnings

규칙:
- 요청마다 run log 1개 (성공/실패/거절 모두 저장)
- 경고 필수 컨텍스트: level, code, field, original_value, resolved_value, message
- 실행한 명령(argv)과 종료 코드 기록
"""

from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from src.core.ids import generate_run_id
from src.core.locks import atomic_write_json
from src.domain.constants import RUN_LOG_PREFIX
from src.domain.schemas import RunLog, WarningLog

# =============================================================================
# Run Log Management
# =============================================================================


def create_run_log(run_id: str | None = None) -> RunLog:
    """
    새 RunLog 생성.

    Args:
        run_id: 지정하지 않으면 새로 발급

    Returns:
        초기화된 RunLog
    """
    now = datetime.now(UTC).isoformat()

    return RunLog(
        run_id=run_id or generate_run_id(),
        started_at=now,
        result="pending",
    )


def emit_warning(
    run_log: RunLog,
    code: str,
    field: str,
    message: str,
    original_value: str | None = None,
    resolved_value: str | None = None,
) -> None:
    """
    경고 이벤트 기록.

    Args:
        run_log: RunLog 인스턴스
        code: 경고 코드
        field: 관련 폼 필드
        message: 경고 메시지
        original_value: 원래 값
        resolved_value: 해결된 값
    """
    warning = WarningLog(
        level="warning",
        code=code,
        field=field,
        original_value=original_value,
        resolved_value=resolved_value,
        message=message,
    )
    run_log.warnings.append(warning)


def complete_run_log(
    run_log: RunLog,
    success: bool,
    error_code: str | None = None,
    error_context: dict[str, Any] | None = None,
) -> None:
    """
    RunLog 완료 처리.

    Args:
        run_log: RunLog 인스턴스
        success: 성공 여부
        error_code: 에러 코드 (실패 시)
        error_context: 에러 컨텍스트 (실패 시)
    """
    run_log.finished_at = datetime.now(UTC).isoformat()
    run_log.result = "success" if success else "failed"

    if not success:
        run_log.error_code = error_code
        run_log.error_context = error_context


def save_run_log(run_log: RunLog, logs_dir: Path) -> Path:
    """
    RunLog를 파일로 저장.

    Args:
        run_log: RunLog 인스턴스
        logs_dir: logs/ 디렉터리 경로

    Returns:
        저장된 파일 경로
    """
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / f"{RUN_LOG_PREFIX}{run_log.run_id}.json"
    atomic_write_json(log_path, run_log.to_dict())
    return log_path
