"""
Error definitions for the atlas service.

규칙:
- 조용한 실패 금지 → PolicyRejectError로 명시적 실패
- 권한 변경(chmod) 실패도 reject (생성 단계로 진행하지 않음)
- 재시도 없음
"""

from typing import Any


class PolicyRejectError(Exception):
    """
    요청 처리 정책 위반 시 발생하는 에러.

    즉시 중단이 필요한 경우에만 사용:
    - 업로드 파일 누락/형식 불일치
    - 생성기 바이너리 누락/권한 실패
    - 생성기 비정상 종료/타임아웃
    - 출력 네임스페이스 락 timeout

    Usage:
        raise PolicyRejectError("INVALID_FILE_TYPE", filename="a.woff")
    """

    def __init__(self, code: str, **context: Any) -> None:
        self.code = code
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
        return f"[{self.code}] {ctx_str}" if ctx_str else f"[{self.code}]"

    def to_dict(self) -> dict[str, Any]:
        """로그/JSON 직렬화용."""
        return {
            "code": self.code,
            **self.context,
        }


# =============================================================================
# Error Codes
# =============================================================================

class ErrorCodes:
    """에러 코드 상수."""

    # === Upload ===
    NO_FILE_UPLOADED = "NO_FILE_UPLOADED"
    INVALID_FILE_TYPE = "INVALID_FILE_TYPE"
    UPLOAD_DIR_MISSING = "UPLOAD_DIR_MISSING"

    # === Generator ===
    GENERATOR_NOT_FOUND = "GENERATOR_NOT_FOUND"
    GENERATOR_NOT_EXECUTABLE = "GENERATOR_NOT_EXECUTABLE"
    GENERATOR_SPAWN_FAILED = "GENERATOR_SPAWN_FAILED"
    GENERATOR_FAILED = "GENERATOR_FAILED"
    GENERATOR_TIMEOUT = "GENERATOR_TIMEOUT"
    GENERATOR_OUTPUT_MISSING = "GENERATOR_OUTPUT_MISSING"

    # === Output namespace ===
    OUTPUT_LOCK_TIMEOUT = "OUTPUT_LOCK_TIMEOUT"

    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"


# HTTP 상태 매핑 (route에서 사용)
CLIENT_ERROR_CODES = frozenset({
    ErrorCodes.NO_FILE_UPLOADED,
    ErrorCodes.INVALID_FILE_TYPE,
})
CONFLICT_ERROR_CODES = frozenset({
    ErrorCodes.OUTPUT_LOCK_TIMEOUT,
})


def status_code_for(code: str) -> int:
    """에러 코드 → HTTP 상태 코드."""
    if code in CLIENT_ERROR_CODES:
        return 400
    if code in CONFLICT_ERROR_CODES:
        return 409
    return 500
