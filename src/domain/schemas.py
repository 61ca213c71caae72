"""
Data schemas for the atlas service.

규칙:
- 필드명 통일: 폼 필드(glyphsOption, pxRange)는 파싱 시점에만 사용하고
  내부에서는 snake_case
- 모든 엔티티는 요청 단위 (영속 저장소 없음)
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from src.domain.constants import (
    DEFAULT_ATLAS_SIZE,
    DEFAULT_PX_RANGE,
    GLYPHS_OPTION_ALL,
    GLYPHS_OPTION_SELECTED,
)

# =============================================================================
# Glyph Selection
# =============================================================================

class GlyphsOption(str, Enum):
    """
    글리프 선택 모드.

    값이 없거나 알 수 없는 값이면 None으로 취급 (생성기 기본 동작).
    """
    ALL = GLYPHS_OPTION_ALL
    SELECTED = GLYPHS_OPTION_SELECTED


# =============================================================================
# Request Schemas
# =============================================================================

@dataclass
class GenerationConfig:
    """생성 요청 파라미터."""
    glyphs_option: GlyphsOption | None = None
    selected_glyphs: str | None = None  # glyphs_option == SELECTED일 때만 사용
    size: str = str(DEFAULT_ATLAS_SIZE)  # 폼 값 그대로 (검증은 생성기)
    px_range: str = str(DEFAULT_PX_RANGE)

    def to_dict(self) -> dict[str, Any]:
        return {
            "glyphs_option": self.glyphs_option.value if self.glyphs_option else None,
            "selected_glyphs": self.selected_glyphs,
            "size": self.size,
            "px_range": self.px_range,
        }


@dataclass
class StoredUpload:
    """업로드 디렉터리에 저장된 폰트 파일."""
    original_filename: str
    path: Path
    content_type: str | None = None

    @property
    def size(self) -> int:
        return self.path.stat().st_size if self.path.exists() else 0


# =============================================================================
# Output Schemas
# =============================================================================

@dataclass
class ArtifactSet:
    """
    생성 결과 파일 3종.

    base_name은 원본 파일명의 stem + "-atlas" (요청과 무관한 순수 함수).
    directory는 요청 단위 디렉터리 또는 공용 output 디렉터리.
    """
    base_name: str
    directory: Path
    font: Path
    image: Path
    json: Path

    def paths(self) -> list[Path]:
        return [self.font, self.image, self.json]

    def missing(self) -> list[str]:
        """디스크에 없는 파일명 목록."""
        return [p.name for p in self.paths() if not p.is_file()]


@dataclass
class ProcessResult:
    """외부 생성기 실행 결과."""
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


# =============================================================================
# Run Log Schemas
# =============================================================================

@dataclass
class WarningLog:
    """경고 이벤트 (처리는 계속됨)."""
    level: str  # "warning"
    code: str
    field: str
    message: str
    original_value: str | None = None
    resolved_value: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "field": self.field,
            "original_value": self.original_value,
            "resolved_value": self.resolved_value,
            "message": self.message,
        }


@dataclass
class RunLog:
    """
    실행 로그.

    요청(run) 단위 실행 결과 및 메타데이터.
    성공/실패/거절 모두 기록.
    """
    run_id: str
    started_at: str  # ISO 8601
    finished_at: str | None = None
    result: str = "pending"  # pending, success, failed

    # Request
    original_filename: str | None = None
    config: dict[str, Any] | None = None

    # Process
    command: list[str] = field(default_factory=list)
    exit_code: int | None = None
    duration_seconds: float | None = None

    # Events
    warnings: list[WarningLog] = field(default_factory=list)

    # Outputs (성공 시 파일명 목록)
    outputs: list[str] = field(default_factory=list)

    # Error (if failed)
    error_code: str | None = None
    error_context: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "result": self.result,
            "original_filename": self.original_filename,
            "config": self.config,
            "command": self.command,
            "exit_code": self.exit_code,
            "duration_seconds": self.duration_seconds,
            "warnings": [w.to_dict() for w in self.warnings],
            "outputs": self.outputs,
            "error_code": self.error_code,
            "error_context": self.error_context,
        }
