"""
ID 생성: run_id, 업로드 저장명

규칙:
- run_id: 요청마다 새로 발급 (출력 디렉터리 이름으로도 사용)
- 업로드 저장명: 동일 원본명 동시 업로드에도 충돌 없어야 함
"""

import random
import time
import uuid
from datetime import UTC, datetime
from pathlib import PurePath

from src.domain.constants import (
    ARTIFACT_BASENAME_SUFFIX,
    RUN_ID_PREFIX,
    UPLOAD_RANDOM_MAX,
)


def generate_run_id() -> str:
    """
    Run ID 생성.

    고유성 보장: UUID v4
    포맷: RUN-{timestamp}-{uuid[:8]}

    Returns:
        run_id 문자열
    """
    now = datetime.now(UTC)
    timestamp = now.strftime("%Y%m%d%H%M%S")
    unique = uuid.uuid4().hex[:8]

    return f"{RUN_ID_PREFIX}{timestamp}-{unique}"


def generate_upload_name(original_filename: str) -> str:
    """
    업로드 저장명 생성.

    포맷: {epoch_ms}-{random}-{원본 파일명}
    충돌 방지는 호출 측의 배타적 생성(xb)과 함께 보장됨.

    Args:
        original_filename: 클라이언트가 보낸 파일명

    Returns:
        저장용 파일명 (디렉터리 성분 제거됨)
    """
    timestamp_ms = int(time.time() * 1000)
    unique = random.randint(0, UPLOAD_RANDOM_MAX)
    return f"{timestamp_ms}-{unique}-{safe_basename(original_filename)}"


def safe_basename(filename: str) -> str:
    """
    클라이언트 파일명에서 디렉터리 성분 제거.

    - "../../etc/passwd" → "passwd"
    - "C:\\fonts\\a.ttf" → "a.ttf"
    - 빈 값 → "font"
    """
    # 윈도우 구분자도 처리
    name = PurePath(filename.replace("\\", "/")).name
    name = name.strip().lstrip(".")
    return name or "font"


def artifact_base_name(original_filename: str) -> str:
    """
    출력 파일 base name.

    원본 파일명만의 순수 함수: "Roboto-Regular.ttf" → "Roboto-Regular-atlas"
    """
    stem = PurePath(safe_basename(original_filename)).stem or "font"
    return f"{stem}{ARTIFACT_BASENAME_SUFFIX}"
