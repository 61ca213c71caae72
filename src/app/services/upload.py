"""
Upload Service: 폰트 업로드 수락/저장/폐기

역할:
- 형식 검증: MIME 타입(font/ttf 등) 또는 확장자(.ttf/.otf) 중 하나라도 일치
- 저장명: {epoch_ms}-{random}-{원본명}, 배타적 생성으로 충돌 없음 보장
- 업로드 디렉터리는 미리 존재해야 함 (앱 시작 시 생성)
- 처리 종료 후 discard()로 삭제
"""

import logging
from pathlib import Path
from typing import BinaryIO

from src.core.ids import generate_upload_name, safe_basename
from src.domain.constants import FONT_ALLOWED_EXTENSIONS, FONT_MIME_TYPES
from src.domain.errors import ErrorCodes, PolicyRejectError
from src.domain.schemas import StoredUpload

logger = logging.getLogger(__name__)

# 저장명 충돌 시 재시도 횟수
MAX_NAME_ATTEMPTS = 5

# 스트리밍 복사 단위
COPY_CHUNK_SIZE = 1024 * 1024


def is_font_upload(filename: str | None, content_type: str | None) -> bool:
    """
    폰트 업로드 여부.

    선언된 MIME 타입 또는 파일 확장자 중 하나만 맞아도 허용.
    MIME은 font/ttf, font/otf 정확히 일치, 확장자는 대소문자 구분 ("A.TTF" 거절).
    """
    if content_type in FONT_MIME_TYPES:
        return True
    if filename and filename.endswith(FONT_ALLOWED_EXTENSIONS):
        return True
    return False


class UploadService:
    """
    업로드 디렉터리 관리자.

    Usage:
        uploads = UploadService(upload_dir)
        stored = uploads.accept(filename, content_type, file.file)
        try:
            ...
        finally:
            uploads.discard(stored)
    """

    def __init__(self, upload_dir: Path) -> None:
        self.upload_dir = upload_dir

    def validate(self, filename: str | None, content_type: str | None) -> None:
        """
        형식 검증 (저장 전).

        Raises:
            PolicyRejectError: INVALID_FILE_TYPE
        """
        if not is_font_upload(filename, content_type):
            raise PolicyRejectError(
                ErrorCodes.INVALID_FILE_TYPE,
                filename=filename,
                content_type=content_type,
            )

    def accept(
        self,
        filename: str | None,
        content_type: str | None,
        source: BinaryIO,
    ) -> StoredUpload:
        """
        업로드 검증 후 저장.

        Args:
            filename: 클라이언트 파일명
            content_type: 선언된 MIME 타입
            source: 업로드 스트림

        Returns:
            StoredUpload

        Raises:
            PolicyRejectError: INVALID_FILE_TYPE, UPLOAD_DIR_MISSING
        """
        self.validate(filename, content_type)

        if not self.upload_dir.is_dir():
            raise PolicyRejectError(
                ErrorCodes.UPLOAD_DIR_MISSING,
                upload_dir=str(self.upload_dir),
            )

        original = safe_basename(filename or "")
        path = self._write_exclusive(original, source)
        logger.info(f"Stored upload {original!r} as {path.name}")

        return StoredUpload(
            original_filename=original,
            path=path,
            content_type=content_type,
        )

    def _write_exclusive(self, original: str, source: BinaryIO) -> Path:
        """저장명 생성 + 배타적 생성. 충돌 시 새 이름으로 재시도."""
        for _ in range(MAX_NAME_ATTEMPTS):
            path = self.upload_dir / generate_upload_name(original)
            try:
                f = open(path, "xb")
            except FileExistsError:
                continue

            try:
                with f:
                    while chunk := source.read(COPY_CHUNK_SIZE):
                        f.write(chunk)
            except Exception:
                path.unlink(missing_ok=True)
                raise
            return path

        # 이론상 도달 불가 (ms 타임스탬프 + 10^9 난수)
        raise FileExistsError(f"Could not allocate upload name for {original!r}")

    def discard(self, stored: StoredUpload | None) -> None:
        """저장된 업로드 삭제 (없으면 무시)."""
        if stored is None:
            return
        try:
            stored.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to delete upload {stored.path}: {e}")
