"""
Output namespace: 생성 결과 경로/URL 관리

레이아웃:
- isolate_requests=true (기본): output/<run_id>/<basename>-atlas.<ext>
  → 요청마다 별도 디렉터리, 동일 base name 경쟁 없음
- isolate_requests=false: output/<basename>-atlas.<ext>
  → 공용 네임스페이스, base name 단위 락으로 직렬화
"""

import logging
import shutil
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from urllib.parse import quote

from src.core.ids import artifact_base_name
from src.core.locks import name_lock
from src.domain.constants import (
    ARTIFACT_FONT_EXT,
    ARTIFACT_IMAGE_EXT,
    ARTIFACT_JSON_EXT,
    OUTPUT_URL_PREFIX,
)
from src.domain.schemas import ArtifactSet

logger = logging.getLogger(__name__)


class OutputNamespace:
    """
    output 디렉터리 관리자.

    Usage:
        namespace = OutputNamespace(output_root, config)
        async with namespace.reserve(run_id, "Roboto.ttf") as artifacts:
            ...  # 생성기 실행
        urls = namespace.public_urls(artifacts, base_url)
    """

    def __init__(self, output_root: Path, config: dict | None = None) -> None:
        self.output_root = output_root
        config = config or {}
        outputs_config = config.get("outputs", {})
        self.isolate_requests: bool = outputs_config.get("isolate_requests", True)
        self.lock_retry_interval: float = outputs_config.get(
            "lock_retry_interval", 0.5
        )
        self.lock_max_retries: int = outputs_config.get("lock_max_retries", 10)
        self.lock_root = Path(
            config.get("paths", {}).get("lock_dir") or output_root.parent / ".locks"
        )

    def artifacts_for(self, run_id: str, original_filename: str) -> ArtifactSet:
        """run_id + 원본 파일명 → 출력 경로 3종 (디렉터리 생성 없음)."""
        base_name = artifact_base_name(original_filename)
        directory = (
            self.output_root / run_id if self.isolate_requests else self.output_root
        )
        return ArtifactSet(
            base_name=base_name,
            directory=directory,
            font=directory / f"{base_name}{ARTIFACT_FONT_EXT}",
            image=directory / f"{base_name}{ARTIFACT_IMAGE_EXT}",
            json=directory / f"{base_name}{ARTIFACT_JSON_EXT}",
        )

    @asynccontextmanager
    async def reserve(
        self, run_id: str, original_filename: str
    ) -> AsyncGenerator[ArtifactSet, None]:
        """
        출력 경로 예약.

        - 요청 격리 모드: 요청 디렉터리 생성, 예외 시 디렉터리 삭제
        - 공용 모드: base name 락 획득 (예외 시 파일은 남음)

        Raises:
            PolicyRejectError: OUTPUT_LOCK_TIMEOUT (공용 모드)
        """
        artifacts = self.artifacts_for(run_id, original_filename)

        if not self.isolate_requests:
            self.output_root.mkdir(parents=True, exist_ok=True)
            async with name_lock(
                self.lock_root,
                artifacts.base_name,
                retry_interval=self.lock_retry_interval,
                max_retries=self.lock_max_retries,
            ):
                yield artifacts
            return

        artifacts.directory.mkdir(parents=True, exist_ok=False)
        try:
            yield artifacts
        except Exception:
            self.discard(artifacts)
            raise

    def discard(self, artifacts: ArtifactSet) -> None:
        """요청 디렉터리 삭제 (요청 격리 모드에서만)."""
        if not self.isolate_requests:
            return
        if artifacts.directory.exists():
            shutil.rmtree(artifacts.directory, ignore_errors=True)
            logger.info(f"Discarded partial outputs: {artifacts.directory}")

    def url_path(self, path: Path) -> str:
        """파일 경로 → /output/... URL 경로 (퍼센트 인코딩)."""
        relative = path.relative_to(self.output_root)
        return f"{OUTPUT_URL_PREFIX}/" + "/".join(
            quote(part) for part in relative.parts
        )

    def public_urls(self, artifacts: ArtifactSet, base_url: str) -> dict[str, str]:
        """
        응답용 절대 URL.

        Returns:
            {"font": ..., "image": ..., "json": ...}
        """
        base_url = base_url.rstrip("/")
        return {
            "font": base_url + self.url_path(artifacts.font),
            "image": base_url + self.url_path(artifacts.image),
            "json": base_url + self.url_path(artifacts.json),
        }
