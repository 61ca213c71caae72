"""
Retention: 생성 결과/업로드 보관 정책

정책:
- output_ttl_hours 초과 항목 정리 (요청 디렉터리 또는 공용 모드 파일)
- upload_ttl_hours 초과 업로드 정리 (정상 경로에서는 요청 종료 시 이미 삭제됨,
  프로세스 중단 등으로 남은 파일 대상)
- 숨김 항목(.locks 등)은 건드리지 않음

실행:
- 앱 lifespan의 주기적 sweep (retention.sweep_interval_seconds)
- scripts/purge_outputs.py (cron 용)
"""

import asyncio
import logging
import shutil
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path

from src.domain.constants import RUN_ID_PREFIX

logger = logging.getLogger(__name__)


@dataclass
class RetentionConfig:
    """보관 정책 설정."""
    output_ttl_hours: float | None = 24.0
    upload_ttl_hours: float | None = 1.0
    sweep_interval_seconds: float | None = 3600.0

    @classmethod
    def from_config(cls, config: dict) -> "RetentionConfig":
        retention = config.get("retention", {})
        return cls(
            output_ttl_hours=retention.get("output_ttl_hours", 24.0),
            upload_ttl_hours=retention.get("upload_ttl_hours", 1.0),
            sweep_interval_seconds=retention.get("sweep_interval_seconds", 3600.0),
        )


@dataclass
class PurgeResult:
    """Purge 결과."""
    scanned_entries: int = 0
    scanned_size_mb: float = 0.0

    purged_entries: int = 0
    purged_files: int = 0
    purged_size_mb: float = 0.0

    errors: list[str] = field(default_factory=list)


def get_entry_size(entry: Path) -> int:
    """파일 또는 디렉터리 전체 크기 (bytes)."""
    try:
        if entry.is_file():
            return entry.stat().st_size
        return sum(f.stat().st_size for f in entry.rglob("*") if f.is_file())
    except OSError:
        return 0


def count_files(entry: Path) -> int:
    if entry.is_file():
        return 1
    return sum(1 for f in entry.rglob("*") if f.is_file())


def get_entry_time(entry: Path) -> datetime:
    """
    항목 생성 시각.

    요청 디렉터리명(RUN-20240115093000-xxxx)에서 파싱 시도, 실패 시 mtime.
    """
    name = entry.name
    if entry.is_dir() and name.startswith(RUN_ID_PREFIX):
        try:
            dt_str = name[len(RUN_ID_PREFIX):len(RUN_ID_PREFIX) + 14]
            parsed = datetime.strptime(dt_str, "%Y%m%d%H%M%S")
            # run_id는 UTC 기준, 비교는 로컬 naive 시각
            return parsed.replace(tzinfo=UTC).astimezone().replace(tzinfo=None)
        except ValueError:
            pass
    return datetime.fromtimestamp(entry.stat().st_mtime)


def remove_entry(entry: Path) -> None:
    if entry.is_dir():
        shutil.rmtree(entry)
    else:
        entry.unlink()


def purge_expired(
    root: Path,
    ttl_hours: float,
    execute: bool,
    result: PurgeResult | None = None,
    now: datetime | None = None,
) -> PurgeResult:
    """
    root 바로 아래 항목 중 TTL 초과 항목 정리.

    Args:
        root: output/ 또는 uploads/ 디렉터리
        ttl_hours: 보관 시간
        execute: False면 dry-run (삭제 없이 집계만)
        result: 누적할 PurgeResult (없으면 새로 생성)
        now: 기준 시각 (테스트용 주입)

    Returns:
        PurgeResult
    """
    result = result or PurgeResult()

    if not root.exists():
        logger.warning(f"디렉터리 없음: {root}")
        return result

    now = now or datetime.now()
    cutoff = now - timedelta(hours=ttl_hours)

    for entry in sorted(root.iterdir()):
        if entry.name.startswith("."):
            continue

        size = get_entry_size(entry)
        result.scanned_entries += 1
        result.scanned_size_mb += size / (1024 * 1024)

        try:
            entry_time = get_entry_time(entry)
        except OSError:
            continue  # 스캔 중 삭제됨
        if entry_time >= cutoff:
            continue

        file_count = count_files(entry)
        if execute:
            try:
                remove_entry(entry)
            except OSError as e:
                result.errors.append(f"삭제 실패 {entry}: {e}")
                logger.error(f"삭제 실패 {entry}: {e}")
                continue
            logger.info(f"삭제됨: {entry} ({size / 1024:.1f} KB)")
        else:
            logger.info(f"[DRY-RUN] 삭제 예정: {entry} ({size / 1024:.1f} KB)")

        result.purged_entries += 1
        result.purged_files += file_count
        result.purged_size_mb += size / (1024 * 1024)

    return result


def sweep(
    output_root: Path,
    upload_root: Path,
    retention: RetentionConfig,
    execute: bool = True,
) -> PurgeResult:
    """output/uploads 양쪽에 보관 정책 적용."""
    result = PurgeResult()
    if retention.output_ttl_hours:
        purge_expired(output_root, retention.output_ttl_hours, execute, result)
    if retention.upload_ttl_hours:
        purge_expired(upload_root, retention.upload_ttl_hours, execute, result)
    return result


async def periodic_sweep(
    output_root: Path,
    upload_root: Path,
    retention: RetentionConfig,
) -> None:
    """
    주기적 sweep 루프 (lifespan 백그라운드 태스크).

    파일시스템 작업은 스레드에서 실행. 취소될 때까지 반복.
    한 회차 실패는 기록만 하고 다음 회차 진행.
    """
    interval = retention.sweep_interval_seconds
    if not interval:
        return

    while True:
        await asyncio.sleep(interval)
        try:
            result = await asyncio.to_thread(
                sweep, output_root, upload_root, retention
            )
        except Exception as e:
            logger.error(f"Retention sweep failed: {e}", exc_info=True)
            continue

        if result.purged_entries:
            logger.info(
                f"Retention sweep: {result.purged_entries} entries, "
                f"{result.purged_size_mb:.2f} MB purged"
            )
