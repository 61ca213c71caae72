"""
파일시스템 락 / 원자적 쓰기

용도:
- 공용 output 네임스페이스 모드(isolate_requests=false)에서
  동일 base name 요청을 직렬화
- run log 원자적 저장

락 구조:
- <lock_root>/<name>.lock/ 디렉터리 (os.mkdir 원자성)
- 안에 owner.json: 획득한 프로세스 pid, hostname, acquired_at
- 소유 프로세스가 사라졌거나 오래된 락은 첫 시도에서 해제 후 재획득
"""

import asyncio
import json
import logging
import os
import socket
import tempfile
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from src.domain.errors import ErrorCodes, PolicyRejectError

logger = logging.getLogger(__name__)

# 생성기 1회 실행보다 충분히 긴 시간
STALE_LOCK_MAX_AGE_SECONDS = 3600

LOCK_OWNER_FILENAME = "owner.json"

# =============================================================================
# Lock Ownership
# =============================================================================


def _record_owner(lock_dir: Path) -> None:
    """획득한 프로세스 정보 기록 (실패해도 락은 유효)."""
    owner = {
        "pid": os.getpid(),
        "hostname": socket.gethostname(),
        "acquired_at": time.time(),
    }
    try:
        (lock_dir / LOCK_OWNER_FILENAME).write_text(
            json.dumps(owner), encoding="utf-8"
        )
    except OSError as e:
        logger.warning(f"Failed to record lock owner in {lock_dir}: {e}")


def _read_owner(lock_dir: Path) -> dict | None:
    try:
        owner = json.loads((lock_dir / LOCK_OWNER_FILENAME).read_text("utf-8"))
    except (OSError, ValueError):
        return None
    return owner if isinstance(owner, dict) else None


def _owner_gone(lock_dir: Path) -> bool:
    """
    락 소유자가 더 이상 없는지.

    같은 호스트의 pid면 프로세스 생존 여부로, 그 외에는 나이로 판단.
    owner.json이 없으면 디렉터리 mtime 기준.
    """
    owner = _read_owner(lock_dir) or {}
    pid = owner.get("pid")

    if pid and owner.get("hostname") == socket.gethostname():
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return True
        except OSError:
            pass  # 권한 없음 = 살아 있음
        return False

    acquired_at = owner.get("acquired_at")
    if not isinstance(acquired_at, (int, float)):
        try:
            acquired_at = lock_dir.stat().st_mtime
        except OSError:
            return False
    return time.time() - acquired_at > STALE_LOCK_MAX_AGE_SECONDS


def _release(lock_dir: Path) -> None:
    (lock_dir / LOCK_OWNER_FILENAME).unlink(missing_ok=True)
    os.rmdir(lock_dir)


def _try_acquire(lock_dir: Path, first_attempt: bool) -> bool:
    """
    락 획득 1회 시도.

    첫 시도에서 소유자가 사라진 락을 만나면 해제 후 한 번 더 시도.
    """
    try:
        os.mkdir(lock_dir)
    except FileExistsError:
        if not (first_attempt and _owner_gone(lock_dir)):
            return False
        try:
            _release(lock_dir)
        except OSError:
            return False
        logger.warning(f"Released abandoned lock: {lock_dir}")
        try:
            os.mkdir(lock_dir)
        except FileExistsError:
            return False  # 다른 요청이 먼저 획득

    _record_owner(lock_dir)
    return True


@asynccontextmanager
async def name_lock(
    lock_root: Path,
    name: str,
    retry_interval: float = 0.5,
    max_retries: int = 10,
) -> AsyncGenerator[Path, None]:
    """
    이름 단위 디렉터리 락.

    사용법:
        async with name_lock(lock_root, "Roboto-atlas"):
            # output/Roboto-atlas.* 쓰기

    동작:
    - 획득: os.mkdir() + owner.json
    - 대기: asyncio.sleep (이벤트 루프 블로킹 없음)
    - 해제: 정상/예외 모두 owner.json 삭제 + rmdir()
    - timeout: retry_interval * max_retries
    - 소유자가 사라진 락: 첫 시도에서 해제

    Yields:
        lock_dir: 락 디렉터리 경로

    Raises:
        PolicyRejectError: OUTPUT_LOCK_TIMEOUT
    """
    lock_root.mkdir(parents=True, exist_ok=True)
    lock_dir = lock_root / f"{name}.lock"

    acquired = False
    for attempt in range(max_retries):
        if _try_acquire(lock_dir, first_attempt=attempt == 0):
            acquired = True
            break
        await asyncio.sleep(retry_interval)

    if not acquired:
        raise PolicyRejectError(
            ErrorCodes.OUTPUT_LOCK_TIMEOUT,
            name=name,
            attempts=max_retries,
            total_wait=max_retries * retry_interval,
        )

    try:
        yield lock_dir
    finally:
        try:
            _release(lock_dir)
        except OSError as e:
            logger.warning(
                f"Lock release failed for {name}: {e}. "
                f"Manual cleanup may be required: rm -rf {lock_dir}"
            )


# =============================================================================
# Atomic Write
# =============================================================================


def _fsync_dir(dir_path: Path) -> None:
    """디렉토리 fsync (가능한 환경에서)."""
    try:
        dir_fd = os.open(str(dir_path), os.O_RDONLY | os.O_DIRECTORY)
        try:
            os.fsync(dir_fd)
        finally:
            os.close(dir_fd)
    except (OSError, AttributeError) as e:
        # O_DIRECTORY 미지원(Windows) 등
        logger.warning(
            f"Directory fsync failed for {dir_path}: {e}. "
            f"Rename durability may not be guaranteed."
        )


def atomic_write_json(path: Path, data: dict) -> None:
    """
    원자적 JSON 쓰기.

    동작:
    - 중간 상태 없음: temp → rename
    - 파일 fsync + 디렉토리 fsync (실패 시 경고만)
    - 실패 시 temp 파일 삭제, 기존 파일 보존

    Args:
        path: 저장할 파일 경로
        data: JSON 직렬화할 데이터
    """
    dir_path = path.parent
    dir_path.mkdir(parents=True, exist_ok=True)

    temp_path = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            dir=dir_path,
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        ) as f:
            temp_path = Path(f.name)
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.flush()
            try:
                os.fsync(f.fileno())
            except OSError as e:
                logger.warning(
                    f"File fsync failed for {path}: {e}. "
                    f"Data may not be durable on power loss."
                )

        os.replace(temp_path, path)

        _fsync_dir(dir_path)

    except Exception:
        if temp_path and temp_path.exists():
            try:
                temp_path.unlink()
            except OSError:
                pass
        raise
