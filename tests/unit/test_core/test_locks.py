"""
test_locks.py - 이름 락 / 원자적 쓰기 테스트

테스트 케이스:
- TC1: 동일 이름 동시 진입 시 한쪽은 대기
- TC2: 락 타임아웃 시 OUTPUT_LOCK_TIMEOUT
- TC3: 예외 발생 시에도 락 해제
- TC4: 소유자가 사라진 락 해제
- TC5: atomic_write_json 중간 상태 없음
"""

import asyncio
import json
import os
import socket
import time
from pathlib import Path
from unittest.mock import patch

import pytest

from src.core.locks import (
    LOCK_OWNER_FILENAME,
    STALE_LOCK_MAX_AGE_SECONDS,
    atomic_write_json,
    name_lock,
)
from src.domain.errors import ErrorCodes, PolicyRejectError

# =============================================================================
# TC1: 동시 접근 시 대기
# =============================================================================


class TestConcurrentNameLock:
    """동일 이름 동시 접근."""

    @pytest.mark.asyncio
    async def test_second_caller_waits_for_first(self, tmp_path: Path):
        order: list[str] = []

        async def first():
            async with name_lock(tmp_path, "Roboto-atlas", retry_interval=0.05):
                order.append("first_start")
                await asyncio.sleep(0.2)
                order.append("first_end")

        async def second():
            await asyncio.sleep(0.02)
            async with name_lock(tmp_path, "Roboto-atlas", retry_interval=0.05):
                order.append("second_start")

        await asyncio.gather(first(), second())

        assert order == ["first_start", "first_end", "second_start"]

    @pytest.mark.asyncio
    async def test_different_names_do_not_block(self, tmp_path: Path):
        async with name_lock(tmp_path, "A-atlas", max_retries=1):
            async with name_lock(tmp_path, "B-atlas", max_retries=1):
                assert (tmp_path / "A-atlas.lock").exists()
                assert (tmp_path / "B-atlas.lock").exists()


# =============================================================================
# TC2: 타임아웃
# =============================================================================


class TestLockTimeout:
    @pytest.mark.asyncio
    async def test_timeout_error_code(self, tmp_path: Path):
        async with name_lock(tmp_path, "Roboto-atlas"):
            with pytest.raises(PolicyRejectError) as exc_info:
                async with name_lock(
                    tmp_path, "Roboto-atlas", retry_interval=0.01, max_retries=3
                ):
                    pass

        assert exc_info.value.code == ErrorCodes.OUTPUT_LOCK_TIMEOUT
        assert exc_info.value.context["name"] == "Roboto-atlas"
        assert exc_info.value.context["attempts"] == 3


# =============================================================================
# TC3: 해제
# =============================================================================


class TestLockRelease:
    @pytest.mark.asyncio
    async def test_released_after_block(self, tmp_path: Path):
        async with name_lock(tmp_path, "Roboto-atlas") as lock_dir:
            assert (lock_dir / LOCK_OWNER_FILENAME).exists()

        assert not lock_dir.exists()

    @pytest.mark.asyncio
    async def test_released_on_exception(self, tmp_path: Path):
        with pytest.raises(RuntimeError):
            async with name_lock(tmp_path, "Roboto-atlas"):
                raise RuntimeError("generator crashed")

        assert not (tmp_path / "Roboto-atlas.lock").exists()


# =============================================================================
# TC4: 소유자가 사라진 락
# =============================================================================


def write_owner(lock_dir: Path, **owner: object) -> None:
    lock_dir.mkdir()
    (lock_dir / LOCK_OWNER_FILENAME).write_text(json.dumps(owner))


class TestAbandonedLock:
    @pytest.mark.asyncio
    async def test_dead_owner_lock_released(self, tmp_path: Path):
        """같은 호스트, 종료된 pid의 락은 해제 후 획득."""
        lock_dir = tmp_path / "Roboto-atlas.lock"
        write_owner(lock_dir, pid=999999, hostname=socket.gethostname())

        with patch("src.core.locks.os.kill", side_effect=ProcessLookupError):
            async with name_lock(tmp_path, "Roboto-atlas", max_retries=1):
                owner = json.loads((lock_dir / LOCK_OWNER_FILENAME).read_text())

        assert owner["pid"] == os.getpid()

    @pytest.mark.asyncio
    async def test_live_owner_lock_respected(self, tmp_path: Path):
        write_owner(
            tmp_path / "Roboto-atlas.lock",
            pid=os.getpid(),
            hostname=socket.gethostname(),
        )

        with pytest.raises(PolicyRejectError):
            async with name_lock(
                tmp_path, "Roboto-atlas", retry_interval=0.01, max_retries=2
            ):
                pass

    @pytest.mark.asyncio
    async def test_other_host_old_lock_released(self, tmp_path: Path):
        """다른 호스트의 락은 나이로 판단."""
        write_owner(
            tmp_path / "Roboto-atlas.lock",
            pid=1,
            hostname="other-host",
            acquired_at=time.time() - 2 * STALE_LOCK_MAX_AGE_SECONDS,
        )

        async with name_lock(tmp_path, "Roboto-atlas", max_retries=1):
            pass

    @pytest.mark.asyncio
    async def test_other_host_recent_lock_respected(self, tmp_path: Path):
        write_owner(
            tmp_path / "Roboto-atlas.lock",
            pid=1,
            hostname="other-host",
            acquired_at=time.time(),
        )

        with pytest.raises(PolicyRejectError):
            async with name_lock(
                tmp_path, "Roboto-atlas", retry_interval=0.01, max_retries=2
            ):
                pass


# =============================================================================
# TC5: atomic_write_json
# =============================================================================


class TestAtomicWriteJson:
    def test_writes_json(self, tmp_path: Path):
        path = tmp_path / "nested" / "run.json"

        atomic_write_json(path, {"run_id": "RUN-1", "name": "글꼴"})

        assert json.loads(path.read_text(encoding="utf-8")) == {
            "run_id": "RUN-1",
            "name": "글꼴",
        }
        assert not list(path.parent.glob("*.tmp"))

    def test_failure_keeps_existing_file(self, tmp_path: Path):
        """직렬화 실패 시 기존 파일 보존, temp 정리."""
        path = tmp_path / "run.json"
        path.write_text('{"old": true}', encoding="utf-8")

        with pytest.raises(TypeError):
            atomic_write_json(path, {"bad": object()})

        assert json.loads(path.read_text()) == {"old": True}
        assert not list(tmp_path.glob("*.tmp"))
