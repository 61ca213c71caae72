"""
Process Executor: 외부 생성기 실행

동작:
1. 플랫폼별 바이너리 경로 결정 (설정/환경변수 우선)
2. 실행 권한 부여 (매 호출마다, 멱등) → 실패 시 즉시 reject
3. asyncio 자식 프로세스로 실행 후 종료 대기 (이벤트 루프 블로킹 없음)

규칙:
- 재시도 없음
- timeout은 설정된 경우에만 (기본: 무제한)
- 실패 시 출력 파일 정리는 호출 측 책임
"""

import asyncio
import logging
import os
import stat
import sys
import time
from pathlib import Path

from src.core.command import format_command
from src.domain.constants import (
    GENERATOR_BINARIES,
    GENERATOR_BINARY_DEFAULT,
    GENERATOR_BINARY_ENV,
)
from src.domain.errors import ErrorCodes, PolicyRejectError
from src.domain.schemas import ProcessResult

logger = logging.getLogger(__name__)

# 에러 메시지에 포함할 stderr 최대 길이
STDERR_TAIL_CHARS = 2000

EXECUTE_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH

# =============================================================================
# Binary Resolution
# =============================================================================


def binary_name_for_platform(platform: str) -> str:
    """
    플랫폼별 바이너리 파일명.

    darwin → msdf-atlas-gen-macos, win32 → ...-windows.exe, 그 외 → ...-linux
    """
    return GENERATOR_BINARIES.get(platform, GENERATOR_BINARY_DEFAULT)


def resolve_binary(config: dict, platform: str | None = None) -> Path:
    """
    생성기 바이너리 경로 결정.

    우선순위:
    1. 환경변수 MSDF_ATLAS_GEN_BINARY
    2. generator.binary_path
    3. generator.binary_dir / 플랫폼별 파일명

    Args:
        config: 앱 설정
        platform: sys.platform 값 (테스트용 주입)

    Returns:
        바이너리 경로 (존재 여부는 ensure_executable에서 확인)
    """
    generator_config = config.get("generator", {})

    override = os.environ.get(GENERATOR_BINARY_ENV) or generator_config.get(
        "binary_path"
    )
    if override:
        return Path(override)

    binary_dir = Path(generator_config.get("binary_dir") or "bin")
    return binary_dir / binary_name_for_platform(platform or sys.platform)


def ensure_executable(binary: Path) -> None:
    """
    실행 권한 부여 (멱등).

    이미 실행 가능하면 chmod 생략. 결과는 반드시 확인하며
    실패 시 생성 단계로 진행하지 않음.

    Raises:
        PolicyRejectError: GENERATOR_NOT_FOUND, GENERATOR_NOT_EXECUTABLE
    """
    if not binary.is_file():
        raise PolicyRejectError(
            ErrorCodes.GENERATOR_NOT_FOUND,
            binary=str(binary),
        )

    try:
        mode = binary.stat().st_mode
        if mode & EXECUTE_BITS != EXECUTE_BITS:
            os.chmod(binary, mode | EXECUTE_BITS)
    except OSError as e:
        raise PolicyRejectError(
            ErrorCodes.GENERATOR_NOT_EXECUTABLE,
            binary=str(binary),
            error=str(e),
        ) from e

    if not os.access(binary, os.X_OK):
        raise PolicyRejectError(
            ErrorCodes.GENERATOR_NOT_EXECUTABLE,
            binary=str(binary),
        )


# =============================================================================
# Execution
# =============================================================================


def _tail(text: str, limit: int = STDERR_TAIL_CHARS) -> str:
    text = text.strip()
    return text if len(text) <= limit else "..." + text[-limit:]


async def run_generator(
    command: list[str],
    timeout: float | None = None,
) -> ProcessResult:
    """
    생성기 실행 후 종료 대기.

    셸을 거치지 않고 argv를 그대로 exec 한다.

    Args:
        command: build_command() 결과
        timeout: 초 단위 제한 (None이면 무제한)

    Returns:
        ProcessResult (exit_code == 0)

    Raises:
        PolicyRejectError: GENERATOR_SPAWN_FAILED, GENERATOR_TIMEOUT,
            GENERATOR_FAILED
    """
    logger.info(f"Executing command: {format_command(command)}")
    started = time.monotonic()

    try:
        process = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        logger.error(f"Failed to spawn generator {command[0]}: {e}")
        raise PolicyRejectError(
            ErrorCodes.GENERATOR_SPAWN_FAILED,
            binary=command[0],
            error=str(e),
        ) from e

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        logger.error(f"Generator timed out after {timeout}s (pid={process.pid})")
        raise PolicyRejectError(
            ErrorCodes.GENERATOR_TIMEOUT,
            timeout_seconds=timeout,
        ) from None

    result = ProcessResult(
        exit_code=process.returncode if process.returncode is not None else -1,
        stdout=stdout_bytes.decode("utf-8", errors="replace"),
        stderr=stderr_bytes.decode("utf-8", errors="replace"),
        duration_seconds=round(time.monotonic() - started, 3),
    )

    if not result.ok:
        logger.error(
            f"Generator exited with code {result.exit_code}: {_tail(result.stderr)}"
        )
        raise PolicyRejectError(
            ErrorCodes.GENERATOR_FAILED,
            exit_code=result.exit_code,
            stderr=_tail(result.stderr),
        )

    return result
