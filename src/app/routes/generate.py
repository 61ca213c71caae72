"""
Generate Routes: 아틀라스 생성 요청.

- POST /api/generate → 폰트 업로드 + msdf-atlas-gen 실행 + 결과 URL 반환

처리 순서:
1. 업로드 검증 (파일 누락/형식) → 400, 프로세스 실행 없음
2. 생성 파라미터 파싱 (size, pxRange 기본값 32/2)
3. 업로드 저장 (고유 저장명)
4. 출력 경로 예약 (요청 단위 디렉터리 또는 base name 락)
5. 바이너리 권한 확인 → 실행 → 출력 파일 확인
6. 업로드 삭제 + RunLog 저장 (성공/실패/거절 모두, finally 블록)
"""

import asyncio
import logging
from pathlib import Path
from typing import Any

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile

from src.app.services.upload import UploadService
from src.core.command import build_command, parse_generation_config
from src.core.executor import ensure_executable, resolve_binary, run_generator
from src.core.logging import (
    complete_run_log,
    create_run_log,
    emit_warning,
    save_run_log,
)
from src.core.outputs import OutputNamespace
from src.domain.errors import ErrorCodes, PolicyRejectError, status_code_for
from src.domain.schemas import GlyphsOption

logger = logging.getLogger(__name__)

api_router = APIRouter()

SUCCESS_MESSAGE = "Atlas generated successfully"


# =============================================================================
# Helpers
# =============================================================================


def request_base_url(request: Request) -> str:
    """
    응답 URL의 scheme://host.

    scheme: X-Forwarded-Proto (프록시 뒤) 또는 실제 연결 프로토콜
    host: Host 헤더
    """
    forwarded = request.headers.get("x-forwarded-proto")
    scheme = forwarded.split(",")[0].strip() if forwarded else request.url.scheme
    host = request.headers.get("host") or request.url.netloc
    return f"{scheme}://{host}"


async def read_form_fields(request: Request) -> dict[str, str]:
    """파일을 제외한 폼 필드 원문 (응답의 config로 그대로 반환)."""
    form = await request.form()
    return {key: value for key, value in form.items() if isinstance(value, str)}


def describe_error(error: PolicyRejectError) -> str:
    """
    클라이언트 응답용 에러 메시지.

    생성기 실패는 종료 코드와 stderr를 그대로 포함한다.
    """
    ctx = error.context
    messages = {
        ErrorCodes.NO_FILE_UPLOADED: "No font file uploaded",
        ErrorCodes.INVALID_FILE_TYPE: (
            "Invalid file type. Only TTF and OTF files are allowed."
        ),
        ErrorCodes.UPLOAD_DIR_MISSING: "Upload directory is not available",
        ErrorCodes.GENERATOR_NOT_FOUND: (
            f"Generator binary not found: {ctx.get('binary')}"
        ),
        ErrorCodes.GENERATOR_NOT_EXECUTABLE: (
            f"Generator binary is not executable: {ctx.get('binary')}"
        ),
        ErrorCodes.GENERATOR_SPAWN_FAILED: (
            f"Failed to start generator: {ctx.get('error')}"
        ),
        ErrorCodes.GENERATOR_TIMEOUT: (
            f"Generator timed out after {ctx.get('timeout_seconds')}s"
        ),
        ErrorCodes.GENERATOR_OUTPUT_MISSING: (
            f"Generator did not write expected files: {ctx.get('missing')}"
        ),
        ErrorCodes.OUTPUT_LOCK_TIMEOUT: (
            f"Another atlas named {ctx.get('name')!r} is being generated. "
            f"Retry shortly."
        ),
    }

    if error.code == ErrorCodes.GENERATOR_FAILED:
        message = f"Command failed with exit code {ctx.get('exit_code')}"
        stderr = ctx.get("stderr")
        return f"{message}: {stderr}" if stderr else message

    return messages.get(error.code, str(error))


# =============================================================================
# API Routes
# =============================================================================

@api_router.post("")
async def generate_atlas(
    request: Request,
    file: UploadFile | None = File(None),
    glyphs_option: str | None = Form(None, alias="glyphsOption"),
    selected_glyphs: str | None = Form(None, alias="selectedGlyphs"),
    size: str | None = Form(None),
    px_range: str | None = Form(None, alias="pxRange"),
) -> dict[str, Any]:
    """
    폰트 → MTSDF 아틀라스 생성.

    Args:
        file: TTF/OTF 폰트
        glyphs_option: allGlyphs | selectedGlyphs (그 외: 생성기 기본값)
        selected_glyphs: selectedGlyphs 모드의 문자 집합 (그대로 전달)
        size: 아틀라스 글리프 크기 (기본 32)
        px_range: distance field 픽셀 범위 (기본 2)

    Returns:
        {success, message, output: {font, image, json}, config}
    """
    config: dict = request.app.state.config
    namespace: OutputNamespace = request.app.state.outputs
    uploads = UploadService(Path(config["paths"]["upload_dir"]))
    logs_dir = Path(config["paths"]["logs_dir"])
    timeout = config.get("generator", {}).get("timeout_seconds")

    run_log = create_run_log()

    success = False
    error_code: str | None = None
    error_context: dict[str, Any] | None = None
    stored = None

    try:
        # === 1. 업로드 검증 ===
        if file is None or not file.filename:
            raise PolicyRejectError(ErrorCodes.NO_FILE_UPLOADED)

        run_log.original_filename = file.filename
        uploads.validate(file.filename, file.content_type)

        # === 2. 생성 파라미터 ===
        form_fields = await read_form_fields(request)
        run_log.config = form_fields

        generation_config = parse_generation_config({
            "glyphsOption": glyphs_option,
            "selectedGlyphs": selected_glyphs,
            "size": size,
            "pxRange": px_range,
        })

        if glyphs_option and generation_config.glyphs_option is None:
            emit_warning(
                run_log=run_log,
                code="UNKNOWN_GLYPHS_OPTION",
                field="glyphsOption",
                message="알 수 없는 glyphsOption, 글리프 선택 플래그 생략",
                original_value=glyphs_option,
            )
        if (
            generation_config.glyphs_option is GlyphsOption.SELECTED
            and not selected_glyphs
        ):
            emit_warning(
                run_log=run_log,
                code="EMPTY_SELECTED_GLYPHS",
                field="selectedGlyphs",
                message="selectedGlyphs 모드인데 문자 집합이 비어 있음",
                resolved_value="",
            )

        # === 3. 업로드 저장 ===
        stored = await asyncio.to_thread(
            uploads.accept, file.filename, file.content_type, file.file
        )

        # === 4. 바이너리 확인 (실패 시 실행하지 않음) ===
        binary = resolve_binary(config)
        ensure_executable(binary)

        # === 5. 실행 ===
        async with namespace.reserve(
            run_log.run_id, stored.original_filename
        ) as artifacts:
            command = build_command(binary, stored.path, generation_config, artifacts)
            run_log.command = command

            result = await run_generator(command, timeout=timeout)
            run_log.exit_code = result.exit_code
            run_log.duration_seconds = result.duration_seconds

            missing = artifacts.missing()
            if missing:
                raise PolicyRejectError(
                    ErrorCodes.GENERATOR_OUTPUT_MISSING,
                    missing=missing,
                )

        run_log.outputs = [p.name for p in artifacts.paths()]
        success = True

        # === 6. 결과 반환 ===
        return {
            "success": True,
            "message": SUCCESS_MESSAGE,
            "output": namespace.public_urls(artifacts, request_base_url(request)),
            "config": form_fields,
        }

    except PolicyRejectError as e:
        error_code = e.code
        error_context = e.to_dict()
        if e.code == ErrorCodes.GENERATOR_FAILED:
            run_log.exit_code = e.context.get("exit_code")
        raise HTTPException(
            status_code=status_code_for(e.code),
            detail=describe_error(e),
        ) from e

    except HTTPException:
        raise

    except Exception as e:
        # 예상치 못한 에러
        error_code = ErrorCodes.UNEXPECTED_ERROR
        error_context = {"error": str(e)}
        logger.error(f"Error processing request: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=str(e) or "Internal server error",
        ) from e

    finally:
        # === 업로드 삭제 + RunLog 저장 (성공/실패/예외 모두) ===
        uploads.discard(stored)
        complete_run_log(
            run_log=run_log,
            success=success,
            error_code=error_code,
            error_context=error_context,
        )
        try:
            save_run_log(run_log, logs_dir)
        except OSError as e:
            logger.warning(f"Failed to save run log {run_log.run_id}: {e}")
