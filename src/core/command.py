"""
Command Builder: 생성 파라미터 → msdf-atlas-gen 인자 벡터

호출 형식:
    <binary> -font <path> -type mtsdf -format png -size <n> -pxrange <n>
             [-allglyphs | -chars <chars>]
             -arfont <path> -imageout <path> -json <path>

규칙:
- 셸 문자열 금지: 항상 argv 리스트로 구성 (셸 해석 없음)
- 값은 가공 없이 그대로 전달 (selectedGlyphs 포함)
- 로그 출력용 문자열은 format_command()로만 생성
"""

import shlex
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from src.domain.constants import (
    ATLAS_IMAGE_FORMAT,
    ATLAS_TYPE,
    DEFAULT_ATLAS_SIZE,
    DEFAULT_PX_RANGE,
)
from src.domain.schemas import ArtifactSet, GenerationConfig, GlyphsOption

# =============================================================================
# Config Parsing
# =============================================================================


def parse_glyphs_option(value: str | None) -> GlyphsOption | None:
    """
    glyphsOption 폼 값 파싱.

    알 수 없는 값은 None (글리프 플래그 없이 생성기 기본 동작).
    """
    if not value:
        return None
    try:
        return GlyphsOption(value)
    except ValueError:
        return None


def parse_flag_value(value: Any, default: int) -> str:
    """
    숫자 플래그 폼 값 (-size, -pxrange).

    None / 빈 문자열 → default, 그 외에는 앞뒤 공백만 제거하고 그대로 전달.
    값의 유효성은 생성기가 판단 (잘못된 값은 생성기 실패로 보고됨).
    """
    if value is None:
        return str(default)
    text = str(value).strip()
    return text or str(default)


def parse_generation_config(fields: Mapping[str, Any]) -> GenerationConfig:
    """
    요청 폼 필드 → GenerationConfig.

    Args:
        fields: glyphsOption, selectedGlyphs, size, pxRange (모두 선택)

    Returns:
        기본값이 채워진 GenerationConfig
    """
    glyphs_option = parse_glyphs_option(fields.get("glyphsOption"))

    selected_glyphs = None
    if glyphs_option is GlyphsOption.SELECTED:
        # 빈 값도 그대로 전달 (생성기가 판단)
        selected_glyphs = fields.get("selectedGlyphs") or ""

    return GenerationConfig(
        glyphs_option=glyphs_option,
        selected_glyphs=selected_glyphs,
        size=parse_flag_value(fields.get("size"), DEFAULT_ATLAS_SIZE),
        px_range=parse_flag_value(fields.get("pxRange"), DEFAULT_PX_RANGE),
    )


# =============================================================================
# Command Construction
# =============================================================================


def glyph_selection_args(config: GenerationConfig) -> list[str]:
    """글리프 선택 플래그 (없으면 빈 리스트)."""
    if config.glyphs_option is GlyphsOption.ALL:
        return ["-allglyphs"]
    if config.glyphs_option is GlyphsOption.SELECTED:
        return ["-chars", config.selected_glyphs or ""]
    return []


def build_command(
    binary: Path,
    font_path: Path,
    config: GenerationConfig,
    artifacts: ArtifactSet,
) -> list[str]:
    """
    msdf-atlas-gen 실행 인자 벡터 생성.

    Args:
        binary: 생성기 실행 파일 경로
        font_path: 저장된 업로드 폰트 경로
        config: 생성 파라미터
        artifacts: 출력 파일 경로 3종

    Returns:
        argv 리스트 (argv[0] = binary)
    """
    command = [
        str(binary),
        "-font", str(font_path),
        "-type", ATLAS_TYPE,
        "-format", ATLAS_IMAGE_FORMAT,
        "-size", config.size,
        "-pxrange", config.px_range,
    ]

    command.extend(glyph_selection_args(config))

    command.extend([
        "-arfont", str(artifacts.font),
        "-imageout", str(artifacts.image),
        "-json", str(artifacts.json),
    ])
    return command


def format_command(command: list[str]) -> str:
    """로그 출력용 셸 인용 문자열 (실행에는 사용하지 않음)."""
    return shlex.join(command)
