"""
Domain Constants: 서비스 전역 상수.

파일명 정책, 외부 생성기 플래그, 기본값 등 시스템 전반에서 사용되는 값들.
"""

# =============================================================================
# Upload Policy (업로드 허용 정책)
# =============================================================================
# 선언된 MIME 타입(정확히 일치) 또는 파일 확장자(대소문자 구분) 중 하나만 맞으면 허용

FONT_ALLOWED_EXTENSIONS = (".ttf", ".otf")

FONT_MIME_TYPES = frozenset({"font/ttf", "font/otf"})

# 업로드 저장명: {epoch_ms}-{random}-{원본 파일명}
UPLOAD_RANDOM_MAX = 10**9

# =============================================================================
# Generation Defaults (생성 파라미터 기본값)
# =============================================================================

GLYPHS_OPTION_ALL = "allGlyphs"
GLYPHS_OPTION_SELECTED = "selectedGlyphs"

DEFAULT_ATLAS_SIZE = 32
DEFAULT_PX_RANGE = 2

# 고정 플래그
ATLAS_TYPE = "mtsdf"
ATLAS_IMAGE_FORMAT = "png"

# =============================================================================
# Output Artifacts (출력 파일 정책)
# =============================================================================
# output/<run_id>/
# ├── <basename>-atlas.arfont
# ├── <basename>-atlas.png
# └── <basename>-atlas.json

ARTIFACT_BASENAME_SUFFIX = "-atlas"
ARTIFACT_FONT_EXT = ".arfont"
ARTIFACT_IMAGE_EXT = ".png"
ARTIFACT_JSON_EXT = ".json"

OUTPUT_URL_PREFIX = "/output"

# =============================================================================
# Generator Binary (플랫폼별 실행 파일명)
# =============================================================================

GENERATOR_BINARIES = {
    "darwin": "msdf-atlas-gen-macos",
    "win32": "msdf-atlas-gen-windows.exe",
}
GENERATOR_BINARY_DEFAULT = "msdf-atlas-gen-linux"

GENERATOR_BINARY_ENV = "MSDF_ATLAS_GEN_BINARY"

# =============================================================================
# ID Prefixes
# =============================================================================

RUN_ID_PREFIX = "RUN-"
RUN_LOG_PREFIX = "run_"
