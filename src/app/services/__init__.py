"""
App services: 요청 처리에 필요한 파일 입출력.

- upload: 폰트 업로드 수락/저장/폐기
"""

from .upload import UploadService, is_font_upload

__all__ = ["UploadService", "is_font_upload"]
