"""
App layer: HTTP 서버 (FastAPI).

역할:
- 폰트 업로드 수락, 생성 요청 처리, 결과 정적 서빙
- CORS / HTTPS 리다이렉트 정책
- ⚠️ 프로세스 실행/경로 정책은 core에 위임
"""
