"""
FastAPI 애플리케이션 진입점.

실행:
- 개발: uv run uvicorn src.app.main:app --reload --port 9090
- 프로덕션: uv run python -m src.app.main  (PORT, HOST 환경변수)
"""

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.app.config import load_config
from src.app.routes import generate
from src.core.outputs import OutputNamespace
from src.core.retention import RetentionConfig, periodic_sweep
from src.domain.constants import OUTPUT_URL_PREFIX

logger = logging.getLogger(__name__)


# =============================================================================
# Lifespan
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    애플리케이션 생명주기 관리.

    시작 시: uploads/output/logs 디렉터리 생성, 보관 정책 sweep 시작
    종료 시: sweep 태스크 취소
    """
    config: dict = app.state.config
    paths = config["paths"]
    for key in ("upload_dir", "output_dir", "logs_dir"):
        Path(paths[key]).mkdir(parents=True, exist_ok=True)

    sweep_task = asyncio.create_task(
        periodic_sweep(
            Path(paths["output_dir"]),
            Path(paths["upload_dir"]),
            RetentionConfig.from_config(config),
        )
    )

    yield

    sweep_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweep_task


# =============================================================================
# App Factory
# =============================================================================


def create_app(config: dict | None = None) -> FastAPI:
    """
    앱 인스턴스 생성.

    Args:
        config: load_config() 결과 (None이면 default.yaml 로드)
    """
    config = config or load_config()

    app = FastAPI(
        title="MSDF Atlas Service",
        description="TTF/OTF 폰트 → MTSDF 아틀라스 (msdf-atlas-gen)",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.outputs = OutputNamespace(Path(config["paths"]["output_dir"]), config)

    # === HTTPS 리다이렉트 (프록시가 http로 받은 요청) ===
    if config["server"].get("force_https"):

        @app.middleware("http")
        async def redirect_forwarded_http(
            request: Request,
            call_next: Callable[[Request], Awaitable[Response]],
        ) -> Response:
            if request.headers.get("x-forwarded-proto") == "http":
                host = request.headers.get("host") or request.url.netloc
                url = f"https://{host}{request.url.path}"
                if request.url.query:
                    url += f"?{request.url.query}"
                return RedirectResponse(url, status_code=302)
            return await call_next(request)

    # === CORS: 허용 origin 1개 ===
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config["cors"]["allowed_origin"]],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # === 에러 응답 형식: {"error": message} ===
    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        fields = [".".join(str(p) for p in err["loc"]) for err in exc.errors()]
        return JSONResponse(
            status_code=400,
            content={"error": f"Invalid request fields: {', '.join(fields)}"},
        )

    # === Routes ===
    app.include_router(
        generate.api_router, prefix="/api/generate", tags=["Generate API"]
    )

    @app.get("/")
    async def root() -> dict[str, Any]:
        """서비스 정보."""
        return {
            "message": "MSDF Atlas Service",
            "endpoints": {
                "generate": "/api/generate",
                "output": f"{OUTPUT_URL_PREFIX}/",
            },
        }

    @app.get("/health")
    async def health() -> dict[str, str]:
        """헬스 체크."""
        return {"status": "ok"}

    # === 생성 결과 정적 서빙 (읽기 전용) ===
    # 디렉터리는 lifespan에서 생성
    app.mount(
        OUTPUT_URL_PREFIX,
        StaticFiles(directory=config["paths"]["output_dir"], check_dir=False),
        name="output",
    )

    return app


app = create_app()


# =============================================================================
# CLI Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    server_config = app.state.config["server"]
    logger.info(f"Server is running on port {server_config['port']}")
    uvicorn.run(
        app,
        host=server_config["host"],
        port=server_config["port"],
    )
