from fastapi import FastAPI

from sshbridge.core.config import settings
from sshbridge.core.lifespan import lifespan
from sshbridge.middlewares import setup_middlewares
from sshbridge.api import setup_routers
from sshbridge.core.exceptions import register_exception_handlers


def create_app() -> FastAPI:
    """REST (세션 목록) + websocket (터미널 브리지) 앱 생성"""
    bridge_app = FastAPI(
        title=settings.APP_NAME,
        description=settings.APP_DESC,
        version=settings.APP_VERSION,
        docs_url=settings.DOCS_URL,
        middleware=setup_middlewares(),
        lifespan=lifespan,  # 종료 시 열린 터미널 브리지 정리
    )

    register_exception_handlers(bridge_app)
    setup_routers(bridge_app)
    return bridge_app


app = create_app()
