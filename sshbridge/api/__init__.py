from fastapi import FastAPI
from fastapi.responses import RedirectResponse
from sshbridge.api.v1.router import api_router
from sshbridge.api.v1.router import websocket_router
from sshbridge.core.config import settings


def setup_routers(app: FastAPI) -> None:
    app.include_router(api_router)
    app.include_router(websocket_router)

    # ROOT routing: API 문서로 redirect
    @app.get('/', include_in_schema=False)
    async def index():
        return RedirectResponse(settings.DOCS_URL or '/health')

    @app.get('/health', tags=["Health"])
    async def health():
        return {"status": "ok", "version": settings.APP_VERSION}


__all__ = [
    'setup_routers'
]
