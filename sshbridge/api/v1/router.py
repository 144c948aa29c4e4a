from fastapi import APIRouter
from .websockets.terminal import router as terminal_websocket
from .routers.sessions import router as sessions_router

# API Endpoint 라우터 통합 관리
api_router = APIRouter(prefix="/api/v1")
api_router.include_router(sessions_router, tags=["Sessions"])

# 웹소켓 라우터 통합 관리
websocket_router = APIRouter(prefix="/ws/v1")
websocket_router.include_router(terminal_websocket, tags=["Terminal-WS"])
