from typing import List
from fastapi.middleware import Middleware
from fastapi.middleware.cors import CORSMiddleware

from sshbridge.core.config import settings


def setup_middlewares() -> List[Middleware]:
    # 세션 목록 REST 호출용. websocket 핸드셰이크는 CORS 대상이 아님
    wildcard = "*" in settings.CORS_ORIGINS
    return [
        Middleware(
            CORSMiddleware,
            allow_origins=settings.CORS_ORIGINS,
            allow_credentials=not wildcard,
            allow_methods=["GET", "OPTIONS"],
            allow_headers=["*"],
        ),
    ]


__all__ = [
    'setup_middlewares',
]
