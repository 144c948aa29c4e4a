"""
Application Lifespan Management
애플리케이션 라이프사이클 관리
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI

from sshbridge.core.container import container
from sshbridge.core.logger import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    애플리케이션 라이프사이클 관리

    - Startup: 세션 파일 로드
    - Shutdown: 남아 있는 터미널 연결 정리
    """
    # ============ Startup ============
    logger.info("애플리케이션 시작 중...")

    try:
        count = container.session_store().load()
        logger.info(f"세션 파일 로드 완료: {count}개 세션")
    except Exception as e:
        logger.error(f"세션 파일 로드 실패: {e}", exc_info=True)
        # 세션 목록은 선택 기능이므로 애플리케이션 시작을 중단하지 않음

    yield

    # ============ Shutdown ============
    logger.info("애플리케이션 종료 중...")

    try:
        disposed = await container.connection_registry().dispose_all()
        logger.info(f"터미널 연결 정리 완료: {disposed}개")
    except Exception as e:
        logger.error(f"터미널 연결 정리 실패: {e}", exc_info=True)
