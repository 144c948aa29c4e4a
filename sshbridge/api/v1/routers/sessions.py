"""
Session / Terminal REST API Router
저장된 세션 목록과 활성 터미널 연결 조회
"""

from typing import List

from fastapi import APIRouter, Depends, Path

from sshbridge.api.dependencies import get_connection_registry, get_session_store
from sshbridge.core.logger import logger
from sshbridge.domains.terminal.schemas.session import (
    SavedSession,
    SessionListResponse,
    TerminalSummary,
)
from sshbridge.domains.terminal.services.registry import ConnectionRegistry
from sshbridge.domains.terminal.services.session_store import SessionStore

router = APIRouter()


@router.get("/sessions", response_model=SessionListResponse, response_model_by_alias=True)
async def list_sessions(store: SessionStore = Depends(get_session_store)):
    """
    저장된 세션 목록 조회

    - 폴더별 세션 목록 (자격 증명은 포함하지 않음)
    """
    folders = store.list_folders()
    total = sum(len(folder.sessions) for folder in folders)
    logger.debug(f"[SESSION-API] Listing {total} sessions")
    return SessionListResponse(folders=folders, total=total)


@router.get("/sessions/{session_id}", response_model=SavedSession, response_model_by_alias=True)
async def get_session(
    session_id: str = Path(..., description="세션 ID"),
    store: SessionStore = Depends(get_session_store),
):
    """세션 하나의 접속 정보 조회 (없으면 404)"""
    return store.get_session(session_id)


@router.get("/terminals", response_model=List[TerminalSummary], response_model_by_alias=True)
async def list_terminals(registry: ConnectionRegistry = Depends(get_connection_registry)):
    """활성 터미널 연결과 상태 조회"""
    return registry.list()
