"""WebSocket error helpers

Bridge 바깥 (라우터 단계) 에서 발생한 에러도 터미널 envelope 과 같은 모양으로 보낸다:
``{connectionId, sessionId, type: "error", payload: {message, errorCode, detail?}, timestamp}``
"""

import time
from typing import Any, Dict, Optional

from fastapi import WebSocket

from sshbridge.core.exceptions.base import BaseAppException
from sshbridge.core.exceptions.error_codes import WSCloseCode
from sshbridge.core.logger import logger


class WSErrorResponse:
    """WebSocket error envelope"""

    @staticmethod
    def create(
        error_code: int,
        message: str,
        detail: Optional[str] = None,
        connection_id: Optional[str] = None,
        session_id: Optional[str] = None
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"message": message, "errorCode": error_code}
        if detail:
            payload["detail"] = detail

        return {
            "connectionId": connection_id,
            "sessionId": session_id,
            "type": "error",
            "payload": payload,
            "timestamp": int(time.time() * 1000),
        }

    @staticmethod
    def from_exception(
        exc: BaseAppException,
        connection_id: Optional[str] = None,
        session_id: Optional[str] = None
    ) -> Dict[str, Any]:
        return WSErrorResponse.create(
            error_code=exc.code,
            message=exc.message,
            detail=exc.detail,
            connection_id=connection_id,
            session_id=session_id,
        )


async def send_error_and_close(
    websocket: WebSocket,
    exc: BaseAppException,
    close_code: int = WSCloseCode.INTERNAL_ERROR.value,
    connection_id: Optional[str] = None,
    session_id: Optional[str] = None
) -> None:
    """error envelope 전송 후 연결 종료 (전송/종료 실패는 로그만)"""
    log_id = connection_id or str(id(websocket))

    try:
        await websocket.send_json(WSErrorResponse.from_exception(exc, connection_id, session_id))
        logger.debug(f"[WS:{log_id}] Error message sent: {exc.code}")
    except Exception as send_error:
        logger.error(f"[WS:{log_id}] Failed to send error message: {send_error}")

    try:
        # close reason 은 123 바이트 제한
        reason_text = exc.error_code.message[:100]
        await websocket.close(code=close_code, reason=reason_text)
        logger.info(f"[WS:{log_id}] Connection closed: code={close_code}, reason={reason_text}")
    except Exception as close_error:
        logger.error(f"[WS:{log_id}] Failed to close connection: {close_error}")
