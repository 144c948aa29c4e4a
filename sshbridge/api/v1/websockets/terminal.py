from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, WebSocket, Depends

from sshbridge.api.dependencies import get_connection_registry, get_session_store, get_websocket_manager
from sshbridge.core.exceptions import (
    BaseAppException,
    WSCloseCode,
    WSErrorResponse,
    WSInvalidMessageException,
    send_error_and_close,
)
from sshbridge.core.logger import logger
from sshbridge.domains.terminal.schemas.messages import decode_frame
from sshbridge.domains.terminal.services.registry import ConnectionRegistry
from sshbridge.domains.terminal.services.session_store import SessionStore
from sshbridge.infrastructures.websocket.connection_manager import WebSocketManager, WebSocketSurface

router = APIRouter()

# connect 설정 중 저장된 세션이 결정하는 필드
_SESSION_FIELDS = ("host", "port", "username", "password")


def _connect_config_slot(message: Dict[str, Any]) -> Optional[Tuple[Dict[str, Any], str]]:
    """connect 메시지에서 설정이 들어 있는 (dict, key) 위치 (typed / legacy 형식)"""
    if message.get("type") == "connect":
        payload = message.get("payload")
        return (payload, "connectionConfig") if isinstance(payload, dict) else None
    if message.get("command") == "connect":
        return message, "config"
    return None


def resolve_saved_session(frame: Any, session_id: str, store: SessionStore) -> Any:
    """host 가 없는 connect 설정을 저장된 세션 정보로 완성

    자격 증명(username / password)은 클라이언트가 보낸 값을 사용하고 host / port 는
    저장된 세션에서 가져온다. 그 외 메시지는 그대로 반환한다.

    Raises:
        ResourceNotFoundException: 저장된 세션이 없음
        ValidationException: 세션 + 자격 증명으로 설정을 만들 수 없음
    """
    try:
        message = decode_frame(frame)
    except WSInvalidMessageException:
        return frame  # Bridge 가 error envelope 으로 응답
    if not isinstance(message, dict):
        return frame

    slot = _connect_config_slot(message)
    if slot is None:
        return frame
    container, key = slot
    config = container.get(key)
    if not isinstance(config, dict) or config.get("host"):
        return frame

    overrides = {name: value for name, value in config.items() if name not in _SESSION_FIELDS}
    resolved = store.to_connection_config(
        session_id,
        username=config.get("username") or "",
        password=config.get("password"),
        **overrides
    )
    logger.info(f"Resolved connect config from saved session {session_id} -> {resolved.host}:{resolved.port}")

    completed = dict(container, **{key: resolved.model_dump(by_alias=True)})
    if container is message:
        return completed
    return dict(message, payload=completed)


@router.websocket("/terminal/{session_id}")
async def terminal_websocket_endpoint(
    websocket: WebSocket,
    session_id: str,
    ws_manager: WebSocketManager = Depends(get_websocket_manager),
    registry: ConnectionRegistry = Depends(get_connection_registry),
    session_store: SessionStore = Depends(get_session_store)
):
    """
    SSH 터미널 웹소켓 엔드포인트

    웹소켓 하나당 Bridge 하나. 라우터는 연결 관리, 저장된 세션 해석, 메시지 전달만
    담당하고 SSH 동작은 Bridge 에 위임한다.
    """
    connection_id = registry.new_connection_id()
    await ws_manager.connect(websocket, connection_id, metadata={"session_id": session_id})

    surface = WebSocketSurface(ws_manager, connection_id)
    surface.start()

    try:
        await registry.open_terminal(surface, session_id, connection_id=connection_id)

        while True:
            message = await ws_manager.receive_message(connection_id)
            if message is None:
                logger.info(f"WebSocket client disconnected: {connection_id}")
                break

            if message["type"] not in ("json", "text", "bytes"):
                logger.warning(f"Unhandled websocket frame from {connection_id}: {message['data']}")
                continue

            try:
                frame = resolve_saved_session(message["data"], session_id, session_store)
            except BaseAppException as e:
                logger.warning(f"Cannot resolve saved session [{connection_id}]: {e}")
                surface.post_message(WSErrorResponse.from_exception(e, connection_id, session_id))
                continue

            # 잘못된 형식은 Bridge 가 error envelope 으로 응답
            await registry.route(connection_id, frame)

    except BaseAppException as e:
        logger.error(f"Terminal websocket error [{connection_id}]: {e}", extra={"error": e.to_log_dict()})
        await surface.close(drain=False)
        await send_error_and_close(
            websocket,
            e,
            close_code=WSCloseCode.POLICY_VIOLATION.value,
            connection_id=connection_id,
            session_id=session_id
        )

    except Exception as e:
        logger.error(f"Unhandled exception in terminal websocket endpoint: {str(e)}", exc_info=True)

    finally:
        # 패널 종료와 명시적 disconnect 가 겹쳐도 dispose 는 한 번만 동작
        await registry.dispose(connection_id)
        await surface.close()
        await ws_manager.disconnect(connection_id)
