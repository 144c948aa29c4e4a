from sshbridge.core.container import container
from sshbridge.domains.terminal.services.registry import ConnectionRegistry
from sshbridge.domains.terminal.services.session_store import SessionStore
from sshbridge.infrastructures.websocket.connection_manager import WebSocketManager


def get_websocket_manager() -> WebSocketManager:
    """웹소켓 연결 관리자 인스턴스 제공"""
    return container.websocket_manager()


def get_connection_registry() -> ConnectionRegistry:
    """터미널 연결 레지스트리 인스턴스 제공"""
    return container.connection_registry()


def get_session_store() -> SessionStore:
    """세션 저장소 인스턴스 제공"""
    return container.session_store()
