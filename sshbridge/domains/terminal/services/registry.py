import asyncio
import uuid
from typing import Any, Dict, List, Optional

from sshbridge.core.config import Settings, settings as default_settings
from sshbridge.core.exceptions import (
    TerminalConnectionExistsException,
    TerminalConnectionNotFoundException,
)
from sshbridge.core.logger import logger
from sshbridge.domains.terminal.services.bridge import TerminalBridge, TransportFactory
from sshbridge.infrastructures.websocket.interfaces import DisplaySurfaceInterface


class ConnectionRegistry:
    """
    connection_id -> TerminalBridge 매핑 관리

    - connection_id 하나에 Bridge 하나만 등록
    - dispose 는 여러 번 호출해도 안전 (surface 종료와 명시적 disconnect 가 함께 일어날 수 있음)
    """

    def __init__(
        self,
        transport_factory: Optional[TransportFactory] = None,
        app_settings: Optional[Settings] = None
    ):
        self._bridges: Dict[str, TerminalBridge] = {}
        self._transport_factory = transport_factory
        self._settings = app_settings or default_settings
        self._lock = asyncio.Lock()

    @staticmethod
    def new_connection_id() -> str:
        return str(uuid.uuid4())

    async def open_terminal(
        self,
        surface: DisplaySurfaceInterface,
        session_id: str,
        connection_id: Optional[str] = None
    ) -> TerminalBridge:
        """display surface 에 연결된 Bridge 생성 및 등록"""
        connection_id = connection_id or self.new_connection_id()

        async with self._lock:
            if connection_id in self._bridges:
                raise TerminalConnectionExistsException(connection_id)

            bridge = TerminalBridge(
                surface,
                connection_id,
                session_id,
                transport_factory=self._transport_factory,
                app_settings=self._settings,
            )
            self._bridges[connection_id] = bridge

        logger.info(f"[Registry] Terminal opened: {connection_id} (session {session_id}). Active: {len(self._bridges)}")
        return bridge

    def get(self, connection_id: str) -> TerminalBridge:
        bridge = self._bridges.get(connection_id)
        if bridge is None:
            raise TerminalConnectionNotFoundException(connection_id)
        return bridge

    def find(self, connection_id: str) -> Optional[TerminalBridge]:
        return self._bridges.get(connection_id)

    async def route(self, connection_id: str, message: Any) -> None:
        """host 가 받은 메시지를 해당 Bridge 로 전달"""
        await self.get(connection_id).handle_message(message)

    async def dispose(self, connection_id: str) -> bool:
        """Bridge 해제. 이미 해제되었으면 False"""
        async with self._lock:
            bridge = self._bridges.pop(connection_id, None)

        if bridge is None:
            logger.debug(f"[Registry] Terminal already disposed: {connection_id}")
            return False

        try:
            await bridge.dispose()
        except Exception as e:
            logger.error(f"[Registry] Error disposing terminal {connection_id}: {e}", exc_info=True)
        logger.info(f"[Registry] Terminal disposed: {connection_id}. Active: {len(self._bridges)}")
        return True

    async def dispose_all(self) -> int:
        connection_ids = list(self._bridges.keys())
        disposed = 0
        for connection_id in connection_ids:
            if await self.dispose(connection_id):
                disposed += 1
        return disposed

    def list(self) -> List[Dict[str, Any]]:
        return [bridge.summary() for bridge in self._bridges.values()]

    def __len__(self) -> int:
        return len(self._bridges)

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._bridges
