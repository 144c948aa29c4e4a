import asyncio
import json
from typing import Any, Dict, List, Optional

from fastapi import WebSocket, WebSocketDisconnect

from sshbridge.core.logger import logger
from sshbridge.infrastructures.websocket.interfaces import DisplaySurfaceInterface


class WebSocketManager:
    """Low-level reusable WebSocket connection manager"""

    def __init__(self):
        self.connections: Dict[str, WebSocket] = {}
        self.connection_metadata: Dict[str, Dict[str, Any]] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, connection_id: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        """Accept WebSocket connection and store it"""
        await websocket.accept()

        async with self._lock:
            self.connections[connection_id] = websocket
            self.connection_metadata[connection_id] = metadata or {}

        logger.info(f"WebSocket connection established: {connection_id}")

    async def disconnect(self, connection_id: str) -> None:
        """Remove WebSocket connection"""
        async with self._lock:
            self.connections.pop(connection_id, None)
            self.connection_metadata.pop(connection_id, None)

        logger.info(f"WebSocket connection removed: {connection_id}")

    async def send_json(self, connection_id: str, data: Dict[str, Any]) -> bool:
        """특정 웹소켓 연결에게 json 형식의 메세지 발신"""
        websocket = self.connections.get(connection_id)
        if websocket is None:
            logger.warning(f"Connection not found: {connection_id}")
            return False

        try:
            await websocket.send_json(data)
            return True
        except WebSocketDisconnect:
            await self.disconnect(connection_id)
            return False
        except Exception as e:
            logger.error(f"Error sending JSON to {connection_id}: {e}")
            return False

    async def receive_message(self, connection_id: str) -> Optional[Dict[str, Any]]:
        """Receive message from specific connection

        Returns ``None`` once the client has gone away.
        """
        websocket = self.connections.get(connection_id)
        if websocket is None:
            return None

        try:
            message = await websocket.receive()
        except WebSocketDisconnect:
            await self.disconnect(connection_id)
            return None

        if message.get("type") == "websocket.disconnect":
            await self.disconnect(connection_id)
            return None

        if message.get("text") is not None:
            try:
                return {"type": "json", "data": json.loads(message["text"])}
            except json.JSONDecodeError:
                return {"type": "text", "data": message["text"]}
        elif message.get("bytes") is not None:
            return {"type": "bytes", "data": message["bytes"]}
        return {"type": "unknown", "data": message}

    def is_connected(self, connection_id: str) -> bool:
        """Check if connection exists"""
        return connection_id in self.connections

    def get_metadata(self, connection_id: str) -> Optional[Dict[str, Any]]:
        """Get connection metadata"""
        return self.connection_metadata.get(connection_id)

    def get_connection_count(self) -> int:
        """Get total number of active connections"""
        return len(self.connections)

    def get_connection_ids(self) -> List[str]:
        """Get all active connection IDs"""
        return list(self.connections.keys())


class WebSocketSurface(DisplaySurfaceInterface):
    """
    웹소켓 하나를 Bridge 의 display surface 로 감싸는 어댑터

    post_message 는 큐에 넣기만 하고 writer task 가 순서대로 전송한다.
    """

    def __init__(self, manager: WebSocketManager, connection_id: str):
        self._manager = manager
        self._connection_id = connection_id
        self._queue: "asyncio.Queue[Optional[Dict[str, Any]]]" = asyncio.Queue()
        self._writer_task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        if self._writer_task is None:
            self._writer_task = asyncio.create_task(self._writer())

    def post_message(self, message: Dict[str, Any]) -> None:
        if self._closed:
            return
        self._queue.put_nowait(message)

    async def _writer(self) -> None:
        while True:
            message = await self._queue.get()
            if message is None:
                break
            if not await self._manager.send_json(self._connection_id, message):
                logger.debug(f"Surface {self._connection_id} dropped message: {message.get('type')}")

    async def close(self, drain: bool = True) -> None:
        """writer task 종료 (drain=True 면 남은 메시지를 먼저 전송)"""
        if self._closed:
            return
        self._closed = True

        task = self._writer_task
        if task is None:
            return
        if drain:
            self._queue.put_nowait(None)
            await task
        else:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
