import asyncio
import time
from collections import deque
from typing import Any, Callable, Deque, Dict, Optional

from sshbridge.core.logger import logger
from sshbridge.domains.terminal.schemas.messages import OutboundType
from sshbridge.infrastructures.websocket.interfaces import DisplaySurfaceInterface


class EnvelopeSender:
    """
    display surface 로 envelope 을 순서대로 전달

    큰 output (threshold 초과) 이 직전 전송 후 window 이내에 들어오면 delay 만큼 한 번 미룬다.
    미뤄진 envelope 뒤에 들어온 envelope 은 큐에서 대기하므로 순서는 바뀌지 않는다.
    payload 는 분할하거나 합치지 않는다.
    """

    def __init__(
        self,
        surface: DisplaySurfaceInterface,
        log_prefix: str = "",
        threshold: int = 5000,
        window: float = 0.1,
        delay: float = 0.01,
        clock: Callable[[], float] = time.monotonic
    ):
        self._surface = surface
        self._log_prefix = log_prefix
        self._threshold = threshold
        self._window = window
        self._delay = delay
        self._clock = clock

        self._queue: Deque[Dict[str, Any]] = deque()
        self._drain_task: Optional[asyncio.Task] = None
        self._last_sent: Optional[float] = None

    @property
    def pending(self) -> int:
        return len(self._queue)

    def send(self, envelope: Dict[str, Any]) -> None:
        """envelope 전송 (블로킹하지 않음)"""
        self._log_envelope(envelope)

        if self._drain_task is not None and not self._drain_task.done():
            self._queue.append(envelope)
            return

        if not self._should_defer(envelope):
            self._deliver(envelope)
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # 이벤트 루프 밖에서는 미룰 수 없으므로 바로 전송
            self._deliver(envelope)
            return

        self._queue.append(envelope)
        self._drain_task = loop.create_task(self._drain())

    async def flush(self) -> None:
        """대기 중인 envelope 이 모두 전달될 때까지 대기"""
        task = self._drain_task
        if task is not None and not task.done():
            await asyncio.shield(task)

    async def _drain(self) -> None:
        while self._queue:
            envelope = self._queue[0]
            if self._should_defer(envelope):
                await asyncio.sleep(self._delay)
            self._queue.popleft()
            self._deliver(envelope)

    def _should_defer(self, envelope: Dict[str, Any]) -> bool:
        if envelope.get("type") != OutboundType.OUTPUT.value:
            return False
        data = envelope.get("payload", {}).get("data") or ""
        if len(data) <= self._threshold or self._last_sent is None:
            return False
        return self._clock() - self._last_sent < self._window

    def _deliver(self, envelope: Dict[str, Any]) -> None:
        if self._surface.closed:
            logger.debug(f"{self._log_prefix} Surface closed, dropping message: {envelope.get('type')}")
            return
        try:
            self._surface.post_message(envelope)
            self._last_sent = self._clock()
        except Exception as e:
            logger.error(f"{self._log_prefix} Error sending message: {str(e)}", exc_info=True)

    def _log_envelope(self, envelope: Dict[str, Any]) -> None:
        message_type = envelope.get("type")
        if message_type != OutboundType.OUTPUT.value:
            logger.debug(f"{self._log_prefix} Sending message: {message_type}")
            return

        data = envelope.get("payload", {}).get("data") or ""
        if len(data) <= 50:
            clean = data.replace("\r\n", "\\n").replace("\n", "\\n")
            logger.debug(f"{self._log_prefix} Sending message: {message_type} ({len(data)} bytes): {clean}")
        else:
            logger.debug(f"{self._log_prefix} Sending message: {message_type} ({len(data)} bytes)")
