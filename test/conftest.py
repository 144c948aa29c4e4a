"""pytest fixtures: 가짜 SSH transport / channel 과 envelope 을 기록하는 display surface"""

import asyncio
from typing import Any, Dict, List, Optional, Tuple

import pytest

from sshbridge.domains.terminal.services.bridge import TerminalBridge
from sshbridge.infrastructures.ssh.interfaces.ssh_channel import SSHChannelInterface
from sshbridge.infrastructures.ssh.interfaces.ssh_transport import SSHTransportInterface
from sshbridge.infrastructures.ssh.models.connection import SSHShellTerminalConfig, TransportOptions
from sshbridge.infrastructures.websocket.interfaces import DisplaySurfaceInterface


class RecordingSurface(DisplaySurfaceInterface):
    """post_message 로 받은 envelope 을 순서대로 기록"""

    def __init__(self):
        self.messages: List[Dict[str, Any]] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def post_message(self, message: Dict[str, Any]) -> None:
        self.messages.append(message)

    def close(self) -> None:
        self._closed = True

    def clear(self) -> None:
        self.messages.clear()

    def of_type(self, message_type: str) -> List[Dict[str, Any]]:
        return [m for m in self.messages if m["type"] == message_type]

    def statuses(self) -> List[str]:
        return [m["payload"]["status"] for m in self.of_type("connectionStatus")]

    def outputs(self) -> List[str]:
        return [m["payload"]["data"] for m in self.of_type("output")]

    def output_text(self) -> str:
        return "".join(self.outputs())


class FakeChannel(SSHChannelInterface):
    """feed() 로 원격 출력을 흉내내고 finish() 로 채널 종료"""

    def __init__(self):
        self.written: List[str] = []
        self.resizes: List[Tuple[int, int]] = []
        self.close_calls = 0
        self._closed = False
        self._queue: "asyncio.Queue[Optional[Tuple[str, bytes]]]" = asyncio.Queue()

    @property
    def closed(self) -> bool:
        return self._closed

    async def write(self, data: str) -> None:
        self.written.append(data)

    async def resize(self, cols: int, rows: int) -> None:
        self.resizes.append((cols, rows))

    def feed(self, chunk: bytes, stream: str = "stdout") -> None:
        self._queue.put_nowait((stream, chunk))

    def finish(self) -> None:
        self._queue.put_nowait(None)

    async def read_stream(self):
        while True:
            item = await self._queue.get()
            if item is None:
                return
            yield item

    async def close(self) -> None:
        self.close_calls += 1
        self._closed = True


class FakeTransport(SSHTransportInterface):
    def __init__(
        self,
        connect_error: Optional[Exception] = None,
        shell_error: Optional[Exception] = None,
        exec_error: Optional[Exception] = None,
        algorithms: Optional[Dict[str, Optional[str]]] = None
    ):
        self.connect_error = connect_error
        self.shell_error = shell_error
        self.exec_error = exec_error
        self.algorithms = algorithms if algorithms is not None else {
            "kex": "diffie-hellman-group14-sha256",
            "hostKey": "ssh-rsa",
            "cipherClient": "aes128-ctr",
            "cipherServer": "aes128-ctr",
            "macClient": "hmac-sha2-256",
            "macServer": "hmac-sha2-256",
        }

        self.connect_calls: List[TransportOptions] = []
        self.shell_calls: List[SSHShellTerminalConfig] = []
        self.exec_calls: List[Tuple[str, SSHShellTerminalConfig]] = []
        self.close_calls = 0
        self.shell_channel = FakeChannel()
        self.exec_channel = FakeChannel()
        self._active = False
        self._closed_event = asyncio.Event()

    async def connect(self, options: TransportOptions) -> None:
        self.connect_calls.append(options)
        if self.connect_error is not None:
            raise self.connect_error
        self._active = True

    async def open_shell(self, terminal: SSHShellTerminalConfig) -> FakeChannel:
        self.shell_calls.append(terminal)
        if self.shell_error is not None:
            raise self.shell_error
        return self.shell_channel

    async def open_exec(self, command: str, terminal: SSHShellTerminalConfig) -> FakeChannel:
        self.exec_calls.append((command, terminal))
        if self.exec_error is not None:
            raise self.exec_error
        return self.exec_channel

    def negotiated_algorithms(self) -> Dict[str, Optional[str]]:
        return dict(self.algorithms) if self._active else {}

    def is_active(self) -> bool:
        return self._active

    async def close(self) -> None:
        self.close_calls += 1
        self._active = False
        self._closed_event.set()

    async def wait_closed(self) -> None:
        await self._closed_event.wait()

    def drop(self) -> None:
        """서버 쪽에서 연결이 끊긴 상황"""
        self._active = False
        self._closed_event.set()


class FakeTransportFactory:
    """Bridge 가 만든 transport 를 모두 기록"""

    def __init__(self, **kwargs: Any):
        self.kwargs = kwargs
        self.created: List[FakeTransport] = []

    def __call__(self) -> FakeTransport:
        transport = FakeTransport(**self.kwargs)
        self.created.append(transport)
        return transport

    @property
    def last(self) -> FakeTransport:
        return self.created[-1]


CONNECTION_CONFIG = {
    "host": "10.0.0.1",
    "port": 22,
    "username": "admin",
    "password": "x",
}


def envelope(message_type: str, payload: Optional[Dict[str, Any]] = None, connection_id: str = "c1") -> Dict[str, Any]:
    return {
        "connectionId": connection_id,
        "sessionId": "s1",
        "type": message_type,
        "payload": payload or {},
    }


async def connect_bridge(bridge: TerminalBridge, config: Optional[Dict[str, Any]] = None) -> None:
    """connect 메시지를 보내고 백그라운드 연결 task 완료까지 대기"""
    await bridge.handle_message(envelope("connect", {"connectionConfig": config or CONNECTION_CONFIG}))
    await bridge.connect_task


@pytest.fixture
def surface() -> RecordingSurface:
    return RecordingSurface()


@pytest.fixture
def transport_factory() -> FakeTransportFactory:
    return FakeTransportFactory()


@pytest.fixture
async def bridge(surface, transport_factory):
    terminal_bridge = TerminalBridge(surface, "c1", "s1", transport_factory=transport_factory)
    yield terminal_bridge
    await terminal_bridge.dispose()
