"""Connection lifecycle state machine

Bridge 의 연결 상태 전이를 명시적인 전이 테이블로 관리한다. transport 와 독립적으로 테스트 가능.

    disconnected --CONNECT--> connecting --READY--> connected
                              connecting --ERROR--> error
                              connected  --ERROR--> error
    (any)        --CLOSE / DISCONNECT--> disconnected
    connected / error --CONNECT--> connecting  (새 연결 시도)

transport mode 는 연결 한 번마다 unset -> shell -> exec 로만 진행한다.
"""

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Dict, Optional, Tuple

from sshbridge.core.logger import logger
from sshbridge.domains.terminal.schemas.messages import (
    ConnectionStatus, TerminalDimensions, TransportMode
)
from sshbridge.infrastructures.ssh.models.connection import ConnectionConfig


class ConnectionEvent(str, Enum):
    CONNECT = "connect"
    READY = "ready"
    ERROR = "error"
    CLOSE = "close"
    DISCONNECT = "disconnect"


_S = ConnectionStatus
_E = ConnectionEvent

TRANSITIONS: Dict[Tuple[ConnectionStatus, ConnectionEvent], ConnectionStatus] = {
    (_S.DISCONNECTED, _E.CONNECT): _S.CONNECTING,
    (_S.CONNECTING, _E.CONNECT): _S.CONNECTING,
    (_S.CONNECTED, _E.CONNECT): _S.CONNECTING,
    (_S.ERROR, _E.CONNECT): _S.CONNECTING,
    (_S.CONNECTING, _E.READY): _S.CONNECTED,
    (_S.CONNECTING, _E.ERROR): _S.ERROR,
    (_S.CONNECTED, _E.ERROR): _S.ERROR,
    (_S.DISCONNECTED, _E.CLOSE): _S.DISCONNECTED,
    (_S.CONNECTING, _E.CLOSE): _S.DISCONNECTED,
    (_S.CONNECTED, _E.CLOSE): _S.DISCONNECTED,
    (_S.ERROR, _E.CLOSE): _S.DISCONNECTED,
    (_S.DISCONNECTED, _E.DISCONNECT): _S.DISCONNECTED,
    (_S.CONNECTING, _E.DISCONNECT): _S.DISCONNECTED,
    (_S.CONNECTED, _E.DISCONNECT): _S.DISCONNECTED,
    (_S.ERROR, _E.DISCONNECT): _S.DISCONNECTED,
}

TRANSPORT_MODE_TRANSITIONS = {
    (TransportMode.UNSET, TransportMode.SHELL),
    (TransportMode.SHELL, TransportMode.EXEC),
}


def next_status(current: ConnectionStatus, event: ConnectionEvent) -> Optional[ConnectionStatus]:
    """전이 테이블 조회 (정의되지 않은 전이는 None)"""
    return TRANSITIONS.get((current, event))


class ConnectionStateMachine:
    """연결 상태 하나를 소유하고 이벤트로만 전이"""

    def __init__(self, status: ConnectionStatus = ConnectionStatus.DISCONNECTED, name: str = ""):
        self._status = status
        self._name = name

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    def fire(self, event: ConnectionEvent) -> bool:
        """이벤트 적용. 정의되지 않은 전이는 로그만 남기고 상태 유지"""
        target = next_status(self._status, event)
        if target is None:
            logger.warning(f"{self._name} Ignoring event '{event.value}' in state '{self._status.value}'")
            return False

        if target != self._status:
            logger.debug(f"{self._name} Status {self._status.value} -> {target.value} ({event.value})")
        self._status = target
        return True


@dataclass
class ConnectionState:
    """(sessionId, connectionId) 하나의 런타임 상태"""
    machine: ConnectionStateMachine
    dimensions: TerminalDimensions = field(default_factory=TerminalDimensions)
    transport_mode: TransportMode = TransportMode.UNSET
    last_config: Optional[ConnectionConfig] = None
    bytes_sent: int = 0
    bytes_received: int = 0
    recent_outputs: Deque[str] = field(default_factory=lambda: deque(maxlen=10))

    @property
    def status(self) -> ConnectionStatus:
        return self.machine.status

    def advance_transport_mode(self, target: TransportMode) -> None:
        """unset -> shell -> exec 순서로만 진행"""
        if (self.transport_mode, target) not in TRANSPORT_MODE_TRANSITIONS:
            raise ValueError(f"Invalid transport mode transition: {self.transport_mode.value} -> {target.value}")
        self.transport_mode = target

    def reset_transport_mode(self) -> None:
        self.transport_mode = TransportMode.UNSET

    def record_received(self, chunk: bytes, text: str) -> None:
        self.bytes_received += len(chunk)
        if text:
            self.recent_outputs.append(text)
