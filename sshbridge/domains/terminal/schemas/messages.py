"""Terminal message protocol

display surface 와 Bridge 가 주고받는 envelope 포맷과 메시지 타입.

- outbound: ``{connectionId, sessionId, type, payload, timestamp}`` (timestamp 는 epoch ms)
- inbound: typed ``{type, payload}`` 형태와 레거시 ``{command, ...}`` 형태를 모두 받아서
  경계에서 하나의 typed 메시지 모델로 정규화한다.
"""

import json
import time
from enum import Enum
from typing import Any, Callable, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from sshbridge.core.exceptions import MissingParametersException, WSInvalidMessageException
from sshbridge.infrastructures.ssh.models.connection import ConnectionConfig


class ConnectionStatus(str, Enum):
    """Bridge 연결 상태"""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class TransportMode(str, Enum):
    """데이터 채널 종류 (unset -> shell -> exec)"""
    UNSET = "unset"
    SHELL = "shell"
    EXEC = "exec"


class InboundType(str, Enum):
    INIT = "init"
    CONNECT = "connect"
    INPUT = "input"
    RESIZE = "resize"
    DISCONNECT = "disconnect"
    PING = "ping"
    DIAGNOSTIC = "diagnostic"
    RETRY_WITH_LEGACY = "retry-with-legacy"


class OutboundType(str, Enum):
    OUTPUT = "output"
    CONNECTION_STATUS = "connectionStatus"
    ERROR = "error"
    METADATA = "metadata"
    DIAGNOSTIC = "diagnostic"
    PONG = "pong"


class TerminalDimensions(BaseModel):
    """터미널 크기 (cols x rows)"""
    cols: int = 80
    rows: int = 24

    def __str__(self) -> str:
        return f"{self.cols}x{self.rows}"


def now_ms() -> int:
    return int(time.time() * 1000)


class Envelope(BaseModel):
    """Wire message unit"""
    model_config = ConfigDict(populate_by_name=True)

    connection_id: str = Field(..., alias="connectionId")
    session_id: str = Field(..., alias="sessionId")
    type: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    timestamp: int = Field(default_factory=now_ms)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


def build_envelope(
    connection_id: str,
    session_id: str,
    message_type: Union[OutboundType, str],
    payload: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """outbound envelope 생성"""
    if isinstance(message_type, OutboundType):
        message_type = message_type.value
    return Envelope(
        connection_id=connection_id,
        session_id=session_id,
        type=message_type,
        payload=payload or {}
    ).to_wire()


# ---------------------------------------------------------------------------
# Inbound messages
# ---------------------------------------------------------------------------

class InboundMessage(BaseModel):
    """정규화된 inbound 메시지 공통 필드"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    connection_id: Optional[str] = Field(None, alias="connectionId")
    session_id: Optional[str] = Field(None, alias="sessionId")
    legacy: bool = False


class InitMessage(InboundMessage):
    type: Literal["init"] = "init"
    dimensions: Optional[Dict[str, Any]] = None


class ConnectMessage(InboundMessage):
    type: Literal["connect"] = "connect"
    config: ConnectionConfig


class InputMessage(InboundMessage):
    type: Literal["input"] = "input"
    data: str


class ResizeMessage(InboundMessage):
    # 값 검증은 Bridge 에서 (잘못된 크기는 로그만 남기고 무시)
    type: Literal["resize"] = "resize"
    cols: Any = None
    rows: Any = None


class DisconnectMessage(InboundMessage):
    type: Literal["disconnect"] = "disconnect"


class PingMessage(InboundMessage):
    type: Literal["ping"] = "ping"


class DiagnosticMessage(InboundMessage):
    type: Literal["diagnostic"] = "diagnostic"


class RetryWithLegacyMessage(InboundMessage):
    type: Literal["retry-with-legacy"] = "retry-with-legacy"


class IgnoredMessage(InboundMessage):
    """레거시 ``command: output`` 처럼 의도적으로 무시하는 메시지"""
    type: Literal["ignored"] = "ignored"
    name: str


class UnknownMessage(InboundMessage):
    """처리하지 않는 타입 (하위 호환을 위해 에러 없이 무시)"""
    type: Literal["unknown"] = "unknown"
    name: str


TerminalMessage = Union[
    InitMessage,
    ConnectMessage,
    InputMessage,
    ResizeMessage,
    DisconnectMessage,
    PingMessage,
    DiagnosticMessage,
    RetryWithLegacyMessage,
    IgnoredMessage,
    UnknownMessage,
]


def _parse_connection_config(raw_config: Any, field: str) -> ConnectionConfig:
    if not raw_config:
        raise MissingParametersException(field=field)
    if not isinstance(raw_config, dict):
        raise MissingParametersException(field=field, detail=f"'{field}' must be an object")
    try:
        return ConnectionConfig.model_validate(raw_config)
    except ValidationError as e:
        fields = ", ".join(".".join(str(loc) for loc in err["loc"]) for err in e.errors())
        raise MissingParametersException(field=field, detail=f"Invalid or missing fields: {fields}")


def _require_data(value: Any) -> str:
    if value is None or value == "":
        raise MissingParametersException(field="data", detail="Input message requires 'data'")
    return value if isinstance(value, str) else str(value)


_TYPED_BUILDERS: Dict[str, Callable[[Dict[str, Any], Dict[str, Any]], TerminalMessage]] = {
    InboundType.INIT.value: lambda payload, ids: InitMessage(
        dimensions=payload.get("terminalDimensions"), **ids
    ),
    InboundType.CONNECT.value: lambda payload, ids: ConnectMessage(
        config=_parse_connection_config(payload.get("connectionConfig"), "connectionConfig"), **ids
    ),
    InboundType.INPUT.value: lambda payload, ids: InputMessage(
        data=_require_data(payload.get("data")), **ids
    ),
    InboundType.RESIZE.value: lambda payload, ids: ResizeMessage(
        cols=payload.get("cols"), rows=payload.get("rows"), **ids
    ),
    InboundType.DISCONNECT.value: lambda payload, ids: DisconnectMessage(**ids),
    InboundType.PING.value: lambda payload, ids: PingMessage(**ids),
    InboundType.DIAGNOSTIC.value: lambda payload, ids: DiagnosticMessage(**ids),
    InboundType.RETRY_WITH_LEGACY.value: lambda payload, ids: RetryWithLegacyMessage(**ids),
}


def _from_legacy(raw: Dict[str, Any], ids: Dict[str, Any]) -> TerminalMessage:
    command = raw.get("command")
    ids = dict(ids, legacy=True)

    if command == "output":
        return IgnoredMessage(name=command, **ids)
    if command == "input":
        return InputMessage(data=_require_data(raw.get("data")), **ids)
    if command == "resize":
        return ResizeMessage(cols=raw.get("cols"), rows=raw.get("rows"), **ids)
    if command == "connect":
        return ConnectMessage(config=_parse_connection_config(raw.get("config"), "config"), **ids)
    if command == "disconnect":
        return DisconnectMessage(**ids)
    return UnknownMessage(name=str(command), **ids)


def decode_frame(raw: Any) -> Any:
    """text / bytes 프레임이면 JSON 으로 디코딩, 그 외에는 그대로 반환"""
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            raise WSInvalidMessageException(message_data=raw, reason="Message is not valid JSON")
    return raw


def parse_inbound(raw: Any) -> TerminalMessage:
    """raw inbound 메시지를 typed 메시지로 정규화

    Raises:
        WSInvalidMessageException: JSON 객체가 아니거나 type / command 가 모두 없음
        MissingParametersException: connect / input 의 필수 필드 누락
    """
    raw = decode_frame(raw)

    if not isinstance(raw, dict):
        raise WSInvalidMessageException(message_data=raw, reason="Message must be a JSON object")

    ids = {
        "connection_id": raw.get("connectionId"),
        "session_id": raw.get("sessionId"),
    }

    message_type = raw.get("type")
    if not message_type:
        if raw.get("command"):
            return _from_legacy(raw, ids)
        raise WSInvalidMessageException(message_data=raw, reason="Message has neither 'type' nor 'command'")

    payload = raw.get("payload") or {}
    if not isinstance(payload, dict):
        raise WSInvalidMessageException(message_data=raw, reason="'payload' must be an object")

    builder = _TYPED_BUILDERS.get(message_type)
    if builder is None:
        return UnknownMessage(name=str(message_type), **ids)
    return builder(payload, ids)
