import asyncio
import codecs
import os
from typing import Any, Callable, Dict, List, Optional

from sshbridge.core.config import Settings, settings as default_settings
from sshbridge.core.exceptions import (
    BaseAppException,
    ChannelUnavailableException,
    ErrorCode,
    InvalidDimensionsException,
    NoPriorConnectionException,
    SSHShellUnsupportedException,
)
from sshbridge.core.logger import logger
from sshbridge.domains.terminal.schemas.messages import (
    ConnectMessage,
    ConnectionStatus,
    DiagnosticMessage,
    DisconnectMessage,
    IgnoredMessage,
    InitMessage,
    InputMessage,
    OutboundType,
    PingMessage,
    ResizeMessage,
    RetryWithLegacyMessage,
    TerminalDimensions,
    TerminalMessage,
    TransportMode,
    UnknownMessage,
    build_envelope,
    decode_frame,
    now_ms,
    parse_inbound,
)
from sshbridge.domains.terminal.services.envelope_sender import EnvelopeSender
from sshbridge.domains.terminal.services.state_machine import (
    ConnectionEvent, ConnectionState, ConnectionStateMachine
)
from sshbridge.infrastructures.ssh.algorithms import (
    build_legacy_config, is_auth_error, is_shell_unsupported, resolve_auth_methods, select_algorithms
)
from sshbridge.infrastructures.ssh.implements.ssh_transport import ParamikoTransport
from sshbridge.infrastructures.ssh.interfaces.ssh_channel import SSHChannelInterface
from sshbridge.infrastructures.ssh.interfaces.ssh_transport import SSHTransportInterface
from sshbridge.infrastructures.ssh.models.connection import (
    ConnectionConfig, SSHShellTerminalConfig, TransportOptions
)
from sshbridge.infrastructures.websocket.interfaces import DisplaySurfaceInterface


TransportFactory = Callable[[], SSHTransportInterface]


def _as_dimension(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value)
    if isinstance(value, int) and value > 0:
        return value
    return None


def _describe(error: BaseException) -> str:
    if isinstance(error, BaseAppException):
        return error.message
    return str(error) or type(error).__name__


class TerminalBridge:
    """
    SSH 연결 하나와 display surface 하나를 잇는 Bridge

    - inbound 메시지를 SSH 동작으로 변환하고 SSH 이벤트를 outbound envelope 으로 변환
    - SSH transport 하나, 데이터 채널(shell 또는 exec) 하나를 단독으로 소유
    - connect 는 백그라운드 task 를 띄우고 바로 반환하며, 이후 상태 전이는 task 안에서 일어난다
    - handle_message 경계 밖으로 예외를 던지지 않는다 (모두 error envelope + 로그로 변환)
    """

    def __init__(
        self,
        surface: DisplaySurfaceInterface,
        connection_id: str,
        session_id: str,
        transport_factory: Optional[TransportFactory] = None,
        app_settings: Optional[Settings] = None
    ):
        self.connection_id = connection_id
        self.session_id = session_id
        self._settings = app_settings or default_settings
        self._log = f"[TerminalBridge:{connection_id}]"
        self._transport_factory = transport_factory or self._default_transport

        self._sender = EnvelopeSender(
            surface,
            log_prefix=self._log,
            threshold=self._settings.OUTPUT_THROTTLE_BYTES,
            window=self._settings.OUTPUT_THROTTLE_WINDOW,
            delay=self._settings.OUTPUT_THROTTLE_DELAY,
        )
        self.state = ConnectionState(
            machine=ConnectionStateMachine(name=self._log),
            dimensions=TerminalDimensions(
                cols=self._settings.TERMINAL_DEFAULT_COLS,
                rows=self._settings.TERMINAL_DEFAULT_ROWS,
            ),
        )

        self._transport: Optional[SSHTransportInterface] = None
        self._channel: Optional[SSHChannelInterface] = None
        self._connect_task: Optional[asyncio.Task] = None
        self._pump_task: Optional[asyncio.Task] = None
        self._watch_task: Optional[asyncio.Task] = None
        self._disposed = False

        logger.info(f"{self._log} Initialized for session {session_id}")
        self._send_output("SSH Terminal initialized. Waiting for connection...\r\n")
        self._send_status("Terminal ready, waiting to connect")

    def _default_transport(self) -> SSHTransportInterface:
        return ParamikoTransport(self._settings.SSH_SHELL_UNSUPPORTED_SIGNATURES)

    # ------------------------------------------------------------------
    # 상태 조회
    # ------------------------------------------------------------------

    @property
    def status(self) -> ConnectionStatus:
        return self.state.status

    @property
    def transport_mode(self) -> TransportMode:
        return self.state.transport_mode

    @property
    def dimensions(self) -> TerminalDimensions:
        return self.state.dimensions

    @property
    def last_config(self) -> Optional[ConnectionConfig]:
        return self.state.last_config

    @property
    def channel(self) -> Optional[SSHChannelInterface]:
        return self._channel

    @property
    def connect_task(self) -> Optional[asyncio.Task]:
        return self._connect_task

    @property
    def pump_task(self) -> Optional[asyncio.Task]:
        return self._pump_task

    @property
    def watch_task(self) -> Optional[asyncio.Task]:
        return self._watch_task

    @property
    def sender(self) -> EnvelopeSender:
        return self._sender

    def is_connected(self) -> bool:
        return self.state.status == ConnectionStatus.CONNECTED

    def summary(self) -> Dict[str, Any]:
        config = self.state.last_config
        return {
            "connectionId": self.connection_id,
            "sessionId": self.session_id,
            "status": self.state.status.value,
            "transportMode": self.state.transport_mode.value,
            "dimensions": self.state.dimensions.model_dump(),
            "host": config.host if config else None,
        }

    # ------------------------------------------------------------------
    # inbound
    # ------------------------------------------------------------------

    async def handle_message(self, raw: Any) -> None:
        """inbound 메시지 단일 진입점. 예외를 밖으로 전파하지 않는다."""
        if self._disposed:
            logger.debug(f"{self._log} Bridge disposed, ignoring message")
            return

        try:
            raw = decode_frame(raw)
            if isinstance(raw, dict):
                target = raw.get("connectionId")
                if target and target != self.connection_id:
                    logger.warning(f"{self._log} Received message for wrong connection: {target}")
                    return

            message = parse_inbound(raw)
            await self._dispatch(message)

        except BaseAppException as e:
            logger.warning(f"{self._log} {e}", extra={"error": e.to_log_dict()})
            self._send_error(e)

        except Exception as e:
            logger.error(f"{self._log} Error handling message: {str(e)}", exc_info=True)
            self._emit(OutboundType.ERROR, {
                "message": f"{ErrorCode.TERMINAL_COMMAND_FAILED.message}: {str(e)}",
                "errorCode": ErrorCode.TERMINAL_COMMAND_FAILED.code,
            })

    async def _dispatch(self, message: TerminalMessage) -> None:
        logger.debug(f"{self._log} Received message: {message.type}{' (legacy)' if message.legacy else ''}")

        if isinstance(message, InitMessage):
            if message.dimensions:
                await self.resize(message.dimensions.get("cols"), message.dimensions.get("rows"))
            self._send_status(self._status_text())

        elif isinstance(message, ConnectMessage):
            logger.info(f"{self._log} Received connect command with config")
            await self.connect(message.config)

        elif isinstance(message, InputMessage):
            await self.write_input(message.data)

        elif isinstance(message, ResizeMessage):
            await self.resize(message.cols, message.rows)

        elif isinstance(message, DisconnectMessage):
            await self.disconnect()

        elif isinstance(message, PingMessage):
            self._emit(OutboundType.PONG, {"time": now_ms(), "status": self.state.status.value})

        elif isinstance(message, DiagnosticMessage):
            self.send_diagnostics()

        elif isinstance(message, RetryWithLegacyMessage):
            await self.retry_with_legacy()

        elif isinstance(message, IgnoredMessage):
            logger.debug(f"{self._log} Ignoring legacy command: {message.name}")

        elif isinstance(message, UnknownMessage):
            logger.warning(f"{self._log} Unhandled message type: {message.name}")

    # ------------------------------------------------------------------
    # 연결
    # ------------------------------------------------------------------

    async def connect(self, config: ConnectionConfig) -> None:
        """연결 시도 시작. SSH 연결은 백그라운드 task 에서 진행하고 바로 반환한다."""
        self.state.last_config = config

        await self._teardown()
        self.state.reset_transport_mode()
        self.state.machine.fire(ConnectionEvent.CONNECT)

        logger.info(f"{self._log} Connecting to {config.host}:{config.port} as {config.username}")
        self._send_status(f"Connecting to {config.host}:{config.port}")
        self._send_output(f"Connecting to {config.host}:{config.port} as {config.username}...\r\n")

        options = self._build_transport_options(config)
        transport = self._transport_factory()
        self._transport = transport
        self._connect_task = asyncio.create_task(self._run_connect(transport, options))

    def _build_transport_options(self, config: ConnectionConfig) -> TransportOptions:
        auth_methods = resolve_auth_methods(config, self._settings.SSH_DEFAULT_AUTH_METHODS)
        logger.debug(
            f"{self._log} Authenticating with password: {'Yes' if config.password_value else 'No'}, "
            f"auth methods: {', '.join(auth_methods)}"
        )
        return TransportOptions(
            host=config.host,
            port=config.port,
            username=config.username,
            password=config.password,
            private_key=config.private_key,
            private_key_path=config.private_key_path,
            passphrase=config.passphrase,
            default_key_paths=self._default_key_paths(),
            ready_timeout=self._settings.SSH_READY_TIMEOUT,
            keepalive_interval=self._settings.SSH_KEEPALIVE_INTERVAL,
            # 네트워크 장비 대부분이 keyboard-interactive 를 요구하므로 항상 활성화
            try_keyboard=True,
            auth_methods=auth_methods,
            algorithms=select_algorithms(config.algorithms),
        )

    def _default_key_paths(self) -> List[str]:
        key_dir = os.path.expanduser(self._settings.SSH_KEY_DIR)
        return [os.path.join(key_dir, name) for name in self._settings.SSH_DEFAULT_KEY_FILES]

    async def _run_connect(self, transport: SSHTransportInterface, options: TransportOptions) -> None:
        try:
            await transport.connect(options)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if transport is not self._transport:
                return
            self._on_connect_error(e)
            await self._on_transport_closed()
            return

        if transport is not self._transport:
            # disconnect / 새 connect 로 대체된 시도
            await transport.close()
            return

        self._on_ready(transport)
        self._watch_task = asyncio.create_task(self._watch_transport(transport))
        await self._open_channel(transport)

    def _on_ready(self, transport: SSHTransportInterface) -> None:
        logger.info(f"{self._log} Connection ready. Authentication succeeded.")
        self.state.machine.fire(ConnectionEvent.READY)
        self._send_status("Connection established")
        self._send_output("\r\nConnection established. Opening terminal...\r\n")

        algorithms = transport.negotiated_algorithms()
        if algorithms:
            logger.debug(f"{self._log} Negotiated algorithms: {algorithms}")
            self._emit(OutboundType.METADATA, {"algorithms": algorithms})

    def _on_connect_error(self, error: Exception) -> None:
        error_message = _describe(error)
        logger.error(f"{self._log} Connection error: {error_message}")

        self.state.machine.fire(ConnectionEvent.ERROR)
        self._send_status(f"Connection error: {error_message}")
        self._send_output(f"\r\nConnection error: {error_message}\r\n")

        if is_auth_error(error_message):
            config = self.state.last_config
            logger.warning(
                f"{self._log} Authentication failed - checking configurations: "
                f"password provided: {'Yes' if config and config.password_value else 'No'}, "
                f"private key provided: {'Yes' if config and (config.private_key or config.private_key_path) else 'No'}, "
                f"keyboard-interactive enabled: {'Yes' if config and config.try_keyboard else 'No'}"
            )

    # ------------------------------------------------------------------
    # 채널
    # ------------------------------------------------------------------

    def _terminal_config(self) -> SSHShellTerminalConfig:
        return SSHShellTerminalConfig(
            term=self._settings.SSH_TERM_TYPE,
            width=self.state.dimensions.cols,
            height=self.state.dimensions.rows,
        )

    def _is_shell_unsupported(self, error: Exception) -> bool:
        if isinstance(error, SSHShellUnsupportedException):
            return True
        return is_shell_unsupported(error, self._settings.SSH_SHELL_UNSUPPORTED_SIGNATURES)

    async def _open_channel(self, transport: SSHTransportInterface) -> None:
        """셸을 먼저 시도하고, 셸 미지원 시그니처면 exec 채널로 폴백"""
        logger.info(f"{self._log} Opening shell")
        self._send_output("\r\nOpening shell session...\r\n")
        self.state.advance_transport_mode(TransportMode.SHELL)

        try:
            channel = await transport.open_shell(self._terminal_config())
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if not self._is_shell_unsupported(e):
                logger.error(f"{self._log} Failed to open shell: {_describe(e)}")
                self._send_output(f"\r\nFailed to open shell: {_describe(e)}\r\n")
                self._send_error(e)
                return

            logger.info(f"{self._log} Detected network device that doesn't support shell. Switching to exec channel.")
            self._send_output(
                "\r\nDetected a network device that doesn't support interactive shell.\r\n"
                "Switching to exec channel...\r\n"
            )
            await self._open_exec_channel(transport)
            return

        if not self._adopt_channel(transport, channel):
            await channel.close()
            return

        logger.info(f"{self._log} Shell opened successfully ({self.state.dimensions})")
        self._send_output(f"\r\nShell session opened ({self.state.dimensions})\r\n")
        self._send_status("Connected (shell)")

    async def _open_exec_channel(self, transport: SSHTransportInterface) -> None:
        self.state.advance_transport_mode(TransportMode.EXEC)
        command = self._settings.SSH_EXEC_PAGER_COMMAND
        logger.info(f"{self._log} Opening exec terminal with command: {command}")

        try:
            channel = await transport.open_exec(command, self._terminal_config())
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"{self._log} Failed to open exec terminal: {_describe(e)}")
            self._send_output(f"\r\nFailed to open exec terminal: {_describe(e)}\r\n")
            self._send_error(e)
            return

        if not self._adopt_channel(transport, channel):
            await channel.close()
            return

        logger.info(f"{self._log} Exec terminal opened ({self.state.dimensions})")
        self._send_status("Connected (exec terminal)")
        self._send_output("\r\nTerminal session opened using exec channel\r\n")

    def _adopt_channel(self, transport: SSHTransportInterface, channel: SSHChannelInterface) -> bool:
        if transport is not self._transport:
            logger.debug(f"{self._log} Connection superseded, closing new channel")
            return False

        self._channel = channel
        self._pump_task = asyncio.create_task(self._pump(channel))
        return True

    async def _pump(self, channel: SSHChannelInterface) -> None:
        """채널 stdout / stderr 를 output envelope 으로 전달"""
        decoders = {
            "stdout": codecs.getincrementaldecoder("utf-8")(errors="replace"),
            "stderr": codecs.getincrementaldecoder("utf-8")(errors="replace"),
        }
        try:
            async for stream_name, chunk in channel.read_stream():
                decoder = decoders.get(stream_name, decoders["stdout"])
                text = decoder.decode(chunk)
                self.state.record_received(chunk, text)
                if text:
                    self._send_output(text)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"{self._log} Stream error: {_describe(e)}")
            self._send_output(f"\r\nStream error: {_describe(e)}\r\n")

        if channel is self._channel:
            await self._on_channel_closed()

    async def _on_channel_closed(self) -> None:
        logger.info(f"{self._log} Stream closed")
        self._send_output("\r\nConnection closed\r\n")
        self._send_output(
            f"Communication stats: sent {self.state.bytes_sent} bytes, "
            f"received {self.state.bytes_received} bytes\r\n"
        )

        self._channel = None
        self._pump_task = None
        self.state.machine.fire(ConnectionEvent.CLOSE)
        self._send_status("Disconnected")

        transport, self._transport = self._transport, None
        if transport is not None:
            await transport.close()

    async def _watch_transport(self, transport: SSHTransportInterface) -> None:
        """채널이 없는 동안 transport 가 끊기면 close 로 처리 (채널이 있으면 _pump 가 처리)"""
        await transport.wait_closed()
        if transport is not self._transport or self._channel is not None:
            return
        await self._on_transport_closed()

    async def _on_transport_closed(self) -> None:
        """열린 채널 없이 SSH 연결이 닫힘 (연결 실패 직후, 셸 오픈 실패 후 서버 종료 등)"""
        logger.info(f"{self._log} SSH connection closed")
        self._send_output("\r\nConnection closed\r\n")
        self.state.machine.fire(ConnectionEvent.CLOSE)
        self._send_status("Disconnected")

        transport, self._transport = self._transport, None
        if transport is not None:
            await transport.close()

    # ------------------------------------------------------------------
    # 입력 / 크기 변경
    # ------------------------------------------------------------------

    async def write_input(self, data: str) -> None:
        """연결된 채널에 입력 전달. 채널이 없으면 데이터를 버리고 경고"""
        channel = self._channel
        if self.is_connected() and channel is not None and not channel.closed:
            await channel.write(data)
            self.state.bytes_sent += len(data)
            logger.debug(f"{self._log} Sent {len(data)} bytes")
            return

        exc = ChannelUnavailableException(channel_exists=channel is not None, status=self.state.status.value)
        logger.warning(f"{self._log} {exc}")
        self._send_error(exc)
        self._send_output(f"\r\n[Warning] {exc.message}\r\n")

    async def resize(self, cols: Any, rows: Any) -> None:
        """터미널 크기 저장 및 채널이 살아 있으면 즉시 반영 (잘못된 값은 로그만)"""
        valid_cols, valid_rows = _as_dimension(cols), _as_dimension(rows)
        if valid_cols is None or valid_rows is None:
            logger.warning(f"{self._log} {InvalidDimensionsException(cols=cols, rows=rows)}")
            return

        self.state.dimensions = TerminalDimensions(cols=valid_cols, rows=valid_rows)
        logger.info(f"{self._log} Terminal dimensions changed to {self.state.dimensions}")

        channel = self._channel
        if channel is not None and self.is_connected():
            try:
                await channel.resize(valid_cols, valid_rows)
                logger.debug(f"{self._log} Applied dimensions to SSH channel")
            except Exception as e:
                logger.error(f"{self._log} Failed to set window dimensions: {_describe(e)}")
        else:
            logger.debug(
                f"{self._log} Dimensions stored but not applied yet. "
                f"Channel {'exists' if channel else 'does not exist'}, status: {self.state.status.value}"
            )

    # ------------------------------------------------------------------
    # 종료 / 재시도 / 진단
    # ------------------------------------------------------------------

    async def disconnect(self) -> None:
        """SSH 세션 종료 (이미 끊긴 상태면 no-op)"""
        if self.state.status == ConnectionStatus.DISCONNECTED:
            logger.debug(f"{self._log} Already disconnected")
            return

        logger.info(f"{self._log} Disconnecting")
        self._send_output("\r\nDisconnecting from SSH session...\r\n")
        await self._teardown()
        self.state.machine.fire(ConnectionEvent.DISCONNECT)
        self._send_status("Disconnected")

    async def retry_with_legacy(self) -> None:
        """직전 연결 설정을 레거시 알고리즘 순서로 다시 연결"""
        if self.state.last_config is None:
            raise NoPriorConnectionException(connection_id=self.connection_id)

        logger.info(f"{self._log} Retrying connection with legacy algorithms")
        self._send_output("\r\nRetrying connection with legacy algorithms...\r\n")
        await self.connect(build_legacy_config(self.state.last_config))

    def get_debug_info(self) -> Dict[str, Any]:
        """비밀 정보를 제외한 진단 스냅샷"""
        config = self.state.last_config
        last_config = None
        if config is not None:
            last_config = {
                "host": config.host,
                "port": config.port,
                "username": config.username,
                "authMethods": resolve_auth_methods(config, self._settings.SSH_DEFAULT_AUTH_METHODS),
                "tryKeyboard": config.try_keyboard,
                "passwordProvided": bool(config.password_value),
                "privateKeyProvided": config.private_key is not None,
                "privateKeyPath": config.private_key_path,
                "passphraseProvided": config.passphrase is not None,
                "algorithmsOverridden": config.algorithms is not None,
            }

        return {
            "connectionId": self.connection_id,
            "sessionId": self.session_id,
            "status": self.state.status.value,
            "transportMode": self.state.transport_mode.value,
            "dimensions": self.state.dimensions.model_dump(),
            "bytesSent": self.state.bytes_sent,
            "bytesReceived": self.state.bytes_received,
            "lastOutputs": [
                output[:50] + ("..." if len(output) > 50 else "") for output in self.state.recent_outputs
            ],
            "lastConfig": last_config,
        }

    def send_diagnostics(self) -> None:
        info = self.get_debug_info()
        self._emit(OutboundType.DIAGNOSTIC, info)

        auth_methods = ", ".join(info["lastConfig"]["authMethods"]) if info["lastConfig"] else "none"
        self._send_output(
            "\r\n----- SSH DIAGNOSTICS -----\r\n"
            f"Connection ID: {self.connection_id}\r\n"
            f"Session ID: {self.session_id}\r\n"
            f"Status: {info['status']}\r\n"
            f"Transport mode: {info['transportMode']}\r\n"
            f"Dimensions: {self.state.dimensions}\r\n"
            f"Bytes sent: {info['bytesSent']}\r\n"
            f"Bytes received: {info['bytesReceived']}\r\n"
            f"Authentication methods: {auth_methods}\r\n"
            "------------------------\r\n"
        )

    async def dispose(self) -> None:
        """display surface 종료 시 호출. 여러 번 호출해도 안전"""
        if self._disposed:
            return
        await self.disconnect()
        await self._teardown()
        await self._sender.flush()
        self._disposed = True
        logger.info(f"{self._log} Disposed")

    # ------------------------------------------------------------------
    # 내부 헬퍼
    # ------------------------------------------------------------------

    async def _teardown(self) -> None:
        """진행 중인 연결 시도, 채널, transport 를 정리 (envelope 은 보내지 않음)"""
        connect_task, self._connect_task = self._connect_task, None
        pump_task, self._pump_task = self._pump_task, None
        watch_task, self._watch_task = self._watch_task, None
        channel, self._channel = self._channel, None
        transport, self._transport = self._transport, None

        for task in (connect_task, pump_task, watch_task):
            await self._cancel_task(task)

        if channel is not None:
            try:
                await channel.close()
            except Exception as e:
                logger.warning(f"{self._log} Error closing channel: {_describe(e)}")

        if transport is not None:
            await transport.close()

    @staticmethod
    async def _cancel_task(task: Optional[asyncio.Task]) -> None:
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def _status_text(self) -> str:
        if self.state.status == ConnectionStatus.DISCONNECTED:
            return "Terminal ready, waiting to connect"
        return f"Terminal ready ({self.state.status.value})"

    def _emit(self, message_type: OutboundType, payload: Dict[str, Any]) -> None:
        self._sender.send(build_envelope(self.connection_id, self.session_id, message_type, payload))

    def _send_output(self, data: str) -> None:
        self._emit(OutboundType.OUTPUT, {"data": data})

    def _send_status(self, message: str) -> None:
        self._emit(OutboundType.CONNECTION_STATUS, {"status": self.state.status.value, "message": message})

    def _send_error(self, error: Exception) -> None:
        if isinstance(error, BaseAppException):
            payload = {"message": error.message, "errorCode": error.code}
            if error.detail:
                payload["detail"] = error.detail
        else:
            payload = {"message": _describe(error)}
        self._emit(OutboundType.ERROR, payload)
