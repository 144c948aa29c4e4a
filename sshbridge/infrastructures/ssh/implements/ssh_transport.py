import asyncio
import os
import socket
from typing import Dict, Iterable, List, Optional

import paramiko

from sshbridge.infrastructures.ssh.algorithms import answer_all_with_password, is_shell_unsupported
from sshbridge.infrastructures.ssh.interfaces.ssh_transport import SSHTransportInterface
from sshbridge.infrastructures.ssh.implements.ssh_channel import ParamikoChannel
from sshbridge.infrastructures.ssh.models.connection import (
    AlgorithmSet, SSHShellTerminalConfig, TransportOptions
)
from sshbridge.infrastructures.ssh.utils.ssh_utils import run_in_executor
from sshbridge.infrastructures.ssh.utils.ssh_keys import discover_default_keys, load_private_key
from sshbridge.core.exceptions import (
    ErrorCode,
    SSHAuthException,
    SSHChannelException,
    SSHConnectionException,
    SSHShellUnsupportedException,
)
from sshbridge.core.logger import logger


# AlgorithmSet 카테고리 -> paramiko SecurityOptions 속성
_SECURITY_OPTIONS = {
    "kex": "kex",
    "server_host_key": "key_types",
    "cipher": "ciphers",
    "hmac": "digests",
    "compress": "compression",
}


class ParamikoTransport(SSHTransportInterface):
    """SSH Transport 구현체 Using Paramiko

    socket -> paramiko.Transport -> start_client -> 인증 순서로 연결한다.
    paramiko 호출은 블로킹이므로 모두 executor 에서 실행한다.
    """

    def __init__(self, shell_unsupported_signatures: Iterable[str] = ()):
        self._transport: Optional[paramiko.Transport] = None
        self._options: Optional[TransportOptions] = None
        self._signatures = tuple(shell_unsupported_signatures)

    async def connect(self, options: TransportOptions) -> None:
        self._options = options
        host, port = options.host, options.port

        try:
            logger.info(f"[SSH] {host}:{port}에 연결 중")
            sock = await run_in_executor(
                socket.create_connection, (host, port), timeout=options.ready_timeout
            )
            logger.info(f"[SSH] {host}:{port}에 TCP 연결 성공")

            self._transport = paramiko.Transport(sock)
            self._transport.banner_timeout = options.ready_timeout
            self._transport.auth_timeout = options.ready_timeout
            self._apply_algorithms(options.algorithms)

            await run_in_executor(self._transport.start_client, timeout=options.ready_timeout)
            logger.info(f"[SSH] {host}에 대한 SSH 핸드셰이크 완료")

            if options.keepalive_interval > 0:
                self._transport.set_keepalive(options.keepalive_interval)

            await self._authenticate(options)
            logger.info(f"[SSH] {host}에 {options.username}로 성공적으로 연결됨")

        except socket.timeout as e:
            await self.close()
            logger.error(f"[SSH] {host}:{port} 연결 타임아웃")
            raise SSHConnectionException(
                host=host,
                port=port,
                error_code=ErrorCode.SSH_CONNECTION_TIMEOUT,
                detail=f"Timed out after {options.ready_timeout}s",
                original_exception=e
            )

        except SSHAuthException:
            await self.close()
            raise  # 인증 예외는 재발생

        except paramiko.SSHException as e:
            await self.close()
            logger.error(f"[SSH] {host}:{port} SSH 협상 실패: {e}")
            raise SSHConnectionException(
                host=host,
                port=port,
                error_code=ErrorCode.SSH_HANDSHAKE_FAILED,
                detail=str(e),
                original_exception=e
            )

        except OSError as e:
            await self.close()
            logger.error(f"[SSH] {host}:{port} 연결 중 소켓 에러: {e}")
            raise SSHConnectionException(
                host=host,
                port=port,
                error_code=ErrorCode.SSH_CONNECTION_REFUSED,
                detail=str(e),
                original_exception=e
            )

    async def _authenticate(self, options: TransportOptions) -> None:
        """auth_methods 순서대로 인증 시도

        keyboard-interactive 는 모든 프롬프트에 비밀번호로 응답하는 정책을 사용한다.
        publickey / agent 는 키를 하나씩 시도한다.
        """
        username = options.username
        password = options.password_value
        attempted = []
        last_error: Optional[Exception] = None

        for method in options.auth_methods:
            try:
                if method == "keyboard-interactive":
                    if not options.try_keyboard:
                        continue
                    attempted.append(method)
                    await run_in_executor(
                        self._transport.auth_interactive, username, answer_all_with_password(password)
                    )
                elif method == "password":
                    if not password:
                        continue
                    attempted.append(method)
                    await run_in_executor(self._transport.auth_password, username, password)
                elif method == "publickey":
                    keys = self._private_keys(options)
                    if not keys:
                        continue
                    attempted.append(method)
                    await self._auth_with_keys(username, keys)
                elif method == "agent":
                    agent = paramiko.Agent()
                    try:
                        keys = list(agent.get_keys())
                        if not keys:
                            logger.debug("[SSH] SSH agent 에 등록된 키가 없음")
                            continue
                        attempted.append(method)
                        await self._auth_with_keys(username, keys)
                    finally:
                        agent.close()
                elif method == "none":
                    attempted.append(method)
                    await run_in_executor(self._transport.auth_none, username)
                else:
                    logger.warning(f"[SSH] 지원하지 않는 인증 방식 무시: {method}")
                    continue
            except paramiko.BadAuthenticationType as e:
                logger.debug(f"[SSH] 서버가 {method} 인증을 허용하지 않음 (allowed: {e.allowed_types})")
                last_error = e
                continue
            except paramiko.AuthenticationException as e:
                logger.warning(f"[SSH] {username} {method} 인증 실패")
                last_error = e
                continue

            if self._transport.is_authenticated():
                logger.info(f"[SSH] {username} 인증 성공 ({method})")
                return

        if not attempted:
            raise SSHAuthException(
                username=username,
                error_code=ErrorCode.SSH_NO_AUTH_METHOD,
                detail=f"No usable authentication method in {options.auth_methods}"
            )

        raise SSHAuthException(
            username=username,
            detail=f"All authentication methods failed (tried: {', '.join(attempted)})",
            original_exception=last_error
        )

    @staticmethod
    def _private_keys(options: TransportOptions) -> List[paramiko.PKey]:
        """privateKey > privateKeyPath > 기본 키 위치 순서로 개인키 결정"""
        passphrase = options.passphrase_value
        if options.private_key is None and options.private_key_path is None:
            return discover_default_keys(options.default_key_paths, passphrase)

        try:
            key = load_private_key(
                pem=options.private_key_value,
                path=os.path.expanduser(options.private_key_path) if options.private_key is None else None,
                passphrase=passphrase
            )
        except (paramiko.SSHException, OSError) as e:
            source = "privateKey" if options.private_key is not None else options.private_key_path
            logger.warning(f"[SSH] Failed to read SSH key ({source}): {e}")
            return []
        return [key]

    async def _auth_with_keys(self, username: str, keys: List[paramiko.PKey]) -> None:
        """키를 순서대로 시도. 모두 거부되면 마지막 AuthenticationException 재발생"""
        last_error: Optional[paramiko.AuthenticationException] = None
        for key in keys:
            try:
                await run_in_executor(self._transport.auth_publickey, username, key)
            except paramiko.BadAuthenticationType:
                raise
            except paramiko.AuthenticationException as e:
                logger.debug(f"[SSH] {key.get_name()} 키 거부됨")
                last_error = e
                continue
            if self._transport.is_authenticated():
                return
        if last_error is not None:
            raise last_error

    def _apply_algorithms(self, algorithms: AlgorithmSet) -> None:
        """설치된 paramiko 가 지원하는 알고리즘만 남겨 선호 순서를 적용

        SecurityOptions 의 현재 값(paramiko 기본 선호 목록)을 지원 목록으로 사용한다.
        """
        security_options = self._transport.get_security_options()

        for category, option_name in _SECURITY_OPTIONS.items():
            wanted = getattr(algorithms, category) or []
            if not wanted:
                continue

            supported = tuple(getattr(security_options, option_name))
            usable = [name for name in wanted if name in supported]
            dropped = [name for name in wanted if name not in supported]
            if dropped:
                logger.debug(f"[SSH] {category}: unsupported by paramiko, skipped {dropped}")

            if usable:
                setattr(security_options, option_name, usable)
            else:
                logger.warning(f"[SSH] {category}: no supported algorithm in {wanted}, keeping paramiko defaults")

    async def open_shell(self, terminal: SSHShellTerminalConfig) -> ParamikoChannel:
        self._ensure_active()
        channel = None
        try:
            logger.debug(f"Opening interactive shell to {self._options.host}")
            channel = await run_in_executor(self._transport.open_session, timeout=self._options.ready_timeout)
            await run_in_executor(
                channel.get_pty,
                term=terminal.term,
                width=terminal.width,
                height=terminal.height,
                width_pixels=terminal.width_pixels,
                height_pixels=terminal.height_pixels
            )
            await run_in_executor(channel.invoke_shell)
        except (paramiko.SSHException, EOFError) as e:
            if channel is not None:
                channel.close()
            if is_shell_unsupported(e, self._signatures):
                raise SSHShellUnsupportedException(detail=str(e), original_exception=e)
            logger.error(f"Failed to open interactive shell: {str(e)}")
            raise SSHChannelException(
                operation="open_shell",
                error_code=ErrorCode.SSH_SHELL_ERROR,
                detail=str(e),
                original_exception=e
            )

        logger.info(f"Interactive shell started on {self._options.host}")
        return ParamikoChannel(channel)

    async def open_exec(self, command: str, terminal: SSHShellTerminalConfig) -> ParamikoChannel:
        self._ensure_active()
        channel = None
        try:
            logger.debug(f"Opening exec terminal to {self._options.host}: {command}")
            channel = await run_in_executor(self._transport.open_session, timeout=self._options.ready_timeout)
            await run_in_executor(
                channel.get_pty,
                term=terminal.term,
                width=terminal.width,
                height=terminal.height
            )
            await run_in_executor(channel.exec_command, command)
        except (paramiko.SSHException, EOFError) as e:
            if channel is not None:
                channel.close()
            logger.error(f"Failed to open exec terminal: {str(e)}")
            raise SSHChannelException(
                operation="open_exec",
                error_code=ErrorCode.SSH_EXEC_ERROR,
                detail=str(e),
                original_exception=e
            )

        logger.info(f"Exec terminal started on {self._options.host}")
        return ParamikoChannel(channel)

    def negotiated_algorithms(self) -> Dict[str, Optional[str]]:
        transport = self._transport
        if transport is None:
            return {}

        # kex 엔진 클래스의 name 속성 (curve25519 등 일부 엔진은 없음)
        kex_engine = getattr(transport, "kex_engine", None)
        return {
            "kex": getattr(kex_engine, "name", None),
            "hostKey": getattr(transport, "host_key_type", None),
            "cipherClient": getattr(transport, "local_cipher", None),
            "cipherServer": getattr(transport, "remote_cipher", None),
            "macClient": getattr(transport, "local_mac", None),
            "macServer": getattr(transport, "remote_mac", None),
        }

    def is_active(self) -> bool:
        return self._transport is not None and self._transport.is_active()

    async def wait_closed(self, poll_interval: float = 1.0) -> None:
        """transport 가 끊기거나 close() 될 때까지 대기 (paramiko 는 종료 콜백이 없어 폴링)"""
        while self.is_active():
            await asyncio.sleep(poll_interval)

    async def close(self) -> None:
        transport, self._transport = self._transport, None
        if transport is None:
            return
        try:
            await run_in_executor(transport.close)
            logger.debug("[SSH] Transport 닫힘")
        except Exception as e:
            logger.error(f"[SSH] 연결 해제 중 에러: {e}")

    def _ensure_active(self) -> None:
        if not self.is_active():
            raise SSHConnectionException(
                error_code=ErrorCode.SSH_NOT_CONNECTED,
                detail="SSH transport is not active"
            )
