from abc import ABC, abstractmethod
from typing import Dict, Optional

from sshbridge.infrastructures.ssh.interfaces.ssh_channel import SSHChannelInterface
from sshbridge.infrastructures.ssh.models.connection import TransportOptions, SSHShellTerminalConfig


class SSHTransportInterface(ABC):
    """SSH Transport Interface

    Bridge 하나가 SSH 클라이언트 하나를 소유한다. 모든 메소드는 이벤트 루프를
    블로킹하지 않아야 한다.
    """

    @abstractmethod
    async def connect(self, options: TransportOptions) -> None:
        """Open the TCP connection, negotiate algorithms and authenticate

        Raises:
            SSHConnectionException: 연결/협상 실패
            SSHAuthException: 인증 실패
        """
        pass

    @abstractmethod
    async def open_shell(self, terminal: SSHShellTerminalConfig) -> SSHChannelInterface:
        """Open an interactive pty shell

        Raises:
            SSHShellUnsupportedException: 원격이 인터랙티브 셸을 지원하지 않음
            SSHChannelException: 그 밖의 셸 오픈 실패
        """
        pass

    @abstractmethod
    async def open_exec(self, command: str, terminal: SSHShellTerminalConfig) -> SSHChannelInterface:
        """Open a pty-allocating exec channel running ``command``

        Raises:
            SSHChannelException: exec 채널 오픈 실패
        """
        pass

    @abstractmethod
    def negotiated_algorithms(self) -> Dict[str, Optional[str]]:
        """Algorithms agreed during the handshake"""
        pass

    @abstractmethod
    def is_active(self) -> bool:
        """Whether the transport is connected"""
        pass

    @abstractmethod
    async def wait_closed(self) -> None:
        """Return once the transport has died or been closed"""
        pass

    @abstractmethod
    async def close(self) -> None:
        """End the SSH client; safe to call more than once"""
        pass
