import asyncio
from typing import AsyncIterator, Tuple

import paramiko

from sshbridge.infrastructures.ssh.interfaces.ssh_channel import SSHChannelInterface
from sshbridge.infrastructures.ssh.utils.ssh_utils import run_in_executor
from sshbridge.core.exceptions import SSHChannelException
from sshbridge.core.logger import logger


class ParamikoChannel(SSHChannelInterface):
    """SSH 터미널 채널 구현체 Using Paramiko"""

    def __init__(
        self,
        channel: paramiko.Channel,
        read_buffer_size: int = 4096,
        poll_interval: float = 0.05
    ):
        self._channel = channel
        self._read_buffer_size = read_buffer_size
        self._poll_interval = poll_interval

    @property
    def closed(self) -> bool:
        return self._channel.closed

    async def write(self, data: str) -> None:
        if self._channel.closed:
            raise SSHChannelException(operation="write", detail="Channel is closed")
        try:
            await run_in_executor(self._channel.sendall, data.encode("utf-8"))
        except (paramiko.SSHException, OSError) as e:
            raise SSHChannelException(operation="write", detail=str(e), original_exception=e)

    async def resize(self, cols: int, rows: int) -> None:
        try:
            await run_in_executor(self._channel.resize_pty, width=cols, height=rows)
        except (paramiko.SSHException, OSError) as e:
            raise SSHChannelException(operation="resize", detail=str(e), original_exception=e)

    async def read_stream(self) -> AsyncIterator[Tuple[str, bytes]]:
        """채널 출력을 stdout / stderr 조각 단위로 스트리밍

        데이터가 없으면 짧게 쉬면서 폴링하고, 채널이 닫히거나 EOF 이후 버퍼가 비면 종료한다.
        """
        while True:
            received = False

            if self._channel.recv_ready():
                chunk = await run_in_executor(self._channel.recv, self._read_buffer_size)
                if not chunk:  # Connection closed
                    break
                received = True
                yield "stdout", chunk

            if self._channel.recv_stderr_ready():
                chunk = await run_in_executor(self._channel.recv_stderr, self._read_buffer_size)
                if chunk:
                    received = True
                    yield "stderr", chunk

            if not received:
                if self._channel.closed or self._channel.eof_received:
                    break
                # Short pause to prevent CPU spinning
                await asyncio.sleep(self._poll_interval)

    async def close(self) -> None:
        if self._channel.closed:
            return
        try:
            await run_in_executor(self._channel.close)
        except Exception as e:
            logger.warning(f"Error while closing channel: {str(e)}")
