from abc import ABC, abstractmethod
from typing import AsyncIterator, Tuple


class SSHChannelInterface(ABC):
    """SSH terminal data channel (shell or exec) Interface"""

    @property
    @abstractmethod
    def closed(self) -> bool:
        """Whether the channel has been closed"""
        pass

    @abstractmethod
    async def write(self, data: str) -> None:
        """Write terminal input to the channel"""
        pass

    @abstractmethod
    async def resize(self, cols: int, rows: int) -> None:
        """Update the remote pty window size"""
        pass

    @abstractmethod
    def read_stream(self) -> AsyncIterator[Tuple[str, bytes]]:
        """Stream ("stdout" | "stderr", chunk) pairs until the channel closes"""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the channel"""
        pass
