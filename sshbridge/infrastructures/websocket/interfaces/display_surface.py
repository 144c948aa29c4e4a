from abc import ABC, abstractmethod
from typing import Any, Dict


class DisplaySurfaceInterface(ABC):
    """Bridge 가 envelope 을 내보내는 display surface Interface"""

    @abstractmethod
    def post_message(self, message: Dict[str, Any]) -> None:
        """Enqueue one outbound envelope; must not block"""
        pass

    @property
    @abstractmethod
    def closed(self) -> bool:
        """Whether the surface has gone away"""
        pass
