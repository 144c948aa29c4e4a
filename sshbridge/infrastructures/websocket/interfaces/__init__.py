from sshbridge.infrastructures.websocket.interfaces.display_surface import DisplaySurfaceInterface

__all__ = [
    "DisplaySurfaceInterface",
]
