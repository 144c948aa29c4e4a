from dependency_injector import containers, providers

from sshbridge.core.config import settings
from sshbridge.domains.terminal.services.registry import ConnectionRegistry
from sshbridge.domains.terminal.services.session_store import SessionStore
from sshbridge.infrastructures.websocket.connection_manager import WebSocketManager


def _sessions_path(app_settings):
    return app_settings.SESSIONS_PATH


class AppContainer(containers.DeclarativeContainer):
    app_settings = providers.Object(settings)

    websocket_manager = providers.Singleton(WebSocketManager)

    connection_registry = providers.Singleton(
        ConnectionRegistry,
        app_settings=app_settings,
    )

    session_store = providers.Singleton(
        SessionStore,
        path=providers.Callable(_sessions_path, app_settings),
    )


container = AppContainer()
