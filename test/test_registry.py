import pytest

from conftest import CONNECTION_CONFIG, FakeTransportFactory, RecordingSurface, envelope
from sshbridge.core.exceptions import TerminalConnectionExistsException, TerminalConnectionNotFoundException
from sshbridge.domains.terminal.services.registry import ConnectionRegistry


@pytest.fixture
def registry(transport_factory) -> ConnectionRegistry:
    return ConnectionRegistry(transport_factory=transport_factory)


async def test_open_terminal_registers_bridge(registry):
    surface = RecordingSurface()

    bridge = await registry.open_terminal(surface, "s1", connection_id="c1")

    assert "c1" in registry
    assert len(registry) == 1
    assert registry.get("c1") is bridge
    assert surface.statuses() == ["disconnected"]
    await registry.dispose_all()


async def test_generated_connection_ids_are_unique(registry):
    first = await registry.open_terminal(RecordingSurface(), "s1")
    second = await registry.open_terminal(RecordingSurface(), "s1")

    assert first.connection_id != second.connection_id
    assert len(registry) == 2
    await registry.dispose_all()


async def test_duplicate_connection_id_is_rejected(registry):
    await registry.open_terminal(RecordingSurface(), "s1", connection_id="c1")

    with pytest.raises(TerminalConnectionExistsException):
        await registry.open_terminal(RecordingSurface(), "s1", connection_id="c1")
    await registry.dispose_all()


async def test_route_to_unknown_connection(registry):
    with pytest.raises(TerminalConnectionNotFoundException):
        await registry.route("missing", envelope("ping"))

    assert registry.find("missing") is None


async def test_route_reaches_bridge(registry, transport_factory):
    surface = RecordingSurface()
    bridge = await registry.open_terminal(surface, "s1", connection_id="c1")

    await registry.route("c1", envelope("connect", {"connectionConfig": CONNECTION_CONFIG}))
    await bridge.connect_task

    assert registry.list()[0]["status"] == "connected"
    assert registry.list()[0]["host"] == "10.0.0.1"
    assert registry.list()[0]["transportMode"] == "shell"
    await registry.dispose_all()


async def test_dispose_is_idempotent(registry, transport_factory):
    bridge = await registry.open_terminal(RecordingSurface(), "s1", connection_id="c1")
    await registry.route("c1", envelope("connect", {"connectionConfig": CONNECTION_CONFIG}))
    await bridge.connect_task

    assert await registry.dispose("c1") is True
    assert await registry.dispose("c1") is False
    assert "c1" not in registry
    assert transport_factory.last.close_calls == 1


async def test_dispose_all(registry):
    await registry.open_terminal(RecordingSurface(), "s1", connection_id="a")
    await registry.open_terminal(RecordingSurface(), "s2", connection_id="b")

    assert await registry.dispose_all() == 2
    assert len(registry) == 0


async def test_failed_connect_does_not_leak_into_other_bridges():
    factory = FakeTransportFactory(connect_error=OSError("Connection refused"))
    registry = ConnectionRegistry(transport_factory=factory)
    surface_a, surface_b = RecordingSurface(), RecordingSurface()
    bridge_a = await registry.open_terminal(surface_a, "s1", connection_id="a")
    await registry.open_terminal(surface_b, "s1", connection_id="b")
    surface_b.clear()

    await registry.route("a", envelope("connect", {"connectionConfig": CONNECTION_CONFIG}, connection_id="a"))
    await bridge_a.connect_task

    assert "error" in surface_a.statuses()
    assert surface_b.messages == []
    assert registry.get("b").status.value == "disconnected"
    await registry.dispose_all()
