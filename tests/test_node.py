"""
test_node.py — Unit Tests for the Embedded Node Handle
========================================================
"""

import pytest
from embedded_node.core.builder import EmbeddedNodeBuilder
from embedded_node.core.errors import IllegalState, InvalidArgument
from embedded_node.core.protocol import SecurityProtocol
from embedded_node.services.node import EmbeddedNode, parse_listeners


class StubServer:
    """Minimal node server recording lifecycle calls."""

    def __init__(self, config, ports=None):
        self.config = config
        self.ports = ports or {}
        self.events = []

    def startup(self):
        self.events.append("startup")

    def shutdown(self):
        self.events.append("shutdown")

    def await_shutdown(self):
        self.events.append("await_shutdown")

    def bound_port(self, protocol):
        return self.ports[protocol]


class BareServer:
    """Server without optional hooks."""

    def __init__(self, config):
        self.stopped = False

    def startup(self):
        pass

    def shutdown(self):
        self.stopped = True



class FailingShutdownServer(StubServer):
    """Server whose shutdown always fails."""

    def shutdown(self):
        self.events.append("shutdown")
        raise RuntimeError("controller unreachable")

@pytest.fixture
def servers():
    return []


@pytest.fixture
def node(tmp_path, servers):
    def factory(config):
        server = StubServer(config, ports={SecurityProtocol.PLAINTEXT: 50123})
        servers.append(server)
        return server

    storage = tmp_path / "logs"
    storage.mkdir()
    return (
        EmbeddedNodeBuilder()
        .storage_directory(storage)
        .coordination_endpoint("localhost:2181")
        .plaintext_port(0)
        .ssl_port(0)
        .build(factory)
    )


class TestParseListeners:
    """Tests for listener list parsing."""

    def test_parses_protocols(self):
        parsed = parse_listeners("PLAINTEXT://localhost:0,SSL://localhost:9093")
        assert parsed == {
            SecurityProtocol.PLAINTEXT: ("localhost", 0),
            SecurityProtocol.SSL: ("localhost", 9093),
        }

    def test_malformed_entry(self):
        with pytest.raises(InvalidArgument, match="malformed listener"):
            parse_listeners("PLAINTEXT:localhost")

    def test_unknown_protocol(self):
        with pytest.raises(InvalidArgument):
            parse_listeners("GOPHER://localhost:70")


class TestLifecycle:
    """Tests for starting and stopping the node."""

    def test_start_creates_server(self, node, servers):
        node.start()
        assert node.is_running
        assert servers[0].events == ["startup"]
        assert servers[0].config is node.config

    def test_double_start_fails(self, node):
        node.start()
        with pytest.raises(IllegalState, match="already started"):
            node.start()

    def test_shutdown_before_start_is_noop(self, node, servers):
        node.shutdown()
        node.await_shutdown()
        assert servers == []

    def test_close_removes_storage(self, node, servers):
        node.start()
        node.close()
        assert servers[0].events == ["startup", "shutdown", "await_shutdown"]
        assert not node.storage_directory.exists()
        assert not node.is_running

    def test_context_manager(self, node, servers):
        with node as running:
            assert running.is_running
        assert servers[0].events[-1] == "await_shutdown"

    def test_close_after_failed_shutdown(self, tmp_path):
        """A failing shutdown still stops tracking the server and removes storage."""
        storage = tmp_path / "logs"
        storage.mkdir()
        servers = []

        def factory(config):
            server = FailingShutdownServer(config)
            servers.append(server)
            return server

        node = (
            EmbeddedNodeBuilder()
            .storage_directory(storage)
            .coordination_endpoint("localhost:2181")
            .enable_plaintext()
            .build(factory)
        )
        node.start()
        node.close()
        assert servers[0].events == ["startup", "shutdown", "await_shutdown"]
        assert not node.is_running
        assert not storage.exists()

    def test_failed_shutdown_keeps_caller_error(self, tmp_path):
        """Errors raised inside the with block are not masked by close()."""
        node = (
            EmbeddedNodeBuilder()
            .storage_directory(tmp_path / "logs")
            .coordination_endpoint("localhost:2181")
            .enable_plaintext()
            .build(FailingShutdownServer)
        )
        with pytest.raises(KeyError, match="missing-topic"):
            with node:
                raise KeyError("missing-topic")
        assert not node.is_running

    def test_server_without_optional_hooks(self, tmp_path):
        node = EmbeddedNode(
            {
                "broker.id": "99",
                "listeners": "PLAINTEXT://localhost:9092",
                "log.dir": str(tmp_path),
            },
            BareServer,
        )
        node.start()
        assert node.address_for(SecurityProtocol.PLAINTEXT) == "localhost:9092"
        node.close()
        assert not node.is_running


class TestAddressFor:
    """Tests for listener address lookup."""

    def test_configured_port_before_start(self, node):
        assert node.address_for(SecurityProtocol.SSL) == "localhost:0"

    def test_bound_port_after_start(self, node):
        node.start()
        assert node.address_for(SecurityProtocol.PLAINTEXT) == "localhost:50123"

    def test_missing_listener(self, node):
        with pytest.raises(InvalidArgument, match="no SecurityProtocol.SASL_SSL listener"):
            node.address_for(SecurityProtocol.SASL_SSL)
