"""
node.py — Embedded Node Handle
================================
Lifecycle wrapper around a node server created from a rendered
configuration. The server implementation is supplied by the caller;
this module only starts, addresses and tears it down.
"""

import logging
import shutil
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

from embedded_node.core import keys
from embedded_node.core.errors import IllegalState, InvalidArgument
from embedded_node.core.protocol import SecurityProtocol

logger = logging.getLogger(__name__)

# Creates a server object exposing startup() and shutdown(); await_shutdown()
# and bound_port(protocol) are used when present.
ServerFactory = Callable[[Mapping[str, str]], Any]


def parse_listeners(listeners: str) -> Dict[SecurityProtocol, tuple]:
    """
    Parse a listener list into (host, port) pairs keyed by protocol.

    Args:
        listeners: Comma-separated `PROTOCOL://host:port` entries.

    Returns:
        Dict mapping each protocol to its (host, port).

    Raises:
        InvalidArgument: If an entry is malformed.
    """
    parsed = {}
    for entry in filter(None, listeners.split(",")):
        try:
            name, address = entry.split("://", 1)
            host, port = address.rsplit(":", 1)
            parsed[SecurityProtocol(name)] = (host, int(port))
        except ValueError as e:
            raise InvalidArgument(f"malformed listener '{entry}': {e}") from e
    return parsed


class EmbeddedNode:
    """
    Handle to a single in-process test node.

    Created from a finalized configuration; the server itself is only
    constructed on `start()`.
    """

    def __init__(self, config: Mapping[str, str], server_factory: ServerFactory):
        self.config = config
        self._server_factory = server_factory
        self._server: Optional[Any] = None
        self._listeners = parse_listeners(config[keys.LISTENERS])

    @property
    def node_id(self) -> int:
        return int(self.config[keys.NODE_ID])

    @property
    def storage_directory(self) -> Path:
        return Path(self.config[keys.LOG_DIR])

    @property
    def is_running(self) -> bool:
        return self._server is not None

    def start(self) -> "EmbeddedNode":
        """
        Create the server from the configuration and start it.

        Raises:
            IllegalState: If the node was already started.
        """
        if self._server is not None:
            raise IllegalState(f"node {self.node_id} already started")
        server = self._server_factory(self.config)
        server.startup()
        self._server = server
        logger.info(
            "Node %d started (listeners=%s)", self.node_id, self.config[keys.LISTENERS]
        )
        return self

    def address_for(self, protocol: SecurityProtocol) -> str:
        """
        Get the `host:port` address of the listener for a protocol.

        The server's bound port is preferred so that ephemeral (0) ports
        resolve to the port actually in use.

        Raises:
            InvalidArgument: If the node has no listener for the protocol.
        """
        if protocol not in self._listeners:
            raise InvalidArgument(f"node {self.node_id} has no {protocol} listener")
        host, port = self._listeners[protocol]
        bound_port = getattr(self._server, "bound_port", None)
        if bound_port is not None:
            port = bound_port(protocol)
        return f"{host}:{port}"

    def shutdown(self) -> None:
        """Ask the server to stop. No-op if the node is not running."""
        if self._server is None:
            return
        self._server.shutdown()
        logger.info("Node %d shutting down", self.node_id)

    def await_shutdown(self) -> None:
        """Block until the server has stopped, then forget it."""
        if self._server is None:
            return
        wait = getattr(self._server, "await_shutdown", None)
        if wait is not None:
            wait()
        self._server = None

    def close(self) -> None:
        """
        Stop the node and remove its storage directory.

        Every step runs even when an earlier one fails; failures are
        logged so that an exception leaving a `with` block is not masked.
        """
        try:
            self.shutdown()
        except Exception as e:
            logger.error("Node %d shutdown failed: %s", self.node_id, e)
        try:
            self.await_shutdown()
        except Exception as e:
            logger.error("Node %d did not stop cleanly: %s", self.node_id, e)
        finally:
            self._server = None
        shutil.rmtree(self.storage_directory, ignore_errors=True)
        logger.info("Node %d closed, removed %s", self.node_id, self.storage_directory)

    def __enter__(self) -> "EmbeddedNode":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
