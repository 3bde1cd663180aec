"""
builder.py — Embedded Node Configuration Builder
==================================================
Accumulates options for a single in-process test node, fills in
defaults, validates the result and renders the flat key/value
configuration the node implementation parses.

Typical use:
    config = (
        EmbeddedNodeBuilder()
        .coordination_endpoint("localhost:2181")
        .enable(SecurityProtocol.PLAINTEXT)
        .rack("r1")
        .build_config()
    )
"""

import logging
import threading
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Dict, Mapping, Optional, Union

from embedded_node.core import keys
from embedded_node.core.errors import IllegalState, InvalidArgument, InvalidConfiguration
from embedded_node.core.protocol import (
    ConnectionMode,
    ConnectionStringProvider,
    SecurityProtocol,
)
from embedded_node.services.node import EmbeddedNode, ServerFactory
from embedded_node.services.ssl_material import create_ssl_config
from embedded_node.services.temp_dirs import new_temp_dir

logger = logging.getLogger(__name__)

# Port sentinel: protocol disabled. Port 0 lets the OS pick a free port.
PORT_DISABLED = -1

LISTENER_HOST = "localhost"
LISTENER_DELIMITER = ","
SERVER_ALIAS_PREFIX = "server"

RenderedConfiguration = Mapping[str, str]


class _NodeIdCounter:
    """Process-wide counter handing out node ids."""

    def __init__(self):
        self._value = 0
        self._lock = threading.Lock()

    def increment_and_get(self) -> int:
        with self._lock:
            self._value += 1
            return self._value


_node_ids = _NodeIdCounter()


def _bool(value: bool) -> str:
    return "true" if value else "false"


class EmbeddedNodeBuilder:
    """
    Fluent builder for the configuration of one embedded test node.

    Setters overwrite a single option and return the builder; nothing is
    checked until `build_config()` or `build()` is called.
    """

    def __init__(
        self,
        temp_dir_allocator: Callable[[], Path] = new_temp_dir,
        ssl_config_factory: Callable[..., Mapping[str, str]] = create_ssl_config,
    ):
        """
        Initialize the builder with default options.

        Args:
            temp_dir_allocator: Returns a fresh directory when no storage
                                directory was set.
            ssl_config_factory: Produces TLS configuration entries; called
                                with the same arguments as `create_ssl_config`.
        """
        self._allocate_temp_dir = temp_dir_allocator
        self._create_ssl_config = ssl_config_factory

        # mandatory
        self._node_id: int = _node_ids.increment_and_get()
        self._coordination_endpoint: Optional[str] = None
        # storage
        self._storage_directory: Optional[Path] = None
        # networking
        self._plaintext_port: int = PORT_DISABLED
        self._ssl_port: int = PORT_DISABLED
        self._trust_store: Optional[Path] = None
        self._socket_timeout_ms: int = 1500
        # features
        self._controlled_shutdown_enabled: bool = False
        self._controlled_shutdown_retry_backoff_ms: int = 100
        self._delete_enabled: bool = False
        self._log_cleaner_enabled: bool = False
        # 2 MB
        self._log_cleaner_dedupe_buffer_size: int = 2097152
        self._rack: Optional[str] = None

    @property
    def current_node_id(self) -> int:
        """Node id the next finalization will render."""
        return self._node_id

    # ── Setters ─────────────────────────────────────────────

    def node_id(self, node_id: int) -> "EmbeddedNodeBuilder":
        """Override the process-assigned node id."""
        self._node_id = node_id
        return self

    def coordination_endpoint(
        self, endpoint: Union[str, ConnectionStringProvider]
    ) -> "EmbeddedNodeBuilder":
        """
        Set the coordination-service connection string.

        Args:
            endpoint: A literal connection string, or a running coordination
                      service exposing `connection_string()`.
        """
        if isinstance(endpoint, ConnectionStringProvider):
            endpoint = endpoint.connection_string()
        self._coordination_endpoint = endpoint
        return self

    def storage_directory(self, directory: Union[str, Path]) -> "EmbeddedNodeBuilder":
        """Set the directory the node stores its logs in."""
        self._storage_directory = Path(directory)
        return self

    def enable(self, protocol: SecurityProtocol) -> "EmbeddedNodeBuilder":
        """
        Enable a listener protocol on an OS-assigned port.

        Raises:
            InvalidArgument: If the protocol has no listener support here.
        """
        if protocol is SecurityProtocol.PLAINTEXT:
            return self.enable_plaintext()
        if protocol is SecurityProtocol.SSL:
            return self.enable_ssl()
        raise InvalidArgument(f"unhandled: {protocol}")

    def plaintext_port(self, port: int) -> "EmbeddedNodeBuilder":
        """Set the plaintext listener port (-1 disables it)."""
        self._plaintext_port = port
        return self

    def enable_plaintext(self) -> "EmbeddedNodeBuilder":
        """Enable plaintext on an OS-assigned port."""
        return self.plaintext_port(0)

    def ssl_port(self, port: int) -> "EmbeddedNodeBuilder":
        """Set the SSL listener port (-1 disables it)."""
        self._ssl_port = port
        return self

    def enable_ssl(self) -> "EmbeddedNodeBuilder":
        """Enable SSL on an OS-assigned port."""
        return self.ssl_port(0)

    def trust_store(self, trust_store: Union[str, Path]) -> "EmbeddedNodeBuilder":
        """Set the PEM truststore the node certificate is added to."""
        self._trust_store = Path(trust_store)
        return self

    def socket_timeout_ms(self, timeout_ms: int) -> "EmbeddedNodeBuilder":
        """Set the replica and controller socket timeout."""
        self._socket_timeout_ms = timeout_ms
        return self

    def enable_controlled_shutdown(self, enabled: bool) -> "EmbeddedNodeBuilder":
        """Enable or disable controlled shutdown."""
        self._controlled_shutdown_enabled = enabled
        return self

    def controlled_shutdown_retry_backoff_ms(self, backoff_ms: int) -> "EmbeddedNodeBuilder":
        """Set the backoff between controlled shutdown retries."""
        self._controlled_shutdown_retry_backoff_ms = backoff_ms
        return self

    def enable_delete(self, enabled: bool) -> "EmbeddedNodeBuilder":
        """Enable or disable topic deletion."""
        self._delete_enabled = enabled
        return self

    def enable_log_cleaner(self, enabled: bool) -> "EmbeddedNodeBuilder":
        """Enable or disable the log cleaner."""
        self._log_cleaner_enabled = enabled
        return self

    def log_cleaner_dedupe_buffer_size(self, size_bytes: int) -> "EmbeddedNodeBuilder":
        """Set the log cleaner dedupe buffer size in bytes."""
        self._log_cleaner_dedupe_buffer_size = size_bytes
        return self

    def rack(self, rack: Optional[str]) -> "EmbeddedNodeBuilder":
        """Set the rack id; None leaves it out of the configuration."""
        self._rack = rack
        return self

    # ── Finalization ────────────────────────────────────────

    def _apply_defaults(self) -> None:
        if self._storage_directory is None:
            self._storage_directory = self._allocate_temp_dir()

    def _validate(self) -> None:
        if self._plaintext_port < 0 and self._ssl_port < 0:
            raise InvalidConfiguration("at least one protocol must be used")
        if self._storage_directory is None:
            raise InvalidConfiguration("storage directory must be specified")
        if self._coordination_endpoint is None:
            raise InvalidConfiguration("coordination endpoint must be specified")

    def _listeners(self) -> str:
        listeners = []
        if self._plaintext_port >= 0:
            listeners.append(
                f"{SecurityProtocol.PLAINTEXT.value}://{LISTENER_HOST}:{self._plaintext_port}"
            )
        if self._ssl_port >= 0:
            listeners.append(
                f"{SecurityProtocol.SSL.value}://{LISTENER_HOST}:{self._ssl_port}"
            )
        return LISTENER_DELIMITER.join(listeners)

    def _ssl_properties(self) -> Dict[str, str]:
        alias = f"{SERVER_ALIAS_PREFIX}{self._node_id}"
        try:
            return dict(
                self._create_ssl_config(
                    use_client_cert=False,
                    trust_store=True,
                    mode=ConnectionMode.SERVER,
                    trust_store_file=self._trust_store,
                    cert_alias=alias,
                )
            )
        except Exception as e:
            logger.error("Failed to create TLS material for node %d: %s", self._node_id, e)
            raise IllegalState(f"failed to create TLS material for '{alias}': {e}") from e

    def build_config(self) -> RenderedConfiguration:
        """
        Finalize the options into a node configuration.

        Returns:
            Read-only mapping of configuration keys to string values.

        Raises:
            InvalidConfiguration: If the options are inconsistent.
            IllegalState: If TLS material could not be created.
        """
        self._apply_defaults()
        self._validate()

        props: Dict[str, str] = {
            keys.NODE_ID: str(self._node_id),
            keys.LISTENERS: self._listeners(),
            keys.LOG_DIR: str(self._storage_directory.absolute()),
            keys.COORDINATION_CONNECT: self._coordination_endpoint,
            keys.REPLICA_SOCKET_TIMEOUT_MS: str(self._socket_timeout_ms),
            keys.CONTROLLER_SOCKET_TIMEOUT_MS: str(self._socket_timeout_ms),
            keys.CONTROLLED_SHUTDOWN_ENABLE: _bool(self._controlled_shutdown_enabled),
            keys.DELETE_TOPIC_ENABLE: _bool(self._delete_enabled),
            keys.CONTROLLED_SHUTDOWN_RETRY_BACKOFF_MS: str(
                self._controlled_shutdown_retry_backoff_ms
            ),
            keys.LOG_CLEANER_DEDUPE_BUFFER_SIZE: str(self._log_cleaner_dedupe_buffer_size),
            keys.LOG_CLEANER_ENABLE: _bool(self._log_cleaner_enabled),
            keys.OFFSETS_TOPIC_REPLICATION_FACTOR: "1",
            keys.SSL_ENDPOINT_IDENTIFICATION_ALGORITHM: "",
        }
        if self._rack is not None:
            props[keys.NODE_RACK] = self._rack

        # An ephemeral SSL port (0) alone does not generate TLS material
        if self._trust_store is not None or self._ssl_port > 0:
            props.update(self._ssl_properties())
            props[keys.INTER_NODE_SECURITY_PROTOCOL] = SecurityProtocol.SSL.value

        logger.info(
            "Built configuration for node %d (listeners=%s, log.dir=%s)",
            self._node_id,
            props[keys.LISTENERS],
            props[keys.LOG_DIR],
        )
        return MappingProxyType(props)

    def build(self, server_factory: ServerFactory) -> EmbeddedNode:
        """
        Finalize the options and wrap them in a node handle.

        Args:
            server_factory: Callable creating the node server from the
                            rendered configuration.

        Returns:
            An `EmbeddedNode` that has not been started yet.
        """
        return EmbeddedNode(self.build_config(), server_factory)
