"""
keys.py — Node Configuration Keys
===================================
Property names expected by the node's configuration parser.
"""

NODE_ID = "broker.id"
LISTENERS = "listeners"
LOG_DIR = "log.dir"
COORDINATION_CONNECT = "zookeeper.connect"
REPLICA_SOCKET_TIMEOUT_MS = "replica.socket.timeout.ms"
CONTROLLER_SOCKET_TIMEOUT_MS = "controller.socket.timeout.ms"
CONTROLLED_SHUTDOWN_ENABLE = "controlled.shutdown.enable"
CONTROLLED_SHUTDOWN_RETRY_BACKOFF_MS = "controlled.shutdown.retry.backoff.ms"
DELETE_TOPIC_ENABLE = "delete.topic.enable"
LOG_CLEANER_DEDUPE_BUFFER_SIZE = "log.cleaner.dedupe.buffer.size"
LOG_CLEANER_ENABLE = "log.cleaner.enable"
OFFSETS_TOPIC_REPLICATION_FACTOR = "offsets.topic.replication.factor"
NODE_RACK = "broker.rack"
INTER_NODE_SECURITY_PROTOCOL = "security.inter.broker.protocol"

# TLS
SSL_ENDPOINT_IDENTIFICATION_ALGORITHM = "ssl.endpoint.identification.algorithm"
SSL_PROTOCOL = "ssl.protocol"
SSL_ENABLED_PROTOCOLS = "ssl.enabled.protocols"
SSL_CLIENT_AUTH = "ssl.client.auth"
SSL_KEYSTORE_TYPE = "ssl.keystore.type"
SSL_KEYSTORE_LOCATION = "ssl.keystore.location"
SSL_KEY_PASSWORD = "ssl.key.password"
SSL_TRUSTSTORE_TYPE = "ssl.truststore.type"
SSL_TRUSTSTORE_LOCATION = "ssl.truststore.location"
