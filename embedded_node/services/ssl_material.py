"""
ssl_material.py — TLS Material for Test Nodes
===============================================
Generates a self-signed certificate and key for a node and renders the
TLS properties that point the node at them.

Keystores and truststores are written in PEM form:
    keystore   — [encrypted PKCS#8 private key][certificate]
    truststore — one labelled certificate per alias, appended in order

Uses the `cryptography` package for key and certificate generation.
"""

import datetime
import ipaddress
import logging
import os
import threading
from pathlib import Path
from typing import Dict, Optional, Tuple

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID
from pydantic import BaseModel

from embedded_node.config import settings
from embedded_node.core import keys
from embedded_node.core.protocol import ConnectionMode
from embedded_node.services.temp_dirs import new_temp_file

logger = logging.getLogger(__name__)

PEM_STORE_TYPE = "PEM"

# Guards appends to a truststore shared by several nodes
_trust_store_lock = threading.Lock()


class SslMaterial(BaseModel):
    """TLS settings for one side of a connection."""

    protocol: str
    enabled_protocols: str
    client_auth: Optional[str] = None
    keystore_type: Optional[str] = None
    keystore_location: Optional[str] = None
    key_password: Optional[str] = None
    truststore_type: Optional[str] = None
    truststore_location: Optional[str] = None

    def to_properties(self) -> Dict[str, str]:
        """Render as node configuration entries, skipping unset fields."""
        values = {
            keys.SSL_PROTOCOL: self.protocol,
            keys.SSL_ENABLED_PROTOCOLS: self.enabled_protocols,
            keys.SSL_CLIENT_AUTH: self.client_auth,
            keys.SSL_KEYSTORE_TYPE: self.keystore_type,
            keys.SSL_KEYSTORE_LOCATION: self.keystore_location,
            keys.SSL_KEY_PASSWORD: self.key_password,
            keys.SSL_TRUSTSTORE_TYPE: self.truststore_type,
            keys.SSL_TRUSTSTORE_LOCATION: self.truststore_location,
        }
        return {key: value for key, value in values.items() if value is not None}


def generate_certificate(
    cn: str, key_size: Optional[int] = None, days: Optional[int] = None
) -> Tuple[rsa.RSAPrivateKey, x509.Certificate]:
    """
    Generate an RSA key pair and a self-signed certificate.

    The certificate is valid for `localhost` and `127.0.0.1` in
    addition to the given common name.

    Args:
        cn: Common name of the subject.
        key_size: RSA modulus size in bits (default from settings).
        days: Validity period in days (default from settings).

    Returns:
        Tuple of (private_key, certificate).
    """
    key = rsa.generate_private_key(
        public_exponent=65537, key_size=key_size or settings.SSL_KEY_SIZE
    )
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, cn)])
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(minutes=1))
        .not_valid_after(now + datetime.timedelta(days=days or settings.SSL_VALIDITY_DAYS))
        .add_extension(
            x509.SubjectAlternativeName(
                [
                    x509.DNSName("localhost"),
                    x509.IPAddress(ipaddress.ip_address("127.0.0.1")),
                ]
            ),
            critical=False,
        )
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(key, hashes.SHA256())
    )
    logger.debug("Generated self-signed certificate for CN=%s", cn)
    return key, cert


def write_keystore(
    key: rsa.RSAPrivateKey, cert: x509.Certificate, password: str
) -> Path:
    """Write an encrypted key and its certificate into a new PEM keystore."""
    path = new_temp_file(suffix=".keystore.pem")
    key_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.BestAvailableEncryption(
            password.encode("utf-8")
        ),
    )
    path.write_bytes(key_pem + cert.public_bytes(serialization.Encoding.PEM))
    logger.debug("Wrote keystore %s", path)
    return path


def add_to_trust_store(
    trust_store_file: Path, alias: str, cert: x509.Certificate
) -> None:
    """
    Append a certificate to a PEM truststore under a text label.

    Text outside the BEGIN/END markers is ignored by PEM readers, so the
    alias line only serves to identify entries.
    """
    entry = f"# alias: {alias}\n".encode("utf-8") + cert.public_bytes(
        serialization.Encoding.PEM
    )
    with _trust_store_lock:
        with open(trust_store_file, "ab") as f:
            f.write(entry)
    logger.info("Added certificate '%s' to truststore %s", alias, trust_store_file)


def create_ssl_config(
    use_client_cert: bool,
    trust_store: bool,
    mode: ConnectionMode,
    trust_store_file: Optional[Path],
    cert_alias: str,
    cn: str = "localhost",
) -> Dict[str, str]:
    """
    Create TLS material and return the matching configuration entries.

    Args:
        use_client_cert: Require (server) or present (client) a client certificate.
        trust_store: Whether to register the certificate in a truststore.
        mode: Side of the connection the material is for.
        trust_store_file: Existing truststore to append to; a new one is
                          allocated when None.
        cert_alias: Label of the certificate inside the truststore.
        cn: Common name of the certificate subject.

    Returns:
        Mapping of TLS configuration keys to string values.

    Raises:
        OSError: If a store cannot be written.
    """
    key, cert = generate_certificate(cn)

    material = SslMaterial(
        protocol=settings.SSL_PROTOCOL,
        enabled_protocols=settings.SSL_PROTOCOL,
    )

    if mode is ConnectionMode.SERVER:
        material.client_auth = "required" if use_client_cert else "none"

    if mode is ConnectionMode.SERVER or use_client_cert:
        password = os.urandom(settings.SSL_KEY_PASSWORD_BYTES).hex()
        material.keystore_type = PEM_STORE_TYPE
        material.keystore_location = str(write_keystore(key, cert, password))
        material.key_password = password

    if trust_store:
        if trust_store_file is None:
            trust_store_file = new_temp_file(suffix=".truststore.pem")
        add_to_trust_store(Path(trust_store_file), cert_alias, cert)
        material.truststore_type = PEM_STORE_TYPE
        material.truststore_location = str(Path(trust_store_file).resolve())

    logger.info(
        "Created %s TLS material for '%s' (keystore=%s, truststore=%s)",
        mode.value,
        cert_alias,
        material.keystore_location,
        material.truststore_location,
    )
    return material.to_properties()
