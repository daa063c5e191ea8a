"""
zcash_local_net/crypto/pkcs8.py

Generate a PKCS#8 private key and a self-signed certificate for a
process serving TLS on localhost (e.g. lightwalletd's gRPC server).
"""

import ipaddress
import os
from datetime import datetime, timedelta, timezone
from typing import Tuple

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.x509.oid import NameOID

DEFAULT_PUBLIC_EXPONENT = 65537
DEFAULT_KEY_SIZE = 2048
DEFAULT_CN = "localhost"
DEFAULT_DAYS = 1

KEY_FILENAME = "key.pem"
CERT_FILENAME = "cert.pem"


def create_pkcs8_private_key(
    path: str,
    public_exponent: int = DEFAULT_PUBLIC_EXPONENT,
    key_size: int = DEFAULT_KEY_SIZE,
) -> Tuple[str, RSAPrivateKey]:
    """
    Generate an RSA private key and save it as PKCS#8 PEM in `path`.
    """
    pk = rsa.generate_private_key(public_exponent=public_exponent, key_size=key_size)

    pem = pk.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    pk_path = os.path.join(path, KEY_FILENAME)
    with open(pk_path, "wb") as f:
        f.write(pem)

    return (pk_path, pk)


def create_pkcs8_self_signed_certificate(
    path: str,
    pk: RSAPrivateKey,
    common_name: str = DEFAULT_CN,
    validity_days: int = DEFAULT_DAYS,
) -> str:
    """
    Generate a certificate for localhost signed by `pk` and save it in `path`.
    """
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])

    now = datetime.now(timezone.utc)
    validity = timedelta(days=validity_days)

    # names clients dial
    alt_names = x509.SubjectAlternativeName(
        [
            x509.DNSName("localhost"),
            x509.IPAddress(ipaddress.IPv4Address("127.0.0.1")),
        ]
    )

    cert = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(pk.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + validity)
        .add_extension(alt_names, critical=False)
        .sign(pk, hashes.SHA256())
    )

    cert_path = os.path.join(path, CERT_FILENAME)
    with open(cert_path, "wb") as f:
        f.write(cert.public_bytes(serialization.Encoding.PEM))

    return cert_path


def create_tls_key_cert(path: str) -> Tuple[str, str]:
    """
    Create a key and a self-signed certificate in `path`.
    Returns (key_path, cert_path).
    """
    pk_path, pk = create_pkcs8_private_key(path)
    cert_path = create_pkcs8_self_signed_certificate(path, pk)
    return (pk_path, cert_path)
