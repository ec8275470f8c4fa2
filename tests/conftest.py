"""Pytest configuration shared across the suite."""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@dataclass
class KeyMaterial:
    certificate: x509.Certificate
    private_key: rsa.RSAPrivateKey
    certificate_path: Path
    private_key_path: Path


def _generate_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def _self_signed(private_key: rsa.RSAPrivateKey) -> x509.Certificate:
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "pens-test")])
    now = datetime.datetime.now(datetime.timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
        .sign(private_key, hashes.SHA256())
    )


def write_key_material(directory: Path, prefix: str = "pens") -> KeyMaterial:
    private_key = _generate_key()
    certificate = _self_signed(private_key)
    certificate_path = directory / f"{prefix}-cert.pem"
    private_key_path = directory / f"{prefix}-key.pem"
    certificate_path.write_bytes(certificate.public_bytes(serialization.Encoding.PEM))
    private_key_path.write_bytes(
        private_key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
    )
    return KeyMaterial(certificate, private_key, certificate_path, private_key_path)


@pytest.fixture
def key_material(tmp_path: Path) -> KeyMaterial:
    """A matching RSA key and self-signed certificate written as PEM files."""
    return write_key_material(tmp_path)


@pytest.fixture
def other_key_material(tmp_path: Path) -> KeyMaterial:
    """A second, unrelated key pair."""
    return write_key_material(tmp_path, prefix="other")
