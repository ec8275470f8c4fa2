"""
Certificate-bound client assertions.

Builds the RS256 JWT that proves client identity to the token endpoint in
place of a shared secret. The ``x5t`` header is the base64url SHA-1
thumbprint of the certificate registered with the identity provider.
"""

from __future__ import annotations

import base64
import logging
import time
import uuid
from pathlib import Path
from typing import Callable

import jwt
from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from pens.core.errors import SigningError

logger = logging.getLogger(__name__)

MAX_ASSERTION_LIFETIME_SECONDS = 3600


def base64url_encode(data: bytes) -> str:
    """Base64url without padding, as used by JWT segments."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _read_bytes(path: str, kind: str) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as exc:
        raise SigningError(f"Failed to open {kind} file: {path}") from exc


def load_certificate(certificate_path: str) -> x509.Certificate:
    """Load a PEM or DER encoded X.509 certificate."""
    data = _read_bytes(certificate_path, "certificate")
    try:
        if b"-----BEGIN" in data:
            return x509.load_pem_x509_certificate(data)
        return x509.load_der_x509_certificate(data)
    except ValueError as exc:
        raise SigningError(f"Failed to parse certificate: {certificate_path}") from exc


def load_rsa_private_key(private_key_path: str) -> rsa.RSAPrivateKey:
    """Load an unencrypted PEM or DER RSA private key."""
    data = _read_bytes(private_key_path, "private key")
    try:
        if b"-----BEGIN" in data:
            key = serialization.load_pem_private_key(data, password=None)
        else:
            key = serialization.load_der_private_key(data, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise SigningError(f"Failed to load private key: {private_key_path}") from exc

    if not isinstance(key, rsa.RSAPrivateKey):
        raise SigningError(f"Private key is not an RSA key: {private_key_path}")
    return key


class AssertionSigner:
    """Produce signed JWT client assertions from a certificate and private key."""

    def __init__(
        self,
        *,
        lifetime_seconds: int = MAX_ASSERTION_LIFETIME_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not 0 < lifetime_seconds <= MAX_ASSERTION_LIFETIME_SECONDS:
            raise ValueError(
                f"Assertion lifetime must be between 1 and {MAX_ASSERTION_LIFETIME_SECONDS} seconds."
            )
        self._lifetime = lifetime_seconds
        self._clock = clock

    def thumbprint(self, certificate_path: str) -> str:
        """Return base64url(SHA-1(DER(certificate)))."""
        certificate = load_certificate(certificate_path)
        return base64url_encode(certificate.fingerprint(hashes.SHA1()))

    def sign(
        self,
        client_id: str,
        audience: str,
        certificate_path: str,
        private_key_path: str,
    ) -> str:
        """Build and sign a client assertion for ``audience`` (the token endpoint URL)."""
        private_key = load_rsa_private_key(private_key_path)
        thumbprint = self.thumbprint(certificate_path)
        logger.debug("Certificate thumbprint (x5t): %s", thumbprint)

        now = int(self._clock())
        claims = {
            "aud": audience,
            "iss": client_id,
            "sub": client_id,
            "jti": str(uuid.uuid4()),
            "nbf": now,
            "exp": now + self._lifetime,
        }
        try:
            assertion = jwt.encode(
                claims,
                private_key,
                algorithm="RS256",
                headers={"typ": "JWT", "x5t": thumbprint},
            )
        except (jwt.PyJWTError, ValueError, TypeError) as exc:
            raise SigningError("Failed to sign client assertion.") from exc

        logger.info("Generated client assertion JWT")
        return assertion

    def verify_key_pair(self, certificate_path: str, private_key_path: str) -> bool:
        """Check that the private key belongs to the certificate's public key."""
        certificate = load_certificate(certificate_path)
        private_key = load_rsa_private_key(private_key_path)

        spki = serialization.PublicFormat.SubjectPublicKeyInfo
        der = serialization.Encoding.DER
        if certificate.public_key().public_bytes(der, spki) != private_key.public_key().public_bytes(der, spki):
            return False

        probe = b"pens key pair probe"
        signature = private_key.sign(probe, padding.PKCS1v15(), hashes.SHA256())
        public_key = certificate.public_key()
        if not isinstance(public_key, rsa.RSAPublicKey):
            return False
        try:
            public_key.verify(signature, probe, padding.PKCS1v15(), hashes.SHA256())
        except InvalidSignature:
            return False
        return True


__all__ = [
    "AssertionSigner",
    "MAX_ASSERTION_LIFETIME_SECONDS",
    "base64url_encode",
    "load_certificate",
    "load_rsa_private_key",
]
