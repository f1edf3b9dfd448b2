"""RSA keypair used to sign and verify access tokens.

Loaded once per process and never mutated. Verification only ever needs the
public half.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

import structlog
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from taskdesk_service.settings import Settings, settings

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SigningKeys:
    private_key: rsa.RSAPrivateKey
    public_key: rsa.RSAPublicKey

    @classmethod
    def generate(cls, key_size: int = 2048) -> SigningKeys:
        private_key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
        return cls(private_key=private_key, public_key=private_key.public_key())

    @classmethod
    def from_pem(cls, private_pem: bytes, public_pem: bytes | None = None) -> SigningKeys:
        private_key = serialization.load_pem_private_key(private_pem, password=None)
        if not isinstance(private_key, rsa.RSAPrivateKey):
            raise ValueError("Signing key must be an RSA private key")
        if public_pem is None:
            public_key = private_key.public_key()
        else:
            loaded = serialization.load_pem_public_key(public_pem)
            if not isinstance(loaded, rsa.RSAPublicKey):
                raise ValueError("Verification key must be an RSA public key")
            public_key = loaded
        return cls(private_key=private_key, public_key=public_key)


def load_signing_keys(config: Settings) -> SigningKeys:
    """Build the keypair from PEM files, inline PEM strings, or generate one."""
    private_pem: bytes | None = None
    public_pem: bytes | None = None

    if config.jwt_private_key_path:
        private_pem = Path(config.jwt_private_key_path).read_bytes()
    elif config.jwt_private_key:
        private_pem = config.jwt_private_key.encode("utf-8")

    if config.jwt_public_key_path:
        public_pem = Path(config.jwt_public_key_path).read_bytes()
    elif config.jwt_public_key:
        public_pem = config.jwt_public_key.encode("utf-8")

    if private_pem is None:
        logger.warning(
            "ephemeral_signing_keys_generated",
            reason="no RSA key configured; issued tokens will not survive a restart",
        )
        return SigningKeys.generate()

    logger.info("signing_keys_loaded", has_public_key=public_pem is not None)
    return SigningKeys.from_pem(private_pem, public_pem)


@lru_cache
def get_signing_keys() -> SigningKeys:
    return load_signing_keys(settings)
