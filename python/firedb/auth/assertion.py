"""
firedb/auth/assertion.py

Builds and signs the OAuth2 JWT-bearer assertion (RFC 7523) that a service
account exchanges for an access token.

The assertion is header {"alg": "RS256", "typ": "JWT"} plus AssertionClaims,
signed with RSA-SHA256. Claims are recomputed from the clock on every call;
a signed assertion is only good for a single exchange attempt.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

import jwt
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from firedb.errors import InvalidPrivateKey, SigningFailure
from firedb.models.firebase import FirebaseSettings, ServiceAccountCredentials
from firedb.models.token import AssertionClaims

logger = logging.getLogger(__name__)

JWT_HEADERS = {"alg": "RS256", "typ": "JWT"}

Clock = Callable[[], float]


def load_private_key(private_key_pem: bytes) -> RSAPrivateKey:
    """Parse an unencrypted PEM private key and insist that it is RSA.

    Raises:
        InvalidPrivateKey: If the PEM can't be parsed or isn't an RSA key.
    """
    try:
        key = serialization.load_pem_private_key(private_key_pem, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise InvalidPrivateKey() from exc
    if not isinstance(key, RSAPrivateKey):
        raise InvalidPrivateKey(f"Expected an RSA private key, got {type(key).__name__}.")
    return key


def sign(claims: AssertionClaims, private_key_pem: bytes) -> str:
    """
    Sign claims into a compact three-part JWT (header.claims.signature).

    Args:
        claims (AssertionClaims): The claim set to sign.
        private_key_pem (bytes): PEM-encoded RSA private key.

    Returns:
        str: The base64url-encoded, dot-separated assertion.

    Raises:
        InvalidPrivateKey: If the key is not a parseable RSA PEM key.
        SigningFailure: If the signing operation itself fails.
    """
    key = load_private_key(private_key_pem)
    try:
        return jwt.encode(
            claims.model_dump(),
            key,
            algorithm=JWT_HEADERS["alg"],
            headers={"typ": JWT_HEADERS["typ"]},
        )
    except (jwt.PyJWTError, ValueError, TypeError) as exc:
        raise SigningFailure(f"Failed to sign the JWT assertion: {exc}") from exc


def create_assertion(
    credentials: ServiceAccountCredentials,
    settings: FirebaseSettings,
    clock: Clock = time.time,
) -> str:
    """Build fresh claims for the service account and sign them.

    Args:
        credentials (ServiceAccountCredentials): Issuer identity and signing key.
        settings (FirebaseSettings): Supplies scope, audience (token URI) and lifetime.
        clock (Clock): Wall clock in epoch seconds; injectable for tests.

    Returns:
        str: A signed assertion, valid for settings.assertion_lifetime_seconds.
    """
    claims = AssertionClaims.issued_at(
        issuer=credentials.service_account,
        scope=settings.scope,
        audience=settings.token_uri,
        now=clock(),
        lifetime_seconds=settings.assertion_lifetime_seconds,
    )
    logger.debug(
        "Signing assertion for %s (iat=%d, exp=%d)", claims.iss, claims.iat, claims.exp
    )
    return sign(claims, credentials.private_key_pem)
