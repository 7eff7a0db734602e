"""
firedb/models/token.py

Pydantic models for the OAuth2 service-account flow:
  - AssertionClaims: the claim set signed into the JWT assertion
  - GoogleAccessToken: the bearer token returned by the authorization server
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class AssertionClaims(BaseModel):
    """
    Claims of a service-account JWT assertion (RFC 7523).

    Attributes:
        iss (str): The service account identity (client email).
        scope (str): Space-delimited scopes being requested.
        aud (str): The authorization server's token endpoint.
        iat (int): Issued-at, epoch seconds.
        exp (int): Expiry, epoch seconds.
    """

    model_config = ConfigDict(frozen=True)

    iss: str
    scope: str
    aud: str
    iat: int
    exp: int

    @classmethod
    def issued_at(
        cls,
        *,
        issuer: str,
        scope: str,
        audience: str,
        now: float,
        lifetime_seconds: int,
    ) -> AssertionClaims:
        """Build claims issued at `now` and valid for `lifetime_seconds`."""
        iat = int(now)
        return cls(iss=issuer, scope=scope, aud=audience, iat=iat, exp=iat + lifetime_seconds)


class GoogleAccessToken(BaseModel):
    """
    Bearer token returned by the token endpoint.

    The access_token is excluded from repr() so tokens don't leak into logs.
    """

    model_config = ConfigDict(frozen=True)

    access_token: str = Field(..., min_length=1, repr=False)
    token_type: str
    expires_in: int
