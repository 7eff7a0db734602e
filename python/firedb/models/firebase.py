"""
firedb/models/firebase.py

Configuration models for the Realtime Database client:
  - FirebaseSettings: token endpoint, scopes, refresh cadence, transport options
  - ServiceAccountCredentials: the service account identity, its private key
    and the database URL, with helpers to load them from a key file or from
    the process environment.
"""

from __future__ import annotations

import os
from typing import List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.functional_validators import model_validator

from firedb.errors import EnvironmentVariablesNotFound
from firedb.models.service_account import GCPServiceAccountKey

DEFAULT_TOKEN_URI = "https://www.googleapis.com/oauth2/v4/token"
DEFAULT_SCOPES = [
    "https://www.googleapis.com/auth/firebase.database",
    "https://www.googleapis.com/auth/userinfo.email",
]

ENV_DATABASE_URL = "FIREBASE_DATABASE_URL"
ENV_SERVICE_ACCOUNT_FILE = "FIREBASE_SERVICE_ACCOUNT_FILE"
ENV_SERVICE_ACCOUNT = "FIREBASE_SERVICE_ACCOUNT"
ENV_PRIVATE_KEY = "FIREBASE_PRIVATE_KEY"


class FirebaseSettings(BaseModel):
    token_uri: str = Field(default=DEFAULT_TOKEN_URI)
    scopes: List[str] = Field(default_factory=lambda: list(DEFAULT_SCOPES))
    assertion_lifetime_seconds: int = 1800
    refresh_slack_seconds: int = 60
    verify_ssl: bool = True
    total_timeout: Optional[float] = None

    @property
    def scope(self) -> str:
        """Scopes as the single space-delimited string the assertion carries."""
        return " ".join(self.scopes)

    @property
    def refresh_interval_seconds(self) -> int:
        """Seconds between scheduled refreshes, leaving slack before expiry."""
        return self.assertion_lifetime_seconds - self.refresh_slack_seconds

    @model_validator(mode="after")
    def check_refresh_window(self) -> FirebaseSettings:
        """
        Ensure the refresh cadence lands before the assertion expires.
        Runs after fields are validated, returning 'self' or raising an error.
        """
        if self.assertion_lifetime_seconds <= 0:
            raise ValueError("assertion_lifetime_seconds must be positive.")
        if self.refresh_slack_seconds < 0:
            raise ValueError("refresh_slack_seconds must not be negative.")
        if self.refresh_slack_seconds >= self.assertion_lifetime_seconds:
            raise ValueError(
                "refresh_slack_seconds must be smaller than assertion_lifetime_seconds."
            )
        if not self.scopes:
            raise ValueError("At least one OAuth scope is required.")
        return self


class ServiceAccountCredentials(BaseModel):
    """
    Service account identity, signing key and target database.

    Attributes:
        service_account (str): The service account email, used as the assertion issuer.
        private_key_pem (bytes): PEM-encoded RSA private key.
        database_url (str): Base URL of the database, e.g. "https://<db>.firebaseio.com".
    """

    model_config = ConfigDict(frozen=True)

    service_account: str = Field(..., min_length=1)
    private_key_pem: bytes = Field(..., repr=False)
    database_url: str = Field(..., min_length=1)

    @field_validator("database_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @classmethod
    def from_service_account_key(
        cls, key: GCPServiceAccountKey, database_url: str
    ) -> ServiceAccountCredentials:
        """Build credentials from a parsed service account key."""
        return cls(
            service_account=key.client_email,
            private_key_pem=key.private_key.encode("utf-8"),
            database_url=database_url,
        )

    @classmethod
    def from_service_account_file(
        cls, path: str, database_url: str
    ) -> ServiceAccountCredentials:
        """Build credentials from a service account JSON key file.

        Raises:
            OSError: If the file can't be read.
            pydantic.ValidationError: If the file isn't a service account key.
        """
        with open(path, "r", encoding="utf-8") as f:
            key = GCPServiceAccountKey.model_validate_json(f.read())
        return cls.from_service_account_key(key, database_url)

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None
    ) -> ServiceAccountCredentials:
        """
        Load credentials from environment variables.

        FIREBASE_DATABASE_URL is always required. The key comes either from the
        file named by FIREBASE_SERVICE_ACCOUNT_FILE, or from FIREBASE_SERVICE_ACCOUNT
        plus FIREBASE_PRIVATE_KEY (literal "\\n" sequences are turned into newlines,
        which is how multi-line keys usually survive env files).

        Args:
            environ (Optional[Mapping[str, str]]): Defaults to os.environ.

        Returns:
            ServiceAccountCredentials: The loaded credentials.

        Raises:
            EnvironmentVariablesNotFound: Naming every variable that is missing.
        """
        env = os.environ if environ is None else environ
        database_url = env.get(ENV_DATABASE_URL)
        key_file = env.get(ENV_SERVICE_ACCOUNT_FILE)

        if key_file:
            if not database_url:
                raise EnvironmentVariablesNotFound((ENV_DATABASE_URL,))
            return cls.from_service_account_file(key_file, database_url)

        service_account = env.get(ENV_SERVICE_ACCOUNT)
        private_key = env.get(ENV_PRIVATE_KEY)
        missing = tuple(
            name
            for name, value in (
                (ENV_DATABASE_URL, database_url),
                (ENV_SERVICE_ACCOUNT, service_account),
                (ENV_PRIVATE_KEY, private_key),
            )
            if not value
        )
        if missing:
            raise EnvironmentVariablesNotFound(missing)

        assert private_key is not None and service_account is not None
        assert database_url is not None
        return cls(
            service_account=service_account,
            private_key_pem=private_key.replace("\\n", "\n").encode("utf-8"),
            database_url=database_url,
        )
