"""
firedb

Async client for the Firebase Realtime Database REST API, authenticated with
a service account via the OAuth2 JWT-bearer flow.

Exports:
  - AsyncFirebaseClient, TokenManager, AuthenticationListener
  - ServiceAccountCredentials, FirebaseSettings, GCPServiceAccountKey
  - GoogleAccessToken, AssertionClaims
  - The Value union (Value, Dictionary, Number, String, Bool, Null, NULL)
  - The error types (FirebaseError and subclasses)
"""

from firedb.auth.token_manager import TokenManager
from firedb.database.client import AsyncFirebaseClient
from firedb.errors import (
    AuthenticationTokenNotRefreshed,
    BadRequest,
    DatabaseUnavailable,
    EnvironmentVariablesNotFound,
    FirebaseError,
    InvalidDatabase,
    InvalidPrivateKey,
    InvalidURLString,
    NotFound,
    ServerError,
    SigningFailure,
    TokenRefreshError,
    TransportError,
    UnableToCreateRequest,
    Unauthorized,
    UnknownError,
)
from firedb.listener import AuthenticationListener
from firedb.models.firebase import FirebaseSettings, ServiceAccountCredentials
from firedb.models.service_account import GCPServiceAccountKey
from firedb.models.token import AssertionClaims, GoogleAccessToken
from firedb.models.value import NULL, Bool, Dictionary, Null, Number, String, Value

__all__ = [
    "AsyncFirebaseClient",
    "TokenManager",
    "AuthenticationListener",
    "FirebaseSettings",
    "ServiceAccountCredentials",
    "GCPServiceAccountKey",
    "AssertionClaims",
    "GoogleAccessToken",
    "Value",
    "Dictionary",
    "Number",
    "String",
    "Bool",
    "Null",
    "NULL",
    "FirebaseError",
    "AuthenticationTokenNotRefreshed",
    "BadRequest",
    "DatabaseUnavailable",
    "EnvironmentVariablesNotFound",
    "InvalidDatabase",
    "InvalidPrivateKey",
    "InvalidURLString",
    "NotFound",
    "ServerError",
    "SigningFailure",
    "TokenRefreshError",
    "TransportError",
    "UnableToCreateRequest",
    "Unauthorized",
    "UnknownError",
]
