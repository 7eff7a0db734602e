"""Shared fixtures for firedb tests.

Provides an RSA service-account key and an in-process fake of the Google
token endpoint plus the Realtime Database REST API, served by aiohttp.
"""

import asyncio
import json
from typing import Any, Dict, List, Optional

import jwt
import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from firedb.auth.token_manager import GRANT_TYPE, TokenManager
from firedb.database.client import AsyncFirebaseClient
from firedb.models.firebase import FirebaseSettings, ServiceAccountCredentials

SERVICE_ACCOUNT = "tester@demo-project.iam.gserviceaccount.com"
TOKEN_PATH = "/oauth2/v4/token"


class FakeFirebase:
    """Token endpoint + JSON tree database, with knobs to inject failures."""

    def __init__(self, public_key: rsa.RSAPublicKey) -> None:
        self.public_key = public_key
        self.base_url = ""
        self.tree: Dict[str, Any] = {}

        self.token_requests = 0
        self.token_content_types: List[str] = []
        self.issued_tokens: List[str] = []
        self.claims: List[Dict[str, Any]] = []
        self.token_status = 200
        self.token_body: Optional[bytes] = None
        self.token_delay = 0.0

        self.db_requests: List[Dict[str, Any]] = []
        self.force_status: Optional[int] = None
        self.raw_body: Optional[bytes] = None
        self.public_read = False
        self._post_counter = 0

        self.app = web.Application()
        self.app.router.add_post(TOKEN_PATH, self.handle_token)
        self.app.router.add_route("*", "/{path:.*}", self.handle_database)

    @property
    def token_uri(self) -> str:
        return f"{self.base_url}{TOKEN_PATH}"

    async def handle_token(self, request: web.Request) -> web.Response:
        self.token_requests += 1
        self.token_content_types.append(request.content_type)
        form = await request.post()
        if self.token_delay:
            await asyncio.sleep(self.token_delay)
        if self.token_status != 200:
            return web.json_response({"error": "invalid_grant"}, status=self.token_status)
        if self.token_body is not None:
            return web.Response(body=self.token_body, content_type="application/json")
        if form.get("grant_type") != GRANT_TYPE:
            return web.json_response({"error": "unsupported_grant_type"}, status=400)
        try:
            claims = jwt.decode(
                str(form["assertion"]),
                self.public_key,
                algorithms=["RS256"],
                options={"verify_exp": False, "verify_iat": False, "verify_aud": False},
            )
        except jwt.PyJWTError:
            return web.json_response({"error": "invalid_grant"}, status=400)

        self.claims.append(claims)
        token = f"token-{len(self.issued_tokens) + 1}"
        self.issued_tokens.append(token)
        return web.json_response(
            {"access_token": token, "token_type": "Bearer", "expires_in": 3599}
        )

    async def handle_database(self, request: web.Request) -> web.Response:
        raw_path = request.match_info["path"]
        if not raw_path.endswith(".json"):
            return web.json_response({"error": "Not a REST path"}, status=404)
        segments = [s for s in raw_path[: -len(".json")].split("/") if s]
        self.db_requests.append(
            {
                "method": request.method,
                "path": "/".join(segments),
                "access_token": request.query.get("access_token"),
            }
        )

        if self.force_status is not None:
            return web.json_response({"error": "forced"}, status=self.force_status)

        authorized = request.query.get("access_token") in self.issued_tokens
        if not authorized and not (self.public_read and request.method == "GET"):
            return web.json_response({"error": "Permission denied"}, status=401)

        if self.raw_body is not None:
            return web.Response(body=self.raw_body, status=200)

        result: Any
        if request.method == "GET":
            result = self.read(segments)
        elif request.method == "PUT":
            result = await request.json()
            self.write(segments, result)
        elif request.method == "PATCH":
            result = await request.json()
            for key, value in result.items():
                self.write(segments + [key], value)
        elif request.method == "POST":
            self._post_counter += 1
            key = f"-Nfake{self._post_counter:04d}"
            self.write(segments + [key], await request.json())
            result = {"name": key}
        elif request.method == "DELETE":
            self.write(segments, None)
            result = None
        else:
            return web.json_response({"error": "Method not allowed"}, status=405)
        return web.Response(text=json.dumps(result), content_type="application/json")

    def read(self, segments: List[str]) -> Any:
        node: Any = self.tree
        for segment in segments:
            if not isinstance(node, dict) or segment not in node:
                return None
            node = node[segment]
        return node

    def write(self, segments: List[str], value: Any) -> None:
        if not segments:
            self.tree = value if isinstance(value, dict) else {}
            return
        node = self.tree
        for segment in segments[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                child = {}
                node[segment] = child
            node = child
        if value is None:
            node.pop(segments[-1], None)
        else:
            node[segments[-1]] = value


class RecordingListener:
    """AuthenticationListener that remembers what it was told."""

    def __init__(self) -> None:
        self.authenticated: List[AsyncFirebaseClient] = []
        self.failures: List[Exception] = []

    def did_authenticate(self, client: AsyncFirebaseClient) -> None:
        self.authenticated.append(client)

    def authentication_failed(self, error: Exception) -> None:
        self.failures.append(error)


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_key: rsa.RSAPrivateKey) -> bytes:
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


@pytest_asyncio.fixture
async def fake_firebase(rsa_key):
    fake = FakeFirebase(rsa_key.public_key())
    server = TestServer(fake.app)
    await server.start_server()
    fake.base_url = f"http://{server.host}:{server.port}"
    try:
        yield fake
    finally:
        await server.close()


@pytest.fixture
def settings(fake_firebase: FakeFirebase) -> FirebaseSettings:
    return FirebaseSettings(token_uri=fake_firebase.token_uri)


@pytest.fixture
def credentials(fake_firebase: FakeFirebase, private_key_pem: bytes) -> ServiceAccountCredentials:
    return ServiceAccountCredentials(
        service_account=SERVICE_ACCOUNT,
        private_key_pem=private_key_pem,
        database_url=fake_firebase.base_url,
    )


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest_asyncio.fixture
async def token_manager(credentials, settings):
    async with TokenManager(credentials, settings) as manager:
        yield manager


@pytest_asyncio.fixture
async def client(credentials, settings, listener):
    async with AsyncFirebaseClient(credentials, settings, listener=listener) as fb:
        yield fb


@pytest_asyncio.fixture
async def authed_client(client):
    await client.setup(auto_refresh=False)
    return client
