"""Pytest fixtures for vault-init tests.

Vault is faked with an httpx transport that returns canned responses per
(method, path) and records every request. No real Vault needed.
"""
import json
from collections import defaultdict, deque
from pathlib import Path

import httpx
import pytest

from vault_init.exceptions import LoadError, SaveError
from vault_init.models.vault import InitResult
from vault_init.save.base import SaveMethod
from vault_init.vault_client import VaultClient

VAULT_URL = "http://vault.test:8200"


# =============================================================================
# Mock transport for httpx
# =============================================================================


class VaultMockTransport(httpx.AsyncBaseTransport):
    """Mock Vault transport with per-route response queues."""

    def __init__(self):
        self.responses: dict[tuple[str, str], deque] = defaultdict(deque)
        self.requests: list[httpx.Request] = []

    def add_response(
        self,
        method: str,
        path: str,
        status_code: int = 200,
        json_data: dict | list | None = None,
        content: bytes = b"",
    ):
        """Queue a response for the next ``method path`` request."""
        headers = {}
        if json_data is not None:
            content = json.dumps(json_data).encode()
            headers["content-type"] = "application/json"
        self.responses[(method, path)].append(
            httpx.Response(status_code=status_code, content=content, headers=headers)
        )

    def add_error(self, method: str, path: str, error: Exception):
        """Queue a transport error for the next ``method path`` request."""
        self.responses[(method, path)].append(error)

    def calls(self, method: str | None = None, path: str | None = None) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if (method is None or r.method == method) and (path is None or r.url.path == path)
        ]

    def bodies(self, method: str, path: str) -> list[dict]:
        return [json.loads(r.content) for r in self.calls(method, path)]

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.responses.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(
                500, content=b'{"errors": ["No mock response queued"]}'
            )
        item = queue.popleft()
        if isinstance(item, Exception):
            raise item
        return item


# =============================================================================
# Fake save method
# =============================================================================


class FakeSaveMethod(SaveMethod):
    """In-memory save method recording calls."""

    def __init__(self, name: str, stored: InitResult | None = None, fail_save: bool = False):
        self.name = name
        self.stored = stored
        self.fail_save = fail_save
        self.save_calls = 0
        self.load_calls = 0

    @property
    def location(self) -> str:
        return f"memory://{self.name}"

    def save(self, result: InitResult) -> str:
        self.save_calls += 1
        if self.fail_save:
            raise SaveError(f"{self.name} save failed")
        self.stored = result
        return self.location

    def load(self) -> InitResult:
        self.load_calls += 1
        if self.stored is None:
            raise LoadError(self.name, self.location, "nothing stored")
        return self.stored


# =============================================================================
# Fixtures
# =============================================================================

SAMPLE_INIT_RESPONSE = {
    "keys": [
        "1c5b6e4b2d7d1a9e0f3c8b7a6d5e4f3a2b1c0d9e8f7a6b5c4d3e2f1a0b9c8d7e6f",
        "2d6c7f5c3e8e2b0f1a4d9c8b7e6f5a4b3c2d1e0f9a8b7c6d5e4f3a2b1c0d9e8f7a",
        "3e7d8a6d4f9f3c1a2b5e0d9c8f7a6b5c4d3e2f1a0b9c8d7e6f5a4b3c2d1e0f9a8b",
        "4f8e9b7e5a0a4d2b3c6f1e0d9a8b7c6d5e4f3a2b1c0d9e8f7a6b5c4d3e2f1a0b9c",
        "5a9f0c8f6b1b5e3c4d7a2f1e0b9c8d7e6f5a4b3c2d1e0f9a8b7c6d5e4f3a2b1c0d",
    ],
    "keys_base64": [
        "HFtuSy19Gp4PPIt6bV5POisdDZ6PembFTT4vGguc",
        "LWx/XD6OKw8aTZyLfm9aSzwtHg+aiz3G1eTzorHA",
        "Pn2Kbd+fPBorXg2cj3prXE0+LxoLnI1+b1pLPC0e",
        "T46bflmgTSs8bx4NmounbV5POisdDZ6PembFTT4v",
        "Wp8Mj2sbXjxNeis+HwucjX5vWks8LR4PmovHbV5P",
    ],
    "root_token": "hvs.initialRootToken0123456789",
}


@pytest.fixture
def init_result() -> InitResult:
    return InitResult.model_validate(SAMPLE_INIT_RESPONSE)


@pytest.fixture
def transport() -> VaultMockTransport:
    return VaultMockTransport()


@pytest.fixture
def vault(transport: VaultMockTransport) -> VaultClient:
    """VaultClient wired to the mock transport."""
    return VaultClient(base_url=VAULT_URL, transport=transport)


@pytest.fixture
def init_file(tmp_path: Path) -> Path:
    return tmp_path / "vault-init.json"
