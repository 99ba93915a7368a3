"""Vault HTTP client for vault-init.

Async client for the handful of Vault control-plane endpoints the
bootstrap needs: init, seal status, unseal, generate-root and token
self-revocation.

Key features:
- One method per remote call, each a single request/response pair
- Optional bearer token, overridable for a single call (revoke-self)
- Error mapping (non-2xx -> VaultResponseError, transport -> VaultUnavailableError,
  undecodable body -> VaultDecodeError)
- No retry: every failure surfaces to the caller
"""
import logging
from typing import Optional, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from vault_init.exceptions import (
    VaultDecodeError,
    VaultResponseError,
    VaultUnavailableError,
)
from vault_init.models.vault import (
    GenerateRootStartRequest,
    GenerateRootStartResponse,
    GenerateRootStatus,
    GenerateRootUpdateRequest,
    GenerateRootUpdateResponse,
    InitRequest,
    InitResult,
    InitStatus,
    SealStatus,
    UnsealRequest,
    UnsealResponse,
)

log = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def error_detail(response: httpx.Response) -> str:
    """Vault's joined ``errors`` list, or the start of the body."""
    try:
        body = response.json()
        errors = body.get("errors") if isinstance(body, dict) else None
        return "; ".join(str(e) for e in errors) if errors else response.text[:200]
    except ValueError:
        return response.text[:200]


# =============================================================================
# Client
# =============================================================================


class VaultClient:
    """Async HTTP client for the Vault control plane.

    Use as an async context manager so the underlying transport is
    released on every exit path::

        async with VaultClient("http://127.0.0.1:8200") as vault:
            status = await vault.read_seal_status()
    """

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8200",
        token: str = "",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._token = token
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout, connect=10.0),
            transport=transport,
        )

    async def __aenter__(self) -> "VaultClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()

    def set_token(self, token: str) -> None:
        """Set the bearer token sent with subsequent calls."""
        self._token = token

    # -------------------------------------------------------------------------
    # Internal request helpers
    # -------------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict | None = None,
        token: str | None = None,
    ) -> httpx.Response:
        """Send one request to Vault.

        Args:
            method: HTTP method
            path: URL path (e.g., "/v1/sys/init")
            json: Request body
            token: Bearer token for this call only, overriding the client token
        """
        headers = {}
        bearer = token if token is not None else self._token
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"

        try:
            response = await self._http.request(method, path, json=json, headers=headers)
        except httpx.TimeoutException as e:
            raise VaultUnavailableError(f"Vault {method} {path} timed out: {e}") from e
        except httpx.TransportError as e:
            raise VaultUnavailableError(f"Vault {method} {path} failed: {e}") from e

        self._handle_error_response(method, path, response)
        return response

    def _handle_error_response(
        self, method: str, path: str, response: httpx.Response
    ) -> None:
        """Map non-success responses to VaultResponseError."""
        if response.is_success:
            return
        raise VaultResponseError(method, path, response.status_code, error_detail(response))

    def _decode(self, path: str, response: httpx.Response, model: type[M]) -> M:
        """Decode a JSON response body into ``model``."""
        try:
            return model.model_validate(response.json())
        except ValidationError as e:
            # Field values may be key material; report counts only
            raise VaultDecodeError(path, f"{e.error_count()} field error(s)") from e
        except ValueError as e:
            raise VaultDecodeError(path, f"body is not JSON: {e}") from e

    async def _get(self, path: str, model: type[M]) -> M:
        response = await self._request("GET", path)
        return self._decode(path, response, model)

    async def _post(self, path: str, body: dict, model: type[M]) -> M:
        response = await self._request("POST", path, json=body)
        return self._decode(path, response, model)

    # =========================================================================
    # sys/init
    # =========================================================================

    async def read_init_status(self) -> InitStatus:
        """Read whether Vault has been initialized."""
        return await self._get("/v1/sys/init", InitStatus)

    async def start_init(self, request: InitRequest) -> InitResult:
        """Initialize Vault. Returns the key shares and initial root token."""
        return await self._post("/v1/sys/init", request.to_body(), InitResult)

    # =========================================================================
    # sys/seal-status, sys/unseal
    # =========================================================================

    async def read_seal_status(self) -> SealStatus:
        """Read the current seal status."""
        return await self._get("/v1/sys/seal-status", SealStatus)

    async def submit_unseal_key(self, request: UnsealRequest) -> UnsealResponse:
        """Submit a single unseal key share."""
        return await self._post("/v1/sys/unseal", request.to_body(), UnsealResponse)

    # =========================================================================
    # sys/generate-root
    # =========================================================================

    async def read_generate_root_attempt(self) -> GenerateRootStatus:
        """Read the state of the current generate-root attempt, if any."""
        return await self._get("/v1/sys/generate-root/attempt", GenerateRootStatus)

    async def start_generate_root(
        self, request: GenerateRootStartRequest
    ) -> GenerateRootStartResponse:
        """Start a generate-root attempt. The response carries the nonce and OTP."""
        return await self._post(
            "/v1/sys/generate-root/attempt", request.to_body(), GenerateRootStartResponse
        )

    async def cancel_generate_root(self) -> None:
        """Cancel the in-progress generate-root attempt."""
        await self._request("DELETE", "/v1/sys/generate-root/attempt")

    async def submit_generate_root_key(
        self, request: GenerateRootUpdateRequest
    ) -> GenerateRootUpdateResponse:
        """Submit a single key share against the attempt's nonce."""
        return await self._post(
            "/v1/sys/generate-root/update",
            request.model_dump(),
            GenerateRootUpdateResponse,
        )

    # =========================================================================
    # auth/token
    # =========================================================================

    async def revoke_self(self, token: str) -> None:
        """Revoke ``token`` by authenticating this single call with it."""
        await self._request("POST", "/v1/auth/token/revoke-self", token=token)
