"""Vault KV v2 save method.

Persists the init result in a KV v2 secret on a separate Vault server: the
init JSON under one key and the root token on its own under another. The
Vault being bootstrapped cannot hold its own unseal keys, so the address is
never defaulted to ``VAULT_ADDR``.

Writes use check-and-set: ``cas=0`` when creating, the version that was
read when overwriting. A write fails if another writer got there first.
"""
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import httpx
from pydantic import ValidationError

from vault_init.config import VAULT_INIT_TIMEOUT, VAULT_KV_ADDR, VAULT_KV_TOKEN
from vault_init.exceptions import (
    LoadError,
    SaveError,
    SaveTargetExistsError,
    VaultClientError,
    VaultDecodeError,
    VaultResponseError,
)
from vault_init.models.config import (
    DEFAULT_KV_INIT_RESPONSE_KEY,
    DEFAULT_KV_MOUNT_PATH,
    DEFAULT_KV_ROOT_TOKEN_KEY,
    DEFAULT_KV_SECRET_PATH,
    VaultKVSaveMethodConfig,
)
from vault_init.models.vault import InitResult
from vault_init.save.base import SaveMethod
from vault_init.vault_client import error_detail

log = logging.getLogger(__name__)


class VaultKVSaveMethod(SaveMethod):
    """Save and load init data in a Vault KV v2 secret."""

    name = "vault_kv"

    def __init__(
        self,
        address: str,
        token: str = "",
        mount_path: str = DEFAULT_KV_MOUNT_PATH,
        secret_path: str = DEFAULT_KV_SECRET_PATH,
        init_response_key: str = DEFAULT_KV_INIT_RESPONSE_KEY,
        root_token_key: str = DEFAULT_KV_ROOT_TOKEN_KEY,
        overwrite: bool = False,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize the save method.

        Args:
            address: Address of the Vault holding the secret.
            token: Token for that Vault.
            mount_path: KV v2 engine mount path.
            secret_path: Secret path under the mount.
            init_response_key: Key holding the init result JSON.
            root_token_key: Key holding the root token.
            overwrite: Write a new version over an existing secret.
            timeout: Timeout per request (seconds).
            transport: httpx transport override (tests).
        """
        self.address = address.rstrip("/")
        self.token = token
        self.mount_path = mount_path.strip("/")
        self.secret_path = secret_path.strip("/")
        self.init_response_key = init_response_key
        self.root_token_key = root_token_key
        self.overwrite = overwrite
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(cls, config: VaultKVSaveMethodConfig) -> "VaultKVSaveMethod":
        return cls(
            address=config.address or VAULT_KV_ADDR,
            token=VAULT_KV_TOKEN,
            mount_path=config.mount_path,
            secret_path=config.secret_path,
            init_response_key=config.init_response_key,
            root_token_key=config.root_token_key,
            overwrite=config.overwrite,
            timeout=VAULT_INIT_TIMEOUT,
        )

    @property
    def location(self) -> str:
        return f"{self.mount_path}/data/{self.secret_path}"

    @property
    def _api_path(self) -> str:
        return f"/v1/{self.location}"

    # -------------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------------

    @contextmanager
    def _client(self) -> Iterator[httpx.Client]:
        if not self.address:
            raise SaveError(
                f"No Vault address configured for {self.name} (set address or VAULT_KV_ADDR)"
            )
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        with httpx.Client(
            base_url=self.address,
            headers=headers,
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            yield client

    def _read_existing(self, client: httpx.Client) -> Optional[dict]:
        """Latest secret version as ``{"data": ..., "metadata": ...}``, or None if absent."""
        response = client.get(self._api_path)
        if response.status_code == 404:
            return None
        if not response.is_success:
            raise VaultResponseError(
                "GET", self._api_path, response.status_code, error_detail(response)
            )
        try:
            body = response.json()
        except ValueError as e:
            raise VaultDecodeError(self._api_path, "body is not JSON") from e
        secret = body.get("data") if isinstance(body, dict) else None
        if not isinstance(secret, dict):
            raise VaultDecodeError(self._api_path, "response has no data")
        return secret

    # -------------------------------------------------------------------------
    # SaveMethod
    # -------------------------------------------------------------------------

    def save(self, result: InitResult) -> str:
        log.debug(f"Saving init data to Vault KV {self.location}")

        try:
            with self._client() as client:
                existing = self._read_existing(client)
                if existing is None:
                    cas = 0
                elif not self.overwrite:
                    raise SaveTargetExistsError(self.name, self.location)
                else:
                    cas = (existing.get("metadata") or {}).get("version", 0)
                    log.warning(f"Existing secret found at {self.location}, writing new version")

                response = client.post(
                    self._api_path,
                    json={
                        "options": {"cas": cas},
                        "data": {
                            self.init_response_key: result.to_json(),
                            self.root_token_key: result.root_token,
                        },
                    },
                )
                if not response.is_success:
                    raise VaultResponseError(
                        "POST", self._api_path, response.status_code, error_detail(response)
                    )
        except VaultClientError as e:
            raise SaveError(f"Failed to write {self.location}: {e}") from e
        except httpx.HTTPError as e:
            raise SaveError(f"Failed to write {self.location}: {e}") from e

        return self.location

    def load(self) -> InitResult:
        log.debug(f"Loading init data from Vault KV {self.location}")

        try:
            with self._client() as client:
                existing = self._read_existing(client)
        except (SaveError, VaultClientError, httpx.HTTPError) as e:
            raise LoadError(self.name, self.location, str(e)) from e

        if existing is None:
            raise LoadError(self.name, self.location, "secret does not exist")

        raw = (existing.get("data") or {}).get(self.init_response_key)
        if not isinstance(raw, str):
            raise LoadError(
                self.name, self.location, f"secret has no key {self.init_response_key!r}"
            )

        try:
            return InitResult.model_validate_json(raw)
        except ValidationError as e:
            raise LoadError(
                self.name, self.location, f"invalid init data ({e.error_count()} error(s))"
            ) from e
