"""Configuration models for vault-init.

``BootstrapConfig`` is the JSON config document. Its ``save_method`` block
enumerates which save methods are active; a method that is absent is
skipped entirely.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

from vault_init.models.vault import InitRequest

DEFAULT_FILE_PATH = "vault-init.json"
DEFAULT_SECRET_NAME = "vault-init"
DEFAULT_SECRET_KEY = "init.json"
DEFAULT_KV_MOUNT_PATH = "secret"
DEFAULT_KV_SECRET_PATH = "vault-init"
DEFAULT_KV_INIT_RESPONSE_KEY = "vault-init.json"
DEFAULT_KV_ROOT_TOKEN_KEY = "root_token"


class FileSaveMethodConfig(BaseModel):
    """Save init data as a JSON document on local disk."""

    path: Path = Field(Path(DEFAULT_FILE_PATH), description="File to read and write")
    overwrite: bool = Field(False, description="Replace an existing file")


class KubeSecretSaveMethodConfig(BaseModel):
    """Save init data in a Kubernetes Secret."""

    name: str = Field(DEFAULT_SECRET_NAME, description="Secret name")
    namespace: str | None = Field(
        None, description="Secret namespace (None = the caller's own namespace)"
    )
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    key: str = Field(DEFAULT_SECRET_KEY, description="Key inside the secret holding the JSON")
    overwrite: bool = Field(False, description="Replace an existing secret")
    kubeconfig: str | None = Field(
        None, description="Kubeconfig path (None = in-cluster config, then ~/.kube/config)"
    )


class VaultKVSaveMethodConfig(BaseModel):
    """Save init data in a KV v2 secret on a separate, already running Vault.

    The token is never read from the config document; it comes from
    ``VAULT_KV_TOKEN``.
    """

    address: str | None = Field(
        None, description="Address of the Vault holding the secret (None = VAULT_KV_ADDR)"
    )
    mount_path: str = Field(DEFAULT_KV_MOUNT_PATH, description="KV v2 engine mount path")
    secret_path: str = Field(DEFAULT_KV_SECRET_PATH, description="Secret path under the mount")
    init_response_key: str = Field(
        DEFAULT_KV_INIT_RESPONSE_KEY, description="Key holding the init result JSON"
    )
    root_token_key: str = Field(
        DEFAULT_KV_ROOT_TOKEN_KEY, description="Key holding the root token on its own"
    )
    overwrite: bool = Field(False, description="Write a new version over an existing secret")


class SaveMethodConfig(BaseModel):
    """Which save methods are configured. Order is fixed: file, kube_secret, vault_kv."""

    file: FileSaveMethodConfig | None = None
    kube_secret: KubeSecretSaveMethodConfig | None = None
    vault_kv: VaultKVSaveMethodConfig | None = None


class BootstrapConfig(BaseModel):
    """Top-level config document."""

    save_method: SaveMethodConfig = Field(
        default_factory=lambda: SaveMethodConfig(file=FileSaveMethodConfig())
    )
    init: InitRequest = Field(default_factory=InitRequest)
    rotate_root: bool = Field(
        False, description="Run the generate-root ceremony after unsealing"
    )
