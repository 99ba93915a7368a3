# vault-init models - Vault API DTOs and configuration

from vault_init.models.config import (
    BootstrapConfig,
    FileSaveMethodConfig,
    KubeSecretSaveMethodConfig,
    SaveMethodConfig,
    VaultKVSaveMethodConfig,
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

__all__ = [
    "BootstrapConfig",
    "FileSaveMethodConfig",
    "GenerateRootStartRequest",
    "GenerateRootStartResponse",
    "GenerateRootStatus",
    "GenerateRootUpdateRequest",
    "GenerateRootUpdateResponse",
    "InitRequest",
    "InitResult",
    "InitStatus",
    "KubeSecretSaveMethodConfig",
    "SaveMethodConfig",
    "SealStatus",
    "UnsealRequest",
    "UnsealResponse",
    "VaultKVSaveMethodConfig",
]
