# vault-init save methods - durable storage for the Vault init result

from vault_init.save.base import SaveMethod
from vault_init.save.file import FileSaveMethod
from vault_init.save.kube_secret import KubeSecretSaveMethod
from vault_init.save.methods import SaveMethods
from vault_init.save.vault_kv import VaultKVSaveMethod

__all__ = [
    "FileSaveMethod",
    "KubeSecretSaveMethod",
    "SaveMethod",
    "SaveMethods",
    "VaultKVSaveMethod",
]
