"""Configuration for vault-init.

Environment-based defaults, plus loading of the JSON config document that
selects save methods and init parameters.
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from vault_init.exceptions import VaultInitError
from vault_init.models.config import BootstrapConfig

log = logging.getLogger(__name__)


# =============================================================================
# Vault Connection
# =============================================================================

# Address of the Vault server
VAULT_ADDR = os.getenv("VAULT_ADDR", "http://127.0.0.1:8200")

# Optional token for authenticated calls (only used by revoke-self overrides)
VAULT_TOKEN = os.getenv("VAULT_TOKEN", "")

# Timeout for a single Vault API call (seconds)
VAULT_INIT_TIMEOUT = float(os.getenv("VAULT_INIT_TIMEOUT", "30.0"))

# =============================================================================
# vault_kv Save Method
# =============================================================================

# Address of the separate Vault whose KV v2 engine stores init data
VAULT_KV_ADDR = os.getenv("VAULT_KV_ADDR", "")

# Token for that Vault (needs create/update/read on the secret path)
VAULT_KV_TOKEN = os.getenv("VAULT_KV_TOKEN", "")

# =============================================================================
# Config File
# =============================================================================

# Path to the JSON config document (save methods, init parameters)
VAULT_INIT_CONFIG = os.getenv("VAULT_INIT_CONFIG", "")

# =============================================================================
# Logging Configuration
# =============================================================================

VAULT_INIT_LOG_LEVEL = os.getenv("VAULT_INIT_LOG_LEVEL", "INFO")


class ConfigError(VaultInitError):
    """Raised when the config document cannot be read or is invalid."""

    pass


def load_config(path: Optional[Path] = None) -> BootstrapConfig:
    """Load the bootstrap config document.

    Args:
        path: JSON config path. Falls back to ``VAULT_INIT_CONFIG``; with
            neither set the defaults apply (file save method at
            ``vault-init.json``).

    Raises:
        ConfigError: If the file is unreadable or does not validate.
    """
    if path is None and VAULT_INIT_CONFIG:
        path = Path(VAULT_INIT_CONFIG)

    if path is None:
        log.debug("No config file given, using defaults")
        return BootstrapConfig()

    try:
        raw = json.loads(Path(path).read_text())
    except OSError as e:
        raise ConfigError(f"Unable to read config file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file {path} is not valid JSON: {e}") from e

    try:
        config = BootstrapConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Config file {path} is invalid: {e}") from e

    log.info(f"Loaded config from {path}")
    return config
