"""vault-init: initialize, unseal and rotate the root token of a Vault server."""

__version__ = "0.1.0"
