"""Vault control-plane DTO models.

Request/response models for the ``sys/init``, ``sys/seal-status``,
``sys/unseal`` and ``sys/generate-root`` endpoints. Field names match the
Vault HTTP API exactly; these are data transfer objects only.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Init DTOs
# =============================================================================


class InitStatus(BaseModel):
    """Response of GET /v1/sys/init."""

    initialized: bool = Field(..., description="Whether Vault has been initialized")


class InitRequest(BaseModel):
    """Parameters for POST /v1/sys/init.

    ``secret_threshold <= secret_shares`` is enforced by Vault, not here.
    """

    pgp_keys: list[str] | None = Field(
        None, description="Base64 PGP public keys, one per key share, order preserved"
    )
    root_token_pgp_key: str | None = Field(
        None, description="Base64 PGP public key used to encrypt the root token"
    )
    secret_shares: int = Field(1, ge=0, le=255, description="Number of key shares")
    secret_threshold: int = Field(
        1, ge=0, le=255, description="Shares required to reconstruct the root key"
    )
    stored_shares: int | None = Field(
        None, ge=0, le=255, description="Shares encrypted by the HSM for auto-unseal"
    )
    recovery_shares: int | None = Field(
        None, ge=0, le=255, description="Number of recovery key shares (auto-unseal)"
    )
    recovery_threshold: int | None = Field(
        None, ge=0, le=255, description="Recovery shares required (auto-unseal)"
    )
    recovery_pgp_keys: list[str] | None = Field(
        None, description="Base64 PGP public keys for the recovery shares"
    )

    def to_body(self) -> dict:
        """JSON body with unset optional fields omitted."""
        return self.model_dump(exclude_none=True)


class InitResult(BaseModel):
    """The output of initialization: key shares and the initial root token.

    This is the only time the full root key material exists outside Vault.
    Values are hidden from ``repr()`` so the model is safe to pass to a
    logger by accident.
    """

    keys: list[str] = Field(..., repr=False, description="Key shares (hex or PGP-encrypted)")
    keys_base64: list[str] = Field(..., repr=False, description="Key shares, base64 encoded")
    root_token: str = Field(..., repr=False, description="Initial root token")
    recovery_keys: list[str] | None = Field(None, repr=False)
    recovery_keys_base64: list[str] | None = Field(None, repr=False)

    def to_json(self) -> str:
        """Persisted layout: ``{keys, keys_base64, root_token}`` plus recovery keys if any."""
        return self.model_dump_json(exclude_none=True)

    def unseal_keys(self) -> list[str]:
        """Key shares to submit, in the order Vault returned them."""
        return list(self.keys_base64 or self.keys)

    def generate_root_keys(self) -> list[str]:
        """Key shares for generate-root.

        Auto-unseal servers return no unseal keys; generate-root is then
        authorized with the recovery keys instead.
        """
        keys = self.unseal_keys()
        if keys:
            return keys
        return list(self.recovery_keys_base64 or self.recovery_keys or [])


# =============================================================================
# Seal DTOs
# =============================================================================


class SealStatus(BaseModel):
    """Response of GET /v1/sys/seal-status."""

    model_config = ConfigDict(populate_by_name=True)

    seal_type: str = Field("", alias="type", description="Seal type (shamir, awskms, ...)")
    initialized: bool = Field(False)
    sealed: bool = Field(..., description="Whether Vault is sealed")
    t: int = Field(0, description="Threshold of shares required to unseal")
    n: int = Field(0, description="Total number of shares")
    progress: int = Field(0, description="Shares submitted in the current unseal attempt")
    nonce: str = Field("")
    version: str = Field("")
    build_date: str = Field("")
    migration: bool = Field(False)
    cluster_name: str | None = Field(None)
    cluster_id: str | None = Field(None)
    recovery_seal: bool = Field(False)
    storage_type: str = Field("")


class UnsealRequest(BaseModel):
    """Body of POST /v1/sys/unseal."""

    key: str | None = Field(None, repr=False, description="A single key share")
    reset: bool = Field(False, description="Discard previously submitted shares")
    migrate: bool = Field(False, description="Share is for a seal migration")

    def to_body(self) -> dict:
        return self.model_dump(exclude_none=True)


class UnsealResponse(BaseModel):
    """Response of POST /v1/sys/unseal."""

    sealed: bool = Field(..., description="Whether Vault is still sealed")
    t: int = Field(0)
    n: int = Field(0)
    progress: int = Field(0)
    version: str = Field("")
    cluster_name: str | None = Field(None)
    cluster_id: str | None = Field(None)


# =============================================================================
# Generate-root DTOs
# =============================================================================


class GenerateRootStatus(BaseModel):
    """Response of GET /v1/sys/generate-root/attempt."""

    started: bool = Field(..., description="Whether an attempt is in progress")
    nonce: str = Field("", description="Nonce binding share submissions to the attempt")
    progress: int = Field(0)
    required: int = Field(0)
    encoded_token: str = Field("", repr=False)
    pgp_fingerprint: str = Field("")
    otp_length: int = Field(0)
    complete: bool = Field(False)


class GenerateRootStartRequest(BaseModel):
    """Body of POST /v1/sys/generate-root/attempt."""

    pgp_key: str | None = Field(
        None, description="Base64 PGP public key used to encrypt the new token"
    )

    def to_body(self) -> dict:
        return self.model_dump(exclude_none=True)


class GenerateRootStartResponse(GenerateRootStatus):
    """Response of POST /v1/sys/generate-root/attempt."""

    otp: str = Field("", repr=False, description="One-time pad protecting the new token")


class GenerateRootUpdateRequest(BaseModel):
    """Body of POST /v1/sys/generate-root/update."""

    key: str = Field(..., repr=False, description="A single key share")
    nonce: str = Field(..., description="Nonce of the attempt, echoed back unmodified")


class GenerateRootUpdateResponse(BaseModel):
    """Response of POST /v1/sys/generate-root/update."""

    started: bool = Field(False)
    nonce: str = Field("")
    progress: int = Field(0)
    required: int = Field(0)
    pgp_fingerprint: str = Field("")
    complete: bool = Field(False)
    encoded_token: str = Field("", repr=False)
