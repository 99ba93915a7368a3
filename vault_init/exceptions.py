"""Exceptions for vault-init.

Three families of failure are surfaced by the bootstrap:

- transport/remote errors from the Vault API (``VaultClientError``)
- persistence policy errors (``SaveError``)
- phase failures raised by the orchestrator (``PhaseError``)

None of them are retried within a single run.
"""


class VaultInitError(Exception):
    """Base exception for all vault-init errors."""

    pass


# =============================================================================
# Vault API errors
# =============================================================================


class VaultClientError(VaultInitError):
    """Base class for errors talking to the Vault API."""

    pass


class VaultUnavailableError(VaultClientError):
    """Raised when Vault cannot be reached or the request times out."""

    def __init__(self, message: str = "Vault unavailable"):
        self.message = message
        super().__init__(message)


class VaultResponseError(VaultClientError):
    """Raised when Vault answers with a non-success status code."""

    def __init__(self, method: str, path: str, status_code: int, detail: str):
        self.method = method
        self.path = path
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"{method} {path} returned {status_code}: {detail}")


class VaultDecodeError(VaultClientError):
    """Raised when a Vault response body does not match the expected shape."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Malformed response from {path}: {reason}")


# =============================================================================
# Persistence errors
# =============================================================================


class SaveError(VaultInitError):
    """Base class for save method failures."""

    pass


class SaveTargetExistsError(SaveError):
    """Raised when init data already exists and overwrite is not enabled.

    No write is performed when this is raised.
    """

    def __init__(self, save_method: str, location: str):
        self.save_method = save_method
        self.location = location
        super().__init__(
            f"{save_method} target {location} already exists, "
            f"but not configured to overwrite"
        )


class LoadError(SaveError):
    """Raised when a save method cannot supply init data."""

    def __init__(self, save_method: str, location: str, reason: str):
        self.save_method = save_method
        self.location = location
        self.reason = reason
        super().__init__(f"{save_method} failed to load {location}: {reason}")


class NoSaveMethodError(SaveError):
    """Raised when no configured save method could complete the operation."""

    pass


# =============================================================================
# Orchestrator errors
# =============================================================================


class PhaseError(VaultInitError):
    """A bootstrap phase failed.

    Carries the phase name and the operation that failed so the CLI can
    report both. The underlying error, if any, is chained as ``__cause__``.
    """

    def __init__(self, phase: str, operation: str, message: str | None = None):
        self.phase = phase
        self.operation = operation
        self.message = message or f"{operation} failed"
        super().__init__(f"[{phase}] {operation}: {self.message}")


class UnsealIncompleteError(PhaseError):
    """Raised when every key share was submitted and Vault is still sealed."""

    def __init__(self, submitted: int):
        self.submitted = submitted
        super().__init__(
            "unseal",
            "submit unseal keys",
            f"unable to completely unseal after {submitted} key(s)",
        )


class RootGenerationInProgressError(PhaseError):
    """Raised when a generate-root attempt is already running on the server."""

    def __init__(self, nonce: str = ""):
        self.nonce = nonce
        super().__init__(
            "rotate-root",
            "check generate-root attempt",
            "generate root process is already in progress",
        )


class RootGenerationIncompleteError(PhaseError):
    """Raised when every key share was submitted and generate-root did not complete."""

    def __init__(self, submitted: int):
        self.submitted = submitted
        super().__init__(
            "rotate-root",
            "submit generate-root keys",
            f"unable to complete root token generation after {submitted} key(s)",
        )
