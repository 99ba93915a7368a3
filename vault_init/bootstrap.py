"""Vault bootstrap orchestration.

Drives a Vault server from uninitialized to unsealed, and optionally
through a generate-root ceremony that retires the initial root token.

Each phase re-reads live server status on entry and acts only if its
precondition is not already satisfied, so re-running after a crash
resumes at the right phase. No orchestrator state is persisted; the only
durable state is the init result held by the save methods.

Phases, in order:
1. ensure_initialized - init Vault and persist the result (save_all)
2. ensure_unsealed - submit key shares until Vault reports unsealed
3. rotate_root_token - generate-root ceremony, then revoke the old token
"""
import asyncio
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Iterator, Optional, TypeVar

from vault_init.exceptions import (
    PhaseError,
    RootGenerationIncompleteError,
    RootGenerationInProgressError,
    UnsealIncompleteError,
    VaultClientError,
    VaultInitError,
)
from vault_init.models.vault import (
    GenerateRootStartRequest,
    GenerateRootUpdateRequest,
    InitRequest,
    UnsealRequest,
)
from vault_init.save.methods import SaveMethods
from vault_init.vault_client import VaultClient

log = logging.getLogger(__name__)

R = TypeVar("R")


class Phase(str, Enum):
    """Bootstrap phases."""

    INIT = "init"
    UNSEAL = "unseal"
    ROTATE_ROOT = "rotate-root"


@dataclass
class BootstrapReport:
    """What a bootstrap run actually did.

    Attributes:
        initialized: Vault was initialized by this run.
        unsealed: Vault was unsealed by this run.
        rotated_root: A generate-root ceremony completed and the old token was revoked.
        saved_to: Locations the init result was written to.
        keys_submitted: Key shares submitted per phase.
    """

    initialized: bool = False
    unsealed: bool = False
    rotated_root: bool = False
    saved_to: list[str] = field(default_factory=list)
    keys_submitted: dict[str, int] = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return self.initialized or self.unsealed or self.rotated_root


@contextmanager
def _fatal(phase: Phase, operation: str) -> Iterator[None]:
    """Wrap errors escaping ``operation`` as a PhaseError naming phase and operation."""
    try:
        yield
    except PhaseError:
        raise
    except VaultInitError as e:
        log.error(f"[{phase.value}] {operation} failed: {e}")
        raise PhaseError(phase.value, operation, str(e)) from e


class VaultBootstrapper:
    """Bootstrap orchestrator.

    Issues one Vault call at a time; no two calls are ever in flight. Save
    method I/O is blocking and runs in a worker thread, awaited in turn.
    """

    def __init__(
        self,
        vault: VaultClient,
        save_methods: SaveMethods,
        init_request: Optional[InitRequest] = None,
        rotate_root: bool = False,
        generate_root_pgp_key: Optional[str] = None,
    ):
        """Initialize the bootstrapper.

        Args:
            vault: Vault API client.
            save_methods: Configured save methods for the init result.
            init_request: Parameters for initialization.
            rotate_root: Run the generate-root ceremony after unsealing.
            generate_root_pgp_key: PGP key for the generated token. Not set
                by the CLI.
        """
        self.vault = vault
        self.save_methods = save_methods
        self.init_request = init_request or InitRequest()
        self.rotate_root = rotate_root
        self.generate_root_pgp_key = generate_root_pgp_key

    async def run(self) -> BootstrapReport:
        """Run every phase in order. Stops at the first fatal error.

        Raises:
            PhaseError: A phase failed; the message names phase and operation.
        """
        report = BootstrapReport()
        log.info("Starting vault bootstrap")

        await self.ensure_initialized(report)
        await self.ensure_unsealed(report)
        if self.rotate_root:
            await self.rotate_root_token(report)

        if report.changed:
            log.info("Vault bootstrap complete")
        else:
            log.info("Vault bootstrap complete, nothing to do")
        return report

    # =========================================================================
    # Phase: init
    # =========================================================================

    async def ensure_initialized(self, report: Optional[BootstrapReport] = None) -> bool:
        """Initialize Vault unless already initialized, then persist the result.

        Returns:
            True if this call initialized Vault.
        """
        report = report if report is not None else BootstrapReport()

        log.info("Checking initialization status")
        with _fatal(Phase.INIT, "read init status"):
            status = await self.vault.read_init_status()
        if status.initialized:
            log.info("Vault is already initialized")
            return False
        log.info("Vault is not yet initialized")

        # Refuse before mutating: an initialized but unpersisted Vault is unrecoverable
        if not self.save_methods.configured:
            raise PhaseError(
                Phase.INIT.value,
                "check save methods",
                "no save method configured, refusing to initialize",
            )

        log.info(
            f"Initializing Vault with {self.init_request.secret_shares} share(s), "
            f"threshold {self.init_request.secret_threshold}"
        )
        with _fatal(Phase.INIT, "initialize"):
            result = await self.vault.start_init(self.init_request)
        log.info("Successfully initialized Vault")
        report.initialized = True

        with _fatal(Phase.INIT, "save init data"):
            report.saved_to = await asyncio.to_thread(self.save_methods.save_all, result)
        return True

    # =========================================================================
    # Phase: unseal
    # =========================================================================

    async def ensure_unsealed(self, report: Optional[BootstrapReport] = None) -> bool:
        """Unseal Vault with the persisted key shares unless already unsealed.

        A rejected share is skipped; the phase fails only when every share
        has been submitted and Vault is still sealed.

        Returns:
            True if this call unsealed Vault.
        """
        report = report if report is not None else BootstrapReport()

        log.info("Checking seal status")
        with _fatal(Phase.UNSEAL, "read seal status"):
            seal_status = await self.vault.read_seal_status()
        if not seal_status.sealed:
            log.info("Vault is already unsealed")
            return False
        log.info(
            f"Vault is sealed (progress {seal_status.progress}/{seal_status.t})"
        )

        with _fatal(Phase.UNSEAL, "load init data"):
            result = await asyncio.to_thread(self.save_methods.load_all)
        keys = result.unseal_keys()

        async def submit(key: str):
            response = await self.vault.submit_unseal_key(UnsealRequest(key=key))
            log.info(f"Unseal progress {response.progress}/{response.t}")
            return response

        submitted = await self._submit_keys(
            Phase.UNSEAL, keys, submit, lambda response: not response.sealed
        )
        if submitted is None:
            raise UnsealIncompleteError(len(keys))
        report.keys_submitted[Phase.UNSEAL.value] = submitted

        log.info(f"Vault unsealed after {submitted} key(s)")
        report.unsealed = True
        return True

    # =========================================================================
    # Phase: rotate-root
    # =========================================================================

    async def rotate_root_token(self, report: Optional[BootstrapReport] = None) -> bool:
        """Run a generate-root ceremony and revoke the previous root token.

        An attempt already started on the server is never resumed. An attempt
        this call started is cancelled if the key shares run out before it
        completes.

        The generated token comes back OTP-encoded and is not decoded or
        saved here; the persisted root token is the one being revoked.

        Returns:
            True once the ceremony completed and the old token was revoked.
        """
        report = report if report is not None else BootstrapReport()

        log.info("Checking generate-root status")
        with _fatal(Phase.ROTATE_ROOT, "read generate-root attempt"):
            attempt = await self.vault.read_generate_root_attempt()
        if attempt.started:
            log.error("Generate root process is already in progress")
            raise RootGenerationInProgressError(attempt.nonce)

        with _fatal(Phase.ROTATE_ROOT, "load init data"):
            result = await asyncio.to_thread(self.save_methods.load_all)
        keys = result.generate_root_keys()
        old_root_token = result.root_token

        log.info("Beginning generate root process")
        with _fatal(Phase.ROTATE_ROOT, "start generate-root attempt"):
            started = await self.vault.start_generate_root(
                GenerateRootStartRequest(pgp_key=self.generate_root_pgp_key)
            )
        nonce = started.nonce

        async def submit(key: str):
            response = await self.vault.submit_generate_root_key(
                GenerateRootUpdateRequest(key=key, nonce=nonce)
            )
            log.info(f"Generate root progress {response.progress}/{response.required}")
            return response

        submitted = await self._submit_keys(
            Phase.ROTATE_ROOT, keys, submit, lambda response: response.complete
        )
        if submitted is None:
            await self._cancel_generate_root()
            raise RootGenerationIncompleteError(len(keys))
        report.keys_submitted[Phase.ROTATE_ROOT.value] = submitted
        log.info("Generate root success")
        # TODO: decode encoded_token with the attempt OTP and save it via save_all
        log.warning("Generated root token is OTP-encoded and was not captured")

        with _fatal(Phase.ROTATE_ROOT, "revoke previous root token"):
            await self.vault.revoke_self(old_root_token)
        log.info("Revoked previous root token")
        report.rotated_root = True
        return True

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _cancel_generate_root(self) -> None:
        """Cancel the attempt started by this run. A failed cancel is only logged."""
        log.error("Generate root did not complete, cancelling attempt")
        try:
            await self.vault.cancel_generate_root()
        except VaultClientError as e:
            log.error(f"Failed to cancel generate root attempt: {e}")
            return
        log.info("Cancelled generate root attempt")

    async def _submit_keys(
        self,
        phase: Phase,
        keys: list[str],
        submit: Callable[[str], Awaitable[R]],
        is_done: Callable[[R], bool],
    ) -> Optional[int]:
        """Submit key shares one at a time, in order, until ``is_done``.

        A share whose submission fails is logged and skipped.

        Returns:
            Number of shares submitted when ``is_done`` was reached, or None
            if the shares ran out first.
        """
        for index, key in enumerate(keys, start=1):
            try:
                response = await submit(key)
            except VaultClientError as e:
                log.warning(
                    f"[{phase.value}] key {index}/{len(keys)} failed, skipping: {e}"
                )
                continue
            if is_done(response):
                return index
        return None
