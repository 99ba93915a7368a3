"""vault-init CLI - Main entry point.

Commands:
    vault-init run           Initialize, unseal and optionally rotate the root token
    vault-init status        Show init and seal status
    vault-init cancel-root   Cancel an in-progress generate-root attempt
"""

from pathlib import Path
from typing import List, Optional

import typer

from vault_init import __version__
from vault_init.bootstrap import VaultBootstrapper
from vault_init.cli.output import (
    OutputFormat,
    output_error,
    output_json,
    output_report,
    output_seal_status,
)
from vault_init.cli.utils import EXIT_CONFIG_ERROR, EXIT_FAILURE, run_async
from vault_init.config import (
    VAULT_ADDR,
    VAULT_INIT_LOG_LEVEL,
    VAULT_INIT_TIMEOUT,
    VAULT_TOKEN,
    ConfigError,
    load_config,
)
from vault_init.core.logging import configure_logging
from vault_init.exceptions import PhaseError, VaultClientError
from vault_init.save.methods import SaveMethods
from vault_init.vault_client import VaultClient

app = typer.Typer(
    name="vault-init",
    help="Initialize, unseal and rotate the root token of a Vault server.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"vault-init version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Bootstrap a Vault server and persist its init result.

    Examples:
        vault-init run --secret-shares 5 --secret-threshold 3
        vault-init run --config vault-init.config.json --rotate-root
        vault-init status --format table
    """
    pass


@app.command("run")
def run_cmd(
    vault_addr: str = typer.Option(
        VAULT_ADDR, "--vault-addr", help="Address of the Vault server (VAULT_ADDR)"
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="JSON config file with save methods and init parameters (VAULT_INIT_CONFIG)",
    ),
    secret_shares: Optional[int] = typer.Option(
        None, "--secret-shares", min=0, max=255, help="Number of shares to split the root key into"
    ),
    secret_threshold: Optional[int] = typer.Option(
        None,
        "--secret-threshold",
        min=0,
        max=255,
        help="Shares required to reconstruct the root key (<= secret shares)",
    ),
    pgp_keys: Optional[List[str]] = typer.Option(
        None, "--pgp-key", help="Base64 PGP public key per share; repeat, order preserved"
    ),
    root_token_pgp_key: Optional[str] = typer.Option(
        None, "--root-token-pgp-key", help="Base64 PGP public key for the initial root token"
    ),
    stored_shares: Optional[int] = typer.Option(
        None, "--stored-shares", min=0, max=255, help="Shares stored by the HSM (auto-unseal)"
    ),
    recovery_shares: Optional[int] = typer.Option(
        None, "--recovery-shares", min=0, max=255, help="Recovery key shares (auto-unseal)"
    ),
    recovery_threshold: Optional[int] = typer.Option(
        None,
        "--recovery-threshold",
        min=0,
        max=255,
        help="Recovery shares required (auto-unseal)",
    ),
    recovery_pgp_keys: Optional[List[str]] = typer.Option(
        None, "--recovery-pgp-key", help="Base64 PGP public key per recovery share; repeat"
    ),
    rotate_root: bool = typer.Option(
        False,
        "--rotate-root",
        help="Run the generate-root ceremony after unsealing and revoke the initial root token",
    ),
    log_level: str = typer.Option(VAULT_INIT_LOG_LEVEL, "--log-level", help="Log level"),
    format: OutputFormat = typer.Option(
        OutputFormat.json, "--format", "-f", help="Output format for the run report"
    ),
) -> None:
    """Initialize and unseal Vault, persisting the init result.

    Every phase re-reads Vault status first, so re-running is safe: only
    phases whose preconditions are not yet met do anything.
    """
    configure_logging(log_level)

    try:
        config = load_config(config_path)
    except ConfigError as e:
        output_error("CONFIG_ERROR", str(e), exit_code=EXIT_CONFIG_ERROR)

    overrides = {
        "secret_shares": secret_shares,
        "secret_threshold": secret_threshold,
        "pgp_keys": list(pgp_keys) if pgp_keys else None,
        "root_token_pgp_key": root_token_pgp_key,
        "stored_shares": stored_shares,
        "recovery_shares": recovery_shares,
        "recovery_threshold": recovery_threshold,
        "recovery_pgp_keys": list(recovery_pgp_keys) if recovery_pgp_keys else None,
    }
    init_request = config.init.model_copy(
        update={k: v for k, v in overrides.items() if v is not None}
    )

    async def _run():
        async with VaultClient(vault_addr, token=VAULT_TOKEN, timeout=VAULT_INIT_TIMEOUT) as vault:
            bootstrapper = VaultBootstrapper(
                vault,
                SaveMethods.from_config(config.save_method),
                init_request=init_request,
                rotate_root=rotate_root or config.rotate_root,
            )
            return await bootstrapper.run()

    try:
        report = run_async(_run())
    except PhaseError as e:
        output_error(
            "PHASE_FAILED",
            str(e),
            details={"phase": e.phase, "operation": e.operation},
            exit_code=EXIT_FAILURE,
        )

    output_report(report, format)


@app.command("status")
def status_cmd(
    vault_addr: str = typer.Option(
        VAULT_ADDR, "--vault-addr", help="Address of the Vault server (VAULT_ADDR)"
    ),
    log_level: str = typer.Option(VAULT_INIT_LOG_LEVEL, "--log-level", help="Log level"),
    format: OutputFormat = typer.Option(
        OutputFormat.json, "--format", "-f", help="Output format"
    ),
) -> None:
    """Show Vault init and seal status."""
    configure_logging(log_level)

    async def _status():
        async with VaultClient(vault_addr, timeout=VAULT_INIT_TIMEOUT) as vault:
            return await vault.read_seal_status()

    try:
        seal_status = run_async(_status())
    except VaultClientError as e:
        output_error("VAULT_ERROR", str(e), exit_code=EXIT_FAILURE)

    output_seal_status(seal_status, format)


@app.command("cancel-root")
def cancel_root_cmd(
    vault_addr: str = typer.Option(
        VAULT_ADDR, "--vault-addr", help="Address of the Vault server (VAULT_ADDR)"
    ),
    log_level: str = typer.Option(VAULT_INIT_LOG_LEVEL, "--log-level", help="Log level"),
) -> None:
    """Cancel an in-progress generate-root attempt.

    ``run --rotate-root`` refuses to start while another attempt is in
    progress; use this to clear a stale attempt explicitly.
    """
    configure_logging(log_level)

    async def _cancel():
        async with VaultClient(vault_addr, timeout=VAULT_INIT_TIMEOUT) as vault:
            await vault.cancel_generate_root()

    try:
        run_async(_cancel())
    except VaultClientError as e:
        output_error("VAULT_ERROR", str(e), exit_code=EXIT_FAILURE)

    output_json({"cancelled": True})


if __name__ == "__main__":
    app()
