# vault-init CLI - typer application
