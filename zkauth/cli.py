"""
Command-line interface for the credential authentication orchestrator.
"""

from __future__ import annotations

import asyncio
import os
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import click

from zkauth.application import AuthOrchestrator, IssuerService
from zkauth.common.config import Config
from zkauth.common.exceptions import AuthError
from zkauth.common.logging_utils import configure_logging
from zkauth.common.models import Credentials, WalletInfo
from zkauth.infrastructure import IssuerGateway, JsonFileSessionStore, JsonFileUserStore

if TYPE_CHECKING:
    from zkauth.common.models import AuthResult, ProofPhase

data_dir_option = click.option(
    "--data-dir",
    default=None,
    help="Directory for session and user files (default: from ZKAUTH_DATA_DIR or ~/.zkauth)",
)


def _load_config(data_dir: str | None) -> Config:
    if data_dir:
        os.environ["ZKAUTH_DATA_DIR"] = data_dir
    config = Config()
    configure_logging(config)
    return config


def _build(config: Config) -> AuthOrchestrator:
    gateway = IssuerGateway(config) if config.remote_issuer else None
    return AuthOrchestrator.build(
        config,
        JsonFileSessionStore(config.SESSIONS_FILE_PATH),
        JsonFileUserStore(config.USERS_FILE_PATH),
        gateway=gateway,
    )


def _show_progress(phase: ProofPhase) -> None:
    click.echo(f"  ... {phase.value.replace('_', ' ')}")


def _format_time(timestamp: int) -> str:
    moment = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    return moment.strftime("%Y-%m-%d %H:%M:%S UTC")


def _report(result: AuthResult) -> None:
    click.echo(f"Authenticated as {result.identity.did}")
    session = result.session
    click.echo(f"Session {session.id} valid until {_format_time(session.expires_at)}")


@click.group()
def cli() -> None:
    """Zero-knowledge credential authentication CLI"""


@cli.command()
@click.argument("subject", required=False)
@click.option("--issuer", is_flag=True, help="Check the issuer node connection")
@data_dir_option
def status(subject: str | None, issuer: bool, data_dir: str | None) -> None:  # noqa: FBT001
    """Show the session for SUBJECT or the issuer node status"""
    config = _load_config(data_dir)
    if issuer:
        result = asyncio.run(IssuerService(IssuerGateway(config)).status())
        if not result.success:
            msg = f"{result.message}: {result.error}"
            raise click.ClickException(msg)
        click.echo(result.message)
        return

    if not subject:
        msg = "Give a subject DID or --issuer"
        raise click.UsageError(msg)

    orchestrator = _build(config)
    session = orchestrator.restore_session(subject)
    if session is None:
        click.echo(f"{subject} is not authenticated")
        return
    click.echo(f"{subject} is authenticated ({session.method.value})")
    click.echo(f"Session {session.id} valid until {_format_time(session.expires_at)}")


@cli.command()
@click.option("--name", prompt=True, help="Display name")
@click.option("--email", prompt=True, help="Email address")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@data_dir_option
def register(name: str, email: str, password: str, data_dir: str | None) -> None:
    """Register an email/password user"""
    orchestrator = _build(_load_config(data_dir))
    try:
        user = asyncio.run(orchestrator.register(name, email, password))
    except AuthError as e:
        raise click.ClickException(e.message) from e
    click.echo(f"Registered {user.email} as {user.identity.did}")


@cli.command()
@click.option("--email", prompt=True, help="Email address")
@click.option("--password", prompt=True, hide_input=True)
@data_dir_option
def login(email: str, password: str, data_dir: str | None) -> None:
    """Log in with email and password"""
    orchestrator = _build(_load_config(data_dir))
    credentials = Credentials(email=email, password=password)
    try:
        result = asyncio.run(orchestrator.credential_flow(credentials, _show_progress))
    except AuthError as e:
        raise click.ClickException(e.message) from e
    _report(result)


@cli.command("wallet-login")
@click.option("--address", required=True, help="Wallet address (0x...)")
@click.option(
    "--chain-id",
    default=None,
    type=int,
    help="Chain the wallet is connected to (default: the required chain)",
)
@data_dir_option
def wallet_login(address: str, chain_id: int | None, data_dir: str | None) -> None:
    """Log in by proving ownership of a wallet"""
    config = _load_config(data_dir)
    try:
        wallet = WalletInfo(
            address=address,
            chain_id=chain_id if chain_id is not None else config.REQUIRED_CHAIN_ID,
        )
    except ValueError as e:
        msg = f"Invalid wallet address: {address}"
        raise click.BadParameter(msg) from e

    orchestrator = _build(config)
    try:
        result = asyncio.run(orchestrator.wallet_flow(wallet, _show_progress))
    except AuthError as e:
        raise click.ClickException(e.message) from e
    _report(result)


@cli.command()
@click.argument("subject")
@data_dir_option
def logout(subject: str, data_dir: str | None) -> None:
    """End the session for SUBJECT"""
    orchestrator = _build(_load_config(data_dir))
    try:
        orchestrator.logout(subject)
    except AuthError as e:
        raise click.ClickException(e.message) from e
    click.echo(f"Logged out {subject}")


if __name__ == "__main__":
    cli()
