"""CLI entry point for otpgate."""

from __future__ import annotations

import logging
import sys

import click
from rich.console import Console

console = Console()


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log at DEBUG level.")
def main(verbose: bool) -> None:
    """otpgate — TOTP multi-factor authentication core."""
    from otpgate.config import settings

    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )


@main.command()
def status() -> None:
    """Show effective MFA configuration."""
    from otpgate.config import settings

    console.print("[bold]otpgate configuration[/bold]")
    console.print(f"  Database: {settings.database_url.split('@')[-1]}")
    console.print(f"  Issuer: {settings.issuer}")
    console.print(
        f"  TOTP: {settings.totp_algorithm} / {settings.totp_digits} digits / "
        f"{settings.totp_period}s / window ±{settings.totp_window}"
    )
    console.print(f"  Digest backend: {settings.digest_backend}")
    console.print(f"  Recovery codes: {settings.recovery_code_count} x {settings.recovery_code_length} chars")
    console.print(f"  Recovery activation allowed: {settings.allow_recovery_activation}")
    key_state = "[green]set[/green]" if settings.otpgate_master_key else "[red]missing[/red]"
    console.print(f"  Master key: {key_state}")


@main.command("new-secret")
@click.argument("label")
@click.option("--issuer", default=None, help="Issuer shown in the authenticator app.")
def new_secret(label: str, issuer: str | None) -> None:
    """Generate a secret and provisioning URI for LABEL."""
    from otpgate.auth import totp
    from otpgate.auth.provisioning import mask_secret
    from otpgate.config import settings
    from otpgate.lifecycle import MfaPolicy

    policy = MfaPolicy.from_settings(settings)
    secret = totp.generate_secret(settings.secret_bytes)
    console.print(f"Secret: {secret}")
    console.print(f"Masked: {mask_secret(secret)}")
    console.print(f"URI: {totp.get_provisioning_uri(secret, label, issuer or policy.issuer, policy.totp)}")


@main.command()
@click.argument("secret")
@click.option("--at", "at_time", type=float, default=None, help="Unix time (defaults to now).")
def code(secret: str, at_time: float | None) -> None:
    """Print the TOTP code for a base32 SECRET."""
    from otpgate.auth import totp
    from otpgate.config import settings
    from otpgate.errors import ValidationError
    from otpgate.lifecycle import MfaPolicy

    try:
        value = totp.get_code(secret, at_time, MfaPolicy.from_settings(settings).totp)
    except ValidationError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(2)
    console.print(value)


@main.command()
@click.argument("secret")
@click.argument("otp")
@click.option("--at", "at_time", type=float, default=None, help="Unix time (defaults to now).")
def check(secret: str, otp: str, at_time: float | None) -> None:
    """Check OTP against a base32 SECRET; exits non-zero on mismatch."""
    from otpgate.auth import totp
    from otpgate.config import settings
    from otpgate.errors import ValidationError
    from otpgate.lifecycle import MfaPolicy

    try:
        ok = totp.verify_code(secret, otp, at_time, MfaPolicy.from_settings(settings).totp)
    except ValidationError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(2)
    if ok:
        console.print("[green]Code valid[/green]")
    else:
        console.print("[red]Code invalid[/red]")
        sys.exit(1)


@main.command("parse-uri")
@click.argument("uri")
def parse_uri(uri: str) -> None:
    """Validate an otpauth:// URI and show its parameters."""
    from otpgate.auth.provisioning import mask_secret, parse_uri as _parse
    from otpgate.errors import ValidationError

    try:
        parsed = _parse(uri)
    except ValidationError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(2)
    console.print_json(
        data={
            "account": parsed.account,
            "issuer": parsed.issuer,
            "secret": mask_secret(parsed.secret),
            "algorithm": parsed.algorithm,
            "digits": parsed.digits,
            "period": parsed.period,
        }
    )


@main.command("gen-key")
def gen_key() -> None:
    """Generate a value for OTPGATE_MASTER_KEY."""
    from otpgate.crypto import generate_key

    console.print(generate_key())


@main.command("init-db")
def init_db() -> None:
    """Create the account_security table."""
    from otpgate.db import PostgresAccountStore

    PostgresAccountStore().init_schema()
    console.print("[green]account_security table ready[/green]")


if __name__ == "__main__":
    main()
