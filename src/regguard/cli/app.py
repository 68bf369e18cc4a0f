"""Main CLI application using Typer."""

import logging
import sys

import typer
from rich.console import Console
from rich.table import Table
from rich.text import Text

from regguard import __version__
from regguard.egress.models import EgressMode, SanitizationContext

app = typer.Typer(
    name="regguard",
    help="regguard - Egress guard and LLM router for regulatory copilots",
    no_args_is_help=True,
)

console = Console()

CONFIG_OPTION_HELP = "Path to config file (default: ~/.regguard/regguard.yaml)"


@app.callback()
def main(
    log_level: str = typer.Option(
        "WARNING", "--log-level", "-l", help="Logging level (DEBUG, INFO, WARNING, ERROR)"
    ),
):
    """Configure logging for every command."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def version():
    """Show regguard version."""
    console.print(f"regguard version {__version__}")


@app.command()
def scan(
    text: str = typer.Argument(..., help="Text to sanitize, or '-' to read stdin"),
    context: SanitizationContext = typer.Option(
        SanitizationContext.CHAT, "--context", "-x", help="Sanitization context"
    ),
    exclude: list[str] = typer.Option(
        [], "--exclude", "-e", help="Replacement label to skip, e.g. '[PHONE]'"
    ),
):
    """Sanitize text and show what was redacted."""
    from regguard.egress.sanitizer import sanitize_text_with_audit

    if text == "-":
        text = sys.stdin.read()

    result = sanitize_text_with_audit(text, context=context, exclude_patterns=exclude)

    console.print(result.text, markup=False, highlight=False)

    table = Table(title=f"Egress scan ({context})")
    table.add_column("Redacted", style="cyan")
    table.add_column("Types")
    table.add_column("Original length", justify="right")
    table.add_column("Sanitized length", justify="right")
    table.add_row(
        "yes" if result.redacted else "no",
        Text(", ".join(result.redaction_types) or "-"),
        str(result.original_length),
        str(result.sanitized_length),
    )
    console.print(table)


@app.command("resolve-mode")
def resolve_mode(
    tenant_id: str = typer.Argument("default", help="Tenant ID"),
    user_id: str | None = typer.Option(None, "--user", "-u", help="User ID"),
    override: EgressMode | None = typer.Option(
        None, "--override", "-o", help="Per-call egress mode override"
    ),
    config_path: str = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
):
    """Show the requested and effective egress mode for a tenant/user."""
    from regguard.cli.policy_cmd import resolve_mode_command

    resolve_mode_command(tenant_id, user_id, override, config_path)


# Policy commands
policy_app = typer.Typer(help="Manage tenant LLM policies")
app.add_typer(policy_app, name="policy")


@policy_app.command("show")
def policy_show(
    tenant_id: str = typer.Argument(..., help="Tenant ID"),
    config_path: str = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
):
    """Show a tenant's stored policy."""
    from regguard.cli.policy_cmd import show_policy

    show_policy(tenant_id, config_path)


@policy_app.command("set-mode")
def policy_set_mode(
    tenant_id: str = typer.Argument(..., help="Tenant ID"),
    mode: EgressMode = typer.Argument(..., help="Egress mode"),
    user_id: str | None = typer.Option(
        None, "--user", "-u", help="Set the mode for this user instead of the tenant"
    ),
    allow_off: bool | None = typer.Option(
        None, "--allow-off/--no-allow-off", help="Whether 'off' may take effect"
    ),
    config_path: str = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
):
    """Set the egress mode on a tenant (or one of its users)."""
    from regguard.cli.policy_cmd import set_mode

    set_mode(tenant_id, mode, user_id, allow_off, config_path)


if __name__ == "__main__":
    app()
