"""Tenant policy CLI commands."""

import asyncio

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from regguard.config.loader import ConfigError, load_config
from regguard.config.schema import RegGuardConfig
from regguard.egress.mode_resolver import resolve_effective_egress_mode
from regguard.egress.models import EgressMode
from regguard.llm.factory import create_policy_store_from_config
from regguard.llm.policy import TenantLlmPolicy, UserEgressPolicy

console = Console()


def _load(config_path: str | None) -> RegGuardConfig:
    try:
        return load_config(config_path)
    except ConfigError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1) from e


def _get_policy(config: RegGuardConfig, tenant_id: str) -> TenantLlmPolicy | None:
    store = create_policy_store_from_config(config)
    return asyncio.run(store.get_policy(tenant_id))


def show_policy(tenant_id: str, config_path: str | None = None) -> None:
    """Print a tenant's policy as JSON."""
    config = _load(config_path)
    policy = _get_policy(config, tenant_id)
    if policy is None:
        console.print(f"[yellow]No policy stored for tenant {tenant_id}[/yellow]")
        raise typer.Exit(1)
    console.print_json(policy.to_json())


def set_mode(
    tenant_id: str,
    mode: EgressMode,
    user_id: str | None = None,
    allow_off: bool | None = None,
    config_path: str | None = None,
) -> None:
    """Set the egress mode on a tenant policy, creating the policy if needed."""
    config = _load(config_path)
    store = create_policy_store_from_config(config)

    async def update() -> TenantLlmPolicy:
        policy = await store.get_policy(tenant_id)
        if policy is None:
            policy = TenantLlmPolicy(
                tenant_id=tenant_id,
                default_provider=config.router.default_provider,
                default_model=config.router.default_model,
            )

        if user_id is None:
            policy.egress_mode = mode
            if allow_off is not None:
                policy.allow_off_mode = allow_off
        else:
            user_policy = policy.user_policies.get(user_id, UserEgressPolicy())
            user_policy.egress_mode = mode
            if allow_off is not None:
                user_policy.allow_off_mode = allow_off
            policy.user_policies[user_id] = user_policy

        await store.set_policy(policy)
        return policy

    asyncio.run(update())
    target = f"user {user_id} of tenant {tenant_id}" if user_id else f"tenant {tenant_id}"
    console.print(f"[green]Egress mode for {target} set to {mode}[/green]")


def resolve_mode_command(
    tenant_id: str,
    user_id: str | None = None,
    override: EgressMode | None = None,
    config_path: str | None = None,
) -> None:
    """Print the requested and effective egress mode for a call."""
    config = _load(config_path)
    policy = _get_policy(config, tenant_id)

    resolution = resolve_effective_egress_mode(
        config.egress.mode, policy, user_id=user_id, egress_mode_override=override
    )

    table = Table(title=f"Egress mode for tenant {tenant_id}")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Base mode", str(config.egress.mode))
    table.add_row("Tenant policy", "stored" if policy else "none")
    table.add_row("User", user_id or "-")
    table.add_row("Override", str(override) if override else "-")
    table.add_row("Requested mode", str(resolution.requested_mode))
    table.add_row("Effective mode", str(resolution.effective_mode))
    console.print(table)
