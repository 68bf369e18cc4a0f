"""Egress mode resolution.

Precedence, later wins: base mode, tenant ``egress_mode``, user
``egress_mode``, per-call override. A candidate ``off`` is only accepted when
the applicable ``allow_off_mode`` flag is set: the tenant flag for the tenant
step, the user's flag (falling back to the tenant's) for the user and
per-call steps. A rejected candidate still becomes the requested mode.
"""

from typing import TYPE_CHECKING

from .models import EgressMode, EgressModeResolution

if TYPE_CHECKING:
    from regguard.llm.policy import TenantLlmPolicy


def resolve_effective_egress_mode(
    base_mode: EgressMode,
    tenant_policy: "TenantLlmPolicy | None" = None,
    user_id: str | None = None,
    egress_mode_override: EgressMode | None = None,
) -> EgressModeResolution:
    """Compute the requested and effective egress modes for one call.

    Args:
        base_mode: Egress client default
        tenant_policy: Tenant policy, if any
        user_id: User issuing the call
        egress_mode_override: Per-call override

    Returns:
        EgressModeResolution with requested and effective modes
    """
    requested = EgressMode(base_mode)
    effective = requested

    tenant_allows_off = bool(tenant_policy and tenant_policy.allow_off_mode)

    if tenant_policy is not None and tenant_policy.egress_mode is not None:
        requested = EgressMode(tenant_policy.egress_mode)
        if requested != EgressMode.OFF or tenant_allows_off:
            effective = requested

    user_allows_off = tenant_allows_off
    if tenant_policy is not None and user_id is not None:
        user_policy = tenant_policy.user_policies.get(user_id)
        if user_policy is not None:
            if user_policy.allow_off_mode is not None:
                user_allows_off = user_policy.allow_off_mode
            if user_policy.egress_mode is not None:
                requested = EgressMode(user_policy.egress_mode)
                if requested != EgressMode.OFF or user_allows_off:
                    effective = requested

    if egress_mode_override is not None:
        requested = EgressMode(egress_mode_override)
        if requested != EgressMode.OFF or user_allows_off:
            effective = requested

    return EgressModeResolution(requested_mode=requested, effective_mode=effective)
