"""Tenant LLM policy models.

Serialized with camelCase aliases (``tenantId``, ``allowRemoteEgress``...)
so cached JSON and stored rows share one shape. Python code uses the
snake_case field names.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from regguard.egress.models import EgressMode


class _PolicyModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LlmTaskPolicy(_PolicyModel):
    """Provider/model pinned for one task, e.g. "main-chat"."""

    task: str
    provider: str
    model: str
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, ge=1)


class UserEgressPolicy(_PolicyModel):
    """Per-user egress overrides within a tenant."""

    egress_mode: EgressMode | None = None
    allow_off_mode: bool | None = None


class TenantLlmPolicy(_PolicyModel):
    """What a tenant may use and how its traffic is guarded.

    When ``allow_remote_egress`` is False every request is routed to the
    ``local`` provider.
    """

    tenant_id: str
    default_provider: str
    default_model: str
    allow_remote_egress: bool = True
    tasks: list[LlmTaskPolicy] = Field(default_factory=list)
    egress_mode: EgressMode | None = None
    allow_off_mode: bool = False
    user_policies: dict[str, UserEgressPolicy] = Field(default_factory=dict)

    def task_policy(self, task: str | None) -> LlmTaskPolicy | None:
        if task is None:
            return None
        for policy in self.tasks:
            if policy.task == task:
                return policy
        return None

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, raw: str | bytes) -> "TenantLlmPolicy":
        return cls.model_validate_json(raw)
