"""Tenant LLM policy stores.

- :class:`InMemoryPolicyStore` - process-local dict (dev/test)
- :class:`SqlitePolicyStore` - persistent store in a SQLite table
- :class:`CachingPolicyStore` - Redis cache in front of either

The caching store never caches a missing policy, deletes the cache key on
every write, and falls back to the backing store whenever Redis fails.
"""

import asyncio
import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Protocol

import redis.asyncio as aioredis

from regguard.llm.policy import TenantLlmPolicy

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 300
DEFAULT_CACHE_KEY_PREFIX = "copilot:llm:policy"


class LlmPolicyStore(Protocol):
    """Backing interface for tenant policies."""

    async def get_policy(self, tenant_id: str) -> TenantLlmPolicy | None: ...

    async def set_policy(self, policy: TenantLlmPolicy) -> None: ...

    async def delete_policy(self, tenant_id: str) -> None: ...


class InMemoryPolicyStore:
    """Policy store backed by a dict."""

    def __init__(self, policies: list[TenantLlmPolicy] | None = None) -> None:
        self._policies: dict[str, TenantLlmPolicy] = {}
        for policy in policies or []:
            self._policies[policy.tenant_id] = policy

    async def get_policy(self, tenant_id: str) -> TenantLlmPolicy | None:
        return self._policies.get(tenant_id)

    async def set_policy(self, policy: TenantLlmPolicy) -> None:
        self._policies[policy.tenant_id] = policy

    async def delete_policy(self, tenant_id: str) -> None:
        self._policies.pop(tenant_id, None)


class SqlitePolicyStore:
    """Persistent policy store using SQLite.

    Blocking sqlite3 calls run in a worker thread so callers never block the
    event loop. Each call opens its own connection.
    """

    def __init__(self, db_path: str | Path = "~/.regguard/policies.db") -> None:
        """Initialize the store and create the schema if needed.

        Args:
            db_path: Database file path (``~`` is expanded)
        """
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize_schema()

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection with WAL mode enabled."""
        conn = sqlite3.connect(self.db_path, timeout=30.0)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        return conn

    def _initialize_schema(self) -> None:
        conn = self._get_connection()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS tenant_llm_policies (
                    tenant_id TEXT PRIMARY KEY,
                    default_model TEXT NOT NULL,
                    default_provider TEXT NOT NULL,
                    allow_remote_egress INTEGER NOT NULL DEFAULT 1,
                    egress_mode TEXT,
                    allow_off_mode INTEGER,
                    tasks TEXT NOT NULL DEFAULT '[]',
                    user_policies TEXT NOT NULL DEFAULT '{}',
                    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_policy(row: sqlite3.Row) -> TenantLlmPolicy:
        data: dict[str, Any] = {
            "tenant_id": row["tenant_id"],
            "default_model": row["default_model"],
            "default_provider": row["default_provider"],
            "allow_remote_egress": bool(row["allow_remote_egress"]),
            "egress_mode": row["egress_mode"],
            "tasks": json.loads(row["tasks"] or "[]"),
            "user_policies": json.loads(row["user_policies"] or "{}"),
        }
        if row["allow_off_mode"] is not None:
            data["allow_off_mode"] = bool(row["allow_off_mode"])
        return TenantLlmPolicy.model_validate(data)

    def _get(self, tenant_id: str) -> TenantLlmPolicy | None:
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                "SELECT * FROM tenant_llm_policies WHERE tenant_id = ?", (tenant_id,)
            )
            row = cursor.fetchone()
            return self._row_to_policy(row) if row else None
        finally:
            conn.close()

    def _set(self, policy: TenantLlmPolicy) -> None:
        conn = self._get_connection()
        try:
            conn.execute(
                """
                INSERT INTO tenant_llm_policies (
                    tenant_id, default_model, default_provider, allow_remote_egress,
                    egress_mode, allow_off_mode, tasks, user_policies, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(tenant_id) DO UPDATE SET
                    default_model = excluded.default_model,
                    default_provider = excluded.default_provider,
                    allow_remote_egress = excluded.allow_remote_egress,
                    egress_mode = excluded.egress_mode,
                    allow_off_mode = excluded.allow_off_mode,
                    tasks = excluded.tasks,
                    user_policies = excluded.user_policies,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (
                    policy.tenant_id,
                    policy.default_model,
                    policy.default_provider,
                    int(policy.allow_remote_egress),
                    policy.egress_mode.value if policy.egress_mode else None,
                    int(policy.allow_off_mode),
                    json.dumps([t.model_dump(mode="json") for t in policy.tasks]),
                    json.dumps(
                        {
                            user_id: user.model_dump(mode="json")
                            for user_id, user in policy.user_policies.items()
                        }
                    ),
                ),
            )
            conn.commit()
        finally:
            conn.close()

    def _delete(self, tenant_id: str) -> None:
        conn = self._get_connection()
        try:
            conn.execute("DELETE FROM tenant_llm_policies WHERE tenant_id = ?", (tenant_id,))
            conn.commit()
        finally:
            conn.close()

    async def get_policy(self, tenant_id: str) -> TenantLlmPolicy | None:
        return await asyncio.to_thread(self._get, tenant_id)

    async def set_policy(self, policy: TenantLlmPolicy) -> None:
        await asyncio.to_thread(self._set, policy)
        logger.info("Policy saved for tenant %s", policy.tenant_id)

    async def delete_policy(self, tenant_id: str) -> None:
        await asyncio.to_thread(self._delete, tenant_id)


class CachingPolicyStore:
    """Redis read-through cache in front of another policy store."""

    def __init__(
        self,
        backing: LlmPolicyStore,
        redis: aioredis.Redis,
        ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
        key_prefix: str = DEFAULT_CACHE_KEY_PREFIX,
    ) -> None:
        """Initialize the cache layer.

        Args:
            backing: Store of record
            redis: Async Redis client
            ttl_seconds: Cache entry TTL
            key_prefix: Prefix for cache keys (``<prefix>:<tenant_id>``)
        """
        self.backing = backing
        self.redis = redis
        self.ttl_seconds = ttl_seconds
        self.key_prefix = key_prefix

    def cache_key(self, tenant_id: str) -> str:
        return f"{self.key_prefix}:{tenant_id}"

    async def get_policy(self, tenant_id: str) -> TenantLlmPolicy | None:
        key = self.cache_key(tenant_id)

        try:
            cached = await self.redis.get(key)
            if cached:
                logger.debug("Policy cache hit for tenant %s", tenant_id)
                return TenantLlmPolicy.from_json(cached)
        except Exception as e:
            logger.warning(
                "Redis cache read failed for tenant %s, falling back to backing store: %s",
                tenant_id,
                e,
            )

        policy = await self.backing.get_policy(tenant_id)

        if policy is not None:
            try:
                await self.redis.set(key, policy.to_json(), ex=self.ttl_seconds)
                logger.debug("Policy cached for tenant %s (ttl=%ds)", tenant_id, self.ttl_seconds)
            except Exception as e:
                logger.warning("Redis cache write failed for tenant %s: %s", tenant_id, e)

        return policy

    async def _invalidate(self, tenant_id: str) -> None:
        try:
            await self.redis.delete(self.cache_key(tenant_id))
            logger.debug("Policy cache invalidated for tenant %s", tenant_id)
        except Exception as e:
            logger.warning("Redis cache invalidation failed for tenant %s: %s", tenant_id, e)

    async def set_policy(self, policy: TenantLlmPolicy) -> None:
        await self.backing.set_policy(policy)
        await self._invalidate(policy.tenant_id)

    async def delete_policy(self, tenant_id: str) -> None:
        await self.backing.delete_policy(tenant_id)
        await self._invalidate(tenant_id)

    async def close(self) -> None:
        await self.redis.aclose()


def create_policy_store(
    backend: str = "memory",
    sqlite_path: str | Path | None = None,
    redis_url: str | None = None,
    cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
    cache_key_prefix: str = DEFAULT_CACHE_KEY_PREFIX,
) -> LlmPolicyStore:
    """Create the policy store for the given configuration.

    Priority:
    1. SQLite + Redis = CachingPolicyStore(SqlitePolicyStore)
    2. SQLite only = SqlitePolicyStore
    3. Otherwise InMemoryPolicyStore, optionally cache-fronted

    Args:
        backend: "memory" or "sqlite"
        sqlite_path: Database path for the sqlite backend
        redis_url: Enables the Redis cache layer when set
        cache_ttl_seconds: Cache TTL
        cache_key_prefix: Cache key prefix

    Returns:
        Policy store instance

    Raises:
        ValueError: If the backend is not recognised
    """
    store: LlmPolicyStore
    if backend == "sqlite":
        store = SqlitePolicyStore(sqlite_path or "~/.regguard/policies.db")
    elif backend == "memory":
        logger.warning("Using in-memory policy store; policies are lost on restart")
        store = InMemoryPolicyStore()
    else:
        raise ValueError(f"Unknown policy store backend: {backend}")

    if redis_url:
        client = aioredis.from_url(redis_url, decode_responses=True)
        store = CachingPolicyStore(
            store, client, ttl_seconds=cache_ttl_seconds, key_prefix=cache_key_prefix
        )

    return store
