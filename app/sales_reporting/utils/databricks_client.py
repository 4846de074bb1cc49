"""
Databricks client singleton.

Provides a single WorkspaceClient instance with SDK auto-auth for Databricks
deployments and token fallback for local development, plus a SQL helper that
bulk-reads source tables through the Statement Execution API with an
in-memory TTL cache.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from databricks.sdk import WorkspaceClient
from databricks.sdk.config import Config
from databricks.sdk.errors import DatabricksError
from databricks.sdk.service.sql import StatementState

from sales_reporting.errors import DataSourceError
from sales_reporting.utils.config import (
    CACHE_TTL,
    CATALOG_NAME,
    DATABRICKS_HOST,
    DATABRICKS_TOKEN,
    SCHEMA_GOLD,
    WAREHOUSE_ID,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# In-memory query cache
# ---------------------------------------------------------------------------
_cache: dict[str, list[dict[str, Any]]] = {}
_cache_time: dict[str, float] = {}


def _cache_get(key: str) -> list[dict[str, Any]] | None:
    """Return cached rows if still within TTL, else None."""
    if key in _cache and (time.time() - _cache_time.get(key, 0)) < CACHE_TTL:
        return _cache[key]
    return None


def _cache_set(key: str, rows: list[dict[str, Any]]) -> None:
    _cache[key] = rows
    _cache_time[key] = time.time()


def invalidate_cache(prefix: str | None = None) -> None:
    """Clear all cached entries, or only those whose key starts with *prefix*."""
    if prefix is None:
        _cache.clear()
        _cache_time.clear()
        return
    for key in [k for k in _cache if k.startswith(prefix)]:
        _cache.pop(key, None)
        _cache_time.pop(key, None)


# ---------------------------------------------------------------------------
# Singleton client
# ---------------------------------------------------------------------------
_client: WorkspaceClient | None = None


def get_workspace_client() -> WorkspaceClient:
    """Return a cached WorkspaceClient (created on first call).

    Uses DATABRICKS_HOST / DATABRICKS_TOKEN when a token is configured and
    falls back to SDK auto-authentication otherwise.
    """
    global _client
    if _client is not None:
        return _client

    config = Config(http_timeout_seconds=120)
    if DATABRICKS_TOKEN:
        logger.info("Initializing WorkspaceClient with token (local dev mode)")
        _client = WorkspaceClient(
            host=DATABRICKS_HOST, token=DATABRICKS_TOKEN, config=config
        )
    else:
        logger.info("Initializing WorkspaceClient with SDK auto-auth")
        _client = WorkspaceClient(config=config)
    return _client


# ---------------------------------------------------------------------------
# SQL helper
# ---------------------------------------------------------------------------
def execute_sql(
    query: str,
    *,
    cache_key: str | None = None,
    catalog: str | None = None,
    schema: str | None = None,
) -> list[dict[str, Any]]:
    """Execute a read-only SQL statement on the configured warehouse.

    Parameters
    ----------
    query:
        The SQL query string.
    cache_key:
        If provided the result is cached under this key for ``CACHE_TTL``
        seconds.
    catalog / schema:
        Override the default catalog / schema for this execution.

    Returns
    -------
    list[dict]
        One dict per row mapping column name -> value.  The Statement
        Execution API returns every value as a string (or None).

    Raises
    ------
    DataSourceError
        If the SDK call fails or the statement does not finish in the
        SUCCEEDED state.
    """
    if cache_key:
        cached = _cache_get(cache_key)
        if cached is not None:
            logger.debug("Cache hit for %s", cache_key)
            return cached

    w = get_workspace_client()
    try:
        response = w.statement_execution.execute_statement(
            warehouse_id=WAREHOUSE_ID,
            statement=query,
            wait_timeout="50s",
            catalog=catalog or CATALOG_NAME,
            schema=schema or SCHEMA_GOLD,
        )
    except DatabricksError as exc:
        logger.error("Statement execution failed: %s", exc)
        raise DataSourceError(f"SQL execution failed: {exc}") from exc

    if response.status.state != StatementState.SUCCEEDED:
        error_msg = getattr(response.status, "error", None)
        raise DataSourceError(
            f"SQL execution failed ({response.status.state}): {error_msg}"
        )

    columns = [col.name for col in response.manifest.schema.columns]
    rows: list[dict[str, Any]] = []
    chunk = response.result
    while chunk is not None:
        for row in chunk.data_array or []:
            rows.append(dict(zip(columns, row)))
        # Large fact tables come back in several chunks.
        if chunk.next_chunk_index is None:
            break
        chunk = w.statement_execution.get_statement_result_chunk_n(
            response.statement_id, chunk.next_chunk_index
        )

    if cache_key:
        _cache_set(cache_key, rows)
    return rows
