"""Service operations exposed to the command layer.

Every operation takes plain values (driver names, URLs, connection ids,
JSON spec payloads) and returns JSON-serializable values.

Example:
    >>> async with DatabaseService() as service:
    ...     conn_id = await service.open_connection("sqlite", "sqlite::memory:")
    ...     await service.execute_sql(conn_id, "CREATE TABLE t (id INTEGER)")
    ...     result = await service.execute_sql(conn_id, "SELECT 1 AS one")
    >>> result
    {'columns': ['one'], 'rows': [[1]], 'truncated': False}
"""

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from .config.models import SystemConfig
from .core import AsyncComponent
from .core.exceptions import ErrorCodes, ValidationError
from .database.builder import build_delete, build_insert, build_select, build_update
from .database.materializer import materialize
from .database.models import DeleteSpec, InsertSpec, SelectSpec, UpdateSpec
from .database.registry import ConnectionRegistry
from .logging import get_factory, get_logger

SpecPayload = Union[Mapping[str, Any], SelectSpec]


class DatabaseService(AsyncComponent[SystemConfig]):
    """Database operations over a connection registry it owns.

    Leaving the service (``cleanup()`` or ``async with``) shuts the
    registry down and closes every live pool.
    """

    component_name = "DatabaseService"

    def __init__(
        self,
        config: Optional[SystemConfig] = None,
        *,
        registry: Optional[ConnectionRegistry] = None,
    ) -> None:
        super().__init__(config or SystemConfig())
        self.logger = get_logger("querybridge.service")
        self.registry = registry or ConnectionRegistry(self.config.pool)

    async def _async_initialize(self) -> None:
        await self.registry.initialize()
        self.logger.info("Database service started",
                         app_name=self.config.app_name,
                         environment=self.config.environment)

    async def _async_cleanup(self) -> None:
        await self.registry.shutdown()
        self.logger.info("Database service stopped")

    async def open_connection(self, driver: str, url: str) -> str:
        """Open a pool for ``url`` and return its connection id."""
        return await self.registry.open(driver, url)

    async def close_connection(self, conn_id: str) -> None:
        """Close a connection; closing an unknown id is a no-op."""
        await self.registry.close(conn_id)

    async def ping_connection(self, conn_id: str) -> None:
        engine = await self.registry.lookup(conn_id)
        await engine.ping()

    async def list_connections(self) -> List[Dict[str, str]]:
        return [
            {"id": conn_id, "dialect": dialect.value}
            for conn_id, dialect in await self.registry.list_connections()
        ]

    async def execute_sql(self, conn_id: str, sql: str, limit: Optional[int] = None) -> Dict[str, Any]:
        """Run raw SQL and return at most ``limit`` rows.

        Args:
            conn_id: Connection id from ``open_connection``
            sql: One statement, sent to the engine verbatim
            limit: Row cap; defaults to ``query.default_row_limit``

        Raises:
            ValidationError: If ``limit`` is not a positive integer
            ConnectionNotFoundError: If the id is unknown
            ExecutionError: If the engine rejects the statement
        """
        if limit is None:
            limit = self.config.query.default_row_limit
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise ValidationError(
                f"Row limit must be a positive integer, got {limit!r}",
                code=ErrorCodes.INVALID_SPEC,
                context={"limit": limit},
            )

        engine = await self.registry.lookup(conn_id)
        raw = await engine.execute(sql, None, cap=limit)
        result = materialize(raw, limit)

        self.logger.info("Query executed",
                         connection_id=conn_id,
                         rows=len(result.rows),
                         truncated=result.truncated)
        return result.to_dict()

    async def get_schema(self, conn_id: str) -> Dict[str, Any]:
        engine = await self.registry.lookup(conn_id)
        schema = await engine.inspect_schema()
        return schema.to_dict()

    async def execute_select_spec(self, conn_id: str, spec: SpecPayload) -> Dict[str, Any]:
        """Build, run and cap a SELECT described by ``spec``.

        Rows are capped at ``query.select_row_cap`` regardless of the
        spec's own limit.
        """
        if not isinstance(spec, SelectSpec):
            spec = SelectSpec.from_dict(spec)

        engine = await self.registry.lookup(conn_id)
        query = build_select(spec, engine.dialect)
        cap = self.config.query.select_row_cap
        raw = await engine.execute(query.sql, query.params, cap=cap)
        result = materialize(raw, cap)

        self.logger.info("Select spec executed",
                         connection_id=conn_id,
                         table=spec.table,
                         rows=len(result.rows),
                         truncated=result.truncated)
        return result.to_dict()

    async def _execute_write(self, conn_id: str, build: Any, spec: Any) -> Dict[str, int]:
        engine = await self.registry.lookup(conn_id)
        query = build(spec, engine.dialect)
        raw = await engine.execute(query.sql, query.params)

        self.logger.info("Write spec executed",
                         connection_id=conn_id,
                         table=spec.table,
                         rows_affected=raw.rows_affected)
        return {"rowsAffected": raw.rows_affected or 0}

    async def execute_insert_spec(self, conn_id: str, spec: Union[Mapping[str, Any], InsertSpec]) -> Dict[str, int]:
        if not isinstance(spec, InsertSpec):
            spec = InsertSpec.from_dict(spec)
        return await self._execute_write(conn_id, build_insert, spec)

    async def execute_update_spec(self, conn_id: str, spec: Union[Mapping[str, Any], UpdateSpec]) -> Dict[str, int]:
        if not isinstance(spec, UpdateSpec):
            spec = UpdateSpec.from_dict(spec)
        return await self._execute_write(conn_id, build_update, spec)

    async def execute_delete_spec(self, conn_id: str, spec: Union[Mapping[str, Any], DeleteSpec]) -> Dict[str, int]:
        if not isinstance(spec, DeleteSpec):
            spec = DeleteSpec.from_dict(spec)
        return await self._execute_write(conn_id, build_delete, spec)


async def create_service(config_path: Optional[Union[str, Path]] = None) -> DatabaseService:
    """Load configuration, configure logging and start a service.

    Args:
        config_path: YAML configuration file; defaults apply when None

    Raises:
        ConfigurationError: If the configuration file is missing or invalid
    """
    config = SystemConfig.from_file(config_path) if config_path else SystemConfig()
    get_factory().configure_from_config(config.logging)

    service = DatabaseService(config)
    await service.initialize()
    return service
