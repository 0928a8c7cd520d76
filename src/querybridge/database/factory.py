# src/querybridge/database/factory.py
"""Engine factory: the one place that maps drivers to engine classes."""

from typing import Any, Dict, Optional, Type

from querybridge.config.models import PoolConfig
from querybridge.core.exceptions import ErrorCodes, ValidationError
from querybridge.database.base import DatabaseEngine
from querybridge.database.connectors import MySQLEngine, PostgresEngine, SQLiteEngine
from querybridge.database.models import Driver
from querybridge.logging import get_logger


class EngineFactory:
    """Creates uninitialized engines for a driver.

    Adding an engine means implementing ``DatabaseEngine`` and
    registering the class here; nothing else knows the set of engines.
    """

    def __init__(self, engines: Optional[Dict[Driver, Type[DatabaseEngine]]] = None):
        self.logger = get_logger("database.factory")
        self._engines: Dict[Driver, Type[DatabaseEngine]] = dict(
            engines if engines is not None else DEFAULT_ENGINES
        )

    def register_engine(self, driver: Driver, engine_class: Type[DatabaseEngine]) -> None:
        """Register or replace the engine class for a driver.

        Raises:
            ValidationError: If the class is not a DatabaseEngine
        """
        driver = Driver.parse(driver)
        if not (isinstance(engine_class, type) and issubclass(engine_class, DatabaseEngine)):
            raise ValidationError(
                f"Engine class {engine_class!r} must extend DatabaseEngine",
                code=ErrorCodes.CONFIG_INVALID,
                context={"driver": driver.value},
            )
        if driver in self._engines:
            self.logger.debug("Overriding engine registration",
                              driver=driver.value,
                              existing_class=self._engines[driver].__name__,
                              new_class=engine_class.__name__)
        self._engines[driver] = engine_class

    def is_supported(self, driver: Any) -> bool:
        try:
            return Driver.parse(driver) in self._engines
        except ValidationError:
            return False

    def create_engine(self, driver: Any, url: str, config: PoolConfig) -> DatabaseEngine:
        """Construct the engine for ``driver``; the caller initializes it.

        Raises:
            ValidationError: If the driver is unknown or has no engine
            DatabaseConnectionError: If the URL does not parse (INVALID_URL)
        """
        driver = Driver.parse(driver)
        engine_class = self._engines.get(driver)
        if engine_class is None:
            raise ValidationError(
                f"No engine registered for driver: {driver.value}",
                code=ErrorCodes.UNSUPPORTED_DRIVER,
                context={
                    "driver": driver.value,
                    "available_drivers": [d.value for d in self._engines],
                },
            )
        return engine_class(url, config)


DEFAULT_ENGINES: Dict[Driver, Type[DatabaseEngine]] = {
    Driver.SQLITE: SQLiteEngine,
    Driver.POSTGRES: PostgresEngine,
    Driver.MYSQL: MySQLEngine,
}


def create_engine(driver: Any, url: str, config: Optional[PoolConfig] = None) -> DatabaseEngine:
    """Create an engine with the default engine table.

    Example:
        >>> engine = create_engine("sqlite", "sqlite::memory:")
        >>> await engine.initialize()
    """
    return EngineFactory().create_engine(driver, url, config or PoolConfig())
