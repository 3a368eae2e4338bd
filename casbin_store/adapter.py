"""
Async SQLAlchemy adapter for casbin policy storage.
"""

import logging
from typing import Iterable, Sequence

from casbin import persist
from casbin.persist.adapters.asyncio import AsyncAdapter
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncEngine

from casbin_store.models import (
    CasbinRule,
    FIELD_NAMES,
    MAX_FIELDS,
    create_async_db_engine,
    create_async_session_factory,
    create_database,
    get_async_database_url,
    init_db,
    is_sqlite,
    with_database,
)


logger = logging.getLogger(__name__)

# Database created when the connection string does not name one
DEFAULT_DATABASE = "casbin"

# Sections written by save_policy, in order
POLICY_SECTIONS = ("p", "g")


def _rule_filter(ptype: str, rule: Sequence[str]) -> list:
    """WHERE clauses matching a rule exactly on its populated values."""
    if len(rule) > MAX_FIELDS:
        raise ValueError(
            f"Rule has {len(rule)} values, at most {MAX_FIELDS} are supported: {list(rule)}"
        )

    clauses = [CasbinRule.ptype == ptype]
    if not rule:
        # An empty rule only matches rows with no values at all
        clauses.append(CasbinRule.v0.is_(None))
    for name, value in zip(FIELD_NAMES, rule):
        clauses.append(getattr(CasbinRule, name) == value)
    return clauses


def _field_filter(ptype: str, field_index: int, field_values: Sequence[str]) -> list:
    """WHERE clauses for a filtered removal; empty values are wildcards."""
    field_values = list(field_values)
    # Trailing wildcards constrain nothing
    while field_values and not field_values[-1]:
        field_values.pop()

    if not 0 <= field_index < MAX_FIELDS:
        raise ValueError(f"field_index must be between 0 and {MAX_FIELDS - 1}, got {field_index}")
    if field_index + len(field_values) > MAX_FIELDS:
        raise ValueError(
            f"Filter covers v{field_index}..v{field_index + len(field_values) - 1}, "
            f"only v0..v{MAX_FIELDS - 1} exist"
        )

    clauses = [CasbinRule.ptype == ptype]
    for offset, value in enumerate(field_values):
        if value:
            clauses.append(getattr(CasbinRule, FIELD_NAMES[field_index + offset]) == value)
    return clauses


class Adapter(AsyncAdapter):
    """
    Policy storage adapter backed by a single ``casbin_rule`` table.

    Use :meth:`new_adapter` to create one; it connects, bootstraps the
    database if asked to, and makes sure the table exists.
    """

    def __init__(self, engine: AsyncEngine, owns_engine: bool = True):
        self._engine = engine
        self._owns_engine = owns_engine
        self._session_factory = create_async_session_factory(engine)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @classmethod
    async def new_adapter(
        cls,
        url: str | AsyncEngine,
        db_specified: bool = False,
        echo: bool = False,
    ) -> "Adapter":
        """
        Open an adapter.

        Args:
            url: Connection string, or an existing engine (left open on close)
            db_specified: Whether the connection string already names an
                existing database. If False, a database named ``casbin`` is
                created on the server and used instead.
            echo: Log all SQL statements

        Returns:
            A ready adapter whose rule table exists.

        Any connection or authentication error propagates; no adapter is
        returned in that case.
        """
        if isinstance(url, AsyncEngine):
            adapter = cls(url, owns_engine=False)
        else:
            engine = await cls._connect(url, db_specified, echo)
            adapter = cls(engine)

        try:
            await adapter.create_table()
        except Exception:
            await adapter.close()
            raise

        logger.info(f"Casbin adapter ready on {adapter.engine.url}")
        return adapter

    @staticmethod
    async def _connect(url: str, db_specified: bool, echo: bool) -> AsyncEngine:
        url = get_async_database_url(url)

        if db_specified:
            return create_async_db_engine(url, echo=echo)

        if is_sqlite(url):
            logger.debug("SQLite has no server-side databases, using the connection string as given")
            return create_async_db_engine(url, echo=echo)

        await create_database(url, DEFAULT_DATABASE, echo=echo)
        return create_async_db_engine(with_database(url, DEFAULT_DATABASE), echo=echo)

    async def close(self) -> None:
        """Release the underlying connection pool."""
        if self._owns_engine:
            await self._engine.dispose()
            logger.debug(f"Disposed engine for {self._engine.url}")

    async def __aenter__(self) -> "Adapter":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def create_table(self) -> None:
        """Create the rule table if it does not exist."""
        await init_db(self._engine)

    async def load_lines(self) -> list[str]:
        """Read every stored rule as a policy line, in storage order."""
        async with self._session_factory() as session:
            result = await session.execute(select(CasbinRule))
            return [line.to_line() for line in result.scalars().all()]

    async def load_policy(self, model) -> None:
        """Load all policy rules from the storage into the model."""
        for line in await self.load_lines():
            persist.load_policy_line(line, model)

    async def save_policy(self, model) -> bool:
        """
        Save all policy rules to the storage.

        The stored rules are replaced by the model's ``p`` and ``g`` sections.
        Deletion and insertion run in one transaction, so on failure the
        previous rules are kept.
        """
        lines = [
            CasbinRule.from_rule(ptype, rule)
            for sec in POLICY_SECTIONS
            for ptype, ast in model.model.get(sec, {}).items()
            for rule in ast.policy
        ]

        await self.create_table()
        async with self._session_factory.begin() as session:
            await session.execute(delete(CasbinRule))
            session.add_all(lines)

        logger.info(f"Saved {len(lines)} policy rules")
        return True

    async def add_policy(self, sec: str, ptype: str, rule: Sequence[str]) -> bool:
        """Add a policy rule to the storage. Duplicates are not checked."""
        async with self._session_factory.begin() as session:
            session.add(CasbinRule.from_rule(ptype, rule))
        return True

    async def add_policies(self, sec: str, ptype: str, rules: Iterable[Sequence[str]]) -> bool:
        """Add several policy rules in one transaction."""
        lines = [CasbinRule.from_rule(ptype, rule) for rule in rules]
        async with self._session_factory.begin() as session:
            session.add_all(lines)
        return True

    async def remove_policy(self, sec: str, ptype: str, rule: Sequence[str]) -> bool:
        """
        Remove a policy rule from the storage.

        Every row equal to the rule is removed. Returns False if nothing
        matched, which is not an error.
        """
        async with self._session_factory.begin() as session:
            result = await session.execute(
                delete(CasbinRule).where(*_rule_filter(ptype, rule))
            )
        return result.rowcount > 0

    async def remove_policies(self, sec: str, ptype: str, rules: Iterable[Sequence[str]]) -> bool:
        """Remove several policy rules in one transaction."""
        removed = 0
        async with self._session_factory.begin() as session:
            for rule in rules:
                result = await session.execute(
                    delete(CasbinRule).where(*_rule_filter(ptype, rule))
                )
                removed += result.rowcount
        return removed > 0

    async def remove_filtered_policy(
        self, sec: str, ptype: str, field_index: int, *field_values: str
    ) -> bool:
        """
        Remove policy rules that match the filter from the storage.

        ``field_values[i]`` is compared with column ``v{field_index + i}``;
        empty values and columns outside the filter match anything.
        """
        clauses = _field_filter(ptype, field_index, field_values)
        async with self._session_factory.begin() as session:
            result = await session.execute(delete(CasbinRule).where(*clauses))

        logger.debug(f"Filtered removal on {ptype} removed {result.rowcount} rules")
        return result.rowcount > 0
