# casbin-store Models
from casbin_store.models.database import (
    Base,
    init_db,
    create_database,
    create_async_db_engine,
    create_async_session_factory,
    get_async_database_url,
    is_sqlite,
    with_database,
)
from casbin_store.models.casbin_rule import CasbinRule, FIELD_NAMES, MAX_FIELDS

__all__ = [
    "Base",
    "init_db",
    "create_database",
    "create_async_db_engine",
    "create_async_session_factory",
    "get_async_database_url",
    "is_sqlite",
    "with_database",
    "CasbinRule",
    "FIELD_NAMES",
    "MAX_FIELDS",
]
