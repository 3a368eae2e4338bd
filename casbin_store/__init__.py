# casbin-store
from casbin_store.adapter import Adapter, DEFAULT_DATABASE

__all__ = [
    "Adapter",
    "DEFAULT_DATABASE",
]
