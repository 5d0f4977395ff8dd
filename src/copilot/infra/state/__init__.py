"""Process-wide mutable state: sessions and guard counters.

Two interchangeable backends implement ``StateBackend``:

* Redis: shared between replicas, expiry handled by Redis.
* Local: in-process ``dict`` with lazy expiry, a size bound and an
  optional periodic sweep.  Used automatically when Redis is not
  configured or unreachable.
"""

from .base import StateBackend
from .deps import build_state_backend, build_sweeper, get_state_backend
from .local_backend import LocalStateBackend
from .redis_backend import RedisStateBackend
from .sweeper import StateSweeper

__all__ = [
    "LocalStateBackend",
    "RedisStateBackend",
    "StateBackend",
    "StateSweeper",
    "build_state_backend",
    "build_sweeper",
    "get_state_backend",
]
