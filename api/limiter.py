"""
api/limiter.py -- The process-wide slowapi Limiter.

api/main.py mounts it (app.state.limiter + SlowAPIMiddleware); api/routing.py
wraps every RouteSpec that declares a rate_limit with limiter.limit().

Keyed by client IP. Counters live in process memory, so each worker enforces
its own budget; point storage_uri at Redis when running more than one.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")
