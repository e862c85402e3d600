"""
api/routing.py -- Explicit route table and its registration.

Each route is declared once as a RouteSpec. required_roles is the route's
authorization metadata:
  None          -> public: no authentication guard, no role guard
  frozenset()   -> any authenticated principal
  {ADMIN, ...}  -> authenticated and holding at least one listed role

build_router() turns the table into an APIRouter at startup. The guards are
attached as route-level dependencies, so they run before the handler body
and before any of the handler's own dependencies. Nothing is read off the
handler at request time.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import APIRouter, Depends

from api.limiter import limiter
from auth.dependencies import require_roles
from auth.models import Role

PUBLIC = None
AUTHENTICATED: frozenset[Role] = frozenset()


@dataclass(frozen=True)
class RouteSpec:
    path: str
    method: str
    endpoint: Callable[..., Any]
    required_roles: Optional[frozenset[Role]]
    status_code: int = 200
    response_model: Any = None
    # slowapi limit string ("10/minute"). The endpoint must accept `request`.
    rate_limit: Optional[str] = None

    @property
    def is_public(self) -> bool:
        return self.required_roles is None


def build_router(specs: Iterable[RouteSpec]) -> APIRouter:
    router = APIRouter()
    for spec in specs:
        endpoint = spec.endpoint
        if spec.rate_limit:
            endpoint = limiter.limit(spec.rate_limit)(endpoint)
        dependencies = [] if spec.is_public else [Depends(require_roles(spec.required_roles))]
        router.add_api_route(
            spec.path,
            endpoint,
            methods=[spec.method],
            status_code=spec.status_code,
            response_model=spec.response_model,
            dependencies=dependencies,
        )
    return router
