"""Dependency injection for the application lifespan.

``inject`` turns a lifespan function with ``Depends()`` parameters into a
regular FastAPI lifespan.  The dependency DAG (Redis → state backend →
sweeper, analytics, ...) is resolved by FastAPI's ``solve_dependencies``
against a synthetic request, so ordering is never written by hand.

Based on https://github.com/fastapi/fastapi/discussions/11742
"""

from contextlib import AsyncExitStack, asynccontextmanager
from functools import partial
from typing import Any, Callable

from fastapi import FastAPI, Request
from fastapi.dependencies.utils import get_dependant, solve_dependencies

_LIFESPAN_SCOPE_HEADER = (b"x-request-scope", b"lifespan")


def get_app(request: Request) -> FastAPI:
    """Lifespan dependency returning the application being started."""
    return request.app


def _lifespan_request(app: FastAPI, stack: AsyncExitStack) -> Request:
    return Request(
        scope={
            "type": "http",
            "http_version": "1.1",
            "method": "GET",
            "scheme": "http",
            "path": "/",
            "raw_path": b"/",
            "query_string": b"",
            "root_path": "",
            "headers": (_LIFESPAN_SCOPE_HEADER,),
            "client": ("localhost", 80),
            "server": ("localhost", 80),
            "state": app.state,
            "app": app,
            # Request-scoped and function-scoped dependency cleanups both
            # belong to the lifespan.
            "fastapi_inner_astack": stack,
            "fastapi_function_astack": stack,
        }
    )


def inject(
    lifespan: Callable[..., Any],
) -> Callable[[FastAPI], Any]:
    """Resolve ``Depends()`` parameters of *lifespan* at startup.

    Each dependency generator owns its setup and its teardown (code after
    ``yield``); the ``AsyncExitStack`` unwinds them in reverse order on
    shutdown.  ``app.dependency_overrides`` is honoured, so tests can swap
    e.g. ``build_redis`` for a stub.
    """

    @asynccontextmanager
    async def wrapper(app: FastAPI):  # type: ignore[misc]
        dependant = get_dependant(path="/", call=partial(lifespan, app))
        async with AsyncExitStack() as stack:
            solved = await solve_dependencies(
                request=_lifespan_request(app, stack),
                dependant=dependant,
                async_exit_stack=stack,
                embed_body_fields=False,
                dependency_overrides_provider=app,
            )
            async with asynccontextmanager(lifespan)(app, **solved.values):
                yield

    return wrapper
