from __future__ import annotations

from contextvars import ContextVar

from fastapi.routing import APIRoute
from starlette.requests import Request


# Read by the slow query logger in recordbook.db; scripts and bootstrap keep the default.
current_endpoint: ContextVar[str] = ContextVar('current_endpoint', default='cli')


class EndpointNameRoute(APIRoute):
    """Tags every request with "<METHOD> <path template>" for slow query logs."""

    def get_route_handler(self):
        handle = super().get_route_handler()

        async def tagged_handler(request: Request):
            token = current_endpoint.set(f"{request.method} {self.path}")
            try:
                return await handle(request)
            finally:
                current_endpoint.reset(token)

        return tagged_handler
