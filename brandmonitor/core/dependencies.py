import hmac
from functools import partial

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from brandmonitor.core.config import settings
from brandmonitor.core.exceptions import UnauthorizedError
from brandmonitor.db.postgres import async_session
from brandmonitor.gateway.base import ClientRegistry
from brandmonitor.gateway.registry import build_adapter


def get_clients(request: Request) -> ClientRegistry:
    """Process-wide provider HTTP clients, created by the lifespan (or lazily)."""
    clients = getattr(request.app.state, "clients", None)
    if clients is None:
        clients = ClientRegistry(timeout=settings.provider_timeout)
        request.app.state.clients = clients
    return clients


def get_adapter_factory(clients: ClientRegistry = Depends(get_clients)):
    return partial(build_adapter, clients=clients, config=settings)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for work that outlives the request (SSE streams)."""
    return async_session


async def verify_cron_secret(
    authorization: str | None = Header(None, description="Bearer <cron secret>"),
) -> None:
    if not settings.cron_secret:
        raise UnauthorizedError("Cron secret is not configured")
    if not authorization or not authorization.startswith("Bearer "):
        raise UnauthorizedError("Invalid authorization header")
    if not hmac.compare_digest(authorization[7:], settings.cron_secret):
        raise UnauthorizedError("Invalid cron secret")
