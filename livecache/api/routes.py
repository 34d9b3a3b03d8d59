"""Read-only routes over a SubscriptionRegistry."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, Request
from fastapi.encoders import jsonable_encoder

from livecache.api.schemas import (
    HealthResponse,
    ResultsResponse,
    SubscriptionList,
    SubscriptionStatus,
)
from livecache.sync.registry import SubscriptionRegistry
from livecache.sync.subscription import SubscriptionManager

router = APIRouter()


def _registry(request: Request) -> SubscriptionRegistry:
    return request.app.state.registry  # type: ignore[no-any-return]


def _status(name: str, manager: SubscriptionManager) -> SubscriptionStatus:
    error = manager.last_error
    return SubscriptionStatus(
        name=name,
        state=manager.state.value,
        size=manager.size,
        version=manager.version,
        last_error=f"{type(error).__name__}: {error}" if error is not None else None,
    )


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    from livecache import __version__

    return HealthResponse(version=__version__, subscriptions=len(_registry(request)))


@router.get("/subscriptions", response_model=SubscriptionList)
async def list_subscriptions(request: Request) -> SubscriptionList:
    return SubscriptionList(subscriptions=[_status(name, manager) for name, manager in _registry(request)])


@router.get("/subscriptions/{name}", response_model=SubscriptionStatus)
async def get_subscription(name: str, request: Request) -> SubscriptionStatus:
    return _status(name, _registry(request).get(name))


@router.get("/subscriptions/{name}/results", response_model=ResultsResponse)
async def get_results(
    name: str,
    request: Request,
    since_version: Annotated[int | None, Query(ge=0)] = None,
) -> ResultsResponse:
    manager = _registry(request).get(name)
    results = manager.results
    version = manager.version
    if since_version is not None and since_version == version:
        return ResultsResponse(name=name, version=version, changed=False, size=len(results))
    return ResultsResponse(
        name=name,
        version=version,
        changed=True,
        size=len(results),
        documents=jsonable_encoder(list(results)),
    )
