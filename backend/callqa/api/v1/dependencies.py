"""
API Dependencies
Shared dependencies for the service container and caller identity
"""
from fastapi import Depends, Request

from callqa.core.container import ServiceContainer
from callqa.domain.exceptions import ServerConfigurationError
from callqa.domain.services.call_orchestrator import CallOrchestrator


def get_container(request: Request) -> ServiceContainer:
    """
    Get the service container built during application startup.

    Raises:
        ServerConfigurationError: If the lifespan hook has not run
    """
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise ServerConfigurationError("Service container is not initialized")
    return container


def get_orchestrator(container: ServiceContainer = Depends(get_container)) -> CallOrchestrator:
    return container.orchestrator


def get_user_id(request: Request, container: ServiceContainer = Depends(get_container)) -> str:
    """
    Resolve the caller identity.

    Authentication is not part of this service; an upstream gateway sets
    the identity header. Requests without it belong to the default user.
    """
    settings = container.settings
    user_id = request.headers.get(settings.user_id_header, "").strip()
    return user_id or settings.default_user_id
