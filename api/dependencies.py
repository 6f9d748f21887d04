"""
Shared FastAPI dependencies for the Media Pipeline service.
Centralizes common dependencies to eliminate code duplication.
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from api.exceptions import NotAuthenticatedError, exception_for_kind
from core.identity import TokenIdentityResolver
from core.media_repository import MediaRepository
from core.storage import ObjectStorage
from schemas import ActionResult
from services.controller_registry import ControllerRegistry
from services.library_controller import LibraryController

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


class Collaborators:
    """Container for the long-lived service objects."""

    def __init__(
        self,
        storage: ObjectStorage,
        repository: MediaRepository,
        identity_resolver: TokenIdentityResolver,
        registry: ControllerRegistry,
    ):
        self.storage = storage
        self.repository = repository
        self.identity_resolver = identity_resolver
        self.registry = registry


def get_collaborators(request: Request) -> Collaborators:
    """
    Get all collaborator instances from app state.

    Args:
        request: FastAPI request object

    Returns:
        Collaborators container

    Raises:
        HTTPException: If the app state was not initialized
    """
    try:
        return Collaborators(
            storage=request.app.state.storage,
            repository=request.app.state.repository,
            identity_resolver=request.app.state.identity_resolver,
            registry=request.app.state.registry,
        )
    except AttributeError as e:
        logger.error(f"Collaborators not initialized in app state: {e}")
        raise HTTPException(
            status_code=500, detail="Internal server error: Services not initialized"
        )


def get_storage(collaborators: Collaborators = Depends(get_collaborators)) -> ObjectStorage:
    """Get ObjectStorage instance."""
    return collaborators.storage


def get_repository(collaborators: Collaborators = Depends(get_collaborators)) -> MediaRepository:
    """Get MediaRepository instance."""
    return collaborators.repository


def optional_owner(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    collaborators: Collaborators = Depends(get_collaborators),
) -> Optional[str]:
    """
    Resolve the bearer token to an owner id.

    Returns:
        Owner id if authenticated, None otherwise
    """
    if credentials is None:
        return None
    return collaborators.identity_resolver.resolve(credentials.credentials)


def require_owner(owner_id: Optional[str] = Depends(optional_owner)) -> str:
    """
    Owner id of the request.

    Raises:
        NotAuthenticatedError: Missing or unknown token
    """
    if owner_id is None:
        raise NotAuthenticatedError()
    return owner_id


async def get_library_controller(
    owner_id: str = Depends(require_owner),
    collaborators: Collaborators = Depends(get_collaborators),
) -> LibraryController:
    """
    Get the owner's library controller.

    Args:
        owner_id: Authenticated owner
        collaborators: Collaborators dependency

    Returns:
        LibraryController instance
    """
    return await collaborators.registry.get(owner_id)


def ensure_success(result: ActionResult) -> ActionResult:
    """
    Raise the exception matching a failed action result.

    Args:
        result: Controller action result

    Returns:
        The result unchanged when it succeeded
    """
    if not result.success:
        raise exception_for_kind(result.error_kind, result.message)
    return result
