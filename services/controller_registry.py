"""
Controller Registry - one library controller per signed-in owner.
"""

import asyncio
import logging
from typing import Dict

from core.compositor import Compositor
from core.identity import StaticIdentity
from core.image.loader import ImageLoader
from core.media_repository import MediaRepository
from core.storage import ObjectStorage
from services.library_controller import LibraryController
from services.metadata_probe import MetadataProbe
from services.persistence_gateway import PersistenceGateway

logger = logging.getLogger(__name__)


class ControllerRegistry:
    """Creates and caches LibraryController instances by owner id"""

    def __init__(
        self,
        storage: ObjectStorage,
        repository: MediaRepository,
        loader: ImageLoader,
        compositor: Compositor,
        max_upload_bytes: int,
    ):
        self.storage = storage
        self.repository = repository
        self.loader = loader
        self.compositor = compositor
        self.max_upload_bytes = max_upload_bytes

        self.controllers: Dict[str, LibraryController] = {}
        self.lock = asyncio.Lock()

    async def get(self, owner_id: str) -> LibraryController:
        """
        Controller for an owner, created and loaded on first use.

        Args:
            owner_id: Authenticated owner id

        Returns:
            The owner's LibraryController
        """
        async with self.lock:
            controller = self.controllers.get(owner_id)
            if controller is not None:
                return controller

            gateway = PersistenceGateway(
                storage=self.storage,
                repository=self.repository,
                identity=StaticIdentity(owner_id),
            )
            controller = LibraryController(
                gateway=gateway,
                probe=MetadataProbe(self.loader, self.storage),
                loader=self.loader,
                compositor=self.compositor,
                max_upload_bytes=self.max_upload_bytes,
            )
            await controller.load()
            self.controllers[owner_id] = controller

            logger.info(f"Created library controller for owner {owner_id}")
            return controller

    async def shutdown(self):
        """Wait for pending background work of every controller"""
        for controller in list(self.controllers.values()):
            await controller.wait_for_background_tasks()
        self.controllers.clear()
