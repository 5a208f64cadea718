"""
Node controller, owns the storage and the social state machine
of the running process.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from src.config.settings import settings
from src.services.social import SocialService
from src.services.storage import StorageService

logger = logging.getLogger(__name__)


class INodeService(ABC):
    """
    Abstract Interface for node's management service.
    Defines the contract for the node's state initialization
    and management.
    """

    @property
    @abstractmethod
    def social(self) -> Optional[SocialService]:
        """Returns the social state machine (if initialized)"""
        pass

    @property
    @abstractmethod
    def storage(self) -> Optional[StorageService]:
        """Returns the active storage service (if set)"""
        pass

    @abstractmethod
    def is_initialized(self) -> bool:
        """Checks if node is active and ready"""
        pass

    @abstractmethod
    async def initialize(self, db_path: Optional[str] = None) -> None:
        """
        Opens the storage and builds the social state machine on top of it.
        """
        pass

    @abstractmethod
    async def shutdown(self) -> None:
        """
        Gracefully shuts the node down, releasing resources.
        """
        pass


class LocalNodeService(INodeService):
    """
    Single process node backed by a local SQLite database.
    """

    def __init__(self) -> None:
        self._storage: Optional[StorageService] = None
        self._social: Optional[SocialService] = None

    @property
    def social(self) -> Optional[SocialService]:
        return self._social

    @property
    def storage(self) -> Optional[StorageService]:
        return self._storage

    def is_initialized(self) -> bool:
        return self._social is not None

    async def initialize(self, db_path: Optional[str] = None) -> None:
        db_path = db_path or settings.db_name

        if self.is_initialized():
            if self._storage and self._storage.db_name != db_path:
                raise ValueError(f"Node is already initialized on {self._storage.db_name}")
            return

        logger.info("Initializing node on database: %s", db_path)

        self._storage = StorageService(db_path)
        self._social = SocialService(self._storage)

        logger.info("Node ready. Registered accounts: %d", self._social.count_accounts())

    async def shutdown(self) -> None:
        logger.info("Shutting down services...")

        self._social = None
        self._storage = None
        logger.info("Node shutdown complete.")


node_service: INodeService = LocalNodeService()
