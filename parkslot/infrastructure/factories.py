# File: parkslot/infrastructure/factories.py
"""
Factory Pattern Implementation for wiring the slot management service

ServiceFactory turns Settings into a ready SlotService: repositories for
the configured backend, the area lock manager, the event sink and the slot
selection strategy. Clients (pymongo, redis) can be injected for testing.
"""

from typing import Optional
import logging

import redis
from pymongo import MongoClient

from ..config import Settings
from ..domain.strategies import create_slot_selection_strategy
from .locking import AreaLockManager, InProcessAreaLockManager, RedisAreaLockManager
from .messaging import EventBus, EventSink, LoggingEventHandler, RedisEventSink
from .repositories import RepositoryBundle, RepositoryFactory


class ServiceFactory:
    """Factory for creating application services"""

    def __init__(
        self,
        settings: Settings,
        redis_client: Optional[redis.Redis] = None,
        mongo_client: Optional[MongoClient] = None
    ):
        self.settings = settings
        self._redis_client = redis_client
        self._mongo_client = mongo_client
        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    def redis_client(self) -> redis.Redis:
        if self._redis_client is None:
            self._redis_client = redis.Redis.from_url(self.settings.redis_url)
        return self._redis_client

    @property
    def mongo_client(self) -> MongoClient:
        if self._mongo_client is None:
            self._mongo_client = MongoClient(self.settings.mongodb_uri, tz_aware=True)
        return self._mongo_client

    def create_repositories(self) -> RepositoryBundle:
        backend = self.settings.backend
        if backend == "sqlalchemy":
            bundle = RepositoryFactory.create_sqlalchemy(self.settings.database_url)
        elif backend == "mongodb":
            bundle = RepositoryFactory.create_mongodb(self.mongo_client[self.settings.mongodb_database])
        elif backend == "memory":
            bundle = RepositoryFactory.create_in_memory()
        else:
            raise ValueError(f"Unsupported storage backend: {backend}")
        self._logger.info(f"Repositories initialized ({backend})")
        return bundle

    def create_lock_manager(self) -> AreaLockManager:
        if self.settings.lock_backend == "redis":
            return RedisAreaLockManager(
                self.redis_client,
                lease_seconds=self.settings.lock_timeout,
                wait_seconds=self.settings.lock_wait,
            )
        return InProcessAreaLockManager(wait_seconds=self.settings.lock_wait)

    def create_event_sink(self) -> EventSink:
        if self.settings.events == "redis":
            return RedisEventSink(self.redis_client)
        bus = EventBus()
        bus.subscribe(LoggingEventHandler())
        return bus

    def create_slot_service(self) -> 'SlotService':
        """Create SlotService with dependencies"""
        from ..application.slot_service import SlotService

        repositories = self.create_repositories()
        service = SlotService(
            areas=repositories.areas,
            vehicles=repositories.vehicles,
            users=repositories.users,
            locks=self.create_lock_manager(),
            events=self.create_event_sink(),
            selection_strategy=create_slot_selection_strategy(self.settings.slot_strategy),
        )
        self._logger.info(
            f"Slot service ready (locks: {self.settings.lock_backend}, events: {self.settings.events}, "
            f"strategy: {self.settings.slot_strategy})"
        )
        return service

    def create_command_handler(self) -> 'ParkingCommandHandler':
        """Create ParkingCommandHandler with dependencies"""
        from ..application.commands import ParkingCommandHandler

        return ParkingCommandHandler(self.create_slot_service())
