# File: parkslot/infrastructure/repositories.py
"""
Repository Pattern Implementation for Parking Slot Management

Repositories give the application service a collection-like interface to
parking areas, vehicles and users, independent of the storage engine.

Repository Types:
1. ParkingAreaRepository - areas with their embedded slot layout
2. VehicleRepository     - vehicle visits, queried by plate / area / status
3. UserRepository        - users keyed by email, find-or-create

Storage Implementations:
- InMemory*   - for testing and development
- SQLAlchemy* - for relational databases (slots stored as a JSON column)
- Mongo*      - for document databases (slots embedded in the area document)

Every `get` returns a detached copy; callers mutate it and hand it back
through `update`.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional
import logging
import threading

from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey, Integer, JSON, String,
    create_engine, select
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from pymongo import ASCENDING, ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from ..domain.models import (
    ACTIVE_VEHICLE_STATUSES, FALLBACK_VEHICLE_TYPE, ParkingArea, PaymentStatus,
    Slot, TypeCapacity, User, Vehicle, VehicleStatus, normalize_vehicle_type
)

_ACTIVE_STATUS_VALUES = sorted(status.value for status in ACTIVE_VEHICLE_STATUSES)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes read back from the database"""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ============================================================================
# REPOSITORY INTERFACES
# ============================================================================

class ParkingAreaRepository(ABC):
    """Parking area storage interface"""

    @abstractmethod
    def add(self, area: ParkingArea) -> ParkingArea:
        pass

    @abstractmethod
    def get(self, area_id: str) -> Optional[ParkingArea]:
        pass

    @abstractmethod
    def update(self, area: ParkingArea) -> ParkingArea:
        """
        Replace the stored area, slots included
        Raises: KeyError if the area does not exist
        """
        pass

    @abstractmethod
    def list(self, active_only: bool = False) -> List[ParkingArea]:
        pass


class VehicleRepository(ABC):
    """Vehicle visit storage interface"""

    @abstractmethod
    def add(self, vehicle: Vehicle) -> Vehicle:
        pass

    @abstractmethod
    def get(self, vehicle_id: str) -> Optional[Vehicle]:
        pass

    @abstractmethod
    def update(self, vehicle: Vehicle) -> Vehicle:
        pass

    @abstractmethod
    def find_active_by_plate(self, plate: str) -> Optional[Vehicle]:
        """Parked or Paid vehicle with this plate, in any area"""
        pass

    @abstractmethod
    def find_active_by_area(self, area_id: str) -> List[Vehicle]:
        pass

    @abstractmethod
    def list_active(self) -> List[Vehicle]:
        pass


class UserRepository(ABC):
    """User storage interface"""

    @abstractmethod
    def get(self, user_id: str) -> Optional[User]:
        pass

    @abstractmethod
    def find_by_email(self, email: str) -> Optional[User]:
        pass

    @abstractmethod
    def get_or_create(self, email: str, name: str, phone: Optional[str] = None) -> User:
        """Return the user with this email, creating it on first sight"""
        pass


@dataclass
class RepositoryBundle:
    """The three repositories one service instance works with"""
    areas: ParkingAreaRepository
    vehicles: VehicleRepository
    users: UserRepository


# ============================================================================
# IN-MEMORY REPOSITORIES (For Testing)
# ============================================================================

class InMemoryRepository:
    """Thread-safe dict storage holding serialized copies"""

    def __init__(self):
        self._storage: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.RLock()
        self._logger = logging.getLogger(self.__class__.__name__)

    def _put(self, entity_id: str, data: Dict[str, Any], must_exist: bool) -> None:
        with self._lock:
            if must_exist and entity_id not in self._storage:
                raise KeyError(f"Entity {entity_id} not found")
            self._storage[entity_id] = data
        self._logger.debug(f"Stored entity {entity_id}")

    def _values(self) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._storage.values())

    def count(self) -> int:
        return len(self._storage)


class InMemoryParkingAreaRepository(InMemoryRepository, ParkingAreaRepository):

    def add(self, area: ParkingArea) -> ParkingArea:
        self._put(area.id, area.to_dict(), must_exist=False)
        return area

    def get(self, area_id: str) -> Optional[ParkingArea]:
        data = self._storage.get(str(area_id))
        return ParkingArea.from_dict(data) if data else None

    def update(self, area: ParkingArea) -> ParkingArea:
        self._put(area.id, area.to_dict(), must_exist=True)
        return area

    def list(self, active_only: bool = False) -> List[ParkingArea]:
        areas = [ParkingArea.from_dict(data) for data in self._values()]
        return [area for area in areas if area.active or not active_only]


class InMemoryVehicleRepository(InMemoryRepository, VehicleRepository):

    def add(self, vehicle: Vehicle) -> Vehicle:
        self._put(vehicle.id, vehicle.to_dict(), must_exist=False)
        return vehicle

    def get(self, vehicle_id: str) -> Optional[Vehicle]:
        data = self._storage.get(str(vehicle_id))
        return Vehicle.from_dict(data) if data else None

    def update(self, vehicle: Vehicle) -> Vehicle:
        self._put(vehicle.id, vehicle.to_dict(), must_exist=True)
        return vehicle

    def find_active_by_plate(self, plate: str) -> Optional[Vehicle]:
        for data in self._values():
            if data["plate"] == plate and data["status"] in _ACTIVE_STATUS_VALUES:
                return Vehicle.from_dict(data)
        return None

    def find_active_by_area(self, area_id: str) -> List[Vehicle]:
        return [
            Vehicle.from_dict(data) for data in self._values()
            if str(data["parking_area_id"]) == str(area_id) and data["status"] in _ACTIVE_STATUS_VALUES
        ]

    def list_active(self) -> List[Vehicle]:
        return [Vehicle.from_dict(data) for data in self._values() if data["status"] in _ACTIVE_STATUS_VALUES]


class InMemoryUserRepository(InMemoryRepository, UserRepository):

    def get(self, user_id: str) -> Optional[User]:
        data = self._storage.get(str(user_id))
        return User.from_dict(data) if data else None

    def find_by_email(self, email: str) -> Optional[User]:
        for data in self._values():
            if data["email"] == email:
                return User.from_dict(data)
        return None

    def get_or_create(self, email: str, name: str, phone: Optional[str] = None) -> User:
        with self._lock:
            existing = self.find_by_email(email)
            if existing is not None:
                return existing
            user = User(name=name, email=email, phone=phone)
            self._put(user.id, user.to_dict(), must_exist=False)
        self._logger.info(f"Created user {email}")
        return user


# ============================================================================
# SQLALCHEMY ORM MODELS
# ============================================================================

Base = declarative_base()


class ParkingAreaModel(Base):
    """SQLAlchemy model for ParkingArea, slot layout embedded as JSON"""
    __tablename__ = 'parking_areas'

    id = Column(String(36), primary_key=True)
    name = Column(String(120), nullable=False, index=True)
    address = Column(String(255), nullable=False)
    latitude = Column(Float)
    longitude = Column(Float)
    total_slots = Column(Integer, nullable=False)
    car_slots = Column(Integer, nullable=False, default=0)
    bike_slots = Column(Integer, nullable=False, default=0)
    van_slots = Column(Integer, nullable=False, default=0)
    three_wheeler_slots = Column(Integer, nullable=False, default=0)
    available_slots = Column(Integer, nullable=False)
    occupied_slots = Column(Integer, nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True, index=True)
    created_by = Column(String(255))
    slots = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class UserModel(Base):
    """SQLAlchemy model for User"""
    __tablename__ = 'users'

    id = Column(String(36), primary_key=True)
    name = Column(String(120), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    phone = Column(String(20))
    role = Column(String(20), nullable=False, default="user")
    created_at = Column(DateTime(timezone=True), nullable=False)


class VehicleModel(Base):
    """SQLAlchemy model for Vehicle"""
    __tablename__ = 'vehicles'

    id = Column(String(36), primary_key=True)
    plate = Column(String(20), nullable=False, index=True)
    vehicle_type = Column(String(20), nullable=False)
    parking_area_id = Column(String(36), ForeignKey('parking_areas.id'), index=True)
    slot_number = Column(Integer)
    status = Column(String(10), nullable=False, index=True)
    payment_status = Column(String(10), nullable=False)
    user_id = Column(String(36), ForeignKey('users.id'))
    user_email = Column(String(255))
    user_name = Column(String(120))
    user_phone = Column(String(20))
    entry_time = Column(DateTime(timezone=True), nullable=False)
    exit_time = Column(DateTime(timezone=True))
    created_by = Column(String(255))


# ============================================================================
# MAPPER: Domain <-> ORM
# ============================================================================

class Mapper:
    """Maps between domain entities and ORM models"""

    @staticmethod
    def area_to_orm(area: ParkingArea, model: Optional[ParkingAreaModel] = None) -> ParkingAreaModel:
        model = model or ParkingAreaModel(id=area.id)
        model.name = area.name
        model.address = area.address
        model.latitude = area.latitude
        model.longitude = area.longitude
        model.total_slots = area.total_slots
        model.car_slots = area.capacity.car
        model.bike_slots = area.capacity.bike
        model.van_slots = area.capacity.van
        model.three_wheeler_slots = area.capacity.three_wheeler
        model.available_slots = area.available_slots
        model.occupied_slots = area.occupied_slots
        model.active = area.active
        model.created_by = area.created_by
        # A new list object so the JSON column is flagged dirty
        model.slots = [slot.to_dict() for slot in area.slots]
        model.created_at = area.created_at
        model.updated_at = area.updated_at
        return model

    @staticmethod
    def area_to_domain(model: ParkingAreaModel) -> ParkingArea:
        return ParkingArea(
            id=model.id,
            name=model.name,
            address=model.address,
            latitude=model.latitude,
            longitude=model.longitude,
            total_slots=model.total_slots,
            capacity=TypeCapacity(
                car=model.car_slots or 0,
                bike=model.bike_slots or 0,
                van=model.van_slots or 0,
                three_wheeler=model.three_wheeler_slots or 0,
            ),
            available_slots=model.available_slots,
            occupied_slots=model.occupied_slots or 0,
            active=model.active,
            created_by=model.created_by,
            slots=[Slot.from_dict(item) for item in model.slots or []],
            created_at=_as_utc(model.created_at),
            updated_at=_as_utc(model.updated_at),
        )

    @staticmethod
    def vehicle_to_orm(vehicle: Vehicle, model: Optional[VehicleModel] = None) -> VehicleModel:
        model = model or VehicleModel(id=vehicle.id)
        model.plate = vehicle.plate
        model.vehicle_type = vehicle.vehicle_type.value
        model.parking_area_id = vehicle.parking_area_id
        model.slot_number = vehicle.slot_number
        model.status = vehicle.status.value
        model.payment_status = vehicle.payment_status.value
        model.user_id = vehicle.user_id
        model.user_email = vehicle.user_email
        model.user_name = vehicle.user_name
        model.user_phone = vehicle.user_phone
        model.entry_time = vehicle.entry_time
        model.exit_time = vehicle.exit_time
        model.created_by = vehicle.created_by
        return model

    @staticmethod
    def vehicle_to_domain(model: VehicleModel) -> Vehicle:
        return Vehicle(
            id=model.id,
            plate=model.plate,
            vehicle_type=normalize_vehicle_type(model.vehicle_type) or FALLBACK_VEHICLE_TYPE,
            parking_area_id=model.parking_area_id,
            slot_number=model.slot_number,
            status=VehicleStatus(model.status),
            payment_status=PaymentStatus(model.payment_status),
            user_id=model.user_id,
            user_email=model.user_email,
            user_name=model.user_name,
            user_phone=model.user_phone,
            entry_time=_as_utc(model.entry_time),
            exit_time=_as_utc(model.exit_time),
            created_by=model.created_by,
        )

    @staticmethod
    def user_to_domain(model: UserModel) -> User:
        return User(
            id=model.id,
            name=model.name,
            email=model.email,
            phone=model.phone,
            role=model.role,
            created_at=_as_utc(model.created_at),
        )


# ============================================================================
# SQLALCHEMY REPOSITORIES
# ============================================================================

def create_session_factory(database_url: str, echo: bool = False) -> Callable[[], Session]:
    """
    Create the engine, the tables and a session factory
    In-memory SQLite shares one connection so every session sees the same data.
    """
    engine_kwargs: Dict[str, Any] = {"echo": echo}
    if database_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url or database_url.rstrip("/") == "sqlite:":
            engine_kwargs["poolclass"] = StaticPool
    engine = create_engine(database_url, **engine_kwargs)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)


class SQLAlchemyRepository:
    """Base SQLAlchemy repository, one session and transaction per call"""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory
        self._logger = logging.getLogger(self.__class__.__name__)

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            self._logger.error(f"Database error: {e}")
            raise
        finally:
            session.close()


class SQLAlchemyParkingAreaRepository(SQLAlchemyRepository, ParkingAreaRepository):

    def add(self, area: ParkingArea) -> ParkingArea:
        with self.session_scope() as session:
            session.add(Mapper.area_to_orm(area))
        self._logger.debug(f"Added parking area {area.id}")
        return area

    def get(self, area_id: str) -> Optional[ParkingArea]:
        with self.session_scope() as session:
            model = session.get(ParkingAreaModel, str(area_id))
            return Mapper.area_to_domain(model) if model else None

    def update(self, area: ParkingArea) -> ParkingArea:
        with self.session_scope() as session:
            model = session.get(ParkingAreaModel, area.id)
            if model is None:
                raise KeyError(f"Parking area {area.id} not found")
            Mapper.area_to_orm(area, model)
        self._logger.debug(f"Updated parking area {area.id}")
        return area

    def list(self, active_only: bool = False) -> List[ParkingArea]:
        with self.session_scope() as session:
            query = select(ParkingAreaModel).order_by(ParkingAreaModel.name)
            if active_only:
                query = query.where(ParkingAreaModel.active.is_(True))
            return [Mapper.area_to_domain(model) for model in session.scalars(query)]


class SQLAlchemyVehicleRepository(SQLAlchemyRepository, VehicleRepository):

    def add(self, vehicle: Vehicle) -> Vehicle:
        with self.session_scope() as session:
            session.add(Mapper.vehicle_to_orm(vehicle))
        self._logger.debug(f"Added vehicle {vehicle.id} ({vehicle.plate})")
        return vehicle

    def get(self, vehicle_id: str) -> Optional[Vehicle]:
        with self.session_scope() as session:
            model = session.get(VehicleModel, str(vehicle_id))
            return Mapper.vehicle_to_domain(model) if model else None

    def update(self, vehicle: Vehicle) -> Vehicle:
        with self.session_scope() as session:
            model = session.get(VehicleModel, vehicle.id)
            if model is None:
                raise KeyError(f"Vehicle {vehicle.id} not found")
            Mapper.vehicle_to_orm(vehicle, model)
        return vehicle

    def find_active_by_plate(self, plate: str) -> Optional[Vehicle]:
        with self.session_scope() as session:
            model = session.scalars(
                select(VehicleModel).where(
                    VehicleModel.plate == plate,
                    VehicleModel.status.in_(_ACTIVE_STATUS_VALUES),
                )
            ).first()
            return Mapper.vehicle_to_domain(model) if model else None

    def find_active_by_area(self, area_id: str) -> List[Vehicle]:
        with self.session_scope() as session:
            models = session.scalars(
                select(VehicleModel).where(
                    VehicleModel.parking_area_id == str(area_id),
                    VehicleModel.status.in_(_ACTIVE_STATUS_VALUES),
                )
            )
            return [Mapper.vehicle_to_domain(model) for model in models]

    def list_active(self) -> List[Vehicle]:
        with self.session_scope() as session:
            models = session.scalars(
                select(VehicleModel).where(VehicleModel.status.in_(_ACTIVE_STATUS_VALUES))
            )
            return [Mapper.vehicle_to_domain(model) for model in models]


class SQLAlchemyUserRepository(SQLAlchemyRepository, UserRepository):

    def get(self, user_id: str) -> Optional[User]:
        with self.session_scope() as session:
            model = session.get(UserModel, str(user_id))
            return Mapper.user_to_domain(model) if model else None

    def find_by_email(self, email: str) -> Optional[User]:
        with self.session_scope() as session:
            model = session.scalars(select(UserModel).where(UserModel.email == email)).first()
            return Mapper.user_to_domain(model) if model else None

    def get_or_create(self, email: str, name: str, phone: Optional[str] = None) -> User:
        existing = self.find_by_email(email)
        if existing is not None:
            return existing

        user = User(name=name, email=email, phone=phone)
        try:
            with self.session_scope() as session:
                session.add(UserModel(
                    id=user.id,
                    name=user.name,
                    email=user.email,
                    phone=user.phone,
                    role=user.role,
                    created_at=user.created_at,
                ))
        except IntegrityError:
            # Created concurrently by another request
            existing = self.find_by_email(email)
            if existing is None:
                raise
            return existing

        self._logger.info(f"Created user {email}")
        return user


# ============================================================================
# MONGODB REPOSITORIES
# ============================================================================

class MongoRepository:
    """Base MongoDB repository over one collection, `_id` holds the entity id"""

    collection_name: str = ""

    def __init__(self, database: Database):
        self.collection = database[self.collection_name]
        self._logger = logging.getLogger(self.__class__.__name__)

    @staticmethod
    def _to_document(data: Dict[str, Any]) -> Dict[str, Any]:
        document = dict(data)
        document["_id"] = document.pop("id")
        return document

    @staticmethod
    def _from_document(document: Dict[str, Any]) -> Dict[str, Any]:
        data = dict(document)
        data["id"] = str(data.pop("_id"))
        return data

    def _replace(self, entity_id: str, document: Dict[str, Any]) -> None:
        try:
            result = self.collection.replace_one({"_id": entity_id}, document)
        except PyMongoError as e:
            self._logger.error(f"MongoDB error updating {entity_id}: {e}")
            raise
        if result.matched_count == 0:
            raise KeyError(f"Entity {entity_id} not found")


class MongoParkingAreaRepository(MongoRepository, ParkingAreaRepository):
    collection_name = "parking_areas"

    def _area_document(self, area: ParkingArea) -> Dict[str, Any]:
        document = self._to_document(area.to_dict())
        document["created_at"] = area.created_at
        document["updated_at"] = area.updated_at
        return document

    def _area(self, document: Dict[str, Any]) -> ParkingArea:
        area = ParkingArea.from_dict(self._from_document(document))
        area.created_at = _as_utc(area.created_at)
        area.updated_at = _as_utc(area.updated_at)
        return area

    def add(self, area: ParkingArea) -> ParkingArea:
        self.collection.insert_one(self._area_document(area))
        self._logger.debug(f"Added parking area {area.id}")
        return area

    def get(self, area_id: str) -> Optional[ParkingArea]:
        document = self.collection.find_one({"_id": str(area_id)})
        return self._area(document) if document else None

    def update(self, area: ParkingArea) -> ParkingArea:
        self._replace(area.id, self._area_document(area))
        return area

    def list(self, active_only: bool = False) -> List[ParkingArea]:
        query = {"active": True} if active_only else {}
        return [self._area(document) for document in self.collection.find(query).sort("name", ASCENDING)]


class MongoVehicleRepository(MongoRepository, VehicleRepository):
    collection_name = "vehicles"

    def ensure_indexes(self) -> None:
        self.collection.create_index([("plate", ASCENDING), ("status", ASCENDING)])
        self.collection.create_index([("parking_area_id", ASCENDING), ("status", ASCENDING)])

    def _vehicle_document(self, vehicle: Vehicle) -> Dict[str, Any]:
        document = self._to_document(vehicle.to_dict())
        document["entry_time"] = vehicle.entry_time
        document["exit_time"] = vehicle.exit_time
        return document

    def _vehicle(self, document: Dict[str, Any]) -> Vehicle:
        vehicle = Vehicle.from_dict(self._from_document(document))
        vehicle.entry_time = _as_utc(vehicle.entry_time)
        vehicle.exit_time = _as_utc(vehicle.exit_time)
        return vehicle

    def add(self, vehicle: Vehicle) -> Vehicle:
        self.collection.insert_one(self._vehicle_document(vehicle))
        return vehicle

    def get(self, vehicle_id: str) -> Optional[Vehicle]:
        document = self.collection.find_one({"_id": str(vehicle_id)})
        return self._vehicle(document) if document else None

    def update(self, vehicle: Vehicle) -> Vehicle:
        self._replace(vehicle.id, self._vehicle_document(vehicle))
        return vehicle

    def find_active_by_plate(self, plate: str) -> Optional[Vehicle]:
        document = self.collection.find_one({"plate": plate, "status": {"$in": _ACTIVE_STATUS_VALUES}})
        return self._vehicle(document) if document else None

    def find_active_by_area(self, area_id: str) -> List[Vehicle]:
        cursor = self.collection.find({"parking_area_id": str(area_id), "status": {"$in": _ACTIVE_STATUS_VALUES}})
        return [self._vehicle(document) for document in cursor]

    def list_active(self) -> List[Vehicle]:
        cursor = self.collection.find({"status": {"$in": _ACTIVE_STATUS_VALUES}})
        return [self._vehicle(document) for document in cursor]


class MongoUserRepository(MongoRepository, UserRepository):
    collection_name = "users"

    def ensure_indexes(self) -> None:
        self.collection.create_index("email", unique=True)

    def _user(self, document: Dict[str, Any]) -> User:
        user = User.from_dict(self._from_document(document))
        user.created_at = _as_utc(user.created_at)
        return user

    def get(self, user_id: str) -> Optional[User]:
        document = self.collection.find_one({"_id": str(user_id)})
        return self._user(document) if document else None

    def find_by_email(self, email: str) -> Optional[User]:
        document = self.collection.find_one({"email": email})
        return self._user(document) if document else None

    def get_or_create(self, email: str, name: str, phone: Optional[str] = None) -> User:
        candidate = User(name=name, email=email, phone=phone)
        insert = self._to_document(candidate.to_dict())
        insert["created_at"] = candidate.created_at
        insert.pop("email")
        document = self.collection.find_one_and_update(
            {"email": email},
            {"$setOnInsert": insert},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return self._user(document)


# ============================================================================
# REPOSITORY FACTORY
# ============================================================================

class RepositoryFactory:
    """Factory for creating repository bundles per storage backend"""

    @staticmethod
    def create_in_memory() -> RepositoryBundle:
        return RepositoryBundle(
            areas=InMemoryParkingAreaRepository(),
            vehicles=InMemoryVehicleRepository(),
            users=InMemoryUserRepository(),
        )

    @staticmethod
    def create_sqlalchemy(database_url: str, echo: bool = False) -> RepositoryBundle:
        session_factory = create_session_factory(database_url, echo=echo)
        return RepositoryBundle(
            areas=SQLAlchemyParkingAreaRepository(session_factory),
            vehicles=SQLAlchemyVehicleRepository(session_factory),
            users=SQLAlchemyUserRepository(session_factory),
        )

    @staticmethod
    def create_mongodb(database: Database) -> RepositoryBundle:
        vehicles = MongoVehicleRepository(database)
        users = MongoUserRepository(database)
        vehicles.ensure_indexes()
        users.ensure_indexes()
        return RepositoryBundle(
            areas=MongoParkingAreaRepository(database),
            vehicles=vehicles,
            users=users,
        )
