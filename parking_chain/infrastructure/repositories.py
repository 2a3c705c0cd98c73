# File: parking_chain/infrastructure/repositories.py
"""
Repository Pattern Implementation for the Parking Chain engine

Repositories load a whole ParkingChain and save it back, hiding the storage
behind one collection-like interface.

Storage Implementations:
- FileChainRepository - the line-oriented record file used by the console
  application (one parkingLot/area/vehicle record per line)
- SQLAlchemyChainRepository - a relational snapshot of the same chain that
  also keeps entrance counts and loyalty flags

Record file layout:
    parkingLot,<name>,<entryGateCount>
    area,<name>,<motorcycle>,<car>,<van>,<bus>,<truck>
    vehicle,<class>,<plate>,<subscriptionPurchasedAt|null>,<entry>,<exit>

An area belongs to the last parkingLot above it and a vehicle to the last
area above it. Every vehicle line is replayed as one admission, so the
loyalty flags are recomputed on load rather than read back.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Union
import logging

from pydantic import ValidationError
from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Integer, String, create_engine
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, relationship, sessionmaker

from ..application.dtos import AreaRecord, BaseDTO, ParkingLotRecord, VehicleRecord
from ..domain.aggregates import Area, EnginePolicies, ParkingChain, ParkingLot
from ..domain.exceptions import (
    InvalidFieldError, InvalidLineLengthError, InvalidVehicleTypeError,
    ParkingChainError
)
from ..domain.models import ParkingInterval, Subscription, Vehicle, VehicleClass


Clock = Callable[[], datetime]


# ============================================================================
# REPOSITORY INTERFACE
# ============================================================================

class ChainRepository(ABC):
    """Base repository interface for a whole parking chain"""

    @abstractmethod
    def load(self) -> ParkingChain:
        """Build the chain from storage"""
        pass

    @abstractmethod
    def save(self, chain: ParkingChain) -> None:
        """Replace the stored chain with the given one"""
        pass


# ============================================================================
# RECORD CODEC
# ============================================================================

class RecordCodec:
    """Converts between record file lines and record DTOs"""

    SEPARATOR = ","

    RECORD_FIELDS = {
        "parkingLot": 3,
        "area": 2 + len(VehicleClass),
        "vehicle": 6,
    }

    @classmethod
    def parse_line(cls, line: str, line_number: Optional[int] = None) -> BaseDTO:
        """
        Parse one line into its record DTO

        Raises: InvalidFieldError, InvalidLineLengthError, InvalidVehicleTypeError
        """
        fields = line.rstrip("\r\n").split(cls.SEPARATOR)
        record_type = fields[0]

        expected = cls.RECORD_FIELDS.get(record_type)
        if expected is None:
            raise InvalidFieldError(
                f"The introduced field '{record_type}' is not a valid one", line_number
            )

        if len(fields) != expected:
            raise InvalidLineLengthError(
                f"Invalid number of fields ({len(fields)} instead of {expected}) "
                f"for type {record_type}.",
                line_number
            )

        try:
            if record_type == "parkingLot":
                return ParkingLotRecord(name=fields[1], entry_gate_count=fields[2])
            if record_type == "area":
                return AreaRecord(name=fields[1], capacities=fields[2:])
            return VehicleRecord(
                vehicle_class=fields[1],
                plate=fields[2],
                subscription_purchased_at=fields[3],
                entry=fields[4],
                exit=fields[5]
            )
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in e.errors()
            )
            raise InvalidFieldError(
                f"Invalid {record_type} record ({problems})", line_number
            ) from e
        except InvalidVehicleTypeError as e:
            if line_number is None:
                raise
            raise InvalidVehicleTypeError(f"Line {line_number}: {e}") from e

    @classmethod
    def format_record(cls, record: BaseDTO) -> str:
        return cls.SEPARATOR.join(record.to_fields())

    @staticmethod
    def lot_to_record(lot: ParkingLot) -> ParkingLotRecord:
        return ParkingLotRecord(name=lot.name, entry_gate_count=lot.entry_gate_count)

    @staticmethod
    def area_to_record(area: Area) -> AreaRecord:
        return AreaRecord(name=area.name, capacities=area.capacity_values())

    @staticmethod
    def vehicle_to_records(vehicle: Vehicle) -> List[VehicleRecord]:
        """One record per interval; the loyalty flag is not part of the format"""
        purchased_at = None
        if vehicle.subscription is not None:
            purchased_at = vehicle.subscription.purchased_at
        return [
            VehicleRecord(
                vehicle_class=vehicle.vehicle_class,
                plate=vehicle.plate,
                subscription_purchased_at=purchased_at,
                entry=interval.entry,
                exit=interval.exit
            )
            for interval in vehicle.intervals()
        ]

    @classmethod
    def chain_to_lines(cls, chain: ParkingChain) -> Iterator[str]:
        for lot in chain.lots:
            yield cls.format_record(cls.lot_to_record(lot))
            for area in lot.areas:
                yield cls.format_record(cls.area_to_record(area))
                for vehicle in area.vehicles.values():
                    for record in cls.vehicle_to_records(vehicle):
                        yield cls.format_record(record)


# ============================================================================
# RECORD FILE REPOSITORY
# ============================================================================

class FileChainRepository(ChainRepository):
    """
    Repository backed by the record file

    Loading stops at the first bad record unless skip_invalid_records is set,
    in which case bad lines are logged and skipped.
    """

    def __init__(
        self,
        path: Union[str, Path],
        policies: Optional[EnginePolicies] = None,
        clock: Optional[Clock] = None,
        skip_invalid_records: bool = False,
        encoding: str = "utf-8"
    ):
        self.path = Path(path)
        self.policies = policies or EnginePolicies()
        self.clock = clock
        self.skip_invalid_records = skip_invalid_records
        self.encoding = encoding
        self._logger = logging.getLogger(self.__class__.__name__)

    def load(self) -> ParkingChain:
        chain = ParkingChain(self.policies)

        if not self.path.exists():
            self._logger.warning(f"{self.path} does not exist, starting with an empty chain")
            return chain

        skipped = 0
        with open(self.path, "r", encoding=self.encoding) as handle:
            for line_number, line in enumerate(handle, start=1):
                if not line.strip():
                    continue
                try:
                    self._apply(chain, RecordCodec.parse_line(line, line_number), line_number)
                except ParkingChainError as e:
                    if not self.skip_invalid_records:
                        self._logger.error(f"Loading {self.path} aborted at line {line_number}: {e}")
                        raise
                    skipped += 1
                    self._logger.warning(f"Skipped line {line_number} of {self.path}: {e}")

        self._logger.info(
            f"Loaded {len(chain.lots)} parking lots from {self.path}"
            + (f" ({skipped} records skipped)" if skipped else "")
        )
        return chain

    def _apply(self, chain: ParkingChain, record: BaseDTO, line_number: int) -> None:
        """Apply one parsed record to the chain under construction"""
        if isinstance(record, ParkingLotRecord):
            chain.add_parking_lot(
                ParkingLot(record.name, record.entry_gate_count, self.policies)
            )
            return

        lot = chain.last_parking_lot()
        if lot is None:
            raise InvalidFieldError("Record found before any parkingLot record", line_number)

        if isinstance(record, AreaRecord):
            lot.add_area(
                Area(record.name, record.capacity_limit(), policies=self.policies, clock=self.clock)
            )
            return

        area = lot.last_area()
        if area is None:
            raise InvalidFieldError("Vehicle record found before any area record", line_number)

        area.admit(
            record.vehicle_class,
            record.plate,
            record.entry,
            record.exit,
            record.subscription_purchased_at
        )

    def save(self, chain: ParkingChain) -> None:
        """Rewrite the whole file from the chain"""
        content = "".join(f"{line}\n" for line in RecordCodec.chain_to_lines(chain))
        with open(self.path, "w", encoding=self.encoding) as handle:
            handle.write(content)
        self._logger.info(f"Saved {len(chain.lots)} parking lots to {self.path}")


# ============================================================================
# SQLALCHEMY ORM MODELS
# ============================================================================

Base = declarative_base()


class ParkingLotModel(Base):
    """SQLAlchemy model for ParkingLot"""
    __tablename__ = 'parking_lots'

    id = Column(Integer, primary_key=True, autoincrement=True)
    position = Column(Integer, nullable=False)
    name = Column(String(100), nullable=False)
    entry_gate_count = Column(Integer, nullable=False)

    areas = relationship(
        'AreaModel',
        back_populates='parking_lot',
        order_by='AreaModel.position',
        cascade='all, delete-orphan'
    )


class AreaModel(Base):
    """SQLAlchemy model for Area"""
    __tablename__ = 'areas'

    id = Column(Integer, primary_key=True, autoincrement=True)
    parking_lot_id = Column(Integer, ForeignKey('parking_lots.id'), nullable=False)
    position = Column(Integer, nullable=False)
    name = Column(String(100), nullable=False)
    capacity_motorcycle = Column(Integer, nullable=False, default=0)
    capacity_car = Column(Integer, nullable=False, default=0)
    capacity_van = Column(Integer, nullable=False, default=0)
    capacity_bus = Column(Integer, nullable=False, default=0)
    capacity_truck = Column(Integer, nullable=False, default=0)

    parking_lot = relationship('ParkingLotModel', back_populates='areas')
    vehicles = relationship(
        'VehicleModel',
        back_populates='area',
        order_by='VehicleModel.position',
        cascade='all, delete-orphan'
    )


class VehicleModel(Base):
    """SQLAlchemy model for Vehicle"""
    __tablename__ = 'vehicles'

    id = Column(Integer, primary_key=True, autoincrement=True)
    area_id = Column(Integer, ForeignKey('areas.id'), nullable=False)
    position = Column(Integer, nullable=False)
    plate = Column(String(20), nullable=False, index=True)
    vehicle_class = Column(String(20), nullable=False)
    subscription_purchased_at = Column(DateTime, nullable=True)
    last_exit = Column(DateTime, nullable=True)
    entrance_count = Column(Integer, nullable=False, default=0)

    area = relationship('AreaModel', back_populates='vehicles')
    intervals = relationship(
        'ParkingIntervalModel',
        back_populates='vehicle',
        order_by='ParkingIntervalModel.position',
        cascade='all, delete-orphan'
    )


class ParkingIntervalModel(Base):
    """SQLAlchemy model for ParkingInterval"""
    __tablename__ = 'parking_intervals'

    id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_id = Column(Integer, ForeignKey('vehicles.id'), nullable=False)
    position = Column(Integer, nullable=False)
    entry = Column(DateTime, nullable=False)
    exit = Column(DateTime, nullable=False)
    has_discount = Column(Boolean, nullable=False, default=False)

    vehicle = relationship('VehicleModel', back_populates='intervals')


# ============================================================================
# DOMAIN <-> ORM MAPPING
# ============================================================================

class Mapper:
    """Mapper between domain aggregates and ORM models"""

    @staticmethod
    def capacity_columns(area: Area) -> Dict[str, int]:
        return {
            f"capacity_{vehicle_class.value}": limit
            for vehicle_class, limit in area.capacity_limit.items()
        }

    @staticmethod
    def vehicle_to_orm(vehicle: Vehicle, position: int) -> VehicleModel:
        purchased_at = None
        if vehicle.subscription is not None:
            purchased_at = vehicle.subscription.purchased_at
        return VehicleModel(
            position=position,
            plate=vehicle.plate,
            vehicle_class=vehicle.vehicle_class.value,
            subscription_purchased_at=purchased_at,
            last_exit=vehicle.last_exit,
            entrance_count=vehicle.entrance_count,
            intervals=[
                ParkingIntervalModel(
                    position=index,
                    entry=interval.entry,
                    exit=interval.exit,
                    has_discount=interval.has_discount
                )
                for index, interval in enumerate(vehicle.intervals())
            ]
        )

    @staticmethod
    def vehicle_to_domain(model: VehicleModel) -> Vehicle:
        subscription = None
        if model.subscription_purchased_at is not None:
            subscription = Subscription(model.subscription_purchased_at)
        vehicle = Vehicle(model.plate, VehicleClass(model.vehicle_class), subscription)
        vehicle.last_exit = model.last_exit
        vehicle.entrance_count = model.entrance_count
        for interval_model in model.intervals:
            vehicle.record_interval(
                ParkingInterval(interval_model.entry, interval_model.exit, interval_model.has_discount)
            )
        return vehicle

    @staticmethod
    def parking_lot_to_orm(lot: ParkingLot, position: int) -> ParkingLotModel:
        return ParkingLotModel(
            position=position,
            name=lot.name,
            entry_gate_count=lot.entry_gate_count,
            areas=[
                AreaModel(
                    position=area_index,
                    name=area.name,
                    vehicles=[
                        Mapper.vehicle_to_orm(vehicle, vehicle_index)
                        for vehicle_index, vehicle in enumerate(area.vehicles.values())
                    ],
                    **Mapper.capacity_columns(area)
                )
                for area_index, area in enumerate(lot.areas)
            ]
        )

    @staticmethod
    def parking_lot_to_domain(
        model: ParkingLotModel,
        policies: EnginePolicies,
        clock: Optional[Clock] = None
    ) -> ParkingLot:
        lot = ParkingLot(model.name, model.entry_gate_count, policies)
        for area_model in model.areas:
            capacity_limit = {
                vehicle_class: getattr(area_model, f"capacity_{vehicle_class.value}")
                for vehicle_class in VehicleClass
            }
            area = Area(area_model.name, capacity_limit, policies=policies, clock=clock)
            for vehicle_model in area_model.vehicles:
                area.register_vehicle(Mapper.vehicle_to_domain(vehicle_model))
            area.compute_occupancy()
            lot.add_area(area)
        return lot


# ============================================================================
# SQLALCHEMY REPOSITORY
# ============================================================================

class SQLAlchemyChainRepository(ChainRepository):
    """
    Repository keeping a snapshot of the chain in a relational database

    Every save replaces the previous snapshot in a single transaction.
    """

    def __init__(
        self,
        database_url: str = "sqlite:///parking_chain.db",
        policies: Optional[EnginePolicies] = None,
        clock: Optional[Clock] = None,
        engine: Optional[Engine] = None
    ):
        self.engine = engine or create_engine(database_url, echo=False)
        self.policies = policies or EnginePolicies()
        self.clock = clock
        self._session_factory = sessionmaker(autoflush=False, bind=self.engine)
        self._logger = logging.getLogger(self.__class__.__name__)

        # Create tables if they don't exist
        Base.metadata.create_all(bind=self.engine)

    def _session(self) -> Session:
        return self._session_factory()

    def load(self) -> ParkingChain:
        chain = ParkingChain(self.policies)
        session = self._session()
        try:
            lot_models = session.query(ParkingLotModel).order_by(ParkingLotModel.position).all()
            for lot_model in lot_models:
                chain.add_parking_lot(
                    Mapper.parking_lot_to_domain(lot_model, self.policies, self.clock)
                )
        except SQLAlchemyError as e:
            self._logger.error(f"Database error loading parking chain: {e}")
            raise
        finally:
            session.close()

        self._logger.info(f"Loaded {len(chain.lots)} parking lots from database")
        return chain

    def save(self, chain: ParkingChain) -> None:
        session = self._session()
        try:
            for lot_model in session.query(ParkingLotModel).all():
                session.delete(lot_model)
            session.flush()

            for position, lot in enumerate(chain.lots):
                session.add(Mapper.parking_lot_to_orm(lot, position))

            session.commit()
            self._logger.info(f"Saved {len(chain.lots)} parking lots to database")
        except SQLAlchemyError as e:
            session.rollback()
            self._logger.error(f"Database error saving parking chain: {e}")
            raise
        finally:
            session.close()
