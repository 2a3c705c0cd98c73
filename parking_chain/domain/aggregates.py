# File: parking_chain/domain/aggregates.py
"""
Aggregate Roots for the Parking Chain engine

Aggregates:
1. Area - capacity-limited zone, owns its vehicles, admits new stays
2. ParkingLot - ordered collection of areas, aggregates occupancy and gain
3. ParkingChain - ordered collection of lots, routes requests by name

Key Concepts:
- Each aggregate owns its children outright; nothing is shared across areas
- Occupancy is derived from the vehicles' last exits, never stored by hand
- All modifications go through aggregate root methods
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple
import logging

from .exceptions import (
    DuplicateNameError, InvalidAreaNameError, InvalidParkingIntervalError,
    InvalidParkingLotNameError, MaximumCapacityReachedError
)
from .models import ParkingInterval, Subscription, Vehicle, VehicleClass


Clock = Callable[[], datetime]


# ============================================================================
# POLICIES
# ============================================================================

@dataclass
class EnginePolicies:
    """
    Value Object: switches for the historical quirks of the engine
    The defaults reproduce the historical behavior.
    """
    # Compare full timestamps instead of the day-of-year difference only
    strict_interval_check: bool = False
    # Put back the previous last exit when an admission is rejected for capacity
    restore_last_exit_on_rejection: bool = False
    # Refuse a lot or area whose name is already taken
    reject_duplicate_names: bool = False


def validate_parking_interval(
    entry: datetime,
    exit: datetime,
    policies: EnginePolicies
) -> None:
    """
    Check that an exit does not precede its entry

    By default only the day-of-year difference is compared, so a same-day
    exit before the entry passes and a stay across New Year fails.
    """
    if policies.strict_interval_check:
        valid = exit >= entry
    else:
        valid = exit.timetuple().tm_yday - entry.timetuple().tm_yday >= 0

    if not valid:
        raise InvalidParkingIntervalError("The parking interval is not a valid one.")


# ============================================================================
# AREA AGGREGATE
# ============================================================================

class Area:
    """
    Aggregate Root: a named zone of a parking lot
    Enforces the per-class capacity limit on every admission
    """

    def __init__(
        self,
        name: str,
        capacity_limit: Optional[Dict[VehicleClass, int]] = None,
        policies: Optional[EnginePolicies] = None,
        clock: Optional[Clock] = None
    ):
        self.name = name
        self.policies = policies or EnginePolicies()
        self._clock: Clock = clock or datetime.now
        self._capacity_limit: Dict[VehicleClass, int] = {
            vehicle_class: 0 for vehicle_class in VehicleClass
        }
        self._live_occupancy: Dict[VehicleClass, int] = {
            vehicle_class: 0 for vehicle_class in VehicleClass
        }
        self._vehicles: Dict[str, Vehicle] = {}
        self._logger = logging.getLogger(self.__class__.__name__)

        if capacity_limit:
            for vehicle_class, limit in capacity_limit.items():
                self._capacity_limit[vehicle_class] = limit

    @property
    def capacity_limit(self) -> Dict[VehicleClass, int]:
        return dict(self._capacity_limit)

    @property
    def live_occupancy(self) -> Dict[VehicleClass, int]:
        """Occupancy as of the last computation"""
        return dict(self._live_occupancy)

    @property
    def vehicles(self) -> Dict[str, Vehicle]:
        return dict(self._vehicles)

    def get_vehicle(self, plate: str) -> Optional[Vehicle]:
        return self._vehicles.get(plate)

    def set_capacity(self, values: Sequence[int]) -> None:
        """Set the limits from values in canonical class order"""
        if len(values) != len(VehicleClass):
            raise ValueError(f"Expected {len(VehicleClass)} capacity values, got {len(values)}")
        for vehicle_class, limit in zip(VehicleClass, values):
            self._capacity_limit[vehicle_class] = limit

    def capacity_values(self) -> List[int]:
        """Limits in canonical class order"""
        return [self._capacity_limit[vehicle_class] for vehicle_class in VehicleClass]

    def register_vehicle(self, vehicle: Vehicle) -> None:
        """Attach a vehicle rebuilt from storage, bypassing admission"""
        self._vehicles[vehicle.plate] = vehicle

    # ========================================================================
    # OCCUPANCY
    # ========================================================================

    def compute_occupancy(self, now: Optional[datetime] = None) -> Dict[VehicleClass, int]:
        """
        Recount the vehicles whose last exit is still ahead of now
        Returns: the fresh per-class counts
        """
        moment = now if now is not None else self._clock()

        for vehicle_class in VehicleClass:
            self._live_occupancy[vehicle_class] = 0

        for vehicle in self._vehicles.values():
            if vehicle.is_parked(moment):
                self._live_occupancy[vehicle.vehicle_class] += 1

        return self.live_occupancy

    # ========================================================================
    # ADMISSION
    # ========================================================================

    def admit(
        self,
        vehicle_class: VehicleClass,
        plate: str,
        entry: datetime,
        exit: datetime,
        subscription_purchased_at: Optional[datetime] = None,
        now: Optional[datetime] = None
    ) -> ParkingInterval:
        """
        Record a stay for a vehicle

        A plate already known to the area keeps its original class and
        subscription; the arguments only apply to a first appearance.

        Returns: the interval that was added
        Raises: InvalidParkingIntervalError, MaximumCapacityReachedError
        """
        validate_parking_interval(entry, exit, self.policies)

        vehicle = self._vehicles.get(plate)
        is_new = vehicle is None
        if is_new:
            subscription = None
            if subscription_purchased_at is not None:
                subscription = Subscription(subscription_purchased_at)
            vehicle = Vehicle(plate, vehicle_class, subscription)

        # Counted before the new exit is written, so a returning vehicle does
        # not take its own place
        resolved_class = vehicle.vehicle_class
        occupancy = self.compute_occupancy(now)

        previous_exit = vehicle.last_exit
        vehicle.last_exit = exit

        limit = self._capacity_limit[resolved_class]
        if occupancy[resolved_class] >= limit:
            if self.policies.restore_last_exit_on_rejection:
                vehicle.last_exit = previous_exit
            self._logger.warning(
                f"Area {self.name}: rejected {plate}, {resolved_class.value} capacity {limit} reached"
            )
            raise MaximumCapacityReachedError(
                f"Maximum capacity for {resolved_class.value} is {limit}"
            )

        if is_new:
            self._vehicles[plate] = vehicle

        interval = vehicle.add_interval(entry, exit)
        if vehicle.register_entrance():
            interval.has_discount = True

        self.compute_occupancy(now)

        self._logger.info(
            f"Area {self.name}: admitted {plate} ({resolved_class.value}), "
            f"entrance #{vehicle.entrance_count}"
        )
        return interval

    def gain_for_day(self, day: date) -> Decimal:
        return sum(
            (vehicle.cost_for_day(day) for vehicle in self._vehicles.values()),
            Decimal('0')
        )

    def __repr__(self) -> str:
        return f"Area(name={self.name!r}, vehicles={len(self._vehicles)})"


# ============================================================================
# PARKING LOT AGGREGATE
# ============================================================================

class ParkingLot:
    """
    Aggregate Root: a parking facility made of ordered areas
    The entry gate count is informational only.
    """

    def __init__(
        self,
        name: str,
        entry_gate_count: int,
        policies: Optional[EnginePolicies] = None
    ):
        self.name = name
        self.entry_gate_count = entry_gate_count
        self.policies = policies or EnginePolicies()
        self._areas: List[Area] = []
        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    def areas(self) -> List[Area]:
        return list(self._areas)

    def add_area(self, area: Area) -> Area:
        if self.policies.reject_duplicate_names and self._find_area(area.name) is not None:
            raise DuplicateNameError(
                f"Area '{area.name}' already exists in parking lot '{self.name}'!"
            )
        self._areas.append(area)
        self._logger.info(f"Added area {area.name} to parking lot {self.name}")
        return area

    def _find_area(self, name: str) -> Optional[Area]:
        return next((area for area in self._areas if area.name == name), None)

    def get_area(self, name: str) -> Area:
        """First area with the given name"""
        area = self._find_area(name)
        if area is None:
            raise InvalidAreaNameError(f"Area '{name}' does not exist!")
        return area

    def last_area(self) -> Optional[Area]:
        return self._areas[-1] if self._areas else None

    def occupancy_rate(self, now: Optional[datetime] = None) -> Dict[VehicleClass, Optional[float]]:
        """
        Percentage of places in use per class, across all areas
        A class with no places at all maps to None.
        """
        for area in self._areas:
            area.compute_occupancy(now)

        rates: Dict[VehicleClass, Optional[float]] = {}
        for vehicle_class in VehicleClass:
            total = sum(area.capacity_limit[vehicle_class] for area in self._areas)
            occupied = sum(area.live_occupancy[vehicle_class] for area in self._areas)
            if total == 0:
                rates[vehicle_class] = None
            else:
                rates[vehicle_class] = occupied * 100 / total
        return rates

    def gain_for_day(self, day: date) -> Decimal:
        """Total owed for the day by every vehicle of every area"""
        return sum((area.gain_for_day(day) for area in self._areas), Decimal('0'))

    def __repr__(self) -> str:
        return (f"ParkingLot(name={self.name!r}, entries={self.entry_gate_count}, "
                f"areas={len(self._areas)})")


# ============================================================================
# PARKING CHAIN AGGREGATE
# ============================================================================

class ParkingChain:
    """
    Aggregate Root: the whole chain of parking lots
    Entry point for every lookup by name
    """

    def __init__(self, policies: Optional[EnginePolicies] = None):
        self.policies = policies or EnginePolicies()
        self._lots: List[ParkingLot] = []
        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    def lots(self) -> List[ParkingLot]:
        return list(self._lots)

    def add_parking_lot(self, lot: ParkingLot) -> ParkingLot:
        if self.policies.reject_duplicate_names and self._find_lot(lot.name) is not None:
            raise DuplicateNameError(f"Parking lot '{lot.name}' already exists!")
        self._lots.append(lot)
        self._logger.info(f"Added parking lot {lot.name} ({lot.entry_gate_count} entries)")
        return lot

    def _find_lot(self, name: str) -> Optional[ParkingLot]:
        return next((lot for lot in self._lots if lot.name == name), None)

    def get_parking_lot(self, name: str) -> ParkingLot:
        """First parking lot with the given name"""
        lot = self._find_lot(name)
        if lot is None:
            raise InvalidParkingLotNameError(f"Parking lot '{name}' does not exist!")
        return lot

    def last_parking_lot(self) -> Optional[ParkingLot]:
        return self._lots[-1] if self._lots else None

    def get_area(self, lot_name: str, area_name: str) -> Area:
        return self.get_parking_lot(lot_name).get_area(area_name)

    def add_area(self, lot_name: str, area: Area) -> Area:
        return self.get_parking_lot(lot_name).add_area(area)

    def admit(
        self,
        lot_name: str,
        area_name: str,
        vehicle_class: VehicleClass,
        plate: str,
        entry: datetime,
        exit: datetime,
        subscription_purchased_at: Optional[datetime] = None,
        now: Optional[datetime] = None
    ) -> ParkingInterval:
        """Route an admission to the named lot and area"""
        area = self.get_area(lot_name, area_name)
        return area.admit(vehicle_class, plate, entry, exit, subscription_purchased_at, now)

    def _select_lots(self, lot_name: Optional[str]) -> Iterable[ParkingLot]:
        if lot_name is None:
            return self.lots
        return [self.get_parking_lot(lot_name)]

    def occupancy_rates(
        self,
        lot_name: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> List[Tuple[ParkingLot, Dict[VehicleClass, Optional[float]]]]:
        """Occupancy of one named lot, or of every lot in order"""
        return [(lot, lot.occupancy_rate(now)) for lot in self._select_lots(lot_name)]

    def gain_for_day(
        self,
        day: date,
        lot_name: Optional[str] = None
    ) -> List[Tuple[ParkingLot, Decimal]]:
        """Gain of one named lot, or of every lot in order"""
        return [(lot, lot.gain_for_day(day)) for lot in self._select_lots(lot_name)]

    def __repr__(self) -> str:
        return f"ParkingChain(lots={len(self._lots)})"
