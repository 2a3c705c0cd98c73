# File: parking_chain/domain/models.py
"""
Domain Models for the Parking Chain engine

This module contains:
1. Enums: the fixed catalog of vehicle classes with their tariffs
2. Value Objects: Subscription and ParkingInterval
3. Entities: Vehicle, identified by its license plate inside an area
4. Domain Services: ParkingFeeCalculator

All monetary values are Decimal.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterator, List, Optional
from dataclasses import dataclass
import logging

from .exceptions import InvalidVehicleTypeError


TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M"
DATE_FORMAT = "%Y-%m-%d"

SUBSCRIPTION_PRICE = Decimal('130')
SUBSCRIPTION_VALIDITY = timedelta(days=30)

# Every N-th entrance of a vehicle is billed at the loyalty rate
LOYALTY_ENTRANCE_STEP = 10


# ============================================================================
# ENUMS FOR DOMAIN TYPES
# ============================================================================

class VehicleClass(Enum):
    """
    Enumeration of vehicle classes
    Declaration order is the canonical order used for capacity columns
    """
    MOTORCYCLE = "motorcycle"
    CAR = "car"
    VAN = "van"
    BUS = "bus"
    TRUCK = "truck"

    @property
    def hourly_rate(self) -> Decimal:
        """Get the hourly parking rate for this class"""
        rates = {
            VehicleClass.MOTORCYCLE: Decimal('1.00'),
            VehicleClass.CAR: Decimal('2.00'),
            VehicleClass.VAN: Decimal('3.00'),
            VehicleClass.BUS: Decimal('5.00'),
            VehicleClass.TRUCK: Decimal('6.00'),
        }
        return rates[self]

    @property
    def loyalty_discount(self) -> Decimal:
        """Get the amount taken off the hourly rate of a loyalty interval"""
        discounts = {
            VehicleClass.MOTORCYCLE: Decimal('0.25'),
            VehicleClass.CAR: Decimal('0.50'),
            VehicleClass.VAN: Decimal('1.00'),
            VehicleClass.BUS: Decimal('1.50'),
            VehicleClass.TRUCK: Decimal('2.00'),
        }
        return discounts[self]

    @classmethod
    def from_token(cls, token: str) -> 'VehicleClass':
        """
        Resolve the lowercase token used in files and at the prompt

        Raises: InvalidVehicleTypeError for anything else
        """
        try:
            return cls(token)
        except ValueError:
            raise InvalidVehicleTypeError(f"Unexpected value: '{token}'.") from None

    @classmethod
    def tokens(cls) -> List[str]:
        return [vehicle_class.value for vehicle_class in cls]

    def __str__(self) -> str:
        return self.value


# ============================================================================
# VALUE OBJECTS
# ============================================================================

@dataclass(frozen=True)
class Subscription:
    """
    Value Object: a subscription purchase
    Covers every entry from the purchase moment up to 30 days later, inclusive
    """
    purchased_at: datetime
    price: Decimal = SUBSCRIPTION_PRICE

    @property
    def valid_until(self) -> datetime:
        return self.purchased_at + SUBSCRIPTION_VALIDITY

    def is_valid(self, moment: datetime) -> bool:
        """Check if the subscription covers the given moment"""
        return self.purchased_at <= moment <= self.valid_until

    def __str__(self) -> str:
        return f"Subscription bought {self.purchased_at.strftime(TIMESTAMP_FORMAT)}"


class ParkingInterval:
    """
    Value Object: one stay, from entry to exit
    Entry and exit are fixed at creation; only the loyalty flag can change.
    No ordering or overlap checks are made here.
    """

    def __init__(self, entry: datetime, exit: datetime, has_discount: bool = False):
        self._entry = entry
        self._exit = exit
        self.has_discount = has_discount

    @property
    def entry(self) -> datetime:
        return self._entry

    @property
    def exit(self) -> datetime:
        return self._exit

    @property
    def day(self) -> date:
        """Calendar day the interval is filed under"""
        return self._entry.date()

    @property
    def duration(self) -> timedelta:
        return self._exit - self._entry

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParkingInterval):
            return NotImplemented
        return (self.entry, self.exit, self.has_discount) == \
            (other.entry, other.exit, other.has_discount)

    def __hash__(self) -> int:
        return hash((self.entry, self.exit))

    def __repr__(self) -> str:
        return (f"ParkingInterval(entry={self.entry:{TIMESTAMP_FORMAT}}, "
                f"exit={self.exit:{TIMESTAMP_FORMAT}}, discount={self.has_discount})")


# ============================================================================
# DOMAIN SERVICES
# ============================================================================

class ParkingFeeCalculator:
    """
    Domain Service: prices a single parking interval
    Stateless, works on a vehicle class and an interval
    """

    @staticmethod
    def billable_hours(interval: ParkingInterval) -> int:
        """
        Whole hours of the stay, any leftover minute counts as a full hour.
        Seconds are ignored.
        """
        minutes = interval.duration // timedelta(minutes=1)
        return -(-minutes // 60)

    @staticmethod
    def hourly_rate(vehicle_class: VehicleClass, interval: ParkingInterval) -> Decimal:
        if interval.has_discount:
            return vehicle_class.hourly_rate - vehicle_class.loyalty_discount
        return vehicle_class.hourly_rate

    @staticmethod
    def calculate_fee(vehicle_class: VehicleClass, interval: ParkingInterval) -> Decimal:
        """Calculate the fee for one interval without any subscription"""
        rate = ParkingFeeCalculator.hourly_rate(vehicle_class, interval)
        return rate * ParkingFeeCalculator.billable_hours(interval)


# ============================================================================
# DOMAIN ENTITIES
# ============================================================================

class Vehicle:
    """
    Entity: a vehicle as seen by one area
    Identified by its license plate; keeps its whole interval history grouped
    by the calendar day of each entry.
    """

    def __init__(
        self,
        plate: str,
        vehicle_class: VehicleClass,
        subscription: Optional[Subscription] = None
    ):
        self._plate = plate
        self._vehicle_class = vehicle_class
        self.subscription = subscription
        self.last_exit: Optional[datetime] = None
        self.entrance_count: int = 0
        self._intervals_by_day: Dict[date, List[ParkingInterval]] = {}
        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    def plate(self) -> str:
        return self._plate

    @property
    def vehicle_class(self) -> VehicleClass:
        return self._vehicle_class

    @property
    def intervals_by_day(self) -> Dict[date, List[ParkingInterval]]:
        return self._intervals_by_day

    def intervals(self) -> Iterator[ParkingInterval]:
        """Iterate over every interval, day by day"""
        for day_intervals in self._intervals_by_day.values():
            yield from day_intervals

    def intervals_on(self, day: date) -> List[ParkingInterval]:
        return list(self._intervals_by_day.get(day, []))

    def is_parked(self, moment: datetime) -> bool:
        """A vehicle counts as parked while its last recorded exit is ahead"""
        return self.last_exit is not None and self.last_exit > moment

    def add_interval(self, entry: datetime, exit: datetime) -> ParkingInterval:
        """File a new interval under the entry's calendar day"""
        interval = ParkingInterval(entry, exit)
        self.record_interval(interval)
        return interval

    def record_interval(self, interval: ParkingInterval) -> None:
        """File an existing interval (used when rebuilding from storage)"""
        self._intervals_by_day.setdefault(interval.day, []).append(interval)

    def register_entrance(self) -> bool:
        """
        Count one more entrance
        Returns: True if this entrance earns the loyalty discount
        """
        self.entrance_count += 1
        return self.entrance_count % LOYALTY_ENTRANCE_STEP == 0

    def is_covered(self, interval: ParkingInterval) -> bool:
        """Check if the subscription pays for the interval"""
        return self.subscription is not None and self.subscription.is_valid(interval.entry)

    def cost_for_day(self, day: date) -> Decimal:
        """
        Amount owed for one calendar day

        Includes the subscription price when it was bought that day and the
        fee of every interval entered that day that the subscription does not
        cover.
        """
        amount = Decimal('0')

        if self.subscription is not None and self.subscription.purchased_at.date() == day:
            amount += self.subscription.price

        for interval in self._intervals_by_day.get(day, []):
            if self.is_covered(interval):
                continue
            amount += ParkingFeeCalculator.calculate_fee(self._vehicle_class, interval)

        self._logger.debug(f"Cost of {self._plate} on {day}: {amount}")
        return amount

    def __repr__(self) -> str:
        return (f"Vehicle(plate={self._plate!r}, class={self._vehicle_class.value}, "
                f"entrances={self.entrance_count})")
