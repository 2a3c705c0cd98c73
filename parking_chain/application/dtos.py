# File: parking_chain/application/dtos.py
"""
Data Transfer Objects (DTOs) for the Parking Chain engine

This module defines DTOs for data transfer between layers:
1. Record DTOs - one per line type of the parking chain file
2. Result DTOs - outcome of a service mutation
3. Report DTOs - occupancy and gain figures for the presentation layer

DTO Principles:
- Validation at creation (pydantic)
- No business logic, only data
- Serialization support
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from ..domain.models import TIMESTAMP_FORMAT, VehicleClass


# ============================================================================
# BASE DTO CLASSES
# ============================================================================

class BaseDTO(BaseModel):
    """Base DTO with common functionality"""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    def to_dict(self, exclude_none: bool = False, **kwargs) -> Dict[str, Any]:
        """Convert DTO to dictionary"""
        data = self.model_dump(**kwargs)
        if exclude_none:
            data = {k: v for k, v in data.items() if v is not None}
        return data

    def to_json(self, **kwargs) -> str:
        """Convert DTO to JSON string"""
        return self.model_dump_json(**kwargs)


def _parse_timestamp(value: Any) -> Any:
    if isinstance(value, str):
        return datetime.strptime(value, TIMESTAMP_FORMAT)
    return value


# ============================================================================
# RECORD DTOs (one per line of the parking chain file)
# ============================================================================

class ParkingLotRecord(BaseDTO):
    """parkingLot,<name>,<entryGateCount>"""
    name: str = Field(min_length=1, description="Parking lot name")
    entry_gate_count: int = Field(ge=1, description="Number of entry gates")

    def to_fields(self) -> List[str]:
        return ["parkingLot", self.name, str(self.entry_gate_count)]


class AreaRecord(BaseDTO):
    """area,<name>,<motorcycle>,<car>,<van>,<bus>,<truck>"""
    name: str = Field(min_length=1, description="Area name")
    capacities: List[Annotated[int, Field(ge=0)]] = Field(
        min_length=len(VehicleClass),
        max_length=len(VehicleClass),
        description="Capacity per vehicle class, in canonical class order"
    )

    def capacity_limit(self) -> Dict[VehicleClass, int]:
        return dict(zip(VehicleClass, self.capacities))

    def to_fields(self) -> List[str]:
        return ["area", self.name] + [str(value) for value in self.capacities]


class VehicleRecord(BaseDTO):
    """vehicle,<class>,<plate>,<subscription purchase|null>,<entry>,<exit>"""
    vehicle_class: VehicleClass
    plate: str = Field(min_length=1, description="License plate")
    subscription_purchased_at: Optional[datetime] = None
    entry: datetime
    exit: datetime

    @field_validator('vehicle_class', mode='before')
    @classmethod
    def parse_vehicle_class(cls, value: Any) -> Any:
        if isinstance(value, str):
            return VehicleClass.from_token(value)
        return value

    @field_validator('subscription_purchased_at', mode='before')
    @classmethod
    def parse_subscription(cls, value: Any) -> Any:
        if value == "null":
            return None
        return _parse_timestamp(value)

    @field_validator('entry', 'exit', mode='before')
    @classmethod
    def parse_timestamps(cls, value: Any) -> Any:
        return _parse_timestamp(value)

    @field_serializer('entry', 'exit', 'subscription_purchased_at')
    def serialize_timestamp(self, value: Optional[datetime]) -> Optional[str]:
        return value.strftime(TIMESTAMP_FORMAT) if value is not None else None

    def to_fields(self) -> List[str]:
        subscription = "null"
        if self.subscription_purchased_at is not None:
            subscription = self.subscription_purchased_at.strftime(TIMESTAMP_FORMAT)
        return [
            "vehicle",
            self.vehicle_class.value,
            self.plate,
            subscription,
            self.entry.strftime(TIMESTAMP_FORMAT),
            self.exit.strftime(TIMESTAMP_FORMAT),
        ]


# ============================================================================
# RESULT DTOs
# ============================================================================

class OperationResultDTO(BaseDTO):
    """Outcome of a service mutation"""
    success: bool
    message: str
    timestamp: datetime = Field(default_factory=datetime.now)


class AdmissionResultDTO(OperationResultDTO):
    """Outcome of a vehicle admission"""
    plate: str
    lot_name: str
    area_name: str
    entry: Optional[datetime] = None
    exit: Optional[datetime] = None
    has_discount: bool = False


# ============================================================================
# REPORT DTOs
# ============================================================================

class OccupancyReportDTO(BaseDTO):
    """Occupancy percentage per vehicle class for one parking lot"""
    lot_name: str
    rates: Dict[VehicleClass, Optional[float]]

    def format_lines(self) -> List[str]:
        lines = [f"Occupancy rate for {self.lot_name} is:"]
        for vehicle_class in VehicleClass:
            rate = self.rates.get(vehicle_class)
            shown = "n/a" if rate is None else f"{rate:.2f}%"
            lines.append(f" - {vehicle_class.value}: {shown}")
        return lines


class GainReportDTO(BaseDTO):
    """Money billable on one day for one parking lot"""
    lot_name: str
    day: date
    amount: Decimal

    @field_serializer('amount')
    def serialize_amount(self, value: Decimal) -> str:
        return str(value)

    def format_line(self) -> str:
        return f"{self.lot_name} gained {self.amount:.2f} on {self.day.isoformat()}."
