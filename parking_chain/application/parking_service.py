# File: parking_chain/application/parking_service.py
"""
Parking Chain Application Service

This module implements the application service layer. The service is the
session object of a run: it holds the one ParkingChain, applies the use cases
to it and hands plain DTOs back to the presentation layer.

Responsibilities:
1. Execute the use cases (add lot, add area, admit vehicle, reports)
2. Supply "now" from an injectable clock
3. Handle cross-cutting concerns (logging, turning domain errors into results)
"""

from datetime import date, datetime
from typing import Callable, Dict, List, Optional
import logging

from ..domain.aggregates import Area, EnginePolicies, ParkingChain, ParkingLot
from ..domain.exceptions import ParkingChainError
from ..domain.models import VehicleClass
from .dtos import (
    AdmissionResultDTO, GainReportDTO, OccupancyReportDTO, OperationResultDTO
)


class ParkingChainService:
    """
    Main application service for a parking chain

    Use cases:
    1. Parking lot and area creation
    2. Vehicle admission
    3. Occupancy and gain reporting
    """

    def __init__(
        self,
        chain: Optional[ParkingChain] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Initialize the service

        Args:
            chain: The chain to work on. A new empty chain when omitted.
            clock: Source of the current time, datetime.now by default.
        """
        self.logger = logging.getLogger(self.__class__.__name__)
        self.chain = chain if chain is not None else ParkingChain()
        self.clock = clock or datetime.now
        self.logger.info("ParkingChainService initialized")

    @property
    def policies(self) -> EnginePolicies:
        return self.chain.policies

    def now(self) -> datetime:
        return self.clock()

    # ========================================================================
    # COMMANDS
    # ========================================================================

    def add_parking_lot(self, name: str, entry_gate_count: int) -> OperationResultDTO:
        """Use Case: open a new parking lot at the end of the chain"""
        try:
            self.chain.add_parking_lot(ParkingLot(name, entry_gate_count, self.policies))
        except ParkingChainError as e:
            self.logger.warning(f"Parking lot {name} rejected: {e}")
            return OperationResultDTO(success=False, message=str(e))

        return OperationResultDTO(
            success=True,
            message=f"Parking lot '{name}' was added!"
        )

    def add_area(
        self,
        lot_name: str,
        area_name: str,
        capacity_limit: Dict[VehicleClass, int]
    ) -> OperationResultDTO:
        """Use Case: add an area with its per-class capacity to a lot"""
        area = Area(area_name, capacity_limit, policies=self.policies, clock=self.clock)
        try:
            self.chain.add_area(lot_name, area)
        except ParkingChainError as e:
            self.logger.warning(f"Area {area_name} rejected: {e}")
            return OperationResultDTO(success=False, message=str(e))

        return OperationResultDTO(
            success=True,
            message=f"Area '{area_name}' was added in parking lot '{lot_name}'!"
        )

    def add_vehicle(
        self,
        lot_name: str,
        area_name: str,
        plate: str,
        vehicle_class: VehicleClass,
        exit: datetime,
        buy_subscription: bool = False,
        entry: Optional[datetime] = None
    ) -> AdmissionResultDTO:
        """
        Use Case: Vehicle Entry
        1. Take the entry time (now unless given)
        2. Buy the subscription at the same moment if requested
        3. Run the area admission

        Returns: Admission result
        """
        moment = self.now()
        entry_time = entry or moment
        purchased_at = moment if buy_subscription else None

        self.logger.info(f"Processing entry of {plate} into {lot_name}/{area_name}")

        try:
            interval = self.chain.admit(
                lot_name, area_name, vehicle_class, plate,
                entry_time, exit, purchased_at, now=moment
            )
        except ParkingChainError as e:
            self.logger.warning(f"Entry of {plate} rejected: {e}")
            return AdmissionResultDTO(
                success=False,
                message=str(e),
                plate=plate,
                lot_name=lot_name,
                area_name=area_name
            )

        return AdmissionResultDTO(
            success=True,
            message=(f"Vehicle with license plate '{plate}' was added in area "
                     f"'{area_name}' from parking lot '{lot_name}'!"),
            plate=plate,
            lot_name=lot_name,
            area_name=area_name,
            entry=interval.entry,
            exit=interval.exit,
            has_discount=interval.has_discount
        )

    # ========================================================================
    # QUERIES
    # ========================================================================

    def occupancy_report(self, lot_name: Optional[str] = None) -> List[OccupancyReportDTO]:
        """
        Occupancy of one lot, or of every lot when no name is given

        Raises: InvalidParkingLotNameError for an unknown name
        """
        rates = self.chain.occupancy_rates(lot_name, now=self.now())
        return [OccupancyReportDTO(lot_name=lot.name, rates=lot_rates) for lot, lot_rates in rates]

    def gain_report(self, day: date, lot_name: Optional[str] = None) -> List[GainReportDTO]:
        """
        Gain of one lot, or of every lot when no name is given

        Raises: InvalidParkingLotNameError for an unknown name
        """
        gains = self.chain.gain_for_day(day, lot_name)
        return [GainReportDTO(lot_name=lot.name, day=day, amount=amount) for lot, amount in gains]
