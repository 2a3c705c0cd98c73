# File: parking_chain/presentation/console.py
"""
Parking Chain interactive console

A line-based menu session driving the ParkingChainService.

Key Features:
1. Parking lot and area creation
2. Vehicle entry with optional subscription purchase
3. Occupancy and gain reports, for one lot or the whole chain

Architecture:
- ConsoleIO is the input/output boundary; tests hand it in-memory streams
- ParkingConsole holds the menu loop and the prompts, and only talks to the
  service
- Bad input re-prompts the same field; a failed operation is reported and
  the menu comes back
"""

from datetime import date, datetime
from typing import Callable, Dict, Optional, TextIO
import logging
import sys

from ..application.parking_service import ParkingChainService
from ..domain.exceptions import InvalidVehicleTypeError, ParkingChainError
from ..domain.models import DATE_FORMAT, TIMESTAMP_FORMAT, VehicleClass


# ============================================================================
# CONSTANTS AND CONFIGURATION
# ============================================================================

class AppConfig:
    """Console configuration"""
    APP_NAME = "Parking Chain"

    MENU_OPTIONS = [
        "1. Add parking lot",
        "2. Add area",
        "3. Add vehicle",
        "4. Print occupancy",
        "5. Print gain",
        "6. Exit",
    ]
    EXIT_OPTION = 6

    MIN_ENTRIES = 1
    MAX_ENTRIES = 50
    MIN_CAPACITY = 0
    MAX_CAPACITY = 50

    # Shown to the user, matching TIMESTAMP_FORMAT and DATE_FORMAT
    TIMESTAMP_PATTERN = "yyyy-MM-dd HH:mm"
    DATE_PATTERN = "yyyy-MM-dd"

    # Would break the comma separated record file
    FORBIDDEN_NAME_CHARACTERS = ","


class SessionClosed(Exception):
    """Raised when the input stream runs dry"""
    pass


# ============================================================================
# INPUT / OUTPUT BOUNDARY
# ============================================================================

class ConsoleIO:
    """Line-oriented input/output, stdin/stdout unless streams are given"""

    def __init__(
        self,
        input_stream: Optional[TextIO] = None,
        output_stream: Optional[TextIO] = None
    ):
        self._input_stream = input_stream
        self._output_stream = output_stream

    @property
    def input_stream(self) -> TextIO:
        return self._input_stream or sys.stdin

    @property
    def output_stream(self) -> TextIO:
        return self._output_stream or sys.stdout

    def read_line(self) -> str:
        line = self.input_stream.readline()
        if line == "":
            raise SessionClosed()
        return line.rstrip("\r\n")

    def write(self, message: str = "") -> None:
        print(message, file=self.output_stream, flush=True)


# ============================================================================
# MENU SESSION
# ============================================================================

class ParkingConsole:
    """Menu loop over a ParkingChainService"""

    def __init__(self, service: ParkingChainService, io: Optional[ConsoleIO] = None):
        self.service = service
        self.io = io or ConsoleIO()
        self.logger = logging.getLogger(self.__class__.__name__)

        self._handlers: Dict[int, Callable[[], None]] = {
            1: self.add_parking_lot,
            2: self.add_area,
            3: self.add_vehicle,
            4: self.print_occupancy,
            5: self.print_gain,
        }

    def run(self) -> None:
        """Serve menu options until Exit is chosen or the input ends"""
        self.logger.info(f"{AppConfig.APP_NAME} session started")
        try:
            while True:
                option = self.read_option()
                if option == AppConfig.EXIT_OPTION:
                    break
                try:
                    self._handlers[option]()
                except ParkingChainError as e:
                    self.io.write(str(e))
        except SessionClosed:
            self.logger.info("Input closed, ending session")
        self.logger.info(f"{AppConfig.APP_NAME} session ended")

    # ========================================================================
    # PROMPTS
    # ========================================================================

    def read_integer(self, lower_bound: int, upper_bound: int, retry_message: str) -> int:
        while True:
            text = self.io.read_line()
            try:
                value = int(text.strip())
            except ValueError:
                value = None
            if value is not None and lower_bound <= value <= upper_bound:
                return value
            self.io.write(f"Invalid input: '{text}'.\n{retry_message}")

    def read_option(self) -> int:
        message = "\n".join(AppConfig.MENU_OPTIONS) + "\nPlease select an option:"
        self.io.write(message)
        return self.read_integer(1, len(AppConfig.MENU_OPTIONS), message)

    def read_yes_no(self, message: str) -> bool:
        self.io.write(message)
        while True:
            text = self.io.read_line().strip()
            if text in ("y", "n"):
                return text == "y"
            self.io.write(f"Invalid input: '{text}'.")
            self.io.write(message)

    def read_name(self, message: str) -> str:
        """Non-empty text without the record separator"""
        self.io.write(message)
        while True:
            text = self.io.read_line().strip()
            if text and not any(c in text for c in AppConfig.FORBIDDEN_NAME_CHARACTERS):
                return text
            self.io.write(f"Invalid input: '{text}'. Commas and empty names are not allowed.")
            self.io.write(message)

    def read_parking_lot_name(self) -> str:
        return self.read_name("Enter parking lot name:")

    def read_area_name(self) -> str:
        return self.read_name("Enter area name:")

    def read_capacity_limit(self) -> Dict[VehicleClass, int]:
        capacity_limit = {}
        for vehicle_class in VehicleClass:
            message = f"Enter maximum number of parking places for {vehicle_class.value}"
            self.io.write(message + ":")
            capacity_limit[vehicle_class] = self.read_integer(
                AppConfig.MIN_CAPACITY,
                AppConfig.MAX_CAPACITY,
                f"{message} (number between {AppConfig.MIN_CAPACITY} and {AppConfig.MAX_CAPACITY}):"
            )
        return capacity_limit

    def read_vehicle_class(self) -> VehicleClass:
        message = f"Enter vehicle type ({'/'.join(VehicleClass.tokens())}):"
        while True:
            self.io.write(message)
            text = self.io.read_line().strip()
            try:
                return VehicleClass.from_token(text)
            except InvalidVehicleTypeError as e:
                self.io.write(str(e))

    def read_exit_time(self) -> datetime:
        """A timestamp that is not in the past"""
        while True:
            self.io.write(f"Enter exit time ({AppConfig.TIMESTAMP_PATTERN}):")
            text = self.io.read_line().strip()
            try:
                exit_time = datetime.strptime(text, TIMESTAMP_FORMAT)
            except ValueError:
                self.io.write(f"Invalid input: '{text}'.")
                continue
            if exit_time < self.service.now().replace(second=0, microsecond=0):
                self.io.write(f"Invalid input: '{text}'. Exit date should not be in the past!")
                continue
            return exit_time

    def read_date(self) -> date:
        message = f"Please enter the date for which you want the gain ({AppConfig.DATE_PATTERN}):"
        while True:
            self.io.write(message)
            text = self.io.read_line().strip()
            try:
                return datetime.strptime(text, DATE_FORMAT).date()
            except ValueError:
                self.io.write(f"Invalid input: '{text}'.")

    # ========================================================================
    # MENU OPTIONS
    # ========================================================================

    def add_parking_lot(self) -> None:
        name = self.read_parking_lot_name()
        message = "Enter parking lot number of entrances"
        self.io.write(message + ":")
        entries = self.read_integer(
            AppConfig.MIN_ENTRIES,
            AppConfig.MAX_ENTRIES,
            f"{message} (number between {AppConfig.MIN_ENTRIES} and {AppConfig.MAX_ENTRIES}):"
        )
        result = self.service.add_parking_lot(name, entries)
        self.io.write(result.message)

    def add_area(self) -> None:
        lot_name = self.read_parking_lot_name()
        area_name = self.read_area_name()
        capacity_limit = self.read_capacity_limit()
        result = self.service.add_area(lot_name, area_name, capacity_limit)
        self.io.write(result.message)

    def add_vehicle(self) -> None:
        lot_name = self.read_parking_lot_name()
        area_name = self.read_area_name()
        plate = self.read_name("Enter license plate:")
        vehicle_class = self.read_vehicle_class()
        buy_subscription = self.read_yes_no("Do you want to buy subscription (y/n)?")
        exit_time = self.read_exit_time()
        result = self.service.add_vehicle(
            lot_name, area_name, plate, vehicle_class, exit_time, buy_subscription
        )
        self.io.write(result.message)

    def print_occupancy(self) -> None:
        lot_name = None
        if not self.read_yes_no("Do you want to print the occupancy for all parking lots (y/n)?"):
            lot_name = self.read_parking_lot_name()
        for report in self.service.occupancy_report(lot_name):
            for line in report.format_lines():
                self.io.write(line)

    def print_gain(self) -> None:
        day = self.read_date()
        lot_name = None
        if not self.read_yes_no("Do you want to print the gain for all parking lots (y/n)?"):
            lot_name = self.read_parking_lot_name()
        for report in self.service.gain_report(day, lot_name):
            self.io.write(report.format_line())
