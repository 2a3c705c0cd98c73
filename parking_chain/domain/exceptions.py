# File: parking_chain/domain/exceptions.py
"""
Exceptions for the Parking Chain engine

Every error raised by the domain, the record reader and the application
service derives from ParkingChainError so callers can handle the whole
family with a single except clause.
"""

from typing import Optional


# ============================================================================
# BASE EXCEPTION
# ============================================================================

class ParkingChainError(Exception):
    """Base exception for parking chain errors"""
    pass


# ============================================================================
# RECORD FILE ERRORS
# ============================================================================

class RecordError(ParkingChainError):
    """Exception for malformed records in a parking chain file"""

    def __init__(self, message: str, line_number: Optional[int] = None):
        self.line_number = line_number
        if line_number is not None:
            message = f"Line {line_number}: {message}"
        super().__init__(message)


class InvalidFieldError(RecordError):
    """Exception for an unknown record type or an unparsable field value"""
    pass


class InvalidLineLengthError(RecordError):
    """Exception for a record with the wrong number of fields"""
    pass


# ============================================================================
# DOMAIN ERRORS
# ============================================================================

class InvalidVehicleTypeError(ParkingChainError):
    """Exception for an unknown vehicle class token"""
    pass


class MaximumCapacityReachedError(ParkingChainError):
    """Exception when an area has no room left for a vehicle class"""
    pass


class InvalidParkingIntervalError(ParkingChainError):
    """Exception for an exit that precedes the entry"""
    pass


class NameNotFoundError(ParkingChainError):
    """Exception for a parking lot or area lookup miss"""
    pass


class InvalidParkingLotNameError(NameNotFoundError):
    pass


class InvalidAreaNameError(NameNotFoundError):
    pass


class DuplicateNameError(ParkingChainError):
    """Exception for a duplicate lot or area name (only when policies forbid it)"""
    pass
