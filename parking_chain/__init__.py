# File: parking_chain/__init__.py
"""
Parking Chain

Occupancy and billing engine for a chain of parking lots, with an
interactive console and a line-oriented record file.
"""

__version__ = "1.0.0"
