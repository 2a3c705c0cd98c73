#!/usr/bin/env python3
"""
Aggregate Unit Tests

Tests for Area admission, ParkingLot reporting and ParkingChain routing,
including the switchable historical behaviors.
"""

import unittest
from datetime import date, datetime, timedelta
from decimal import Decimal

from parking_chain.domain.aggregates import (
    Area, EnginePolicies, ParkingChain, ParkingLot, validate_parking_interval
)
from parking_chain.domain.exceptions import (
    DuplicateNameError, InvalidAreaNameError, InvalidParkingIntervalError,
    InvalidParkingLotNameError, MaximumCapacityReachedError, NameNotFoundError
)
from parking_chain.domain.models import VehicleClass


NOW = datetime(2024, 5, 10, 12, 0)


def fixed_clock():
    return NOW


class TestIntervalValidation(unittest.TestCase):
    """Unit tests for validate_parking_interval"""

    def test_default_check_compares_day_of_year_only(self):
        """Test that a same-day exit before the entry passes by default"""
        validate_parking_interval(
            datetime(2024, 5, 10, 12, 0), datetime(2024, 5, 10, 8, 0), EnginePolicies()
        )

    def test_default_check_rejects_new_year_stay(self):
        with self.assertRaises(InvalidParkingIntervalError) as context:
            validate_parking_interval(
                datetime(2024, 12, 31, 22, 0), datetime(2025, 1, 1, 2, 0), EnginePolicies()
            )
        self.assertEqual(str(context.exception), "The parking interval is not a valid one.")

    def test_strict_check_compares_timestamps(self):
        strict = EnginePolicies(strict_interval_check=True)
        validate_parking_interval(datetime(2024, 12, 31, 22, 0), datetime(2025, 1, 1, 2, 0), strict)
        with self.assertRaises(InvalidParkingIntervalError):
            validate_parking_interval(datetime(2024, 5, 10, 12, 0), datetime(2024, 5, 10, 8, 0), strict)


class TestAreaAdmission(unittest.TestCase):
    """Unit tests for Area.admit"""

    def setUp(self):
        self.area = Area(
            "A1",
            {VehicleClass.MOTORCYCLE: 10, VehicleClass.CAR: 2},
            clock=fixed_clock
        )
        self.entry = NOW
        self.exit = NOW + timedelta(hours=3)

    def test_capacity_defaults_to_zero(self):
        self.assertEqual(self.area.capacity_values(), [10, 2, 0, 0, 0])

    def test_set_capacity_in_canonical_order(self):
        self.area.set_capacity([1, 2, 3, 4, 5])
        self.assertEqual(self.area.capacity_limit[VehicleClass.BUS], 4)
        with self.assertRaises(ValueError):
            self.area.set_capacity([1, 2])

    def test_admission_registers_vehicle_and_interval(self):
        interval = self.area.admit(VehicleClass.CAR, "CAR-1", self.entry, self.exit)

        vehicle = self.area.get_vehicle("CAR-1")
        self.assertIsNotNone(vehicle)
        self.assertEqual(vehicle.last_exit, self.exit)
        self.assertEqual(vehicle.entrance_count, 1)
        self.assertEqual(vehicle.intervals_on(self.entry.date()), [interval])
        self.assertEqual(self.area.live_occupancy[VehicleClass.CAR], 1)

    def test_eleventh_motorcycle_is_rejected(self):
        for i in range(10):
            self.area.admit(VehicleClass.MOTORCYCLE, f"M-{i}", self.entry, self.exit)

        with self.assertRaises(MaximumCapacityReachedError) as context:
            self.area.admit(VehicleClass.MOTORCYCLE, "M-10", self.entry, self.exit)

        self.assertEqual(str(context.exception), "Maximum capacity for motorcycle is 10")
        self.assertIsNone(self.area.get_vehicle("M-10"))
        self.assertEqual(self.area.live_occupancy[VehicleClass.MOTORCYCLE], 10)

    def test_zero_capacity_class_is_always_rejected(self):
        with self.assertRaises(MaximumCapacityReachedError):
            self.area.admit(VehicleClass.BUS, "BUS-1", self.entry, self.exit)

    def test_occupancy_never_exceeds_limit(self):
        for i in range(5):
            try:
                self.area.admit(VehicleClass.CAR, f"C-{i}", self.entry, self.exit)
            except MaximumCapacityReachedError:
                pass
            self.assertLessEqual(
                self.area.live_occupancy[VehicleClass.CAR],
                self.area.capacity_limit[VehicleClass.CAR]
            )

    def test_departed_vehicles_free_their_place(self):
        past_entry = NOW - timedelta(hours=5)
        past_exit = NOW - timedelta(hours=1)
        self.area.admit(VehicleClass.CAR, "OLD-1", past_entry, past_exit)
        self.area.admit(VehicleClass.CAR, "OLD-2", past_entry, past_exit)
        self.area.admit(VehicleClass.CAR, "NEW-1", self.entry, self.exit)

        self.assertEqual(self.area.compute_occupancy()[VehicleClass.CAR], 1)

    def test_rejected_admission_keeps_history_unchanged(self):
        self.area.admit(VehicleClass.CAR, "C-1", self.entry, self.exit)
        self.area.admit(VehicleClass.CAR, "C-2", self.entry, self.exit)
        vehicle = self.area.get_vehicle("C-1")

        with self.assertRaises(MaximumCapacityReachedError):
            self.area.admit(VehicleClass.CAR, "C-1", self.entry, self.exit + timedelta(hours=1))

        self.assertEqual(vehicle.entrance_count, 1)
        self.assertEqual(len(list(vehicle.intervals())), 1)

    def test_rejection_keeps_overwritten_last_exit_by_default(self):
        self.area.admit(VehicleClass.CAR, "C-1", self.entry, self.exit)
        self.area.admit(VehicleClass.CAR, "C-2", self.entry, self.exit)
        later_exit = self.exit + timedelta(hours=4)

        with self.assertRaises(MaximumCapacityReachedError):
            self.area.admit(VehicleClass.CAR, "C-1", self.entry, later_exit)

        self.assertEqual(self.area.get_vehicle("C-1").last_exit, later_exit)

    def test_rejection_restores_last_exit_when_enabled(self):
        area = Area(
            "A2",
            {VehicleClass.CAR: 1},
            policies=EnginePolicies(restore_last_exit_on_rejection=True),
            clock=fixed_clock
        )
        area.admit(VehicleClass.CAR, "C-1", self.entry, self.exit)

        with self.assertRaises(MaximumCapacityReachedError):
            area.admit(VehicleClass.CAR, "C-1", self.entry, self.exit + timedelta(hours=4))

        self.assertEqual(area.get_vehicle("C-1").last_exit, self.exit)

    def test_returning_vehicle_enters_empty_area(self):
        area = Area("Single", {VehicleClass.CAR: 1}, clock=fixed_clock)
        area.admit(VehicleClass.CAR, "C-1", NOW - timedelta(hours=3), NOW - timedelta(hours=1))
        self.assertEqual(area.compute_occupancy()[VehicleClass.CAR], 0)

        interval = area.admit(VehicleClass.CAR, "C-1", self.entry, self.exit)

        vehicle = area.get_vehicle("C-1")
        self.assertEqual(vehicle.last_exit, self.exit)
        self.assertEqual(vehicle.entrance_count, 2)
        self.assertEqual(vehicle.intervals_on(NOW.date())[-1], interval)
        self.assertEqual(area.live_occupancy[VehicleClass.CAR], 1)

    def test_parked_vehicle_readmitted_into_full_area_is_rejected(self):
        area = Area("Single", {VehicleClass.CAR: 1}, clock=fixed_clock)
        area.admit(VehicleClass.CAR, "C-1", self.entry, self.exit)

        with self.assertRaises(MaximumCapacityReachedError):
            area.admit(VehicleClass.CAR, "C-1", self.entry, self.exit + timedelta(hours=1))

        vehicle = area.get_vehicle("C-1")
        self.assertEqual(vehicle.entrance_count, 1)
        self.assertEqual(len(list(vehicle.intervals())), 1)
        self.assertEqual(area.live_occupancy[VehicleClass.CAR], 1)

    def test_invalid_interval_changes_nothing(self):
        with self.assertRaises(InvalidParkingIntervalError):
            self.area.admit(VehicleClass.CAR, "C-1", self.entry, self.entry - timedelta(days=1))
        self.assertIsNone(self.area.get_vehicle("C-1"))

    def test_known_plate_keeps_its_class_and_subscription(self):
        past_exit = NOW - timedelta(hours=1)
        self.area.admit(VehicleClass.CAR, "P-1", NOW - timedelta(hours=2), past_exit,
                        subscription_purchased_at=NOW - timedelta(days=1))
        self.area.admit(VehicleClass.MOTORCYCLE, "P-1", self.entry, self.exit)

        vehicle = self.area.get_vehicle("P-1")
        self.assertIs(vehicle.vehicle_class, VehicleClass.CAR)
        self.assertEqual(vehicle.subscription.purchased_at, NOW - timedelta(days=1))
        self.assertEqual(vehicle.entrance_count, 2)

    def test_tenth_admission_is_discounted(self):
        area = Area("Loyal", {VehicleClass.CAR: 1}, clock=fixed_clock)
        day = date(2024, 5, 1)
        intervals = []
        for i in range(10):
            entry = datetime(2024, 5, 1, 8, 0) + timedelta(minutes=i * 10)
            intervals.append(area.admit(VehicleClass.CAR, "LOYAL", entry, entry + timedelta(minutes=5)))

        self.assertEqual([interval.has_discount for interval in intervals], [False] * 9 + [True])
        # Nine hours at 2 and one at 1.5
        self.assertEqual(area.gain_for_day(day), Decimal('19.5'))


class TestParkingLot(unittest.TestCase):
    """Unit tests for the ParkingLot aggregate"""

    def setUp(self):
        self.lot = ParkingLot("Central", 3)
        self.first = self.lot.add_area(Area("A", {VehicleClass.CAR: 2}, clock=fixed_clock))
        self.second = self.lot.add_area(Area("B", {VehicleClass.CAR: 2, VehicleClass.VAN: 4}, clock=fixed_clock))

    def test_get_area(self):
        self.assertIs(self.lot.get_area("B"), self.second)
        self.assertIs(self.lot.last_area(), self.second)

    def test_unknown_area(self):
        with self.assertRaises(InvalidAreaNameError) as context:
            self.lot.get_area("Z")
        self.assertEqual(str(context.exception), "Area 'Z' does not exist!")
        self.assertIsInstance(context.exception, NameNotFoundError)

    def test_occupancy_rate_across_areas(self):
        exit = NOW + timedelta(hours=1)
        self.first.admit(VehicleClass.CAR, "C-1", NOW, exit)
        self.second.admit(VehicleClass.CAR, "C-2", NOW, exit)
        self.second.admit(VehicleClass.VAN, "V-1", NOW, exit)

        rates = self.lot.occupancy_rate(NOW)

        self.assertAlmostEqual(rates[VehicleClass.CAR], 50.0)
        self.assertAlmostEqual(rates[VehicleClass.VAN], 25.0)
        self.assertIsNone(rates[VehicleClass.MOTORCYCLE])
        self.assertIsNone(rates[VehicleClass.TRUCK])

    def test_gain_for_day_sums_every_area(self):
        self.first.admit(VehicleClass.CAR, "C-1", datetime(2024, 5, 1, 9, 0), datetime(2024, 5, 1, 11, 30))
        self.second.admit(VehicleClass.VAN, "V-1", datetime(2024, 5, 1, 9, 0), datetime(2024, 5, 1, 10, 0))

        self.assertEqual(self.lot.gain_for_day(date(2024, 5, 1)), Decimal('9'))
        self.assertEqual(self.lot.gain_for_day(date(2024, 5, 2)), Decimal('0'))

    def test_duplicate_area_names_first_wins_by_default(self):
        duplicate = self.lot.add_area(Area("A", {VehicleClass.BUS: 1}))
        self.assertIs(self.lot.get_area("A"), self.first)
        self.assertIs(self.lot.last_area(), duplicate)

    def test_duplicate_area_names_rejected_when_enabled(self):
        lot = ParkingLot("Strict", 1, EnginePolicies(reject_duplicate_names=True))
        lot.add_area(Area("A"))
        with self.assertRaises(DuplicateNameError):
            lot.add_area(Area("A"))
        self.assertEqual(len(lot.areas), 1)


class TestParkingChain(unittest.TestCase):
    """Unit tests for the ParkingChain aggregate"""

    def setUp(self):
        self.chain = ParkingChain()
        self.chain.add_parking_lot(ParkingLot("North", 2))
        self.chain.add_parking_lot(ParkingLot("South", 1))
        self.chain.add_area("North", Area("N1", {VehicleClass.CAR: 1}, clock=fixed_clock))
        self.chain.add_area("South", Area("S1", {VehicleClass.TRUCK: 1}, clock=fixed_clock))

    def test_routing_admission(self):
        self.chain.admit("South", "S1", VehicleClass.TRUCK, "T-1", NOW, NOW + timedelta(hours=1))
        self.assertIsNotNone(self.chain.get_area("South", "S1").get_vehicle("T-1"))
        self.assertIsNone(self.chain.get_area("North", "N1").get_vehicle("T-1"))

    def test_unknown_lot(self):
        with self.assertRaises(InvalidParkingLotNameError) as context:
            self.chain.admit("West", "W1", VehicleClass.CAR, "C-1", NOW, NOW)
        self.assertEqual(str(context.exception), "Parking lot 'West' does not exist!")

    def test_unknown_area_in_known_lot(self):
        with self.assertRaises(InvalidAreaNameError):
            self.chain.get_area("North", "S1")

    def test_reports_follow_lot_order(self):
        self.assertEqual([lot.name for lot, _ in self.chain.occupancy_rates(now=NOW)], ["North", "South"])
        self.assertEqual([lot.name for lot, _ in self.chain.gain_for_day(NOW.date())], ["North", "South"])

    def test_reports_for_one_lot(self):
        gains = self.chain.gain_for_day(NOW.date(), "South")
        self.assertEqual(len(gains), 1)
        self.assertEqual(gains[0][0].name, "South")
        with self.assertRaises(InvalidParkingLotNameError):
            self.chain.occupancy_rates("West")

    def test_duplicate_lot_names_rejected_when_enabled(self):
        chain = ParkingChain(EnginePolicies(reject_duplicate_names=True))
        chain.add_parking_lot(ParkingLot("North", 2))
        with self.assertRaises(DuplicateNameError):
            chain.add_parking_lot(ParkingLot("North", 5))


if __name__ == '__main__':
    unittest.main()
