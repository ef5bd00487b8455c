"""Tests for the booking overlap and resource conflict checkers"""

import pytest

from app.domain.scheduling.exceptions import NotFoundError
from app.domain.scheduling.overlaps import BookingOverlapChecker, ResourceConflictChecker
from app.domain.scheduling.schemas import ConflictType
from app.domain.scheduling.time_window import TimeWindow

from .factories import MONDAY, TUESDAY


def window(start, end):
    return TimeWindow.from_strings(start, end)


class TestBookingOverlapChecker:
    def test_overlapping_appointment_found(self, db, seed, clinic):
        existing = seed.appointment(clinic.tenant, clinic.profile, clinic.lead, MONDAY, "14:00", "15:00")

        checker = BookingOverlapChecker(db)
        found = checker.find_overlaps(clinic.tenant.id, clinic.profile.id, MONDAY, window("14:30", "15:30"))
        assert [a.id for a in found] == [existing.id]

    def test_touching_boundary_is_free(self, db, seed, clinic):
        seed.appointment(clinic.tenant, clinic.profile, clinic.lead, MONDAY, "14:00", "15:00")

        checker = BookingOverlapChecker(db)
        assert checker.check(clinic.tenant.id, clinic.profile.id, MONDAY, window("15:00", "16:00")) == []
        assert checker.check(clinic.tenant.id, clinic.profile.id, MONDAY, window("13:00", "14:00")) == []

    def test_multiple_overlaps_reported_once(self, db, seed, clinic):
        seed.appointment(clinic.tenant, clinic.profile, clinic.lead, MONDAY, "09:00", "10:00")
        seed.appointment(clinic.tenant, clinic.profile, clinic.lead, MONDAY, "10:00", "11:00")

        conflicts = BookingOverlapChecker(db).check(
            clinic.tenant.id, clinic.profile.id, MONDAY, window("09:30", "10:30")
        )
        assert len(conflicts) == 1
        assert conflicts[0].type == ConflictType.UNAVAILABLE
        assert conflicts[0].message == "Professional already has an appointment at this time"

    @pytest.mark.parametrize("status", ["CANCELLED", "COMPLETED"])
    def test_terminal_appointments_do_not_occupy(self, db, seed, clinic, status):
        seed.appointment(
            clinic.tenant, clinic.profile, clinic.lead, MONDAY, "14:00", "15:00", status=status
        )

        checker = BookingOverlapChecker(db)
        assert checker.check(clinic.tenant.id, clinic.profile.id, MONDAY, window("14:00", "15:00")) == []

    @pytest.mark.parametrize("status", ["SCHEDULED", "CONFIRMED"])
    def test_non_terminal_appointments_occupy(self, db, seed, clinic, status):
        seed.appointment(
            clinic.tenant, clinic.profile, clinic.lead, MONDAY, "14:00", "15:00", status=status
        )

        checker = BookingOverlapChecker(db)
        assert len(checker.check(clinic.tenant.id, clinic.profile.id, MONDAY, window("14:00", "15:00"))) == 1

    def test_other_day_and_other_professional_ignored(self, db, seed, clinic):
        other = seed.profile(clinic.tenant, full_name="Dr. Bob", email="bob@clinic.test")
        seed.appointment(clinic.tenant, clinic.profile, clinic.lead, TUESDAY, "14:00", "15:00")
        seed.appointment(clinic.tenant, other, clinic.lead, MONDAY, "14:00", "15:00")

        checker = BookingOverlapChecker(db)
        assert checker.check(clinic.tenant.id, clinic.profile.id, MONDAY, window("14:00", "15:00")) == []


class TestResourceConflictChecker:
    def test_exclusive_resource_reserved(self, db, seed, clinic):
        room = seed.resource(clinic.tenant, "Room 1")
        seed.appointment(
            clinic.tenant, clinic.profile, clinic.lead, MONDAY, "09:00", "10:00", resources=[room]
        )

        conflicts = ResourceConflictChecker(db).find_resource_conflicts(
            clinic.tenant.id, [room.id], MONDAY, window("09:30", "10:30")
        )
        assert len(conflicts) == 1
        assert conflicts[0].type == ConflictType.RESOURCE
        assert conflicts[0].message == "Room 1 is already reserved for this time"

    def test_non_exclusive_resource_not_checked(self, db, seed, clinic):
        chair = seed.resource(clinic.tenant, "Shared chair", exclusive=False, capacity=1)
        seed.appointment(
            clinic.tenant, clinic.profile, clinic.lead, MONDAY, "09:00", "10:00", resources=[chair]
        )

        conflicts = ResourceConflictChecker(db).find_resource_conflicts(
            clinic.tenant.id, [chair.id], MONDAY, window("09:00", "10:00")
        )
        assert conflicts == []

    def test_one_conflict_per_resource_in_request_order(self, db, seed, clinic):
        room = seed.resource(clinic.tenant, "Room 1")
        laser = seed.resource(clinic.tenant, "Laser", type="equipment")
        seed.appointment(
            clinic.tenant, clinic.profile, clinic.lead, MONDAY, "09:00", "10:00",
            resources=[room, laser],
        )

        conflicts = ResourceConflictChecker(db).find_resource_conflicts(
            clinic.tenant.id, [laser.id, room.id, laser.id], MONDAY, window("09:30", "10:30")
        )
        assert [c.message for c in conflicts] == [
            "Laser is already reserved for this time",
            "Room 1 is already reserved for this time",
        ]

    def test_cancelled_reservation_frees_resource(self, db, seed, clinic):
        room = seed.resource(clinic.tenant, "Room 1")
        seed.appointment(
            clinic.tenant, clinic.profile, clinic.lead, MONDAY, "09:00", "10:00",
            status="CANCELLED", resources=[room],
        )

        assert ResourceConflictChecker(db).find_resource_conflicts(
            clinic.tenant.id, [room.id], MONDAY, window("09:00", "10:00")
        ) == []

    def test_unknown_or_foreign_resource_raises(self, db, seed, clinic):
        other_tenant = seed.tenant("Other")
        foreign = seed.resource(other_tenant, "Room X")

        checker = ResourceConflictChecker(db)
        with pytest.raises(NotFoundError):
            checker.find_resource_conflicts(clinic.tenant.id, ["missing"], MONDAY, window("09:00", "10:00"))
        with pytest.raises(NotFoundError):
            checker.find_resource_conflicts(clinic.tenant.id, [foreign.id], MONDAY, window("09:00", "10:00"))
