"""End-to-end conflict checks through the engine facade"""

from datetime import date

import pytest

from app.domain.scheduling.conflicts import ConflictEngine, ProposedBooking
from app.domain.scheduling.exceptions import InvalidTimeFormat, NotFoundError, ValidationError
from app.domain.scheduling.schemas import ConflictCheckRequest, ConflictType
from app.domain.scheduling.time_window import TimeWindow

from .factories import MONDAY, SATURDAY, TUESDAY


def request(profile, day, start, end, resource_ids=None):
    return ConflictCheckRequest(
        profileId=profile.id,
        resourceIds=resource_ids or [],
        date=day.isoformat(),
        startTime=start,
        endTime=end,
    )


class TestScenarios:
    def test_free_weekday_slot(self, db, clinic):
        """Mon-Fri 09:00-18:00, nothing booked: Tuesday 10:00-10:30 is free"""
        conflicts = ConflictEngine(db).check_conflicts(
            clinic.tenant.id, request(clinic.profile, TUESDAY, "10:00", "10:30")
        )
        assert conflicts == []

    def test_saturday_falls_back_to_tenant_non_working_day(self, db, clinic):
        conflicts = ConflictEngine(db).check_conflicts(
            clinic.tenant.id, request(clinic.profile, SATURDAY, "10:00", "10:30")
        )
        assert len(conflicts) == 1
        assert conflicts[0].type == ConflictType.UNAVAILABLE
        assert "does not work this day" in conflicts[0].message

    def test_lunch_pause_overlap(self, db, seed):
        tenant = seed.tenant()
        profile = seed.profile(tenant)
        seed.rule(tenant, 1, "09:00", "18:00", profile=profile, pauses=[{"start": "12:00", "end": "13:00"}])

        conflicts = ConflictEngine(db).check_conflicts(
            tenant.id, request(profile, MONDAY, "11:30", "12:30")
        )
        assert len(conflicts) == 1
        assert conflicts[0].type == ConflictType.UNAVAILABLE
        assert conflicts[0].message == "Overlaps break (12:00 - 13:00)"

    @pytest.mark.parametrize("year", [2024, 2025, 2026, 2030])
    def test_recurring_christmas_blocks_every_year(self, db, seed, clinic, year):
        seed.holiday(clinic.tenant, "Christmas", date(2024, 12, 25), is_recurring=True)

        conflicts = ConflictEngine(db).check_conflicts(
            clinic.tenant.id, request(clinic.profile, date(year, 12, 25), "10:00", "11:00")
        )
        assert conflicts[0].type == ConflictType.HOLIDAY
        assert conflicts[0].message == "Christmas - schedule blocked for this day"

    def test_double_booking_and_touching_boundary(self, db, seed, clinic):
        seed.appointment(clinic.tenant, clinic.profile, clinic.lead, MONDAY, "14:00", "15:00")
        engine = ConflictEngine(db)

        conflicts = engine.check_conflicts(
            clinic.tenant.id, request(clinic.profile, MONDAY, "14:30", "15:30")
        )
        assert [c.type for c in conflicts] == [ConflictType.UNAVAILABLE]
        assert conflicts[0].message == "Professional already has an appointment at this time"

        assert engine.check_conflicts(
            clinic.tenant.id, request(clinic.profile, MONDAY, "15:00", "16:00")
        ) == []

    def test_exclusive_room_reserved_by_another_professional(self, db, seed, clinic):
        bob = seed.profile(clinic.tenant, full_name="Dr. Bob", email="bob@clinic.test")
        seed.rule(clinic.tenant, 1, "08:00", "20:00", profile=bob)
        room = seed.resource(clinic.tenant, "Room 1")
        seed.appointment(
            clinic.tenant, clinic.profile, clinic.lead, MONDAY, "09:00", "10:00", resources=[room]
        )

        conflicts = ConflictEngine(db).check_conflicts(
            clinic.tenant.id, request(bob, MONDAY, "09:30", "10:30", [room.id])
        )
        assert len(conflicts) == 1
        assert conflicts[0].type == ConflictType.RESOURCE
        assert conflicts[0].message == "Room 1 is already reserved for this time"


class TestOrderingAndContract:
    def test_checks_run_in_fixed_order(self, db, seed, clinic):
        room = seed.resource(clinic.tenant, "Room 1")
        bob = seed.profile(clinic.tenant, full_name="Dr. Bob", email="bob@clinic.test")
        seed.holiday(clinic.tenant, "Inventory", MONDAY)
        seed.appointment(clinic.tenant, clinic.profile, clinic.lead, MONDAY, "17:00", "18:30")
        seed.appointment(clinic.tenant, bob, clinic.lead, MONDAY, "17:00", "18:00", resources=[room])

        conflicts = ConflictEngine(db).check_conflicts(
            clinic.tenant.id, request(clinic.profile, MONDAY, "17:30", "18:30", [room.id])
        )
        assert [c.type for c in conflicts] == [
            ConflictType.HOLIDAY,
            ConflictType.UNAVAILABLE,
            ConflictType.UNAVAILABLE,
            ConflictType.RESOURCE,
        ]
        assert conflicts[1].message == "Outside business hours (09:00 - 18:00)"
        assert conflicts[2].message == "Professional already has an appointment at this time"

    def test_idempotent_without_intervening_writes(self, db, seed, clinic):
        seed.holiday(clinic.tenant, "Inventory", MONDAY)
        seed.appointment(clinic.tenant, clinic.profile, clinic.lead, MONDAY, "14:00", "15:00")
        engine = ConflictEngine(db)
        data = request(clinic.profile, MONDAY, "14:30", "18:30")

        assert engine.check_conflicts(clinic.tenant.id, data) == engine.check_conflicts(
            clinic.tenant.id, data
        )

    def test_check_performs_no_writes(self, db, clinic):
        from app.models import Appointment, ScheduleSlotClaim

        ConflictEngine(db).check_conflicts(
            clinic.tenant.id, request(clinic.profile, TUESDAY, "10:00", "10:30")
        )
        assert db.query(Appointment).count() == 0
        assert db.query(ScheduleSlotClaim).count() == 0

    def test_no_rule_at_all_is_permissive(self, db, seed):
        tenant = seed.tenant()
        profile = seed.profile(tenant)

        assert ConflictEngine(db).check_conflicts(
            tenant.id, request(profile, MONDAY, "02:00", "03:00")
        ) == []


class TestErrors:
    def test_unknown_professional(self, db, clinic):
        data = ConflictCheckRequest(
            profileId="missing", date="2025-03-10", startTime="10:00", endTime="11:00"
        )
        with pytest.raises(NotFoundError):
            ConflictEngine(db).check_conflicts(clinic.tenant.id, data)

    def test_professional_of_another_tenant(self, db, seed, clinic):
        other = seed.tenant("Other")
        with pytest.raises(NotFoundError):
            ConflictEngine(db).check_conflicts(
                other.id, request(clinic.profile, MONDAY, "10:00", "11:00")
            )

    def test_malformed_time_rejected_before_any_query(self, db, clinic):
        data = request(clinic.profile, MONDAY, "10:00", "25:00")
        with pytest.raises(InvalidTimeFormat):
            ConflictEngine(db).check_conflicts(clinic.tenant.id, data)

    def test_end_before_start(self, db, clinic):
        with pytest.raises(ValidationError):
            ConflictEngine(db).check_conflicts(
                clinic.tenant.id, request(clinic.profile, MONDAY, "11:00", "10:00")
            )

    def test_bad_date(self):
        with pytest.raises(ValidationError):
            ProposedBooking.parse("p1", "2025-13-01", "10:00", "11:00")

    def test_times_off_slot_grid(self):
        with pytest.raises(ValidationError):
            ProposedBooking.parse("p1", "2025-03-10", "10:05", "10:30", slot_minutes=15)
        assert ProposedBooking.parse("p1", "2025-03-10", "10:05", "10:32").window == TimeWindow(605, 632)
