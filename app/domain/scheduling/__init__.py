"""
Scheduling Domain

Decides whether a proposed appointment (professional, resources, date, time
range) may be booked, and manages the appointment lifecycle.

Layout:
- time_window.py   Clock-time windows and half-open overlap math
- availability.py  Weekly working hours and pauses (profile rule, then tenant default)
- holidays.py      One-off and recurring holiday blocks
- overlaps.py      Professional double-booking and exclusive resource checks
- conflicts.py     ConflictEngine: runs the checks above in a fixed order
- lifecycle.py     Appointment create / status transitions / delete
- slot_guard.py    Commit-time slot claims closing the check-then-book race
- service.py       Availability, holiday and resource maintenance
- router.py        /scheduling endpoints
"""
