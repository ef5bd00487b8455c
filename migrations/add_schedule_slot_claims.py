"""
Add the schedule_slot_claims table and claim slots for existing appointments

Table:
- schedule_slot_claims (tenant_id, appointment_id, holder_type, holder_id, date, bucket)
  with UNIQUE (tenant_id, holder_type, holder_id, date, bucket) as uq_slot_claim

Existing occupying appointments (not CANCELLED/COMPLETED) get their claims
backfilled. Appointments already double-booked before this migration are
reported and left unclaimed.

Run with: python migrations/add_schedule_slot_claims.py [--tenant TENANT_ID] [--down]
"""

# Ensure this script can be run directly from the repo root
import sys
from pathlib import Path

CURRENT_DIR = Path(__file__).resolve().parent
PROJECT_DIR = CURRENT_DIR.parent
if str(PROJECT_DIR) not in sys.path:
    sys.path.insert(0, str(PROJECT_DIR))

from app.database import SessionLocal, engine
from app.domain.scheduling.slot_guard import backfill_slot_claims
from app.models import ScheduleSlotClaim


def upgrade(tenant_id=None):
    ScheduleSlotClaim.__table__.create(bind=engine, checkfirst=True)
    print("✅ schedule_slot_claims table ready")

    db = SessionLocal()
    try:
        result = backfill_slot_claims(db, tenant_id=tenant_id)
    finally:
        db.close()

    print(f"✅ Claimed slots for {result['claimed']} appointment(s)")
    if result["skipped"]:
        print(f"⚠️  {len(result['skipped'])} appointment(s) overlap an earlier booking:")
        for appointment_id in result["skipped"]:
            print(f"   - {appointment_id}")
    print("Migration add_schedule_slot_claims applied successfully")


def downgrade():
    ScheduleSlotClaim.__table__.drop(bind=engine, checkfirst=True)
    print("Migration add_schedule_slot_claims rolled back")


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Manage schedule slot claims migration")
    parser.add_argument("--down", action="store_true", help="Rollback the migration")
    parser.add_argument("--tenant", default=None, help="Only backfill this tenant")
    args = parser.parse_args()

    if args.down:
        downgrade()
    else:
        upgrade(tenant_id=args.tenant)
