#!/usr/bin/env python3
"""CLI tool to register or update a doctor profile and its weekly availability."""
import json
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

from appointment_engine import config
from appointment_engine.database import create_session_factory, get_engine
from appointment_engine.doctors import DoctorDirectory

load_dotenv()

# Monday to Friday, 09:00-17:00
DEFAULT_AVAILABILITY = [
    {"day": day, "ranges": [{"start": "09:00", "end": "17:00"}]}
    for day in range(1, 6)
]


def load_availability(source: str) -> list:
    """Read availability from a JSON file path or an inline JSON string."""
    if os.path.isfile(source):
        with open(source) as f:
            return json.load(f)
    return json.loads(source)


def main():
    """Register doctor profile."""
    if len(sys.argv) < 2:
        print("Usage: python scripts/register_doctor.py <email> [availability.json|JSON] [slot_minutes]")
        print("\nExample:")
        print("  python scripts/register_doctor.py dr.house@clinic.com "
              "'[{\"day\": 1, \"ranges\": [{\"start\": \"08:00\", \"end\": \"12:00\"}]}]' 30")
        sys.exit(1)

    email = sys.argv[1]
    availability = load_availability(sys.argv[2]) if len(sys.argv) > 2 else DEFAULT_AVAILABILITY
    slot_minutes = int(sys.argv[3]) if len(sys.argv) > 3 else config.DEFAULT_SLOT_MINUTES

    directory = DoctorDirectory(create_session_factory(get_engine()))
    doctor = directory.register_doctor(email, availability=availability, slot_minutes=slot_minutes)

    print(f"\n✅ Doctor profile registered: {doctor.email}")
    print(f"   Profile ID: {doctor.id}")
    print(f"   Slot length: {doctor.slot_minutes} minutes")
    for entry in doctor.availability.days:
        ranges = ", ".join(f"{r.start}-{r.end}" for r in entry.ranges) or "(none)"
        print(f"   Day {entry.day}: {ranges}")
    print("\n📋 Usage Example:")
    print(f"  curl 'http://localhost:8000/api/v1/doctors/{doctor.id}/slots?date=2030-01-07' \\")
    print("    -H 'X-User-ID: patient-1' -H 'X-User-Role: patient'\n")


if __name__ == "__main__":
    main()
