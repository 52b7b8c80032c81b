from sqlalchemy import inspect

from models import db
from models.user import Role
from models.service import Service
from models.staff import Staff

DEFAULT_ROLES = ["ADMIN", "STAFF"]

DEFAULT_SERVICES = [
    # name, price_cents, duration_min, description
    ("Express Wash", 3000, 30, "Quick exterior wash and dry - get your car clean in no time"),
    ("Interior Deep Clean", 8000, 90, "Complete interior vacuum, shampoo, and sanitizing treatment"),
    ("Full Detail Package", 15000, 180, "Complete interior and exterior detailing with paint protection"),
    ("Paint Correction", 25000, 240, "Professional paint correction and ceramic coating application"),
    ("Headlight Restoration", 5000, 60, "Restore cloudy headlights to like-new condition"),
]

DEFAULT_STAFF = [
    ("Mike Johnson", "Lead detailer with 8+ years experience specializing in luxury vehicles"),
    ("Sarah Chen", "Interior specialist and paint correction expert with ASI certification"),
    ("David Rodriguez", "Master technician focusing on ceramic coatings and paint protection"),
]

def seed_roles():
    if not inspect(db.engine).has_table(Role.__tablename__):
        return  # migrations not applied yet
    existing = {r.name for r in Role.query.all()}
    for name in DEFAULT_ROLES:
        if name not in existing:
            db.session.add(Role(name=name))
    db.session.commit()

def seed_catalog() -> tuple[int, int]:
    """Insert the shop's services and technicians if missing. Returns (services, staff) added."""
    known_services = {s.name for s in Service.query.all()}
    known_staff = {s.name for s in Staff.query.all()}

    added_services = 0
    for name, price_cents, duration_min, description in DEFAULT_SERVICES:
        if name not in known_services:
            db.session.add(Service(name=name, price_cents=price_cents, duration_min=duration_min, description=description))
            added_services += 1

    added_staff = 0
    for name, bio in DEFAULT_STAFF:
        if name not in known_staff:
            db.session.add(Staff(name=name, bio=bio))
            added_staff += 1

    db.session.commit()
    return added_services, added_staff
