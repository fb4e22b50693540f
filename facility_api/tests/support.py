# facility_api/tests/support.py
"""Seed data and lookup helpers shared by the test modules."""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from facility_api.database import Base
from facility_api.models import Asset, MaintenanceRequest, MaintenanceStatus, RoleName, User
from facility_api.utils.permissions import Actor

REQUESTER_ID  = 1
SUPERVISOR_ID = 2
MANAGER_ID    = 3
ADMIN_ID      = 4
INACTIVE_ID   = 5
TECH_ID       = 7
OTHER_TECH_ID = 9
ASSET_ID      = 3

USERS = [
    (REQUESTER_ID,  "Linh Pham",   "linh@example.com",   RoleName.STAFF,      True),
    (SUPERVISOR_ID, "Minh Tran",   "minh@example.com",   RoleName.SUPERVISOR, True),
    (MANAGER_ID,    "Hoa Le",      "hoa@example.com",    RoleName.MANAGER,    True),
    (ADMIN_ID,      "Admin",       "admin@example.com",  RoleName.ADMIN,      True),
    (INACTIVE_ID,   "Former Tech", "former@example.com", RoleName.STAFF,      False),
    (TECH_ID,       "Quang Vo",    "quang@example.com",  RoleName.STAFF,      True),
    (OTHER_TECH_ID, "Bao Do",      "bao@example.com",    RoleName.STAFF,      True),
]

FULL_FORM = {
    "assetId":     ASSET_ID,
    "title":       "Leaking pipe",
    "description": "Pipe in room 4 leaking",
    "priority":    "high",
}


def make_session():
    """Fresh in-memory database with schema and seed rows. Returns (session, engine)."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    db = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)()

    for user_id, name, email, role, active in USERS:
        db.add(User(id=user_id, name=name, email=email, role=role, isActive=active))
    db.add(Asset(id=1, name="Air conditioner", code="AC-001", category="HVAC", location="Room 2"))
    db.add(Asset(id=ASSET_ID, name="Water pipe", code="PIPE-003", category="Plumbing", location="Room 4"))
    db.commit()
    return db, engine


def actor(db, user_id: int) -> Actor:
    return Actor.from_user(db.get(User, user_id))


def stored(db, request_id: int) -> MaintenanceRequest:
    """Re-read a record from the database, bypassing the identity map."""
    db.expire_all()
    return db.get(MaintenanceRequest, request_id)


def record_count(db) -> int:
    return db.query(MaintenanceRequest).count()


def draft_count(db) -> int:
    return db.query(MaintenanceRequest).filter(MaintenanceRequest.status == MaintenanceStatus.DRAFT).count()
