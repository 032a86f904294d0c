"""
CareConnect Database Seeder

Creates demo users with:
- An accepted connection (Sarah <-> James)
- A pending request (Priya -> Sarah)
- Posts with each visibility level
- A job listing
"""

import sys
sys.path.insert(0, ".")

from careconnect.core.logging_config import setup_logging
from careconnect.core.security import get_password_hash
from careconnect.db.base import Base
from careconnect.db.session import SessionLocal, engine
from careconnect.models import User
from careconnect.services import content_feed, job_board, relationship_graph

DEMO_PASSWORD = "careconnect123"

DEMO_USERS = [
    {
        "first_name": "Sarah",
        "last_name": "Chen",
        "email": "sarah.chen@careconnect.dev",
        "role": "Physician",
        "specialty": "Cardiology",
        "hospital": "St. Mary's Medical Center",
        "location": "Boston, MA",
    },
    {
        "first_name": "James",
        "last_name": "Okafor",
        "email": "james.okafor@careconnect.dev",
        "role": "Nurse Practitioner",
        "specialty": "Emergency Medicine",
        "hospital": "Boston General",
        "location": "Boston, MA",
    },
    {
        "first_name": "Priya",
        "last_name": "Raman",
        "email": "priya.raman@careconnect.dev",
        "role": "Resident",
        "specialty": "Pediatrics",
        "hospital": "Children's Hospital",
        "location": "Cambridge, MA",
    },
]


def seed_database():
    """Seed the database with demo data."""
    setup_logging()

    # Create all tables
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()

    try:
        # Check if already seeded
        if db.query(User).filter(User.email == DEMO_USERS[0]["email"]).first():
            print("Database already seeded. Skipping...")
            return

        print("Seeding database...")

        # 1. Users
        users = []
        for data in DEMO_USERS:
            user = User(
                hashed_password=get_password_hash(DEMO_PASSWORD),
                connections=[],
                pending_connections=[],
                **data,
            )
            db.add(user)
            users.append(user)
        db.commit()
        sarah, james, priya = users

        # 2. Connections
        request = relationship_graph.send_request(db, sarah.id, james.id)
        relationship_graph.respond_to_request(db, request.id, james.id, accept=True)
        relationship_graph.send_request(db, priya.id, sarah.id)

        # 3. Posts
        content_feed.create_post(
            db, sarah.id, "Excited to share our new cardiac rehab protocol results!", visibility="public"
        )
        content_feed.create_post(
            db, james.id, "Looking for recommendations on ED triage training courses.", visibility="connections"
        )
        content_feed.create_post(db, priya.id, "Note to self: follow up on journal club.", visibility="private")

        # 4. Jobs
        job_board.create_job(
            db,
            sarah.id,
            {
                "title": "Cardiac Care Nurse",
                "company": "St. Mary's Medical Center",
                "location": "Boston, MA",
                "description": "Join our cardiac step-down unit.",
                "requirements": ["RN license", "BLS/ACLS certification"],
                "type": "full-time",
                "experience": "associate",
                "salary": {"min": 85000, "max": 110000, "currency": "USD"},
            },
        )

        print("Database seeded successfully!")
        print(f"Demo logins (password: {DEMO_PASSWORD}):")
        for user in users:
            print(f"  - {user.email}")

    finally:
        db.close()


if __name__ == "__main__":
    seed_database()
