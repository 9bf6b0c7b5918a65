"""
Seed data script.
Creates demo users (with API keys), teams, projects, categories and work logs.
Each step only runs if its table is empty (first-time setup).
"""
from datetime import timedelta
from decimal import Decimal

from sqlalchemy.orm import Session

from database import SessionLocal, init_db
from metrics import today_local
from models import (
    Project,
    Team,
    TeamMember,
    TeamRole,
    User,
    UserRole,
    WorkCategory,
    WorkLog,
)


def seed_users(db: Session) -> bool:
    """
    Seed initial users if table is empty.
    Returns True if seeding was performed.
    """
    existing = db.query(User).first()
    if existing:
        print("Users already exist. Skipping seed.")
        return False

    # Demo API keys are easy to remember on purpose; rotate them outside local use
    users_data = [
        {"email": "admin@example.com", "name": "Admin", "role": UserRole.ADMIN, "api_key": "demo_admin"},
        {"email": "manager@example.com", "name": "Mina Manager", "role": UserRole.MANAGER, "api_key": "demo_manager"},
        {"email": "alice@example.com", "name": "Alice", "role": UserRole.USER, "api_key": "demo_alice"},
        {"email": "bob@example.com", "name": "Bob", "role": UserRole.USER, "api_key": "demo_bob"},
        {"email": "carol@example.com", "name": "Carol", "role": UserRole.USER, "api_key": "demo_carol"},
    ]

    for data in users_data:
        db.add(User(**data, is_active=True))
    db.commit()

    print("\n" + "=" * 60)
    print("SEED USERS CREATED - SAVE THESE API KEYS!")
    print("=" * 60)
    for data in users_data:
        print(f"\n{data['email']} ({data['role'].value}):")
        print(f"  API Key: {data['api_key']}")
    print("\n" + "=" * 60 + "\n")

    return True


def seed_teams(db: Session) -> bool:
    """Two teams; Carol belongs to both."""
    if db.query(Team).first():
        print("Teams already exist. Skipping.")
        return False

    users = {user.email.split("@")[0]: user for user in db.query(User).all()}

    teams = {
        "Platform": [("manager", TeamRole.LEADER), ("alice", TeamRole.MEMBER), ("carol", TeamRole.MEMBER)],
        "Research": [("bob", TeamRole.LEADER), ("carol", TeamRole.VIEWER)],
    }

    for team_name, members in teams.items():
        team = Team(name=team_name, is_active=True)
        db.add(team)
        db.flush()
        for key, role in members:
            if key in users:
                db.add(TeamMember(team_id=team.id, user_id=users[key].id, role=role))

    db.commit()
    print(f"\nTeams created: {', '.join(teams)}")
    return True


def seed_catalog(db: Session) -> bool:
    """Projects and work categories."""
    if db.query(Project).first() or db.query(WorkCategory).first():
        print("Projects/categories already exist. Skipping.")
        return False

    for name in ["Billing Service", "Mobile App", "Internal Tools"]:
        db.add(Project(name=name, is_active=True))
    db.add(Project(name="Legacy Portal", is_active=False))

    for order, name in enumerate(["Development", "Review", "Meeting", "Support"], start=1):
        db.add(WorkCategory(name=name, display_order=order, is_active=True))

    db.commit()
    print("\nProjects and categories created")
    return True


def seed_work_logs(db: Session, days: int = 14) -> bool:
    """A couple of work logs per user per weekday over the last `days` days."""
    if db.query(WorkLog).first():
        print("Work logs already exist. Skipping.")
        return False

    users = db.query(User).filter(User.role != UserRole.ADMIN).order_by(User.email).all()
    projects = db.query(Project).filter(Project.is_active == True).order_by(Project.name).all()
    categories = db.query(WorkCategory).order_by(WorkCategory.display_order).all()
    if not users or not projects or not categories:
        print("Users, projects or categories missing. Skipping work logs.")
        return False

    today = today_local()
    count = 0
    for offset in range(days):
        day = today - timedelta(days=offset)
        if day.weekday() >= 5:
            continue
        for i, user in enumerate(users):
            project = projects[(offset + i) % len(projects)]
            category = categories[(offset + i) % len(categories)]
            db.add(WorkLog(
                user_id=user.id,
                date=day,
                hours=Decimal("5.5"),
                project_id=project.id,
                category_id=category.id,
                details=f"{category.name} on {project.name}",
            ))
            db.add(WorkLog(
                user_id=user.id,
                date=day,
                hours=Decimal("2.5"),
                project_id=projects[0].id,
                category_id=categories[-1].id,
                details="Ticket triage, follow-ups",
            ))
            count += 2

    db.commit()
    print(f"\nWork logs created: {count}")
    return True


def main():
    """Main entry point."""
    print("Initializing database...")
    init_db()

    print("Seeding data...")
    db = SessionLocal()
    try:
        seed_users(db)
        seed_teams(db)
        seed_catalog(db)
        seed_work_logs(db)
    finally:
        db.close()

    print("Done!")


if __name__ == "__main__":
    main()
