"""Reset the DB and load a small sample data set.

Creates one admin, one manager and one worker (all with password "test123"),
a sample project owned by the admin and two daily reports filed by the worker.

Usage:
  python scripts/seed.py
"""

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from site_progress.auth.crud import create_user
from site_progress.config import load_config
from site_progress.db import connect, init_db, reset_db
from site_progress.models import ProjectStatus, Role
from site_progress.projects.crud import create_project, create_report

SAMPLE_PASSWORD = "test123"


def _debug(msg: str) -> None:
    print(f"[seed] {msg}")


def main() -> None:
    cfg = load_config()
    init_db(cfg.DB_DSN)

    _debug("Clearing existing data...")
    reset_db(cfg.DB_DSN)

    with connect(cfg.DB_DSN) as conn:
        admin = create_user(
            conn, name="Admin User", email="admin@construction.com", password=SAMPLE_PASSWORD, role=Role.ADMIN
        )
        create_user(
            conn,
            name="Project Manager",
            email="manager@construction.com",
            password=SAMPLE_PASSWORD,
            role=Role.MANAGER,
        )
        worker = create_user(
            conn, name="Site Worker", email="worker@construction.com", password=SAMPLE_PASSWORD, role=Role.WORKER
        )
        _debug("Sample users: admin@, manager@, worker@construction.com (password: test123)")

        project = create_project(
            conn,
            created_by_id=admin["user_id"],
            name="Highway Construction Project",
            description="Construction of 10km highway with bridges",
            start_date="2024-01-01",
            end_date="2024-12-31",
            budget=5_000_000,
            location="City Center to Suburb",
            status=ProjectStatus.ACTIVE.value,
        )
        _debug(f"Project created: {project['name']}")

        create_report(
            conn,
            project_id=project["project_id"],
            user_id=worker["user_id"],
            report_date="2024-01-15",
            work_description="Completed excavation for section A. Started foundation work for bridge 1.",
            worker_count=25,
            weather="Sunny, 25C",
            challenges="Heavy machinery delivery delayed by 2 hours",
            materials_used="Cement: 100 bags, Steel rods: 2 tons, Gravel: 50 cubic meters",
            equipment_used="Excavator x2, Concrete mixer x3, Crane x1, Trucks x5",
        )
        create_report(
            conn,
            project_id=project["project_id"],
            user_id=worker["user_id"],
            report_date="2024-01-16",
            work_description="Continued foundation work. Started pouring concrete for pillars.",
            worker_count=30,
            weather="Cloudy, 22C",
            challenges="Concrete mixer broke down, had to rent replacement",
            materials_used="Cement: 150 bags, Steel: 3 tons, Concrete: 100 cubic meters",
            equipment_used="Concrete mixer x4, Crane x2, Vibrators x6",
        )
        _debug("Created 2 daily reports")

    _debug(f"Seeding completed: {cfg.DB_DSN}")


if __name__ == "__main__":
    main()
