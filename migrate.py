#!/usr/bin/env python3
"""
Manage database migrations with Alembic.
"""
import sys
from pathlib import Path

# Make the app package importable when run from the repo root
root_dir = Path(__file__).parent
sys.path.insert(0, str(root_dir))

from alembic.config import Config
from alembic import command
from app.core.config import settings

def get_alembic_config():
    """Alembic configuration pointed at the configured database."""
    alembic_cfg = Config(str(root_dir / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(root_dir / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.database_url)
    return alembic_cfg

def create_migration(message: str):
    """Autogenerate a new revision from the models."""
    alembic_cfg = get_alembic_config()
    command.revision(alembic_cfg, autogenerate=True, message=message)
    print(f"Migration created: {message}")

def run_migrations():
    """Apply pending migrations."""
    alembic_cfg = get_alembic_config()
    command.upgrade(alembic_cfg, "head")
    print("Migrations applied")

def rollback_migration():
    """Roll back the latest migration."""
    alembic_cfg = get_alembic_config()
    command.downgrade(alembic_cfg, "-1")
    print("Rollback done")

def stamp_head():
    """Mark a database created with create_all as up to date."""
    alembic_cfg = get_alembic_config()
    command.stamp(alembic_cfg, "head")
    print("Database stamped at head")

def show_history():
    alembic_cfg = get_alembic_config()
    command.history(alembic_cfg)

def show_current():
    alembic_cfg = get_alembic_config()
    command.current(alembic_cfg)

if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage:")
        print("  python migrate.py create 'message'  # Create a migration")
        print("  python migrate.py upgrade            # Apply migrations")
        print("  python migrate.py downgrade          # Roll back one")
        print("  python migrate.py stamp              # Mark as head")
        print("  python migrate.py history            # Show history")
        print("  python migrate.py current            # Show current")
        sys.exit(1)

    action = sys.argv[1]

    if action == "create":
        if len(sys.argv) < 3:
            print("Error: a migration message is required")
            sys.exit(1)
        message = sys.argv[2]
        create_migration(message)
    elif action == "upgrade":
        run_migrations()
    elif action == "downgrade":
        rollback_migration()
    elif action == "stamp":
        stamp_head()
    elif action == "history":
        show_history()
    elif action == "current":
        show_current()
    else:
        print(f"Unknown action: {action}")
        sys.exit(1)
