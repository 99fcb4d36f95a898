"""Script to add or update a user in the directory."""
import argparse
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from shiftboard.database import SessionLocal, init_db
from shiftboard.schemas.user import DirectoryUser
from shiftboard.services.user_directory import UserDirectory


def create_user(user_id: str, display_name: str, role: str, secondary_roles: list):
    """
    Create or update a directory user.

    Args:
        user_id: User ID
        display_name: Name shown on the roster
        role: Primary role
        secondary_roles: Additional roles the user can cover
    """
    init_db()
    db = SessionLocal()
    try:
        user = UserDirectory(db).save_user(DirectoryUser(
            id=user_id,
            display_name=display_name,
            role=role,
            secondary_roles=secondary_roles
        ))
        print("User saved successfully!")
        print(f"Name: {user.display_name}")
        print(f"Roles: {', '.join(user.roles)}")

    except Exception as e:
        print(f"Error saving user: {e}")
        db.rollback()
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Add a user to the shift directory")
    parser.add_argument("user_id")
    parser.add_argument("display_name")
    parser.add_argument("role")
    parser.add_argument("--secondary-role", action="append", default=[], dest="secondary_roles")
    args = parser.parse_args()

    create_user(args.user_id, args.display_name, args.role, args.secondary_roles)
