#!/usr/bin/env python3
import os
import subprocess
import sys

BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

def run_migrations(revision: str = "head"):
    try:
        print(f"Upgrading expense database schema to {revision}...")
        subprocess.run(["alembic", "upgrade", revision], check=True, cwd=BACKEND_DIR)
        print("Migrations completed successfully!")
    except subprocess.CalledProcessError as e:
        print(f"Migration failed: {e}")
        sys.exit(1)
    except FileNotFoundError:
        print("Alembic not found. Make sure it's installed.")
        sys.exit(1)

if __name__ == "__main__":
    run_migrations(sys.argv[1] if len(sys.argv) > 1 else "head")
