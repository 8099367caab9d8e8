"""
Apply SQL migrations from the migrations/ directory (or a single file).

Usage:
    python scripts/migrate.py [path] [--dry-run]
"""

import argparse
import os
from pathlib import Path

import psycopg2
from dotenv import load_dotenv

load_dotenv()

DEFAULT_MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"


def collect_sql_files(target_path: Path) -> list:
    if target_path.is_file():
        if target_path.suffix != ".sql":
            print(f"Warning: File {target_path} does not appear to be a SQL file.")
        return [target_path]
    return sorted(target_path.glob("*.sql"))


def run_migrations(path_arg=None, dry_run=False) -> bool:
    target_path = Path(path_arg) if path_arg else DEFAULT_MIGRATIONS_DIR
    if not target_path.exists():
        print(f"Error: Path {target_path} does not exist.")
        return False

    sql_files = collect_sql_files(target_path)
    if not sql_files:
        print(f"No .sql files found in {target_path}")
        return False

    if dry_run:
        print("\n--- DRY RUN MODE: No changes will be applied ---\n")
        for sql_file in sql_files:
            print(f"[DRY-RUN] Would execute: {sql_file.name}")
        return True

    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        print("Error: DATABASE_URL is not set.")
        return False

    try:
        conn = psycopg2.connect(database_url)
    except psycopg2.Error as e:
        print(f"Error connecting to database: {e}")
        return False

    ok = True
    try:
        with conn.cursor() as cursor:
            for sql_file in sql_files:
                print(f"Running {sql_file.name}...")
                try:
                    cursor.execute(sql_file.read_text(encoding="utf-8"))
                    conn.commit()
                    print(f"✓ {sql_file.name} executed successfully")
                except psycopg2.Error as e:
                    conn.rollback()
                    print(f"✗ Error executing {sql_file.name}: {e}")
                    ok = False
                    break
    finally:
        conn.close()

    if ok:
        print("Migration(s) completed!")
    return ok


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run entitlements database migrations")
    parser.add_argument("path", nargs="?", help="Specific migration file path or directory to run (optional)")
    parser.add_argument("--dry-run", action="store_true", help="List migrations without applying them")
    args = parser.parse_args()

    raise SystemExit(0 if run_migrations(args.path, args.dry_run) else 1)
