#!/usr/bin/env python3
"""
Script: init_db.py
Purpose: Create the catalog, campaign and integration tables

Usage:
    cd backend && source venv/bin/activate
    python scripts/init_db.py [--drop]

Options:
    --drop    Drop every table first (development databases only)
"""

import sys
import argparse
from pathlib import Path

# Add backend to path
BACKEND_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(BACKEND_DIR))

from dotenv import load_dotenv

# Load environment before the settings object is built
env_path = BACKEND_DIR / '.env.development'
if env_path.exists():
    load_dotenv(env_path)
else:
    load_dotenv(BACKEND_DIR / '.env')

from app.core.database import Base, engine
import app.models  # noqa: F401  registers the tables on Base.metadata


def main():
    parser = argparse.ArgumentParser(description='Create the B2B commerce schema')
    parser.add_argument('--drop', action='store_true', help='Drop all tables before creating them')
    args = parser.parse_args()

    print("=" * 60)
    print("B2B COMMERCE - DATABASE INIT")
    print("=" * 60)

    if args.drop:
        print("\nDropping tables...")
        Base.metadata.drop_all(engine)

    Base.metadata.create_all(engine)

    print(f"\nTables ready ({len(Base.metadata.tables)}):")
    for name in sorted(Base.metadata.tables):
        print(f"  - {name}")


if __name__ == '__main__':
    main()
