"""
Database Migration Script: Create Participants Table

Creates the participant registry table used by payment verification.
Email is the identity key; reconciliation runs upsert on it.

Run this script directly to create the table:
    cd /app/backend && python migrations/create_participants_table.py
"""

import asyncio
import sys
import os

# Add backend to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import text
from database.connection import get_engine


SQL_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS public.participants (
        id VARCHAR(36) PRIMARY KEY,

        -- Identity and contact
        email VARCHAR(320) NOT NULL,
        name TEXT NOT NULL,
        phone_number TEXT NOT NULL,

        -- Payment
        reference_id TEXT,
        amount NUMERIC(12, 2) NOT NULL DEFAULT 0 CHECK (amount >= 0),
        verified BOOLEAN NOT NULL DEFAULT false,

        -- Check-in
        attended BOOLEAN NOT NULL DEFAULT false,
        attended_at TIMESTAMPTZ,
        qr_code TEXT,

        -- Record timestamps
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    "CREATE UNIQUE INDEX IF NOT EXISTS ix_participants_email ON public.participants(email)",
    "CREATE INDEX IF NOT EXISTS ix_participants_reference_id ON public.participants(reference_id)",
    "CREATE INDEX IF NOT EXISTS ix_participants_verified ON public.participants(verified)",
    "CREATE INDEX IF NOT EXISTS ix_participants_attended ON public.participants(attended)",
    "CREATE INDEX IF NOT EXISTS ix_participants_created_at ON public.participants(created_at)",
    """
    COMMENT ON TABLE public.participants IS
        'Event participants with payment verification and attendance state'
    """,
]


async def create_tables():
    """Create the participants table and its indexes."""
    print("Creating participants table...")

    async with get_engine().begin() as conn:
        try:
            for statement in SQL_STATEMENTS:
                await conn.execute(text(statement))
            print("✅ Table created successfully!")

            result = await conn.execute(text("""
                SELECT COUNT(*) FROM information_schema.columns
                WHERE table_name = 'participants'
            """))
            print(f"   - participants: {result.scalar()} columns")

        except Exception as e:
            print(f"❌ Error creating table: {e}")
            raise


async def drop_tables():
    """Drop the table (for testing)."""
    print("Dropping participants table...")
    async with get_engine().begin() as conn:
        await conn.execute(text("DROP TABLE IF EXISTS public.participants CASCADE"))
        print("✅ Table dropped")


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Manage participants table")
    parser.add_argument("--drop", action="store_true", help="Drop table instead of create")
    args = parser.parse_args()

    if args.drop:
        asyncio.run(drop_tables())
    else:
        asyncio.run(create_tables())
