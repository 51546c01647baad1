"""
Development Workspace Script
Creates the tables on the configured database and issues an access token
for a workspace, so the metrics API can be called locally.
"""

import asyncio
import sys
import uuid
from pathlib import Path

# Add parent directory to path to import finpulse modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import func, select

import finpulse.models  # noqa: F401
from finpulse.auth.utils import create_access_token
from finpulse.database.connection import async_session_factory, close_db, init_db
from finpulse.models import BankBalanceSnapshot, MonthlyTarget


async def describe_workspace(workspace_id: uuid.UUID) -> None:
    """Print how much engine data the workspace already has."""
    async with async_session_factory() as session:
        snapshots = await session.scalar(
            select(func.count(BankBalanceSnapshot.id))
            .where(BankBalanceSnapshot.workspace_id == workspace_id)
        )
        targets = await session.scalar(
            select(func.count(MonthlyTarget.id))
            .where(MonthlyTarget.workspace_id == workspace_id)
        )

    print(f"\n📋 Workspace {workspace_id}")
    print("-" * 60)
    print(f"  • Balance snapshots: {snapshots}")
    print(f"  • Monthly targets:   {targets}")
    print("-" * 60)


async def main() -> None:
    """Main script entry point."""
    print("=" * 60)
    print("🔐 Development Workspace")
    print("=" * 60)

    raw = input("\n🏢 Workspace id (empty for a new one): ").strip()
    try:
        workspace_id = uuid.UUID(raw) if raw else uuid.uuid4()
    except ValueError:
        print("\n❌ Invalid workspace id.")
        sys.exit(1)

    try:
        await init_db()
        await describe_workspace(workspace_id)
    except Exception as e:
        print(f"\n❌ Database error: {e}")
        sys.exit(1)
    finally:
        await close_db()

    token = create_access_token(
        subject="dev",
        workspace_id=str(workspace_id),
        expires_minutes=24 * 60,
    )
    print(f"\n✅ Access token (24h):\n{token}")


if __name__ == "__main__":
    asyncio.run(main())
