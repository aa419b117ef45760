#!/usr/bin/env python3
"""
Creates the admin principal (or claims an existing account) and its role row.

Usage: python -m horizon.bootstrap_admin [admin_email admin_password]
Without arguments ADMIN_EMAIL / ADMIN_PASSWORD are read from the environment or .env.
"""
import asyncio
import sys

from dotenv import load_dotenv

load_dotenv()

from horizon.app.config import settings  # noqa: E402
from horizon.app.core.session import bootstrap_admin  # noqa: E402
from horizon.app.integrations.firebase_remote import FirebaseDataService  # noqa: E402
from horizon.app.integrations.remote import USER_ROLES  # noqa: E402
from horizon.app.schemas.principal import ADMIN_ROLE  # noqa: E402


async def run(admin_email: str, admin_password: str) -> bool:
    service = FirebaseDataService()
    await bootstrap_admin(service, admin_email, admin_password)
    row = await service.maybe_single(USER_ROLES, {"role": ADMIN_ROLE})
    if row:
        print(f"✅ Admin role held by: {row['user_id']}")
        return True
    return False


if __name__ == "__main__":
    if len(sys.argv) not in (1, 3):
        print("Usage: python -m horizon.bootstrap_admin [admin_email admin_password]")
        sys.exit(1)

    email, password = (sys.argv[1], sys.argv[2]) if len(sys.argv) == 3 else (settings.admin_email, settings.admin_password)
    if not email or not password:
        print("❌ ADMIN_EMAIL / ADMIN_PASSWORD are not set")
        sys.exit(1)

    print(f"Bootstrapping admin: {email}")
    if asyncio.run(run(email, password)):
        print("🎉 Admin is ready. Sign in at /login with these credentials.")
    else:
        print("💥 Admin bootstrap failed, see the log above")
        sys.exit(1)
