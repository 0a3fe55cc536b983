from __future__ import annotations

import argparse
import asyncio

from app.core.config import settings
from app.core.security import create_access_token
from app.db.session import AsyncSessionLocal
from app.services.admin import seed_admin_users

# Admin emails cannot sign in through the emailed code flow; an operator
# with database access runs this to hand out a token instead.


async def issue(email: str) -> str:
    email = email.strip().lower()
    if email not in settings.admin_emails:
        raise SystemExit(f"{email} is not listed in ADMIN_EMAILS")

    async with AsyncSessionLocal() as db:
        (admin,) = await seed_admin_users(db, [email])
        return create_access_token(admin.sid, admin.email)


def main() -> None:
    parser = argparse.ArgumentParser(description="Issue a bearer token for an allowlisted admin")
    parser.add_argument("email")
    args = parser.parse_args()

    token = asyncio.run(issue(args.email))
    print(token)


if __name__ == "__main__":
    main()
