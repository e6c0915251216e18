from __future__ import annotations

import logging
import os
import sys

from app.services.account_service import AccountService

logger = logging.getLogger("create_admin")


def _require_env(key: str) -> str:
    value = os.getenv(key, "")
    if not value:
        raise RuntimeError(f"Missing required env: {key}")
    return value


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s %(message)s")
    try:
        email = _require_env("ADMIN_EMAIL")
        password = _require_env("ADMIN_PASSWORD")
    except RuntimeError as exc:
        logger.error("create-admin failed: %s", exc)
        return 1

    account, created = AccountService().upsert_admin(email, password, os.getenv("ADMIN_USERNAME"))
    logger.info(
        "admin %s: id=%s username=%s email=%s",
        "created" if created else "updated",
        account.id,
        account.username,
        account.email,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
