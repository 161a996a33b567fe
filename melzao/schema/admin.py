# melzao/schema/admin.py
from __future__ import annotations

import logging
from typing import Optional

from .adapter import DatabaseAdapter
from .seeds import AdminSeed, Hasher, utc_timestamp

logger = logging.getLogger(__name__)

CREATED = "created"
REACTIVATED = "reactivated"
UNCHANGED = "unchanged"


def ensure_admin_user(adapter: DatabaseAdapter, admin: AdminSeed,
                      hasher: Optional[Hasher] = None) -> str:
    """
    Make sure the configured admin account exists and is active.
    Returns 'created', 'reactivated' or 'unchanged'.
    """
    rows = adapter.query(
        "SELECT id, status FROM users WHERE email = :email", {"email": admin.email}
    )
    if rows:
        existing = rows[0]
        if existing["status"] == "active":
            return UNCHANGED
        adapter.execute(
            "UPDATE users SET status = 'active' WHERE id = :id", {"id": existing["id"]}
        )
        logger.warning("Admin %s was %s; reactivated", admin.email, existing["status"])
        return REACTIVATED

    if hasher is None:
        from ..security import hash_secret
        hasher = hash_secret
    adapter.execute(
        """INSERT INTO users (email, password_hash, name, role, status, approved_at)
           VALUES (:email, :password_hash, :name, 'admin', 'active', :approved_at)""",
        {
            "email": admin.email,
            "password_hash": hasher(admin.password),
            "name": admin.name,
            "approved_at": utc_timestamp(),
        },
    )
    logger.info("Admin account created (%s)", admin.email)
    return CREATED
