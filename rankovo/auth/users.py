from __future__ import annotations

from typing import Any

import bcrypt

# Login name -> credentials and the store user the account acts as.
_accounts: dict[str, dict[str, Any]] = {}


def _hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode(), bcrypt.gensalt()).decode()


def _verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode(), hashed.encode())


def register_account(login: str, password: str, user_id: str, role: str = "user") -> None:
    _accounts[login] = {
        "password_hash": _hash_password(password),
        "user_id": user_id,
        "role": role,
    }


def _seed_accounts() -> None:
    """Pre-seed demo accounts on import."""
    register_account("user", "user123", user_id="usr_demo", role="user")
    register_account("admin", "admin123", user_id="usr_admin", role="admin")
    register_account("holle", "holle123", user_id="usr_holle", role="user")


def authenticate(username: str, password: str) -> dict[str, Any] | None:
    """Verify credentials. Returns ``{id, username, role}`` or ``None``."""
    record = _accounts.get(username)
    if record and _verify_password(password, record["password_hash"]):
        return {"id": record["user_id"], "username": username, "role": record["role"]}
    return None


_seed_accounts()
