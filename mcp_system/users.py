"""User profiles and per-provider API keys. Keys never leave this module unmasked."""

import logging
from dataclasses import replace

from mcp_system.errors import ValidationError
from mcp_system.models import User
from mcp_system.storage import Storage

logger = logging.getLogger(__name__)

_VISIBLE_CHARS = 4


def mask_key(key: str) -> str:
    """'sk-ant-abcdef123456' -> 'sk-a...3456'. Keys too short to mask are fully starred."""
    if len(key) <= _VISIBLE_CHARS * 2:
        return "*" * len(key)
    return f"{key[:_VISIBLE_CHARS]}...{key[-_VISIBLE_CHARS:]}"


class UserService:
    def __init__(self, storage: Storage, providers: set[str] | frozenset[str]) -> None:
        self._storage = storage
        self._providers = frozenset(providers)

    async def create_user(self, email: str, full_name: str = "", user_id: str | None = None) -> User:
        if not email or "@" not in email:
            raise ValidationError(f"Invalid email: {email!r}")
        row = {"email": email, "full_name": full_name, "role": "user", "api_keys": {}, "preferences": {}}
        if user_id:
            row["id"] = user_id
        return self._masked(User.from_row(await self._storage.insert("users", row)))

    async def get_profile(self, user_id: str) -> User:
        return self._masked(User.from_row(await self._storage.get("users", user_id)))

    async def update_api_keys(self, user_id: str, keys: dict[str, str]) -> User:
        """Set keys per provider name; an empty value removes that provider's key."""
        unknown = set(keys) - self._providers
        if unknown:
            raise ValidationError(f"Unknown providers: {', '.join(sorted(unknown))}")

        user = User.from_row(await self._storage.get("users", user_id))
        api_keys = dict(user.api_keys or {})
        for provider, key in keys.items():
            if key and key.strip():
                api_keys[provider] = key.strip()
            else:
                api_keys.pop(provider, None)

        row = await self._storage.update("users", user_id, {"api_keys": api_keys})
        logger.info("API keys updated for user %s: %s", user_id, ", ".join(sorted(api_keys)) or "none")
        return self._masked(User.from_row(row))

    @staticmethod
    def _masked(user: User) -> User:
        return replace(user, api_keys={p: mask_key(k) for p, k in (user.api_keys or {}).items()})
