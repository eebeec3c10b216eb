from __future__ import annotations

import asyncio
import hashlib
import hmac
import logging
import secrets
from typing import Any

from gamechanger.config import Settings
from gamechanger.entities import User, UserInfo, make_user_id
from gamechanger.errors import AuthError, ValidationError
from gamechanger.jsonutil import utcnow_iso
from gamechanger.repositories import CURRENT_USER, LAST_EMAIL, LocalRepository, Repository
from gamechanger.validators import parse_int_or, parse_number, validate_password, validate_password_change


logger = logging.getLogger(__name__)

_HASH_NAME = "sha256"
_ITERATIONS = 200_000


def hash_password(password: str, *, salt: str | None = None, iterations: int = _ITERATIONS) -> str:
    salt = salt or secrets.token_hex(16)
    dk = hashlib.pbkdf2_hmac(_HASH_NAME, password.encode("utf-8"), bytes.fromhex(salt), iterations)
    return f"pbkdf2_{_HASH_NAME}${iterations}${salt}${dk.hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        algo, iterations, salt, _ = stored.split("$", 3)
    except ValueError:
        return False
    if algo != f"pbkdf2_{_HASH_NAME}":
        return False
    candidate = hash_password(password, salt=salt, iterations=int(iterations))
    return hmac.compare_digest(candidate, stored)


class AuthService:
    """
    Accounts live in the repository (remote with local fallback); the signed-in
    user and the remembered email are device-local.
    """

    def __init__(self, repository: Repository, local: LocalRepository, cfg: Settings):
        self.repository = repository
        self.local = local
        self.cfg = cfg

    async def sign_up(
        self,
        *,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        phone: str | None = None,
        weight: Any = None,
        height: Any = None,
        age: Any = None,
        gender: str | None = None,
    ) -> dict[str, Any]:
        email = (email or "").strip()
        if not email or not password or not (first_name or "").strip() or not (last_name or "").strip():
            raise ValidationError("Please fill in all required fields")
        validate_password(password)

        if await self.repository.get_user_by_email(email):
            raise AuthError("This email is already in use")

        user = User(
            id=make_user_id(),
            email=email,
            password_hash=hash_password(password),
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            phone=phone or "",
            weight=parse_number(weight),
            height=parse_number(height),
            age=parse_int_or(age, 30),
            gender=gender or "male",
            created_at=utcnow_iso(),
        )
        await self.repository.add_user(user)

        await self.repository.save_user_info(
            UserInfo(
                name=user.full_name,
                email=user.email,
                phone=user.phone,
                weight=user.weight,
                height=user.height,
                age=user.age,
                gender=user.gender,
            )
        )
        await self._set_current_user(user)
        logger.info("signed up %s", user.id)
        return user.public_dict()

    async def sign_in(self, email: str, password: str, remember_me: bool = True) -> dict[str, Any]:
        email = (email or "").strip()
        if not email or not password:
            raise ValidationError("Please fill in all fields")

        user = await self.repository.get_user_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            raise AuthError("Incorrect email or password")

        if remember_me:
            await self.local.set_value(LAST_EMAIL, email)
        else:
            await self.local.remove_value(LAST_EMAIL)

        await self._set_current_user(user)
        return user.public_dict()

    async def sign_out(self) -> None:
        await self.local.remove_value(CURRENT_USER)

    async def get_current_user(self) -> dict[str, Any] | None:
        obj = await self.local.get_value(CURRENT_USER)
        return obj if isinstance(obj, dict) else None

    async def get_last_email(self) -> str | None:
        obj = await self.local.get_value(LAST_EMAIL)
        return obj if isinstance(obj, str) else None

    async def is_logged_in(self) -> bool:
        try:
            user = await asyncio.wait_for(self.get_current_user(), timeout=self.cfg.login_check_timeout_s)
        except asyncio.TimeoutError:
            logger.warning("login check timed out after %ss", self.cfg.login_check_timeout_s)
            return False
        return user is not None

    async def change_password(self, old_password: str, new_password: str, confirm: str | None = None) -> None:
        validate_password_change(old_password, new_password, confirm)

        current = await self.get_current_user()
        if not current:
            raise AuthError("Not signed in")
        user = await self.repository.get_user_by_email(current.get("email") or "")
        if not user or not verify_password(old_password, user.password_hash):
            raise AuthError("The current password is incorrect")

        user.password_hash = hash_password(new_password)
        await self.repository.update_user(user)

    async def _set_current_user(self, user: User) -> None:
        # never keep the password hash in the session record
        await self.local.set_value(CURRENT_USER, user.public_dict())
