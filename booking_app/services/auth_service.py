import base64
import binascii
import hashlib
import hmac
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from booking_app.core.errors import DuplicateAccountError, ValidationError
from booking_app.core.logger import logger
from booking_app.models.db_models import Role, Session, User
from booking_app.services.db_service import DBService, db_service
from booking_app.services.record_store import EntityKind, RecordStore
from booking_app.services.supabase_store import SupabaseRecordStore

_PBKDF2_SCHEME = "pbkdf2_sha256"
_PBKDF2_ROUNDS = 600_000
_PBKDF2_SALT_BYTES = 16


def hash_password(password: str) -> str:
    salt = secrets.token_bytes(_PBKDF2_SALT_BYTES)
    hash_bytes = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, _PBKDF2_ROUNDS)
    encoded_salt = base64.b64encode(salt).decode("ascii")
    encoded_hash = base64.b64encode(hash_bytes).decode("ascii")
    return f"{_PBKDF2_SCHEME}${_PBKDF2_ROUNDS}${encoded_salt}${encoded_hash}"


def verify_password(password: str, stored: Optional[str]) -> bool:
    if not stored:
        return False
    if not stored.startswith(f"{_PBKDF2_SCHEME}$"):
        # Demo seed accounts carry plain credentials
        return hmac.compare_digest(password.encode("utf-8"), stored.encode("utf-8"))
    try:
        _, rounds_text, salt_b64, hash_b64 = stored.split("$", 3)
        rounds = int(rounds_text)
        salt = base64.b64decode(salt_b64)
        expected = base64.b64decode(hash_b64)
    except (ValueError, TypeError, binascii.Error):
        return False
    calculated = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, rounds)
    return hmac.compare_digest(expected, calculated)


def _require(value: Optional[str], field: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{field} is required")
    return value


@dataclass
class AuthenticatedSession:
    token: str
    user: User


class AuthProvider(ABC):
    """Identity, credentials and roles for one storage backend."""

    @abstractmethod
    async def signup(self, email: str, password: str, name: str) -> User:
        ...

    @abstractmethod
    async def login(self, email: str, password: str) -> Optional[AuthenticatedSession]:
        ...

    @abstractmethod
    async def logout(self, token: str) -> None:
        ...

    @abstractmethod
    async def resolve(self, token: str) -> Optional[User]:
        ...

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[User]:
        ...

    @abstractmethod
    async def update_name(self, user_id: str, name: str) -> Optional[User]:
        ...

    @abstractmethod
    async def list_users(self) -> List[User]:
        ...


class LocalAuthProvider(AuthProvider):
    """Accounts and sessions kept in the local record store (offline mode)."""

    def __init__(self, store: RecordStore):
        self._store = store

    async def _users(self) -> List[User]:
        return [User.model_validate(record) for record in await self._store.list(EntityKind.USERS)]

    async def get_user_by_email(self, email: str) -> Optional[User]:
        wanted = (email or "").strip().lower()
        for user in await self._users():
            if user.email.lower() == wanted:
                return user
        return None

    async def signup(self, email: str, password: str, name: str) -> User:
        email = _require(email, "Email")
        name = _require(name, "Name")
        if not password:
            raise ValidationError("Password is required")

        if await self.get_user_by_email(email):
            logger.info(f"🚫 Sign up refused, {email} already registered")
            raise DuplicateAccountError("An account with this email already exists")

        user = User(email=email, name=name, role=Role.USER, password=hash_password(password))
        await self._store.put(EntityKind.USERS, user.id, user.to_record())
        logger.info(f"🆕 New local account created: {email}")
        return user.public()

    async def login(self, email: str, password: str) -> Optional[AuthenticatedSession]:
        user = await self.get_user_by_email(email)
        if not user or not verify_password(password or "", user.password):
            logger.info(f"🔒 Login failed for {email}")
            return None

        session = Session(token=secrets.token_urlsafe(32), user_id=user.id)
        await self._store.put(EntityKind.SESSIONS, session.token, session.to_record())
        logger.info(f"🔑 {user.email} logged in ({user.role.value})")
        return AuthenticatedSession(token=session.token, user=user.public())

    async def logout(self, token: str) -> None:
        await self._store.delete(EntityKind.SESSIONS, token)

    async def resolve(self, token: str) -> Optional[User]:
        if not token:
            return None
        record = await self._store.get(EntityKind.SESSIONS, token)
        if not record:
            return None
        return await self.get_user(Session.model_validate(record).user_id)

    async def get_user(self, user_id: str) -> Optional[User]:
        record = await self._store.get(EntityKind.USERS, user_id)
        return User.model_validate(record).public() if record else None

    async def update_name(self, user_id: str, name: str) -> Optional[User]:
        name = _require(name, "Name")
        record = await self._store.get(EntityKind.USERS, user_id)
        if not record:
            return None
        user = User.model_validate(record).model_copy(update={"name": name})
        await self._store.put(EntityKind.USERS, user.id, user.to_record())
        return user.public()

    async def list_users(self) -> List[User]:
        return [user.public() for user in await self._users()]


class SupabaseAuthProvider(AuthProvider):
    """Supabase Auth identities with roles in the key/value table."""

    def __init__(self, store: SupabaseRecordStore, db: Optional[DBService] = None):
        self._store = store
        self._db = db or db_service

    async def _with_role(self, data: Optional[dict]) -> Optional[User]:
        if not data:
            return None
        role = await self._store.get_role(data["id"])
        data = dict(data, role=role if role in (Role.USER.value, Role.ADMIN.value) else Role.USER.value)
        return User.model_validate(data)

    async def signup(self, email: str, password: str, name: str) -> User:
        email = _require(email, "Email")
        name = _require(name, "Name")
        if not password:
            raise ValidationError("Password is required")
        data = await self._db.create_auth_user(email, password, name)
        await self._store.set_role(data["id"], Role.USER.value)
        return User.model_validate(dict(data, role=Role.USER.value))

    async def login(self, email: str, password: str) -> Optional[AuthenticatedSession]:
        result = await self._db.sign_in(email, password)
        if not result:
            return None
        user = await self._with_role(result["user"])
        return AuthenticatedSession(token=result["accessToken"], user=user)

    async def logout(self, token: str) -> None:
        await self._db.sign_out(token)

    async def resolve(self, token: str) -> Optional[User]:
        if not token:
            return None
        return await self._with_role(await self._db.get_auth_user(token))

    async def get_user(self, user_id: str) -> Optional[User]:
        return await self._with_role(await self._db.get_auth_user_by_id(user_id))

    async def update_name(self, user_id: str, name: str) -> Optional[User]:
        name = _require(name, "Name")
        return await self._with_role(await self._db.update_auth_user_name(user_id, name))

    async def list_users(self) -> List[User]:
        users = []
        for data in await self._db.list_auth_users():
            users.append(await self._with_role(data))
        return users
