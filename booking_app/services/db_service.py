from datetime import date, datetime
from typing import Any, List, Optional

from supabase import AsyncClient, create_async_client

from booking_app.core.config import settings
from booking_app.core.errors import DuplicateAccountError, RecordStoreError, ValidationError
from booking_app.core.logger import logger


def _created_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        except ValueError:
            pass
    return date.today()


def auth_user_to_dict(user: Any) -> dict:
    """Flattens a Supabase Auth user into the fields the booking records use."""
    metadata = getattr(user, "user_metadata", None) or {}
    return {
        "id": str(user.id),
        "email": user.email or "",
        "name": metadata.get("name") or "Unknown",
        "createdAt": _created_date(getattr(user, "created_at", None)).isoformat(),
    }


class DBService:
    """
    Thin wrapper around the hosted Supabase project: the key/value table and
    the Auth admin API. One shared service-role client per process, plus one
    client reserved for password sign-ins.
    """

    _instance = None
    _client: Optional[AsyncClient] = None
    _sign_in_client: Optional[AsyncClient] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(DBService, cls).__new__(cls)
        return cls._instance

    @property
    def table_name(self) -> str:
        return settings.KV_TABLE

    async def get_client(self) -> AsyncClient:
        if not self._client:
            if not (settings.SUPABASE_URL and settings.SUPABASE_KEY):
                logger.error("❌ Supabase credentials missing (SUPABASE_URL / SUPABASE_KEY)")
                raise RecordStoreError("Supabase is not configured")
            try:
                self._client = await create_async_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
                logger.info("✅ Supabase Async client initialized")
            except Exception as e:
                logger.error(f"❌ Failed to initialize Supabase Async: {e}")
                raise RecordStoreError(f"Failed to initialize Supabase: {e}")
        return self._client

    # --- Key/value table ---

    async def kv_get(self, key: str) -> Any:
        client = await self.get_client()
        try:
            response = await client.table(self.table_name).select("value").eq("key", key).execute()
        except Exception as e:
            logger.error(f"❌ KV Error (get {key}): {e}")
            raise RecordStoreError(f"Failed to read {key}")
        if response.data:
            return response.data[0]["value"]
        return None

    async def kv_set(self, key: str, value: Any) -> None:
        client = await self.get_client()
        try:
            await client.table(self.table_name).upsert({"key": key, "value": value}).execute()
        except Exception as e:
            logger.error(f"❌ KV Error (set {key}): {e}")
            raise RecordStoreError(f"Failed to write {key}")

    async def kv_delete(self, key: str) -> None:
        client = await self.get_client()
        try:
            await client.table(self.table_name).delete().eq("key", key).execute()
        except Exception as e:
            logger.error(f"❌ KV Error (delete {key}): {e}")
            raise RecordStoreError(f"Failed to delete {key}")

    async def kv_get_by_prefix(self, prefix: str) -> List[dict]:
        """Returns [{'key': ..., 'value': ...}] for every key starting with prefix."""
        client = await self.get_client()
        try:
            response = await client.table(self.table_name)\
                .select("key, value")\
                .like("key", f"{prefix}%")\
                .execute()
        except Exception as e:
            logger.error(f"❌ KV Error (prefix {prefix}): {e}")
            raise RecordStoreError(f"Failed to list {prefix}")
        return response.data or []

    # --- Auth ---

    async def create_auth_user(self, email: str, password: str, name: str) -> dict:
        client = await self.get_client()
        try:
            response = await client.auth.admin.create_user({
                "email": email,
                "password": password,
                "user_metadata": {"name": name},
                # No mail server is configured, so accounts are confirmed immediately
                "email_confirm": True,
            })
        except Exception as e:
            logger.warning(f"⚠️ Sign up error: {e}")
            if "already" in str(e).lower():
                raise DuplicateAccountError("An account with this email already exists")
            raise ValidationError(str(e))
        logger.info(f"🆕 New account created: {email}")
        return auth_user_to_dict(response.user)

    async def get_auth_user(self, access_token: str) -> Optional[dict]:
        client = await self.get_client()
        try:
            response = await client.auth.get_user(access_token)
        except Exception as e:
            logger.info(f"🔒 Token rejected by Supabase Auth: {e}")
            return None
        if not response or not response.user:
            return None
        return auth_user_to_dict(response.user)

    async def get_auth_user_by_id(self, user_id: str) -> Optional[dict]:
        client = await self.get_client()
        try:
            response = await client.auth.admin.get_user_by_id(user_id)
        except Exception as e:
            logger.info(f"🔍 Auth user {user_id} not found: {e}")
            return None
        if not response or not response.user:
            return None
        return auth_user_to_dict(response.user)

    async def update_auth_user_name(self, user_id: str, name: str) -> Optional[dict]:
        client = await self.get_client()
        try:
            response = await client.auth.admin.update_user_by_id(user_id, {"user_metadata": {"name": name}})
        except Exception as e:
            logger.warning(f"⚠️ Update profile error: {e}")
            raise ValidationError(str(e))
        if not response or not response.user:
            return None
        return auth_user_to_dict(response.user)

    async def list_auth_users(self) -> List[dict]:
        client = await self.get_client()
        try:
            users = await client.auth.admin.list_users()
        except Exception as e:
            logger.error(f"❌ Get users error: {e}")
            raise RecordStoreError("Failed to get users")
        logger.info(f"👥 Found {len(users)} users in Supabase")
        return [auth_user_to_dict(user) for user in users]

    async def get_sign_in_client(self) -> AsyncClient:
        """
        Second long-lived client for password sign-ins, so the shared
        service-role client never switches to a user's session.
        """
        if not self._sign_in_client:
            if not (settings.SUPABASE_URL and settings.SUPABASE_KEY):
                raise RecordStoreError("Supabase is not configured")
            try:
                self._sign_in_client = await create_async_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
            except Exception as e:
                logger.error(f"❌ Failed to initialize Supabase sign-in client: {e}")
                raise RecordStoreError(f"Failed to initialize Supabase: {e}")
        return self._sign_in_client

    async def sign_in(self, email: str, password: str) -> Optional[dict]:
        client = await self.get_sign_in_client()
        try:
            response = await client.auth.sign_in_with_password({"email": email, "password": password})
        except Exception as e:
            logger.info(f"🔒 Sign in rejected for {email}: {e}")
            return None
        if not response.session or not response.user:
            return None
        return {
            "accessToken": response.session.access_token,
            "user": auth_user_to_dict(response.user),
        }

    async def sign_out(self, access_token: str) -> None:
        client = await self.get_client()
        try:
            await client.auth.admin.sign_out(access_token)
        except Exception as e:
            # Expired or unknown tokens are already signed out
            logger.info(f"🔒 Sign out: {e}")


db_service = DBService()
