from typing import Optional

from fastapi import APIRouter, Depends

from booking_app.api.dependencies import get_auth
from booking_app.core.errors import NotFoundError, UnauthorizedError
from booking_app.core.logger import logger
from booking_app.core.security import get_bearer_token, get_current_user, require_admin
from booking_app.models.api_models import LoginRequest, ProfileUpdateRequest, SignupRequest
from booking_app.models.db_models import User
from booking_app.services.auth_service import AuthProvider

router = APIRouter()


@router.post("/signup")
async def signup(req: SignupRequest, auth: AuthProvider = Depends(get_auth)):
    user = await auth.signup(req.email, req.password, req.name)
    return {"user": user.to_record()}


@router.post("/login")
async def login(req: LoginRequest, auth: AuthProvider = Depends(get_auth)):
    session = await auth.login(req.email, req.password)
    if not session:
        raise UnauthorizedError("Invalid email or password")
    return {"accessToken": session.token, "user": session.user.to_record()}


@router.post("/logout")
async def logout(token: str = Depends(get_bearer_token), auth: AuthProvider = Depends(get_auth)):
    await auth.logout(token)
    return {"success": True}


@router.get("/user")
async def get_user(user: User = Depends(get_current_user)):
    return user.to_record()


@router.patch("/user/profile")
async def update_profile(
    req: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    auth: AuthProvider = Depends(get_auth),
):
    updated = await auth.update_name(user.id, req.name)
    if not updated:
        raise NotFoundError("User not found")
    logger.info(f"✏️ Profile updated for {updated.email}")
    return {"user": updated.to_record()}


@router.get("/users")
async def list_users(
    q: Optional[str] = None,
    admin: User = Depends(require_admin),
    auth: AuthProvider = Depends(get_auth),
):
    users = await auth.list_users()
    if q:
        needle = q.lower()
        users = [u for u in users if needle in u.name.lower() or needle in u.email.lower()]
    return {"users": [u.to_record() for u in users]}


@router.get("/users/all")
async def list_all_users(auth: AuthProvider = Depends(get_auth)):
    # Unauthenticated: demo admins bootstrap their user list from here
    users = await auth.list_users()
    logger.info(f"👥 Listing {len(users)} users for bootstrap")
    return {"users": [u.to_record() for u in users]}
