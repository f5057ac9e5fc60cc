from fastapi import APIRouter, Depends
from app.database.supabase_client import get_service_supabase, get_supabase
from app.modules.auth.schemas import ChangePasswordRequest, LoginRequest, TokenResponse, MeResponse
from app.modules.auth.service import AuthService
from app.core.dependencies import (
    get_auth_service, get_current_user_id, get_role_assignments, get_request_access_cache,
    load_user_modules,
)
from app.core.scope import resolve_scope
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: LoginRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Exchange email and password for a bearer token"""
    return service.login(login_data)


@router.post("/logout")
async def logout(
    current_user: Dict = Depends(get_current_user_id),
    service: AuthService = Depends(get_auth_service)
):
    service.logout()
    return {"message": "Logged out successfully"}


@router.post("/change-password")
async def change_password(
    password_data: ChangePasswordRequest,
    current_user: Dict = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
    admin: Client = Depends(get_service_supabase),
):
    """Replace the current user's password (required after a provisioned first login)"""
    AuthService(supabase, admin=admin).change_password(current_user["id"], password_data.new_password)
    return {"message": "Password updated"}


@router.get("/me", response_model=MeResponse)
async def get_current_user(
    current_user: Dict = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
    cache: Dict = Depends(get_request_access_cache),
):
    """The caller's role assignments, resolved scope and module access"""
    assignments = get_role_assignments(current_user["id"], supabase, cache)
    return MeResponse(
        id=current_user["id"],
        email=current_user.get("email"),
        roles=assignments,
        scope=resolve_scope(assignments),
        modules=load_user_modules(current_user["id"], supabase, assignments),
    )
