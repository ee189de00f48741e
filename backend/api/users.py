from fastapi import APIRouter, Depends

from auth import get_current_user_id
from schemas import UserListResponse, UserResponse
from services import user_service

auth_router = APIRouter(prefix="/api/auth", tags=["auth"])
router = APIRouter(prefix="/api/users", tags=["users"])


@auth_router.get("/line/callback", response_model=UserResponse)
async def line_callback(code: str) -> UserResponse:
    return await user_service.login_with_code(code)


@router.get("", response_model=UserListResponse)
async def list_users(
    user_id: int = Depends(get_current_user_id),
) -> UserListResponse:
    _ = user_id
    return await user_service.list_users()


@router.get("/me", response_model=UserResponse)
async def read_me(user_id: int = Depends(get_current_user_id)) -> UserResponse:
    return await user_service.read_user(user_id)


@router.post("/me/sync", response_model=UserResponse)
async def sync_me(user_id: int = Depends(get_current_user_id)) -> UserResponse:
    return await user_service.sync_profile(user_id)
