"""Administration endpoints, restricted to admin users."""
from fastapi import APIRouter, Depends

from api.dependencies import get_user_service, pop_flash, require_admin
from schemas.flash import Flash
from schemas.pages import UserListResponse
from schemas.user import UserInfo
from services.user_service import UserService

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


@router.get("/users", response_model=UserListResponse)
async def list_users(
    flash: Flash | None = Depends(pop_flash),
    users: UserService = Depends(get_user_service),
) -> UserListResponse:
    """List every account by nickname."""
    return UserListResponse(
        flash=flash,
        users=[UserInfo.model_validate(user) for user in await users.all()],
    )
