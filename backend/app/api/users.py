from fastapi import APIRouter, Depends, Query

from app.core.auth import get_current_user
from app.core.dependencies import get_directory
from app.core.errors import GroupBudgetError, to_http_exception
from app.models.user import User
from app.schemas.user import UserIdentity
from app.services.directory_service import UserDirectory
from app.services.invitation_service import search_users

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/search", response_model=list[UserIdentity])
async def search(
    q: str = Query(""),
    user: User = Depends(get_current_user),
    directory: UserDirectory = Depends(get_directory),
):
    try:
        return await search_users(q, directory=directory, requester_id=user.id)
    except GroupBudgetError as e:
        raise to_http_exception(e)
