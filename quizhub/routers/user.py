# quizhub/routers/user.py

from fastapi import APIRouter, Depends

from quizhub.admin.permissions import is_super_admin
from quizhub.core.dependencies import get_current_session
from quizhub.core.response import success
from quizhub.services.identity import SessionContext

router = APIRouter()


@router.get("/me")
async def get_current_profile(session: SessionContext = Depends(get_current_session)):
    profile = session.require_profile()
    data = profile.model_dump(mode="json")
    data["is_admin"] = is_super_admin(profile.id)
    return success(data=data, message="Профиль получен")
