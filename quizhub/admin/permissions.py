from fastapi import Depends, HTTPException, status

from quizhub.core.config import settings
from quizhub.core.dependencies import get_current_session
from quizhub.logging import get_logger, LogSection, LogSubsection
from quizhub.schemas.profile_schemas import Profile
from quizhub.services.identity import SessionContext

logger = get_logger(__name__)


# Поле role в профиле выставляется эвристикой по email и для решений о доступе
# не используется. Администраторы задаются явно через SUPER_ADMIN_IDS.
def is_super_admin(user_id: str) -> bool:
    return bool(user_id) and user_id in settings.super_admin_ids


def can_delete_quiz(profile: Profile, quiz_document: dict) -> bool:
    # Автор берётся из сырого документа: повреждённый квиз тоже защищён
    created_by = quiz_document.get("created_by")
    return (isinstance(created_by, str) and created_by == profile.id) or is_super_admin(profile.id)


async def get_current_admin_session(session: SessionContext = Depends(get_current_session)) -> SessionContext:
    profile = session.require_profile()
    if not is_super_admin(profile.id):
        logger.warning(
            section=LogSection.SECURITY,
            subsection=LogSubsection.SECURITY.ACCESS_DENIED,
            message=f"Пользователь {profile.id} (роль в профиле: {profile.role.value}) запросил админское действие",
            user_id=profile.id
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"message": "Доступ запрещён. Требуются права администратора."}
        )
    return session
