# quizhub/routers/attempts.py

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from quizhub.core.config import settings
from quizhub.core.dependencies import get_attempt_recorder, get_optional_session
from quizhub.core.response import success
from quizhub.schemas.attempt_schemas import AttemptDraft
from quizhub.services.attempts import AttemptRecorder
from quizhub.services.identity import SessionContext

router = APIRouter()


@router.post("/")
async def record_attempt(
    draft: AttemptDraft,
    session: SessionContext = Depends(get_optional_session),
    recorder: AttemptRecorder = Depends(get_attempt_recorder)
):
    if not session.is_authenticated and not settings.ALLOW_ANONYMOUS_ATTEMPTS:
        raise HTTPException(status_code=401, detail={"message": "Войдите, чтобы сохранить результат"})

    # user_id из тела запроса не принимаем
    update = {"user_id": session.user_id}
    if session.is_authenticated and not draft.user_name:
        update["user_name"] = session.profile.name

    attempt = await recorder.record(draft.model_copy(update=update))
    return success(data=attempt.model_dump(mode="json"), message="Результат сохранён")


@router.get("/")
async def list_attempts(
    quiz_id: Optional[str] = Query(None),
    recorder: AttemptRecorder = Depends(get_attempt_recorder)
):
    attempts = await recorder.list_all()
    if quiz_id:
        attempts = [a for a in attempts if a.quiz_id == quiz_id]
    return success(data=[a.model_dump(mode="json") for a in attempts], message="Список попыток")
