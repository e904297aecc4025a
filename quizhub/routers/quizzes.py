# quizhub/routers/quizzes.py

from fastapi import APIRouter, Depends, HTTPException, Query

from quizhub.admin.permissions import can_delete_quiz
from quizhub.core.dependencies import get_current_session, get_quiz_repository
from quizhub.core.response import error, success
from quizhub.logging import get_logger, LogSection, LogSubsection
from quizhub.schemas.quiz_schemas import QuizDraft
from quizhub.services.identity import SessionContext
from quizhub.services.quizzes import QuizRepository

router = APIRouter()
logger = get_logger(__name__)


@router.post("/")
async def create_quiz(
    draft: QuizDraft,
    session: SessionContext = Depends(get_current_session),
    repository: QuizRepository = Depends(get_quiz_repository)
):
    """Автор квиза всегда берётся из сессии"""
    profile = session.require_profile()
    quiz = await repository.create(draft.model_copy(update={"created_by": profile.id}))
    return success(data=quiz.model_dump(mode="json"), message="Квиз создан")


@router.get("/")
async def list_quizzes(repository: QuizRepository = Depends(get_quiz_repository)):
    quizzes = await repository.list_all()
    return success(data=[quiz.model_dump(mode="json") for quiz in quizzes], message="Список квизов")


@router.get("/resolve")
async def resolve_share_link(
    link: str = Query(..., min_length=1, description="Ссылка вида {origin}/quiz/{id}"),
    repository: QuizRepository = Depends(get_quiz_repository)
):
    quiz = await repository.get_by_share_link(link)
    if quiz is None:
        raise HTTPException(status_code=404, detail={"message": "Квиз по ссылке не найден"})
    return success(data=quiz.model_dump(mode="json"), message="Квиз найден")


@router.get("/{quiz_id}")
async def get_quiz(quiz_id: str, repository: QuizRepository = Depends(get_quiz_repository)):
    quiz = await repository.get_by_id(quiz_id)
    if quiz is None:
        raise HTTPException(status_code=404, detail={"message": "Квиз не найден"})
    return success(data=quiz.model_dump(mode="json"), message="Квиз найден")


@router.delete("/{quiz_id}")
async def delete_quiz(
    quiz_id: str,
    session: SessionContext = Depends(get_current_session),
    repository: QuizRepository = Depends(get_quiz_repository)
):
    profile = session.require_profile()

    document = await repository.fetch_document(quiz_id)
    if document is not None and not can_delete_quiz(profile, document):
        logger.warning(
            section=LogSection.SECURITY,
            subsection=LogSubsection.SECURITY.ACCESS_DENIED,
            message=f"Пользователь {profile.id} пытался удалить чужой квиз {quiz_id}",
            user_id=profile.id
        )
        raise HTTPException(status_code=403, detail={"message": "Удалить квиз может только автор"})

    if not await repository.remove(quiz_id):
        return error(code=503, message="Не удалось удалить квиз, попробуйте позже", details={"quiz_id": quiz_id})
    return success(data={"id": quiz_id}, message="Квиз удалён")
