# quizhub/routers/verification.py

from fastapi import APIRouter, Depends, HTTPException

from quizhub.admin.permissions import get_current_admin_session
from quizhub.core.dependencies import get_dispatcher, get_verification_service
from quizhub.core.response import success
from quizhub.schemas.verification_schemas import (
    ConfigCheckRequest,
    VerificationConfirmRequest,
    VerificationSendRequest
)
from quizhub.services.identity import SessionContext
from quizhub.services.verification import EmailJSDispatcher, VerificationDispatcher, VerificationService

router = APIRouter()


@router.post("/send")
async def send_code(
    data: VerificationSendRequest,
    service: VerificationService = Depends(get_verification_service)
):
    result = await service.request_code(data.name, data.email)
    return success(data=result, message=f"Код подтверждения отправлен на {result['email']}")


@router.post("/confirm")
async def confirm_code(
    data: VerificationConfirmRequest,
    service: VerificationService = Depends(get_verification_service)
):
    if not await service.confirm_code(data.email, data.code):
        raise HTTPException(status_code=400, detail={"message": "Некорректный или просроченный код"})
    return success(data={"email": data.email.strip(), "verified": True}, message="Email подтверждён")


@router.post("/check-config")
async def check_config(
    data: ConfigCheckRequest,
    _admin: SessionContext = Depends(get_current_admin_session),
    dispatcher: VerificationDispatcher = Depends(get_dispatcher)
):
    if not isinstance(dispatcher, EmailJSDispatcher):
        raise HTTPException(status_code=400, detail={"message": "Проверка доступна только для EmailJS"})
    result = await dispatcher.check_configuration(data.test_email)
    return success(data=result, message=result["message"])
