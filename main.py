# main.py

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_405_METHOD_NOT_ALLOWED,
    HTTP_422_UNPROCESSABLE_ENTITY,
    HTTP_429_TOO_MANY_REQUESTS,
    HTTP_502_BAD_GATEWAY,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from quizhub import __version__
from quizhub.logging import setup_application_logging, get_logger, LogSection, LogSubsection, close_all_rabbitmq_connections
from quizhub.core.config import settings
from quizhub.core.errors import AuthenticationError, DispatchError, RateLimitError, StoreError, ValidationError
from quizhub.core.response import error
from quizhub.routers import auth, user, quizzes, attempts, leaderboard, verification
from quizhub.db.database import store, create_database_indexes

# Инициализация структурированной системы логирования
setup_application_logging()
logger = get_logger("main")

app = FastAPI(
    title="QuizHub API",
    description="Квизы, попытки и таблица лидеров",
    version=__version__
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "X-Requested-With",
        "Accept"
    ],
)

# Подключаем роутеры
app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(user.router, prefix="/users", tags=["Users"])
app.include_router(quizzes.router, prefix="/quizzes", tags=["Quizzes"])
app.include_router(attempts.router, prefix="/attempts", tags=["Attempts"])
app.include_router(leaderboard.router, prefix="/leaderboard", tags=["Leaderboard"])
app.include_router(verification.router, prefix="/verification", tags=["Verification"])


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    path = request.url.path
    code = exc.status_code

    logger.warning(
        section=LogSection.API,
        subsection=LogSubsection.API.ERROR,
        message=f"HTTP исключение {code} для пути {path} (метод: {request.method}) - {exc.detail}"
    )

    # detail-словарь с кастомным message
    if isinstance(exc.detail, dict):
        details = exc.detail.copy()
        if "path" not in details:
            details["path"] = path
        return error(
            code=code,
            message=details.get("message", "Ошибка запроса"),
            details=details
        )

    # Стандартные коды
    if code == HTTP_405_METHOD_NOT_ALLOWED:
        return error(code, "Метод не разрешён", details={"method": request.method, "path": path})
    if code == HTTP_404_NOT_FOUND:
        return error(code, "Страница не найдена", details={"path": path})
    if code == HTTP_401_UNAUTHORIZED:
        return error(code, "Требуется авторизация", details={"path": path})
    if code == HTTP_403_FORBIDDEN:
        return error(code, "Доступ запрещён", details={"path": path})
    if code == HTTP_429_TOO_MANY_REQUESTS:
        return error(code, "Слишком много запросов", details={"hint": "Попробуйте позже", "path": path})

    if isinstance(exc.detail, str):
        return error(code=code, message=exc.detail, details={"path": path})
    return error(code=code, message="Ошибка запроса", details={"path": path})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    error_list = []
    for err in exc.errors():
        field = err.get("loc", ["неизвестное поле"])[-1]
        message = err.get("msg", "Некорректное значение")
        # Удаляем префикс "Value error, " если он присутствует
        prefix = "Value error, "
        if message.startswith(prefix):
            message = message[len(prefix):]
        error_list.append({"field": field, "message": message})

    logger.warning(
        section=LogSection.API,
        subsection=LogSubsection.API.VALIDATION,
        message=f"Ошибка валидации запроса для пути {request.url.path} (метод: {request.method})"
    )

    formatted_error_details = "; ".join(
        [f"Поле «{item['field']}»: {item['message']}" for item in error_list]
    )
    return error(
        code=HTTP_422_UNPROCESSABLE_ENTITY,
        details="Ошибка валидации данных",
        message=formatted_error_details
    )


@app.exception_handler(ValidationError)
async def domain_validation_handler(request: Request, exc: ValidationError):
    logger.warning(
        section=LogSection.SECURITY,
        subsection=LogSubsection.SECURITY.VALIDATION,
        message=f"Некорректные данные для пути {request.url.path}: {exc.message}"
    )
    return error(code=HTTP_400_BAD_REQUEST, message=exc.message, details={"field": exc.field, "path": request.url.path})


@app.exception_handler(AuthenticationError)
async def authentication_error_handler(request: Request, exc: AuthenticationError):
    logger.warning(
        section=LogSection.AUTH,
        subsection=LogSubsection.AUTH.LOGIN_FAILED,
        message=f"Отказ в аутентификации для пути {request.url.path}: {exc.message}"
    )
    return error(code=HTTP_401_UNAUTHORIZED, message=exc.message, details={"path": request.url.path})


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error(
        section=LogSection.DATABASE,
        subsection=LogSubsection.DATABASE.ERROR,
        message=f"Хранилище недоступно при обработке {request.url.path}: {exc.message}"
    )
    return error(
        code=HTTP_503_SERVICE_UNAVAILABLE,
        message="Хранилище временно недоступно",
        details={"hint": "Попробуйте позже", "path": request.url.path}
    )


@app.exception_handler(RateLimitError)
async def rate_limit_handler(request: Request, exc: RateLimitError):
    return error(
        code=HTTP_429_TOO_MANY_REQUESTS,
        message=exc.message,
        details={"retry_after": exc.retry_after, "path": request.url.path}
    )


@app.exception_handler(DispatchError)
async def dispatch_error_handler(request: Request, exc: DispatchError):
    code = HTTP_503_SERVICE_UNAVAILABLE if exc.kind == "configuration" else HTTP_502_BAD_GATEWAY
    return error(code=code, message=exc.message, details={"kind": exc.kind, "path": request.url.path})


@app.on_event("startup")
async def startup_event():
    """Запускается при старте приложения"""
    logger.info(
        section=LogSection.SYSTEM,
        subsection=LogSubsection.SYSTEM.STARTUP,
        message=f"Запуск приложения, хранилище: {settings.STORE_BACKEND}"
    )

    try:
        await create_database_indexes(store)
    except PyMongoError as e:
        logger.error(
            section=LogSection.SYSTEM,
            subsection=LogSubsection.SYSTEM.STARTUP,
            message=f"Ошибка при создании индексов базы данных: {e}"
        )


@app.on_event("shutdown")
async def shutdown_event():
    logger.info(
        section=LogSection.SYSTEM,
        subsection=LogSubsection.SYSTEM.SHUTDOWN,
        message="Завершение работы приложения QuizHub"
    )

    await close_all_rabbitmq_connections()
    await store.close()

    logger.info(
        section=LogSection.SYSTEM,
        subsection=LogSubsection.SYSTEM.SHUTDOWN,
        message="Приложение QuizHub успешно завершено"
    )
