# quizhub/core/response.py

import uuid
from datetime import datetime

import pytz
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def make_meta(pagination=None):
    return {
        "timestamp": datetime.now(pytz.UTC).isoformat(),
        "trace_id": str(uuid.uuid4()),
        "pagination": pagination
    }


def success(data=None, message="Операция выполнена успешно", pagination=None, code=200):
    return JSONResponse(
        status_code=code,
        content={
            "status": "ok",
            "message": message,
            "data": jsonable_encoder(data),
            "meta": make_meta(pagination)
        }
    )


def error(code=400, message="Ошибка", details=None):
    return JSONResponse(
        status_code=code,
        content={
            "status": "error",
            "code": code,
            "message": message,
            "details": details,
            "meta": make_meta()
        }
    )
