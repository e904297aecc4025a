import hashlib
import secrets
import string
import uuid


def generate_document_id() -> str:
    """
    Generates a collision-free id for quizzes, attempts and sessions.
    Format: 32 lowercase hex characters (uuid4).
    """
    return uuid.uuid4().hex


def generate_numeric_code(length: int = 6) -> str:
    """Одноразовый цифровой код (криптографически стойкий)"""
    return "".join(secrets.choice(string.digits) for _ in range(length))


def email_key(email: str) -> str:
    """
    Ключ документа по email: в пути нельзя использовать точки,
    поэтому берём sha256 от нормализованного адреса.
    """
    return hashlib.sha256(email.strip().lower().encode("utf-8")).hexdigest()
