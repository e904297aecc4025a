# quizhub/db/store.py

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

from quizhub.core.errors import ValidationError

FORBIDDEN_SEGMENT_CHARS = ("$", ".", "/", "\x00")


def split_path(path: str) -> Tuple[str, Optional[str]]:
    """
    Разбирает путь вида "quizzes" или "quizzes/{id}".
    Возвращает (коллекция, id документа или None).
    """
    if not isinstance(path, str) or not path:
        raise ValidationError("Пустой путь документа", field="path")

    segments = path.split("/")
    if len(segments) > 2:
        raise ValidationError(f"Слишком глубокий путь документа: {path}", field="path")

    for segment in segments:
        if not segment or any(c in segment for c in FORBIDDEN_SEGMENT_CHARS):
            raise ValidationError(f"Недопустимый сегмент пути: {path!r}", field="path")

    collection = segments[0]
    doc_id = segments[1] if len(segments) == 2 else None
    return collection, doc_id


def document_path(collection: str, doc_id: str) -> str:
    path = f"{collection}/{doc_id}"
    split_path(path)
    return path


class DocumentStore(ABC):
    """
    Иерархическое key-value хранилище документов.

    Документ: обычный словарь (строки, числа, bool, вложенные словари и списки).
    Чтение коллекции возвращает {id: документ} в порядке вставки либо None.
    Ошибки чтения поднимаются как StoreReadError, ошибки записи как StoreWriteError.
    """

    @abstractmethod
    async def get(self, path: str) -> Optional[Any]:
        ...

    @abstractmethod
    async def set(self, path: str, document: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def set_if_absent(self, path: str, document: Dict[str, Any]) -> Dict[str, Any]:
        """
        Атомарно создаёт документ, если его нет.
        Возвращает документ, который в итоге лежит в хранилище.
        """

    @abstractmethod
    async def remove(self, path: str) -> None:
        """Удаление отсутствующего документа ошибкой не является"""

    async def close(self) -> None:
        return None
