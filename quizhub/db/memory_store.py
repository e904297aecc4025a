# quizhub/db/memory_store.py

import copy
from typing import Any, Dict, Optional

from .store import DocumentStore, split_path


class MemoryDocumentStore(DocumentStore):
    """Хранилище в памяти процесса (STORE_BACKEND=memory и тесты)"""

    def __init__(self):
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}

    async def get(self, path: str) -> Optional[Any]:
        collection, doc_id = split_path(path)
        documents = self._collections.get(collection)
        if not documents:
            return None
        if doc_id is None:
            return copy.deepcopy(documents)
        document = documents.get(doc_id)
        return copy.deepcopy(document) if document is not None else None

    async def set(self, path: str, document: Dict[str, Any]) -> None:
        collection, doc_id = split_path(path)
        if doc_id is None:
            raise ValueError("Нельзя перезаписать коллекцию целиком")
        self._collections.setdefault(collection, {})[doc_id] = copy.deepcopy(document)

    async def set_if_absent(self, path: str, document: Dict[str, Any]) -> Dict[str, Any]:
        collection, doc_id = split_path(path)
        if doc_id is None:
            raise ValueError("Условная запись возможна только для документа")
        documents = self._collections.setdefault(collection, {})
        if doc_id not in documents:
            documents[doc_id] = copy.deepcopy(document)
        return copy.deepcopy(documents[doc_id])

    async def remove(self, path: str) -> None:
        collection, doc_id = split_path(path)
        if doc_id is None:
            self._collections.pop(collection, None)
            return
        self._collections.get(collection, {}).pop(doc_id, None)
