from fastapi import Depends

from db import SessionLocal
from repository import Repository
from store import DocumentStore

_store = DocumentStore(SessionLocal)


def get_store() -> DocumentStore:
    return _store


def get_repository(store: DocumentStore = Depends(get_store)) -> Repository:
    return Repository(store)
