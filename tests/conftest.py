import os
import tempfile

# The app's module-level engine must point somewhere disposable before main is imported
_DB_DIR = tempfile.mkdtemp(prefix="mcq-bank-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_DB_DIR}/app.db")

import pytest  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

import models  # noqa: E402,F401
from db import Base, engine, make_engine  # noqa: E402
from deps.store import get_store  # noqa: E402
from main import app  # noqa: E402
from repository import QUESTIONS, SUBTOPICS, TEXTBOOKS, TOPICS, Mutation, Repository  # noqa: E402
from store import DocumentStore  # noqa: E402

Base.metadata.create_all(engine)

TOPIC_DOCS = {
    "101": {"tId": 101, "tTitleE": "Algebra", "tTitleC": "代數", "isJunior": False, "aristo": 2},
    "102": {"tId": 102, "tTitleE": "Geometry", "tTitleC": "幾何", "isJunior": True, "aristo": 1},
    "103": {"tId": 103, "tTitleE": "Statistics", "tTitleC": "統計", "isJunior": False},
}

SUBTOPIC_DOCS = {
    "101_1": {"tId": 101, "stSeq": 1, "stId": 10101, "stTitleC": "方程", "stTitleE": "Equations"},
    "101_2": {"tId": 101, "stSeq": 2, "stId": 10102, "stTitleC": "不等式", "stTitleE": "Inequalities"},
}


def _question(q_id, year, q_num, t_ids, **extra):
    doc = {
        "qId": q_id,
        "year": year,
        "paper": 2,
        "qNum": q_num,
        "qText": f"題目 {q_id}",
        "isStatements": False,
        "statements": [],
        "choices": ["1", "2", "3", "4"],
        "hasImage": False,
        "tId": t_ids,
        "ans": "A",
    }
    doc.update(extra)
    return doc


QUESTION_DOCS = {
    "q1": _question(1, 2020, 5, [101], hkPercent=55.0),
    "q2": _question(2, 2020, 3, [101, 102], hkPercent=72.5),
    "q3": _question(3, 2021, 1, [102]),
    "q4": _question(4, 2019, 9, [101], hkPercent=30.0, stIds=[10101]),
    "q5": _question(
        5, 2021, 7, [103], isStatements=True, statements=["甲", "乙", "丙"], hasImage=True
    ),
}

TEXTBOOK_DOCS = {
    "tb-doc-1": {
        "tbId": "ARISTO_1A",
        "tbTitleC": "雅集數學 1A",
        "tbTitleE": "Aristo Maths 1A",
        "publisher": "Aristo",
        "isJunior": True,
        "chapters": [
            {"cNum": 2, "chTitleC": "幾何", "chTitleE": "Geometry"},
            {"cNum": 1, "chTitleC": "代數", "chTitleE": "Algebra"},
        ],
    },
}


@pytest.fixture
def session_factory(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path}/bank.db")
    Base.metadata.create_all(eng)
    yield sessionmaker(bind=eng, autoflush=False, autocommit=False)
    eng.dispose()


@pytest.fixture
def store(session_factory):
    return DocumentStore(session_factory)


@pytest.fixture
def repo(store):
    return Repository(store)


@pytest.fixture
def seeded(repo):
    mutations = []
    for collection, docs in (
        (TOPICS, TOPIC_DOCS),
        (SUBTOPICS, SUBTOPIC_DOCS),
        (QUESTIONS, QUESTION_DOCS),
        (TEXTBOOKS, TEXTBOOK_DOCS),
    ):
        mutations.extend(Mutation("set", collection, doc_id, data) for doc_id, data in docs.items())
    repo.apply_batch(mutations)
    return repo


@pytest.fixture
def api_store(seeded):
    """Point the app at the seeded per-test store."""
    app.dependency_overrides[get_store] = lambda: seeded.store
    yield seeded.store
    app.dependency_overrides.clear()


class CommitSpy:
    """Wraps DocumentStore.commit_writes and records every call."""

    def __init__(self, store, fail_with=None):
        self.calls = []
        self.fail_with = fail_with
        self._inner = store.commit_writes

    def __call__(self, writes):
        self.calls.append(list(writes))
        if self.fail_with is not None:
            raise self.fail_with
        return self._inner(writes)


@pytest.fixture
def commit_spy(store, monkeypatch):
    spy = CommitSpy(store)
    monkeypatch.setattr(store, "commit_writes", spy)
    return spy
