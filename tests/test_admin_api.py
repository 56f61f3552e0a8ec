import json

import pytest
from fastapi.testclient import TestClient

from main import app

client = TestClient(app)

pytestmark = pytest.mark.usefixtures("api_store")

ADMIN = {"x-admin-token": "secret"}


@pytest.fixture(autouse=True)
def _admin_password(monkeypatch):
    monkeypatch.setenv("ADMIN_PASSWORD", "secret")


def test_admin_requires_token():
    assert client.get("/admin/topics").status_code == 401
    assert client.get("/admin/topics", headers={"x-admin-token": "nope"}).status_code == 401


def test_admin_not_configured(monkeypatch):
    monkeypatch.delenv("ADMIN_PASSWORD")
    r = client.get("/admin/topics", headers=ADMIN)
    assert r.status_code == 500


def test_patch_topics_is_partial(api_store):
    r = client.patch(
        "/admin/topics",
        headers=ADMIN,
        json={"topics": {"101": {"tTitleE": "Algebra II"}, "103": {"aristo": 3}}},
    )
    assert r.status_code == 200
    assert r.json() == {"ok": True, "written": 2}
    assert api_store.document("topics", "101").data["tTitleC"] == "代數"
    assert api_store.document("topics", "101").data["tTitleE"] == "Algebra II"
    assert api_store.document("topics", "103").data["aristo"] == 3


def test_patch_unknown_topic_is_404():
    r = client.patch("/admin/topics", headers=ADMIN, json={"topics": {"999": {"tTitleE": "x"}}})
    assert r.status_code == 404


def test_subtopic_lifecycle(api_store):
    r = client.post(
        "/admin/topics/101/subtopics",
        headers=ADMIN,
        json={"stTitleC": "函數", "stTitleE": "Functions"},
    )
    assert r.status_code == 201
    created = r.json()
    assert created["stSeq"] == 3 and created["stId"] == 10103

    r = client.put(
        f"/admin/subtopics/{created['id']}",
        headers=ADMIN,
        json={"stTitleC": "函數", "stTitleE": "Functions and graphs"},
    )
    assert r.status_code == 200

    r = client.get("/admin/topics/101/subtopics", headers=ADMIN)
    assert [st["stTitleE"] for st in r.json()][-1] == "Functions and graphs"

    assert client.delete(f"/admin/subtopics/{created['id']}", headers=ADMIN).status_code == 200
    assert len(client.get("/admin/topics/101/subtopics", headers=ADMIN).json()) == 2


def test_subtopic_blank_title_is_422():
    r = client.post(
        "/admin/topics/101/subtopics", headers=ADMIN, json={"stTitleC": " ", "stTitleE": "x"}
    )
    assert r.status_code == 422


def test_subtopic_for_unknown_topic_is_404():
    r = client.post(
        "/admin/topics/999/subtopics", headers=ADMIN, json={"stTitleC": "甲", "stTitleE": "A"}
    )
    assert r.status_code == 404


def test_update_missing_subtopic_is_404():
    r = client.put("/admin/subtopics/nope", headers=ADMIN, json={"stTitleC": "甲", "stTitleE": "A"})
    assert r.status_code == 404


def test_assignments(api_store):
    r = client.put(
        "/admin/assignments",
        headers=ADMIN,
        json={"assignments": {"q1": [10101, 10102], "q2": []}},
    )
    assert r.status_code == 200 and r.json()["written"] == 2
    r = client.get("/admin/topics/101/questions", headers=ADMIN)
    by_id = {q["id"]: q for q in r.json()}
    assert by_id["q1"]["stIds"] == [10101, 10102]
    assert by_id["q2"]["stIds"] == []


def test_textbook_lifecycle():
    book = {"tbId": "OXFORD_3A", "tbTitleE": "Oxford 3A", "chapters": [{"cNum": 2}, {"cNum": 1}]}
    r = client.post("/admin/textbooks", headers=ADMIN, json=book)
    assert r.status_code == 201 and r.json()["tbId"] == "OXFORD_3A"

    assert client.post("/admin/textbooks", headers=ADMIN, json=book).status_code == 409

    # the body replaces the textbook; a tbId in it is ignored
    r = client.put(
        "/admin/textbooks/OXFORD_3A",
        headers=ADMIN,
        json={**book, "tbId": "RENAMED", "publisher": "Oxford", "chapters": [{"cNum": 3}]},
    )
    assert r.status_code == 200
    chapters = client.get("/textbooks/OXFORD_3A/chapters").json()
    assert [c["cNum"] for c in chapters] == [3]

    assert client.delete("/admin/textbooks/OXFORD_3A", headers=ADMIN).status_code == 200
    assert client.delete("/admin/textbooks/OXFORD_3A", headers=ADMIN).status_code == 404


def test_reload_imports_seed_files(tmp_path, monkeypatch):
    topics = tmp_path / "topics"
    topics.mkdir()
    (topics / "more.jsonl").write_text(
        json.dumps({"tId": 110, "tTitleE": "Calculus", "tTitleC": "微積分"}) + "\n", encoding="utf-8"
    )
    monkeypatch.setenv("MCQ_DATA_DIR", str(tmp_path))

    r = client.post("/admin/reload", headers=ADMIN)
    assert r.status_code == 200
    assert r.json()["counts"]["topics"] == 1
    assert 110 in [t["tId"] for t in client.get("/topics").json()]
