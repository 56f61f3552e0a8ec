import pytest

from errors import InvalidInputError, StoreError
from managers import (
    SubtopicManager,
    TextbookManager,
    is_temp_key,
    normalize_tb_id,
    parse_chapter_number,
)
from repository import QUESTIONS, SUBTOPICS


def yes(_prompt):
    return True


def no(_prompt):
    return False


# ---------- Subtopics ----------


def test_create_requires_titles_before_any_call(seeded, commit_spy):
    manager = SubtopicManager(seeded, 101)
    manager.load()
    assert not manager.can_create("函數", " ")
    with pytest.raises(InvalidInputError):
        manager.create("函數", " ")
    assert commit_spy.calls == []


def test_create_appends_and_reloads(seeded):
    manager = SubtopicManager(seeded, 101)
    manager.load()
    created = manager.create("函數", "Functions")
    assert created.st_id == 10103
    assert [st.st_seq for st in manager.subtopics] == [1, 2, 3]


def test_edit_works_on_a_clone(seeded):
    manager = SubtopicManager(seeded, 101)
    manager.load()
    manager.start_editing("101_1")
    manager.edit("stTitleE", "Linear equations")
    assert manager.subtopics[0].title_e == "Equations"

    manager.cancel_editing()
    assert manager.editing is None
    assert seeded.store.document(SUBTOPICS, "101_1").data["stTitleE"] == "Equations"


def test_save_editing_writes_only_that_record(seeded, commit_spy):
    manager = SubtopicManager(seeded, 101)
    manager.load()
    manager.start_editing("101_2")
    manager.edit("stTitleE", " Inequalities II ")

    assert manager.save_editing()
    assert len(commit_spy.calls) == 1
    assert [w[2] for w in commit_spy.calls[0]] == ["101_2"]
    assert manager.subtopics[1].title_e == "Inequalities II"
    assert manager.editing is None


def test_save_editing_requires_titles(seeded):
    manager = SubtopicManager(seeded, 101)
    manager.load()
    manager.start_editing("101_2")
    manager.edit("stTitleC", "")
    with pytest.raises(InvalidInputError):
        manager.save_editing()
    assert manager.editing is not None


def test_delete_needs_confirmation_and_does_not_cascade(seeded):
    manager = SubtopicManager(seeded, 101)
    manager.load()
    assert manager.delete("101_1", no) is False
    assert len(manager.subtopics) == 2

    assert manager.delete("101_1", yes) is True
    assert [st.id for st in manager.subtopics] == ["101_2"]
    assert seeded.store.document(QUESTIONS, "q4").data["stIds"] == [10101]


def test_create_failure_is_reported(seeded, monkeypatch):
    def boom(*args):
        raise StoreError("offline")

    monkeypatch.setattr(seeded, "create_subtopic", boom)
    manager = SubtopicManager(seeded, 101)
    assert manager.create("函數", "Functions") is None
    assert manager.error == "Failed to add subtopic."


# ---------- Textbooks ----------


def test_helpers():
    assert normalize_tb_id("aristo 2b") == "ARISTO_2B"
    assert normalize_tb_id("oxford  3\ta") == "OXFORD_3_A"
    assert parse_chapter_number(" 4 ") == 4
    assert parse_chapter_number("four") == 0


def test_new_draft_is_promoted_on_first_save(seeded):
    manager = TextbookManager(seeded)
    manager.load()
    key = manager.add_new()
    assert is_temp_key(key)
    assert list(manager.drafts)[0] == key

    manager.set_field(key, "tbId", "oxford 3a")
    manager.set_field(key, "tbTitleE", "Oxford 3A")
    manager.add_chapter(key)
    manager.add_chapter(key)
    manager.set_chapter_field(key, 0, "cNum", "5")

    saved_key = manager.save(key)
    assert saved_key == "OXFORD_3A"
    assert key not in manager.drafts
    assert [c["cNum"] for c in manager.drafts["OXFORD_3A"]["chapters"]] == [2, 5]
    assert seeded.resolve_textbook("OXFORD_3A").data["tbTitleE"] == "Oxford 3A"
    assert not manager.is_saving(saved_key)


def test_collision_keeps_the_draft(seeded):
    manager = TextbookManager(seeded)
    manager.load()
    key = manager.add_new()
    manager.set_field(key, "tbId", "aristo_1a")

    assert manager.save(key) is None
    assert manager.error == "A textbook with this ID already exists."
    assert key in manager.drafts


def test_saved_textbook_id_is_read_only(seeded):
    manager = TextbookManager(seeded)
    manager.load()
    with pytest.raises(InvalidInputError):
        manager.set_field("ARISTO_1A", "tbId", "OTHER")


def test_blank_id_blocks_save(seeded, commit_spy):
    manager = TextbookManager(seeded)
    key = manager.add_new()
    with pytest.raises(InvalidInputError):
        manager.save(key)
    assert commit_spy.calls == []


def test_remove_chapter_leaves_gaps(seeded):
    manager = TextbookManager(seeded)
    manager.load()
    manager.add_chapter("ARISTO_1A")  # cNum 3
    manager.remove_chapter("ARISTO_1A", 0)
    assert [c["cNum"] for c in manager.drafts["ARISTO_1A"]["chapters"]] == [2, 3]

    manager.add_chapter("ARISTO_1A")
    # length + 1 again, duplicates tolerated
    assert [c["cNum"] for c in manager.drafts["ARISTO_1A"]["chapters"]] == [2, 3, 3]

    assert manager.save("ARISTO_1A") == "ARISTO_1A"
    assert [c.c_num for c in seeded.fetch_chapters("ARISTO_1A")] == [2, 3, 3]


def test_delete_temp_draft_makes_no_call(seeded, commit_spy):
    manager = TextbookManager(seeded)
    key = manager.add_new()
    assert manager.delete(key, yes)
    assert key not in manager.drafts
    assert commit_spy.calls == []


def test_delete_saved_textbook(seeded):
    manager = TextbookManager(seeded)
    manager.load()
    assert manager.delete("ARISTO_1A", no) is False
    assert manager.delete("ARISTO_1A", yes) is True
    assert seeded.fetch_textbooks() == []


def test_delete_of_vanished_textbook_removes_it_locally(seeded):
    manager = TextbookManager(seeded)
    manager.load()
    seeded.delete_textbook("ARISTO_1A")
    assert manager.delete("ARISTO_1A", yes) is True
    assert manager.drafts == {}


def test_malformed_draft_is_invalid_input(seeded, commit_spy):
    manager = TextbookManager(seeded)
    manager.load()
    key = manager.add_new()
    manager.set_field(key, "tbId", "oxford 3a")
    manager.set_field(key, "publisher", None)

    with pytest.raises(InvalidInputError):
        manager.save(key)
    assert commit_spy.calls == []
    assert key in manager.drafts
