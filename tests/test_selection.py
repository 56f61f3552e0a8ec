from schemas.display import DisplaySettings, GroupBy, SortBy
from schemas.records import Question, Topic
from selection import (
    filter_questions,
    filter_topics_by_chapters,
    group_questions,
    question_card,
    sort_questions,
    topic_names,
    year_options,
)

TOPICS = [
    Topic(tId=1, tTitleE="Algebra", tTitleC="代數", aristo=3),
    Topic(tId=2, tTitleE="Geometry", tTitleC="幾何", aristo=1),
    Topic(tId=3, tTitleE="", tTitleC="統計"),
]


def q(q_id, year, q_num, t_ids, hk=None, **extra):
    return Question(qId=q_id, year=year, qNum=q_num, tId=t_ids, hkPercent=hk, **extra)


QUESTIONS = [
    q(1, 2019, 4, [1], hk=40.0),
    q(2, 2020, 2, [1, 2], hk=80.0),
    q(3, 2020, 1, [2]),
    q(4, 2021, 3, [1], hk=65.0),
    q(5, 2020, 7, [2], hk=10.0),
]


def test_filters_compose_as_conjunction():
    f1 = {"years": [2020, 2021]}
    f2 = {"topic_ids": [1]}
    nested = filter_questions(filter_questions(QUESTIONS, **f1), **f2)
    assert nested == filter_questions(QUESTIONS, years=[2020, 2021], topic_ids=[1])
    assert [x.q_id for x in nested] == [2, 4]


def test_year_filter_with_empty_topic_filter():
    picked = filter_questions(QUESTIONS, years={2020, 2021}, topic_ids=set())
    assert 1 not in {x.q_id for x in picked}
    assert {2, 3, 5} <= {x.q_id for x in picked}


def test_year_qnum_sort_is_total():
    ordered = sort_questions(QUESTIONS, SortBy.YEAR_QNUM)
    assert [(x.year, x.q_num) for x in ordered] == [(2019, 4), (2020, 1), (2020, 2), (2020, 7), (2021, 3)]


def test_missing_percent_sorts_after_every_defined_percent():
    ordered = sort_questions(QUESTIONS, SortBy.HK_PERCENT)
    assert [x.q_id for x in ordered] == [2, 4, 1, 5, 3]

    # a question at 0% still outranks a question with no percentage
    ordered = sort_questions([q(8, 2020, 1, [1]), q(9, 2020, 2, [1], hk=0.0)], SortBy.HK_PERCENT)
    assert [x.q_id for x in ordered] == [9, 8]


def test_topic_grouping_keys_on_combined_names():
    groups = list(group_questions(QUESTIONS, TOPICS, settings=DisplaySettings(language="en")))
    keys = [g.key for g in groups]
    assert keys == ["Algebra", "Algebra / Geometry", "Geometry"]
    assert [x.q_id for x in groups[1].questions] == [2]


def test_year_grouping_is_descending():
    groups = list(group_questions(QUESTIONS, TOPICS, group_by=GroupBy.YEAR))
    assert [g.key for g in groups] == [2021, 2020, 2019]
    assert [x.q_id for x in groups[1].questions] == [3, 2, 5]


def test_selection_is_restartable():
    selection = group_questions(QUESTIONS, TOPICS, years=[2020])
    assert list(selection) == list(selection)
    assert not selection.is_empty()
    assert group_questions(QUESTIONS, TOPICS, years=[1999]).is_empty()


def test_topic_names_fall_back():
    topics = {t.t_id: t for t in TOPICS}
    assert topic_names([3], topics, "en") == "統計"
    assert topic_names([1, 42], topics, "zh") == "代數 / Unknown Topic (42)"


def test_filter_topics_by_chapters():
    assert filter_topics_by_chapters(TOPICS, []) == TOPICS
    assert [t.t_id for t in filter_topics_by_chapters(TOPICS, [1])] == [2]


def test_year_options():
    assert year_options(2012, 2015) == [2012, 2013, 2014, 2015]


def test_card_is_text_based_in_chinese_without_image():
    question = q(7, 2020, 1, [1], hk=50.0, qText="下列何者正確？", isStatements=True,
                 statements=["甲", "乙"], choices=["只有 I", "只有 II"], ans="B")
    card = question_card(question, 0, DisplaySettings(language="zh"))
    assert card.number == 1
    assert card.image is None
    assert card.text == "下列何者正確？"
    assert [s.label for s in card.statements] == ["I", "II"]
    assert [c.label for c in card.choices] == ["A", "B"]
    assert card.metadata.hk_percent == 50.0
    assert card.metadata.ans == "B"


def test_card_uses_image_in_english():
    card = question_card(q(7, 2020, 1, [1]), 4, DisplaySettings(language="en"))
    assert card.number == 5
    assert card.image == "/images/questions/7e.png"
    assert card.text is None and card.choices == []


def test_metadata_toggles_hide_badges():
    question = q(7, 2020, 1, [1], hk=50.0, ans="C")
    hidden = question_card(question, 0, DisplaySettings().toggle_metadata())
    assert hidden.metadata is None

    no_answer = question_card(question, 0, DisplaySettings().toggle_answer())
    assert no_answer.metadata.ans is None
    assert no_answer.metadata.hk_percent == 50.0


def test_display_settings_are_independent_values():
    base = DisplaySettings()
    toggled = base.toggle_language().toggle_percent()
    assert base.language == "zh" and base.show_percent
    assert toggled.language == "en" and not toggled.show_percent
    assert not toggled.toggle_metadata().effective_show_answer
