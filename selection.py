"""
Question selection: filter a working set of questions by year and topic, group
it by topic combination or by year, and order each group.

Everything here is a pure function of its inputs. `QuestionSelection` is
iterable any number of times and recomputes its groups on every pass.
"""

from __future__ import annotations

from datetime import date
from typing import (
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    NamedTuple,
    Optional,
    Union,
)

from schemas.display import DisplaySettings, GroupBy, SortBy
from schemas.records import Question, Topic
from schemas.views import CardMetadata, LabeledText, QuestionCard, QuestionGroupOut

FIRST_YEAR = 2012
TOPIC_SEPARATOR = " / "
IMAGE_ROOT = "/images/questions"
CHOICE_LABELS = "ABCDEFGHIJ"

# Missing hkPercent ranks below every real percentage
MISSING_PERCENT = -1.0


class QuestionGroup(NamedTuple):
    key: Union[int, str]
    questions: List[Question]


# --- Filtering ------------------------------------------------------------------


def filter_questions(
    questions: Iterable[Question],
    years: Iterable[int] = (),
    topic_ids: Iterable[int] = (),
) -> List[Question]:
    year_set = set(years)
    topic_set = set(topic_ids)
    return [
        q
        for q in questions
        if (not year_set or q.year in year_set)
        and (not topic_set or any(t in topic_set for t in q.t_id))
    ]


def filter_topics_by_chapters(topics: Iterable[Topic], chapter_numbers: Iterable[int]) -> List[Topic]:
    wanted = set(chapter_numbers)
    return [t for t in topics if not wanted or t.aristo in wanted]


def year_options(first_year: int = FIRST_YEAR, current_year: Optional[int] = None) -> List[int]:
    last = current_year if current_year is not None else date.today().year
    return list(range(first_year, last + 1))


# --- Sorting --------------------------------------------------------------------


def _percent(q: Question) -> float:
    return q.hk_percent if q.hk_percent is not None else MISSING_PERCENT


def sort_key(sort_by: SortBy) -> Callable[[Question], tuple]:
    if sort_by == SortBy.HK_PERCENT:
        return lambda q: (q.hk_percent is None, -_percent(q))
    return lambda q: (q.year, q.q_num)


def sort_questions(questions: Iterable[Question], sort_by: SortBy = SortBy.YEAR_QNUM) -> List[Question]:
    return sorted(questions, key=sort_key(sort_by))


# --- Grouping -------------------------------------------------------------------


def topic_title(topic: Optional[Topic], t_id: int, language: str) -> str:
    if topic is None:
        return f"Unknown Topic ({t_id})"
    if language.startswith("zh"):
        return topic.title_c or topic.title_e or f"Topic {t_id}"
    return topic.title_e or topic.title_c or f"Topic {t_id}"


def topic_names(t_ids: Iterable[int], topics: Mapping[int, Topic], language: str) -> str:
    return TOPIC_SEPARATOR.join(topic_title(topics.get(t), t, language) for t in t_ids)


class QuestionSelection:
    def __init__(
        self,
        questions: Iterable[Question],
        topics: Iterable[Topic] = (),
        *,
        years: Iterable[int] = (),
        topic_ids: Iterable[int] = (),
        group_by: GroupBy = GroupBy.TOPIC,
        sort_by: SortBy = SortBy.YEAR_QNUM,
        settings: Optional[DisplaySettings] = None,
    ):
        self.questions = tuple(questions)
        self.topics: Dict[int, Topic] = {t.t_id: t for t in topics}
        self.years = frozenset(years)
        self.topic_ids = frozenset(topic_ids)
        self.group_by = group_by
        self.sort_by = sort_by
        self.settings = settings or DisplaySettings()

    def _key(self, q: Question) -> Union[int, str]:
        if self.group_by == GroupBy.YEAR:
            return q.year
        return topic_names(q.t_id, self.topics, self.settings.language)

    def __iter__(self) -> Iterator[QuestionGroup]:
        grouped: Dict[Union[int, str], List[Question]] = {}
        for q in filter_questions(self.questions, self.years, self.topic_ids):
            grouped.setdefault(self._key(q), []).append(q)

        if self.group_by == GroupBy.YEAR:
            keys = sorted(grouped, reverse=True)
        else:
            keys = sorted(grouped, key=lambda k: (str(k).casefold(), str(k)))

        for key in keys:
            yield QuestionGroup(key, sort_questions(grouped[key], self.sort_by))

    def is_empty(self) -> bool:
        return next(iter(self), None) is None

    def to_output(self) -> List[QuestionGroupOut]:
        return [
            QuestionGroupOut(
                key=group.key,
                cards=[question_card(q, i, self.settings) for i, q in enumerate(group.questions)],
            )
            for group in self
        ]


def group_questions(
    questions: Iterable[Question],
    topics: Iterable[Topic] = (),
    *,
    years: Iterable[int] = (),
    topic_ids: Iterable[int] = (),
    group_by: GroupBy = GroupBy.TOPIC,
    sort_by: SortBy = SortBy.YEAR_QNUM,
    settings: Optional[DisplaySettings] = None,
) -> QuestionSelection:
    return QuestionSelection(
        questions,
        topics,
        years=years,
        topic_ids=topic_ids,
        group_by=group_by,
        sort_by=sort_by,
        settings=settings,
    )


# --- Cards ----------------------------------------------------------------------


def _roman(n: int) -> str:
    numerals = [(10, "X"), (9, "IX"), (5, "V"), (4, "IV"), (1, "I")]
    out = ""
    for value, glyph in numerals:
        while n >= value:
            out += glyph
            n -= value
    return out


def image_url(question: Question, settings: DisplaySettings) -> str:
    return f"{IMAGE_ROOT}/{question.q_id}{settings.image_suffix}.png"


def uses_image(question: Question, settings: DisplaySettings) -> bool:
    # Text fields only carry the Chinese wording; English always comes from the image
    return question.has_image or settings.language.startswith("en")


def question_card(question: Question, index: int, settings: DisplaySettings) -> QuestionCard:
    card = QuestionCard(number=index + 1, q_id=question.q_id)

    if uses_image(question, settings):
        card.image = image_url(question, settings)
    else:
        card.text = question.q_text
        if question.is_statements:
            card.statements = [
                LabeledText(label=_roman(i + 1), text=s) for i, s in enumerate(question.statements)
            ]
        card.choices = [
            LabeledText(label=CHOICE_LABELS[i] if i < len(CHOICE_LABELS) else str(i + 1), text=c)
            for i, c in enumerate(question.choices)
        ]

    if settings.show_metadata:
        card.metadata = CardMetadata(
            year=question.year,
            q_num=question.q_num,
            hk_percent=question.hk_percent if settings.effective_show_percent else None,
            ans=question.ans if settings.effective_show_answer else None,
        )
    return card
