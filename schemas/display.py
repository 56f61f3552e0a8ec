from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class GroupBy(str, Enum):
    TOPIC = "topic"
    YEAR = "year"


class SortBy(str, Enum):
    YEAR_QNUM = "year-qnum"
    HK_PERCENT = "hk-percent"


class DisplaySettings(BaseModel):
    """
    Per-view display context. Immutable: every toggle returns a new value, so
    independent views never share toggle state.
    """

    model_config = ConfigDict(frozen=True)

    language: str = "zh"
    show_metadata: bool = True
    show_percent: bool = True
    show_answer: bool = True

    @property
    def is_chinese(self) -> bool:
        return self.language.startswith("zh")

    @property
    def image_suffix(self) -> str:
        return "c" if self.is_chinese else "e"

    # percent and answer badges only show alongside the metadata
    @property
    def effective_show_percent(self) -> bool:
        return self.show_metadata and self.show_percent

    @property
    def effective_show_answer(self) -> bool:
        return self.show_metadata and self.show_answer

    def toggle_metadata(self) -> "DisplaySettings":
        return self.model_copy(update={"show_metadata": not self.show_metadata})

    def toggle_percent(self) -> "DisplaySettings":
        return self.model_copy(update={"show_percent": not self.show_percent})

    def toggle_answer(self) -> "DisplaySettings":
        return self.model_copy(update={"show_answer": not self.show_answer})

    def toggle_language(self) -> "DisplaySettings":
        return self.model_copy(update={"language": "zh" if self.language == "en" else "en"})
