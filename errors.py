from __future__ import annotations

from typing import Optional

# Inline texts per message key: (English, Chinese)
MESSAGES = {
    "fetchError": ("Failed to fetch data. Please try again later.", "載入資料失敗，請稍後再試。"),
    "fetchTopics": ("Failed to fetch topics. Please try again.", "載入課題失敗，請再試。"),
    "fetchSubtopics": ("Failed to fetch subtopics.", "載入子課題失敗。"),
    "fetchQuestions": ("Failed to fetch questions.", "載入題目失敗。"),
    "fetchTextbooks": (
        "Failed to fetch textbooks. Please try again later.",
        "載入課本失敗，請稍後再試。",
    ),
    "fetchChapters": (
        "Failed to fetch chapters. Please try again later.",
        "載入章節失敗，請稍後再試。",
    ),
    "saveTopics": ("Failed to save changes. Please try again.", "儲存失敗，請再試。"),
    "saveAssignments": ("Failed to save assignments.", "儲存題目分配失敗。"),
    "addSubtopic": ("Failed to add subtopic.", "新增子課題失敗。"),
    "updateSubtopic": ("Failed to update subtopic.", "更新子課題失敗。"),
    "deleteSubtopic": ("Failed to delete subtopic.", "刪除子課題失敗。"),
    "saveTextbook": ("Failed to save textbook. Please try again.", "儲存課本失敗，請再試。"),
    "deleteTextbook": ("Failed to delete textbook. Please try again.", "刪除課本失敗，請再試。"),
    "textbookNotFound": ("Textbook not found.", "找不到課本。"),
    "topicNotFound": ("Topic not found.", "找不到課題。"),
    "documentNotFound": ("This record no longer exists.", "此記錄已不存在。"),
    "textbookExists": ("A textbook with this ID already exists.", "此課本編號已存在。"),
    "requiredFields": ("All fields are required.", "所有欄位必須填寫。"),
    "textbookIdRequired": ("Textbook ID is required.", "必須填寫課本編號。"),
    "noTopicSelected": ("Please select at least one topic.", "請選擇最少一個課題。"),
    "unsavedChanges": (
        "You have unsaved changes. Are you sure you want to leave?",
        "你有未儲存的更改，確定要離開嗎？",
    ),
    "wrongPassword": ("Incorrect password.", "密碼錯誤。"),
    "confirmDeleteSubtopic": ("Delete this subtopic?", "確定刪除此子課題？"),
    "confirmDeleteTextbook": ("Delete this textbook?", "確定刪除此課本？"),
}


def message(key: str, language: str = "en") -> str:
    en, zh = MESSAGES.get(key, (key, key))
    return zh if language.startswith("zh") else en


class BankError(Exception):
    """Base error; `key` selects the inline message shown to the user."""

    key = "fetchError"

    def __init__(self, detail: Optional[str] = None, *, key: Optional[str] = None):
        if key is not None:
            self.key = key
        super().__init__(detail or message(self.key))

    def localized(self, language: str = "en") -> str:
        return message(self.key, language)


class StoreError(BankError):
    """The document store rejected a read or a commit."""


class NotFoundError(BankError):
    key = "textbookNotFound"


class AlreadyExistsError(BankError):
    key = "textbookExists"


class InvalidInputError(BankError):
    key = "requiredFields"


def http_status(exc: BankError) -> int:
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, AlreadyExistsError):
        return 409
    if isinstance(exc, InvalidInputError):
        return 422
    return 503
