from fastapi import Query

from schemas.display import DisplaySettings


def display_settings(
    lang: str = Query(default="zh", pattern="^(en|zh)"),
    show_metadata: bool = True,
    show_percent: bool = True,
    show_answer: bool = True,
) -> DisplaySettings:
    return DisplaySettings(
        language=lang,
        show_metadata=show_metadata,
        show_percent=show_percent,
        show_answer=show_answer,
    )
