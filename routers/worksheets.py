from fastapi import APIRouter, Depends, HTTPException

from deps.display import display_settings
from deps.store import get_repository
from errors import BankError, http_status
from repository import Repository
from schemas.display import DisplaySettings
from schemas.views import WorksheetOut, WorksheetRequest
from worksheet import build_worksheet

router = APIRouter(prefix="/worksheets", tags=["worksheets"])


@router.post("/preview", response_model=WorksheetOut)
def preview_worksheet(
    body: WorksheetRequest,
    settings: DisplaySettings = Depends(display_settings),
    repo: Repository = Depends(get_repository),
):
    try:
        return build_worksheet(repo, body, settings)
    except BankError as e:
        raise HTTPException(status_code=http_status(e), detail=e.localized(settings.language))
