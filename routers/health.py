from pathlib import Path

from fastapi import APIRouter, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from alembic.config import Config
from alembic.script import ScriptDirectory
from db import engine

router = APIRouter(prefix="/health", tags=["health"])

_ROOT = Path(__file__).resolve().parent.parent


@router.get("/db")
def health_db():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            documents = conn.execute(text("SELECT COUNT(*) FROM documents")).scalar_one()
    except SQLAlchemyError as e:
        raise HTTPException(status_code=503, detail=f"db_error: {type(e).__name__}: {e}")
    return {"ok": True, "documents": documents}


def _alembic_heads() -> list[str]:
    cfg = Config(str(_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(_ROOT / "alembic"))
    return list(ScriptDirectory.from_config(cfg).get_heads())


@router.get("/migrations")
def health_migrations():
    heads = _alembic_heads()
    try:
        with engine.connect() as conn:
            try:
                db_ver = conn.execute(
                    text("SELECT version_num FROM alembic_version")
                ).scalar_one_or_none()
            except SQLAlchemyError:
                # no alembic_version table: the schema was never migrated
                db_ver = None
    except SQLAlchemyError as e:
        return {
            "ok": False,
            "error": f"db_connect_failed: {e}",
            "code_heads": heads,
            "db_version": None,
        }

    synced = db_ver in heads
    return {"ok": synced, "synced": synced, "db_version": db_ver, "code_heads": heads}
