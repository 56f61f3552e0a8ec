import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Routers
from routers.admin import router as admin_router
from routers.health import router as health_router
from routers.questions import router as questions_router
from routers.topics import router as topics_router
from routers.worksheets import router as worksheets_router

logger = logging.getLogger("mcq-bank")
logging.basicConfig(level=logging.INFO)

app = FastAPI(title="MCQ Bank – Question Browser & Worksheet API")

# Allow calls from the web front end in dev and production
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*", "x-admin-token"],
)


@app.get("/")
def health_root():
    return {"ok": True}


app.include_router(questions_router)  # /questions, /topics/{tId}/questions
app.include_router(topics_router)  # /topics, /textbooks
app.include_router(worksheets_router)  # /worksheets/...
app.include_router(admin_router)  # /admin/...
app.include_router(health_router)  # /health/...


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
