import logging

from fastapi import FastAPI

from vice.config import settings
from vice.core.router import router as validate_router

logging.getLogger("vice").setLevel(settings.log_level.upper())

app = FastAPI(title="Vice", version="0.1.0")
app.include_router(validate_router)


@app.get("/")
async def root() -> dict:
    return {
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
        "validate": {
            "habits": "/validate/habits",
            "entries": "/validate/entries",
            "checklists": "/validate/checklists",
            "checklist_entries": "/validate/checklist-entries",
        },
    }


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
