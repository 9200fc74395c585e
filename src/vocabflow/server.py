import logging
import time
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from vocabflow.application.ledger import ProgressLedger
from vocabflow.consts import VERSION

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("vocabflow.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"vocabflow server v{VERSION} starting up...")
    yield
    # Shutdown
    logger.info("vocabflow server shutting down...")


app = FastAPI(
    title="vocabflow server",
    description="Local progress and review server for the vocabflow study UI.",
    version=VERSION,
    lifespan=lifespan,
)

start_time = time.time()


async def get_ledger(request: Request) -> ProgressLedger:
    """
    One ledger per server process, built lazily from the resolved config.

    The ledger has a single writer. It and every handler that touches it run
    on the event loop, so requests never mutate it concurrently.
    """
    ledger = getattr(request.app.state, "ledger", None)
    if ledger is None:
        from vocabflow.application.config import resolve_config
        from vocabflow.application.factory import build_ledger

        ledger = build_ledger(resolve_config())
        request.app.state.ledger = ledger
    return ledger


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class AnswerRequest(BaseModel):
    answer: str
    is_correct: bool


class GoalRequest(BaseModel):
    goal: int


class SettingsRequest(BaseModel):
    dark_mode: bool | None = None
    playback_speed: float | None = Field(default=None, gt=0)


class ReviewRequest(BaseModel):
    quality: int


class StatsResponse(BaseModel):
    streak: int
    completed_today: int
    daily_goal: int
    completed: int
    answered: int


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


@app.get("/progress")
async def get_progress_snapshot(ledger: ProgressLedger = Depends(get_ledger)) -> dict[str, Any]:
    """Full ledger snapshot in its persisted layout."""
    return ledger.get_snapshot().to_dict()["state"]


@app.get("/progress/{item_id}")
async def get_item_progress(item_id: str, ledger: ProgressLedger = Depends(get_ledger)):
    return {
        **ledger.get_progress(item_id).to_dict(),
        "favorite": ledger.is_favorite(item_id),
    }


@app.post("/progress/{item_id}/watched")
async def mark_watched(item_id: str, ledger: ProgressLedger = Depends(get_ledger)):
    ledger.mark_item_watched(item_id)
    today = ledger.get_today_progress()
    return {"ok": True, "completed_today": today.completed, "daily_goal": today.goal}


@app.post("/progress/{item_id}/answer")
async def record_answer(
    item_id: str, req: AnswerRequest, ledger: ProgressLedger = Depends(get_ledger)
):
    try:
        ledger.record_answer(item_id, req.answer, req.is_correct)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return ledger.get_progress(item_id).to_dict()


@app.post("/favorites/{item_id}/toggle")
async def toggle_favorite(item_id: str, ledger: ProgressLedger = Depends(get_ledger)):
    return {"favorite": ledger.toggle_favorite(item_id)}


@app.put("/goal")
async def set_goal(req: GoalRequest, ledger: ProgressLedger = Depends(get_ledger)):
    try:
        ledger.set_daily_goal(req.goal)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return {"daily_goal": req.goal}


@app.patch("/settings")
async def update_settings(req: SettingsRequest, ledger: ProgressLedger = Depends(get_ledger)):
    changes = req.model_dump(exclude_none=True)
    settings = ledger.update_settings(**changes)
    return settings.to_dict()


@app.get("/stats", response_model=StatsResponse)
async def get_stats(ledger: ProgressLedger = Depends(get_ledger)):
    today = ledger.get_today_progress()
    return StatsResponse(
        streak=ledger.get_streak(),
        completed_today=today.completed,
        daily_goal=today.goal,
        completed=ledger.get_completed_count(),
        answered=ledger.get_answered_count(),
    )


@app.get("/review/queue")
async def get_review_queue(ledger: ProgressLedger = Depends(get_ledger)):
    return [card.to_dict() for card in ledger.get_review_queue()]


@app.post("/review/{item_id}")
async def review_item(item_id: str, req: ReviewRequest, ledger: ProgressLedger = Depends(get_ledger)):
    """
    Grade a review and return the rescheduled card.
    """
    try:
        card = ledger.record_review(item_id, req.quality)
    except ValueError as e:
        logger.info(f"Rejected review for {item_id}: {e}")
        raise HTTPException(status_code=422, detail=str(e)) from e
    return card.to_dict()
