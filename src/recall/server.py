import asyncio
import logging
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from recall.application.study_service import StudyService
from recall.consts import VERSION
from recall.domain.constants import DEFAULT_RECENT_LIMIT
from recall.domain.errors import CardNotFoundError, ReadOnlyStoreError, RecallError
from recall.domain.models import Card

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("recall.server")

# One collection per process; every request goes through the lock.
_service: StudyService | None = None
_lock = asyncio.Lock()


@asynccontextmanager
async def lifespan(app: FastAPI):
    from recall.main import setup_collation

    collation = setup_collation() or "C"
    logger.info(f"Recall Server v{VERSION} starting up (collation: {collation})...")
    yield
    logger.info("Recall Server shutting down...")


app = FastAPI(
    title="Recall Server",
    description="HTTP API over a spaced-repetition card collection.",
    version=VERSION,
    lifespan=lifespan,
)


async def get_service() -> StudyService:
    """Load the configured collection on first use."""
    global _service
    async with _lock:
        if _service is None:
            from recall.application.config import resolve_config
            from recall.main import load_service

            try:
                _service = await load_service(resolve_config())
            except (RecallError, ValueError) as e:
                logger.error(f"Could not load collection: {e}")
                raise HTTPException(status_code=500, detail=str(e)) from e
    return _service


@app.exception_handler(CardNotFoundError)
async def card_not_found_handler(request: Request, exc: CardNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ReadOnlyStoreError)
async def read_only_handler(request: Request, exc: ReadOnlyStoreError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(RecallError)
async def recall_error_handler(request: Request, exc: RecallError):
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=500, content={"detail": str(exc)})


# ---------- Models ----------


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class CardResponse(BaseModel):
    id: str
    title: str
    question: str
    answer: str
    audio_file: str | None = None
    interval: int
    repetitions: int
    ease_factor: float
    next_review: int
    pinned: bool
    order: int
    is_starred: bool
    starred_at: int | None = None
    last_reviewed: int | None = None

    @classmethod
    def from_card(cls, card: Card) -> "CardResponse":
        return cls(
            id=card.id,
            title=card.display_title,
            question=card.question,
            answer=card.answer,
            audio_file=card.audio_file,
            interval=card.interval,
            repetitions=card.repetitions,
            ease_factor=card.ease_factor,
            next_review=card.next_review,
            pinned=card.pinned,
            order=card.order,
            is_starred=card.is_starred,
            starred_at=card.starred_at,
            last_reviewed=card.last_reviewed,
        )


class ClusterResponse(BaseModel):
    letter: str
    cards: list[CardResponse]


class StatsResponse(BaseModel):
    total: int
    due: int
    new: int
    starred: int
    pinned: int


class RateRequest(BaseModel):
    easy: bool


class MoveRequest(BaseModel):
    # None moves the card to the end of its group.
    before: str | None = None


class NewCardRequest(BaseModel):
    question: str
    answer: str
    title: str | None = None
    audio_file: str | None = None


class SaveResponse(BaseModel):
    success: bool
    error: str | None = None
    due: int


def _cards(cards: list[Card]) -> list[CardResponse]:
    return [CardResponse.from_card(c) for c in cards]


# ---------- Meta ----------

start_time = time.time()


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


# ---------- Read ----------


@app.get("/cards", response_model=list[CardResponse])
async def list_cards(service: StudyService = Depends(get_service)):
    """All cards in the configured browsing order."""
    async with _lock:
        return _cards(service.listing())


@app.get("/cards/clusters", response_model=list[ClusterResponse])
async def list_clusters(service: StudyService = Depends(get_service)):
    async with _lock:
        return [
            ClusterResponse(letter=c.letter, cards=_cards(c.cards)) for c in service.clusters()
        ]


@app.get("/cards/due", response_model=list[CardResponse])
async def due_cards(service: StudyService = Depends(get_service)):
    async with _lock:
        return _cards(service.due())


@app.get("/cards/next", response_model=CardResponse | None)
async def next_card(service: StudyService = Depends(get_service)):
    """The earliest-due card, or null when nothing is due."""
    async with _lock:
        card = service.next_card()
        return CardResponse.from_card(card) if card else None


@app.get("/cards/recent", response_model=list[CardResponse])
async def recent_cards(limit: int = DEFAULT_RECENT_LIMIT, service: StudyService = Depends(get_service)):
    async with _lock:
        return _cards(service.recent(limit))


@app.get("/cards/starred", response_model=list[CardResponse])
async def starred_cards(service: StudyService = Depends(get_service)):
    async with _lock:
        return _cards(service.starred())


@app.get("/cards/{card_id}", response_model=CardResponse)
async def get_card(card_id: str, service: StudyService = Depends(get_service)):
    async with _lock:
        return CardResponse.from_card(service.get(card_id))


@app.get("/stats", response_model=StatsResponse)
async def get_stats(service: StudyService = Depends(get_service)):
    async with _lock:
        s = service.stats()
        return StatsResponse(total=s.total, due=s.due, new=s.new, starred=s.starred, pinned=s.pinned)


# ---------- Write ----------


@app.post("/cards", response_model=CardResponse, status_code=201)
async def create_card(req: NewCardRequest, service: StudyService = Depends(get_service)):
    if not req.question.strip() or not req.answer.strip():
        raise HTTPException(status_code=400, detail="Both question and answer are required.")
    async with _lock:
        card = await service.add_card(
            req.question.strip(),
            req.answer.strip(),
            title=req.title,
            audio_file=req.audio_file,
        )
        return CardResponse.from_card(card)


@app.delete("/cards/{card_id}")
async def delete_card(card_id: str, service: StudyService = Depends(get_service)):
    async with _lock:
        await service.delete_card(card_id)
        return {"ok": True}


@app.post("/cards/{card_id}/rate", response_model=CardResponse)
async def rate_card(card_id: str, req: RateRequest, service: StudyService = Depends(get_service)):
    """Rate a card easy or hard and persist its new schedule."""
    logger.info(f"Rating {card_id}: {'easy' if req.easy else 'hard'}")
    async with _lock:
        return CardResponse.from_card(await service.rate(card_id, req.easy))


@app.post("/cards/{card_id}/open", response_model=CardResponse)
async def open_card(card_id: str, service: StudyService = Depends(get_service)):
    async with _lock:
        return CardResponse.from_card(await service.open_card(card_id))


@app.post("/cards/{card_id}/pin", response_model=CardResponse)
async def pin_card(card_id: str, service: StudyService = Depends(get_service)):
    async with _lock:
        return CardResponse.from_card(await service.toggle_pin(card_id))


@app.post("/cards/{card_id}/star", response_model=CardResponse)
async def star_card(card_id: str, service: StudyService = Depends(get_service)):
    async with _lock:
        return CardResponse.from_card(await service.toggle_star(card_id))


@app.post("/cards/{card_id}/move", response_model=CardResponse)
async def move_card(card_id: str, req: MoveRequest, service: StudyService = Depends(get_service)):
    async with _lock:
        return CardResponse.from_card(await service.move(card_id, req.before))


@app.post("/skip-day", response_model=SaveResponse)
async def skip_day(service: StudyService = Depends(get_service)):
    async with _lock:
        result = await service.skip_day()
        return SaveResponse(success=result.success, error=result.error, due=service.due_count())
