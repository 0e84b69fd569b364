"""
FastAPI application: authentication, chat, chapters and journey progress.

Every route answers JSON. Successful responses carry {"success": true, ...};
failures carry {"error": message} with the status code of the error raised.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from fastapi import Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth import AuthService, Session, bearer_token, public_user
from .config import Settings
from .errors import NotFound, QuranIQError, Unauthorized, ValidationError
from .generator import AnswerGenerator
from .journeys import JOURNEYS, JourneyService
from .pipeline import DISCLAIMER, RATE_LIMITED, UNAVAILABLE, ChatPipeline, InquiryService
from .search import VerseSearch
from .store import CHAPTERS, USERS, InMemoryStore, JsonFileStore, RecordStore
from .utils.types import SearchResult


logger = logging.getLogger(__name__)


class RegisterBody(BaseModel):
    name: str = ""
    email: str = ""
    password: str = ""


class LoginBody(BaseModel):
    email: str = ""
    password: str = ""


class HistoryItem(BaseModel):
    role: str = "user"
    content: str = ""


class AskBody(BaseModel):
    question: str = ""
    chatHistory: List[HistoryItem] = []


class ChapterBody(BaseModel):
    title: str = ""
    content: str = ""


class ProgressBody(BaseModel):
    journeyId: int
    stepId: int


def verse_payload(result: SearchResult) -> dict:
    v = result.verse
    return {
        "surahName": v.surah_name,
        "surahNumber": v.surah_number,
        "ayahNumber": v.ayah_number,
        "reference": v.reference,
        "text": v.text,
    }


def journey_payload(journey) -> dict:
    return {
        "id": journey.id,
        "title": journey.title,
        "subtitle": journey.subtitle,
        "description": journey.description,
        "totalSteps": len(journey.steps),
        "steps": [
            {"id": s.id, "title": s.title, "type": s.type, "duration": s.duration, "content": s.content}
            for s in journey.steps
        ],
    }


def create_app(
    settings: Optional[Settings] = None,
    generator: Optional[AnswerGenerator] = None,
    store: Optional[RecordStore] = None,
    search: Optional[VerseSearch] = None,
) -> FastAPI:
    """Build the API with its collaborators; anything omitted comes from settings."""
    settings = settings or Settings.from_env()
    if store is None:
        store = JsonFileStore(settings.store_path) if settings.store_path else InMemoryStore()
    search = search or VerseSearch(settings.corpus_path)
    generator = generator or AnswerGenerator(
        model=settings.model,
        api_key=settings.openai_api_key,
        timeout=settings.timeout,
        log_dir=settings.log_dir,
    )

    auth = AuthService(store, settings.jwt_secret, timedelta(days=settings.jwt_expiry_days))
    pipeline = ChatPipeline(search, generator, max_tokens=settings.max_tokens)
    journeys = JourneyService(store)

    app = FastAPI(title="QuranIQ")
    app.state.settings = settings
    app.state.store = store
    app.state.auth = auth
    app.state.pipeline = pipeline

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins or ["*"],
        allow_credentials=bool(settings.allowed_origins),
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=86400,
    )

    @app.exception_handler(QuranIQError)
    async def handle_app_error(_request: Request, exc: QuranIQError):
        if exc.status_code >= 500:
            logger.error("%s: %s", exc.__class__.__name__, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.client_message()})

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_request: Request, exc: RequestValidationError):
        fields = sorted({".".join(str(p) for p in err.get("loc", ())[1:]) for err in exc.errors()})
        message = "Invalid request"
        if fields:
            message += ": " + ", ".join(f for f in fields if f)
        return JSONResponse(status_code=400, content={"error": message})

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(_request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)

    def current_session(authorization: Optional[str] = Header(None)) -> Session:
        return auth.resume(bearer_token(authorization))

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    @app.post("/api/auth/register")
    def register(body: RegisterBody):
        session, record = auth.register(body.name, body.email, body.password)
        return {"success": True, "token": session.token, "user": public_user(record)}

    @app.post("/api/auth/login")
    def login(body: LoginBody):
        session, record = auth.login(body.email, body.password)
        return {"success": True, "token": session.token, "user": public_user(record)}

    @app.api_route("/api/auth/verify", methods=["GET", "POST"])
    def verify(session: Session = Depends(current_session)):
        try:
            record = store.get(USERS, session.identity.user_id)
        except NotFound:
            raise Unauthorized("User no longer exists")
        return {"success": True, "valid": True, "user": public_user(record)}

    @app.post("/api/auth/logout")
    def logout(session: Session = Depends(current_session)):
        auth.logout(session)
        return {"success": True}

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    @app.post("/api/chat/ask")
    def ask(body: AskBody, session: Session = Depends(current_session)):
        history = [item.model_dump() for item in body.chatHistory]
        result = pipeline.answer(body.question, history)
        if result.error is not None and result.outcome in (RATE_LIMITED, UNAVAILABLE):
            raise result.error
        return {
            "success": True,
            "response": result.content,
            "answer": result.answer,
            "suggestions": result.suggestions,
            "verses": [verse_payload(r) for r in result.verses],
            "outcome": result.outcome,
            "disclaimer": DISCLAIMER,
        }

    # ------------------------------------------------------------------
    # Chapters
    # ------------------------------------------------------------------

    @app.post("/api/chapters/create")
    def create_chapter(body: ChapterBody, session: Session = Depends(current_session)):
        title = body.title.strip()
        if not title:
            raise ValidationError("Missing title")
        record = store.create(CHAPTERS, {
            "title": title,
            "content": body.content,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "ownerId": session.identity.user_id,
        })
        return {"success": True, "chapter": record.to_dict()}

    @app.get("/api/chapters/list")
    def list_chapters(session: Session = Depends(current_session)):
        chapters = InquiryService(pipeline, store, session).list_inquiries()
        return {"success": True, "chapters": chapters}

    # ------------------------------------------------------------------
    # Journeys
    # ------------------------------------------------------------------

    @app.get("/api/journeys")
    def list_journeys():
        return {"success": True, "journeys": [journey_payload(j) for j in JOURNEYS.values()]}

    @app.post("/api/journeys/progress")
    def update_journey_progress(body: ProgressBody, session: Session = Depends(current_session)):
        try:
            progress = journeys.record_step(session.identity.user_id, body.journeyId, body.stepId)
        except NotFound:
            raise Unauthorized("User no longer exists")
        return {
            "success": True,
            "journeyProgress": progress,
            "user": public_user(store.get(USERS, session.identity.user_id)),
        }

    @app.get("/api/journeys/progress")
    def get_journey_progress(session: Session = Depends(current_session)):
        try:
            progress = journeys.get_progress(session.identity.user_id)
        except NotFound:
            raise Unauthorized("User no longer exists")
        return {"success": True, "journeyProgress": progress}

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    @app.get("/api/health")
    def health(deep: bool = False, authorization: Optional[str] = Header(None)):
        payload = {"success": True, "verses": len(search.verses)}
        if deep:
            # The provider check is a billed call: signed-in callers only.
            current_session(authorization)
            payload["ai"] = generator.health_check()
        return payload

    return app
