"""
Chat answer pipeline for QuranIQ.
Orchestrates retrieval, prompt composition, generation and normalization,
and tracks each inquiry from submission to its settled state.
"""

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .auth import Session
from .composer import FOLLOW_UPS_SENTINEL, compose
from .conversation import ConversationState
from .errors import (
    ConnectionFailure,
    EmptyOutput,
    QuranIQError,
    RateLimited,
    UpstreamAuthFailure,
    UpstreamFailure,
    ValidationError,
)
from .generator import DEFAULT_MAX_TOKENS, AnswerGenerator
from .responses import format_verses_answer, normalize
from .reveal import Reveal
from .search import VerseSearch
from .store import CHAPTERS, RecordStore
from .utils.types import SearchResult


logger = logging.getLogger(__name__)

DISCLAIMER = "This response is for informational purposes only and is not a religious ruling."

FAILURE_MESSAGE = (
    "We encountered an issue retrieving the wisdom you sought. "
    "Please check your connection and try again."
)

ANSWERED = "answered"
FALLBACK = "fallback"
RATE_LIMITED = "rate_limited"
UNAVAILABLE = "unavailable"


@dataclass
class PipelineResult:
    answer: str
    suggestions: List[str] = field(default_factory=list)
    verses: List[SearchResult] = field(default_factory=list)
    outcome: str = ANSWERED
    error: Optional[QuranIQError] = None

    @property
    def content(self) -> str:
        """Answer with its follow-up block, as stored on an inquiry."""
        if not self.suggestions:
            return self.answer
        return f"{self.answer}\n\n{FOLLOW_UPS_SENTINEL}\n{json.dumps(self.suggestions, ensure_ascii=False)}"

    @property
    def cited_references(self) -> List[str]:
        return [r.reference for r in self.verses]


class ChatPipeline:
    """Answers one question: verses, prompt, generation, normalization."""

    def __init__(
        self,
        search: VerseSearch,
        generator: AnswerGenerator,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        top_k: int = 5,
    ):
        self.search = search
        self.generator = generator
        self.max_tokens = max_tokens
        self.top_k = top_k

    def answer(self, question: str, history: Optional[Sequence[dict]] = None) -> PipelineResult:
        """
        Process a question and return a renderable answer.

        Provider failures never escape: they become a verses-only answer,
        an apology, or a retry-later / connectivity message.

        Raises:
            ValidationError: blank question
        """
        question = (question or "").strip()
        if not question:
            raise ValidationError("Missing question")

        verses = self.search.search(question, top_k=self.top_k)
        logger.info("Retrieved %d verses for question", len(verses))

        prompt = compose(question, verses, history)

        try:
            raw = self.generator.generate(
                prompt.system_instruction,
                prompt.user_instruction,
                max_tokens=self.max_tokens,
            )
        except RateLimited as e:
            return PipelineResult(answer=e.client_message(), verses=verses, outcome=RATE_LIMITED, error=e)
        except EmptyOutput:
            logger.warning("Empty model output; answering from %d verses", len(verses))
            return PipelineResult(answer=format_verses_answer(verses), verses=verses, outcome=FALLBACK)
        except ConnectionFailure as e:
            return PipelineResult(answer=e.client_message(), verses=verses, outcome=UNAVAILABLE, error=e)
        except UpstreamFailure as e:
            if isinstance(e, UpstreamAuthFailure):
                logger.error("Answer generation disabled: provider credentials rejected")
            if verses:
                return PipelineResult(answer=format_verses_answer(verses), verses=verses, outcome=FALLBACK)
            return PipelineResult(answer=e.client_message(), verses=verses, outcome=UNAVAILABLE, error=e)

        normalized = normalize(raw)
        if not normalized.answer:
            logger.warning("Model output held no answer before the follow-up block")
            return PipelineResult(
                answer=format_verses_answer(verses),
                suggestions=normalized.suggestions,
                verses=verses,
                outcome=FALLBACK,
            )
        return PipelineResult(answer=normalized.answer, suggestions=normalized.suggestions, verses=verses)


class InquiryState(str, Enum):
    PENDING = "pending"
    GENERATING = "generating"
    REVEALING = "revealing"
    SETTLED = "settled"
    ERRORED_SETTLED = "errored_settled"


TERMINAL_STATES = frozenset({InquiryState.SETTLED, InquiryState.ERRORED_SETTLED})

ALLOWED_TRANSITIONS: Dict[InquiryState, frozenset] = {
    InquiryState.PENDING: frozenset({InquiryState.GENERATING, InquiryState.ERRORED_SETTLED}),
    InquiryState.GENERATING: frozenset({
        InquiryState.REVEALING, InquiryState.SETTLED, InquiryState.ERRORED_SETTLED,
    }),
    InquiryState.REVEALING: frozenset({InquiryState.SETTLED, InquiryState.ERRORED_SETTLED}),
    InquiryState.SETTLED: frozenset(),
    InquiryState.ERRORED_SETTLED: frozenset(),
}


@dataclass
class Inquiry:
    """A question and its answer, owned by one user."""
    id: str
    title: str
    owner_id: str
    content: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    state: InquiryState = InquiryState.PENDING

    @property
    def is_loading(self) -> bool:
        return self.state in (InquiryState.PENDING, InquiryState.GENERATING)

    @property
    def settled(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def suggestions(self) -> List[str]:
        return normalize(self.content).suggestions

    def advance(self, state: InquiryState) -> None:
        if state not in ALLOWED_TRANSITIONS[self.state]:
            raise ValueError(f"Cannot move inquiry from {self.state.value} to {state.value}")
        self.state = state

    def append(self, text: str) -> None:
        """Content only grows, and only until the inquiry settles."""
        if self.settled:
            raise ValueError("Settled inquiry content is frozen")
        self.content += text

    def fail(self, message: str = FAILURE_MESSAGE) -> None:
        if self.settled:
            return
        if not self.content:
            self.content = message
        self.state = InquiryState.ERRORED_SETTLED

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "timestamp": self.created_at.isoformat(),
            "isLoading": self.is_loading,
            "state": self.state.value,
            "suggestions": self.suggestions,
        }


class InquiryService:
    """
    One user's session: submits inquiries, stores the full answer, then
    hands back a cosmetic reveal of it.
    """

    def __init__(
        self,
        pipeline: ChatPipeline,
        store: RecordStore,
        session: Session,
        reveal_factory: Callable[[str], Reveal] = Reveal,
    ):
        self.pipeline = pipeline
        self.store = store
        self.session = session
        self.reveal_factory = reveal_factory
        self.conversation = ConversationState()
        self.active: Optional[Tuple[Inquiry, Reveal]] = None

    @property
    def owner_id(self) -> str:
        """Raises Unauthorized once the session has ended."""
        return self.session.identity.user_id

    def reset(self):
        """Start a new conversation."""
        self.interrupt()
        self.conversation = ConversationState()

    def ask(self, question: str) -> Tuple[Inquiry, Reveal]:
        """
        Answer a question, persist it, and return the inquiry with its reveal.

        Any reveal still running for an earlier inquiry is cancelled first;
        that inquiry's stored content is not touched.
        """
        question = (question or "").strip()
        if not question:
            raise ValidationError("Missing question")

        owner_id = self.owner_id
        self.interrupt()

        inquiry = Inquiry(id=f"temp-{uuid.uuid4().hex[:12]}", title=question, owner_id=owner_id)
        try:
            inquiry.advance(InquiryState.GENERATING)
            history = self.conversation.get_message_history()
            result = self.pipeline.answer(question, history)
            if result.error is not None:
                # Retry-later and connectivity messages are never stored.
                logger.warning("Inquiry not answered (%s)", result.outcome)
                inquiry.fail(result.answer)
                return inquiry, self.reveal_factory(inquiry.content)

            inquiry.append(result.content)
            record = self.store.create(CHAPTERS, {
                "title": inquiry.title,
                "content": inquiry.content,
                "timestamp": inquiry.created_at.isoformat(),
                "ownerId": owner_id,
            })
            inquiry.id = record.id
        except (QuranIQError, OSError) as e:
            logger.error("Inquiry failed: %s", e)
            inquiry.fail()
            return inquiry, self.reveal_factory(inquiry.content)
        except Exception:
            inquiry.fail()
            raise

        self.conversation.add_user_message(question)
        self.conversation.add_assistant_message(result.answer, result.cited_references)

        inquiry.advance(InquiryState.REVEALING)
        reveal = self.reveal_factory(inquiry.content)
        self.active = (inquiry, reveal)
        return inquiry, reveal

    def finish_reveal(self) -> Optional[Inquiry]:
        """Settle the inquiry whose reveal ran to completion."""
        return self._settle(cancel=False)

    def interrupt(self) -> Optional[Inquiry]:
        """Stop the active reveal (new inquiry, navigation) and settle it."""
        return self._settle(cancel=True)

    def _settle(self, cancel: bool) -> Optional[Inquiry]:
        if self.active is None:
            return None
        inquiry, reveal = self.active
        self.active = None
        if cancel:
            reveal.cancel()
        if not inquiry.settled:
            inquiry.advance(InquiryState.SETTLED)
        return inquiry

    def list_inquiries(self) -> List[dict]:
        """The owner's stored inquiries, newest first."""
        records = self.store.list(CHAPTERS, ownerId=self.owner_id)
        records.sort(key=lambda r: r.fields.get("timestamp", ""), reverse=True)
        return [r.to_dict() for r in records]
