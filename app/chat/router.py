# FILE: app/chat/router.py
"""
Public chat endpoints.

POST /api/chat/session                    -> new conversation for an assistant
POST /api/chat/session/{id}/message       -> SSE answer stream
GET  /api/chat/session/{id}/history       -> ordered messages
"""
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.db import get_db
from app.errors import NotFound
from app.llm.backend import GenerativeBackend, get_backend
from app.memory import schemas, service
from app.ratelimit import RateLimiter, get_rate_limiter
from . import orchestrator
from .relay import SSE_HEADERS, direct_answer_stream, generative_stream, prime_backend

router = APIRouter(prefix="/chat", tags=["chat"])


def client_identity(request: Request) -> str:
    """First X-Forwarded-For hop, else the socket peer, else "anonymous"."""
    forwarded = request.headers.get("x-forwarded-for", "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop
    if request.client and request.client.host:
        return request.client.host
    return "anonymous"


@router.post("/session", response_model=schemas.ConversationOut, status_code=201)
def create_session(data: schemas.SessionCreate, db: Session = Depends(get_db)):
    assistant = service.get_assistant(db, data.assistant_id)
    if not assistant:
        raise NotFound("Assistant not found")
    return service.create_conversation(db, assistant.id)


@router.get("/session/{session_id}/history", response_model=List[schemas.MessageOut])
def get_history(session_id: int, db: Session = Depends(get_db)):
    if not service.get_conversation(db, session_id):
        raise NotFound("Session not found")
    return service.list_messages(db, session_id)


@router.post("/session/{session_id}/message")
async def send_message(
    session_id: int,
    data: schemas.MessageSend,
    request: Request,
    db: Session = Depends(get_db),
    backend: GenerativeBackend = Depends(get_backend),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    routed = orchestrator.handle_message(db, session_id, data.content, client_identity(request), limiter)
    decision = routed.decision

    if not decision.invokes_backend:
        return StreamingResponse(
            direct_answer_stream(decision.response or "", cached=decision.cached),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )

    # Raises UpstreamFailure (500) if nothing was produced
    primed = await prime_backend(
        backend,
        routed.context.system_instruction,
        routed.context.prior_messages,
        model_selector=routed.profile.model_selector,
    )

    def on_complete(answer: str) -> None:
        orchestrator.complete_generative(db, routed, answer)

    # No-op once the body has started; closes the primed call on an early disconnect
    cleanup = BackgroundTasks()
    cleanup.add_task(primed.release)

    return StreamingResponse(
        generative_stream(primed, on_complete),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
        background=cleanup,
    )
