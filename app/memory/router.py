# file: app/memory/router.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.cache import ResponseCache
from app.db import get_db
from app.errors import NotFound, ValidationError
from app.memory import service, schemas

router = APIRouter(tags=["assistants"])


def _require_assistant(db: Session, assistant_id: int):
    assistant = service.get_assistant(db, assistant_id)
    if not assistant:
        raise NotFound("Assistant not found")
    return assistant


# ============== ASSISTANTS ==============

@router.post("/assistants", response_model=schemas.AssistantOut, status_code=201)
def create_assistant(data: schemas.AssistantCreate, db: Session = Depends(get_db)):
    return service.create_assistant(db, data)


@router.get("/assistants", response_model=List[schemas.AssistantOut])
def list_assistants(db: Session = Depends(get_db)):
    return service.list_assistants(db)


@router.get("/assistants/{assistant_id}", response_model=schemas.AssistantOut)
def get_assistant(assistant_id: int, db: Session = Depends(get_db)):
    return _require_assistant(db, assistant_id)


@router.patch("/assistants/{assistant_id}", response_model=schemas.AssistantOut)
def update_assistant(assistant_id: int, data: schemas.AssistantUpdate, db: Session = Depends(get_db)):
    assistant = service.update_assistant(db, assistant_id, data)
    if not assistant:
        raise NotFound("Assistant not found")
    return assistant


@router.delete("/assistants/{assistant_id}", status_code=204)
def delete_assistant(assistant_id: int, db: Session = Depends(get_db)):
    if not service.delete_assistant(db, assistant_id):
        raise NotFound("Assistant not found")
    return None


@router.post("/assistants/{assistant_id}/retrain", response_model=schemas.RetrainOut)
def retrain_assistant(assistant_id: int, db: Session = Depends(get_db)):
    assistant, removed = service.mark_retrained(db, assistant_id)
    if not assistant:
        raise NotFound("Assistant not found")
    return schemas.RetrainOut(
        success=True,
        last_trained_at=assistant.last_trained_at,
        cache_entries_removed=removed,
    )


@router.get("/assistants/{assistant_id}/cache", response_model=List[schemas.CacheEntryOut])
def list_cache_entries(assistant_id: int, db: Session = Depends(get_db)):
    _require_assistant(db, assistant_id)
    return ResponseCache(db).list_entries(assistant_id)


# ============== KNOWLEDGE ==============

@router.get("/assistants/{assistant_id}/knowledge", response_model=List[schemas.KnowledgeEntryOut])
def list_knowledge(assistant_id: int, db: Session = Depends(get_db)):
    _require_assistant(db, assistant_id)
    return service.list_knowledge_entries(db, assistant_id)


@router.post(
    "/assistants/{assistant_id}/knowledge",
    response_model=schemas.KnowledgeEntryOut,
    status_code=201,
)
def create_knowledge(
    assistant_id: int,
    data: schemas.KnowledgeEntryCreate,
    db: Session = Depends(get_db),
):
    _require_assistant(db, assistant_id)
    return service.create_knowledge_entry(db, assistant_id, data)


@router.patch("/knowledge/{entry_id}", response_model=schemas.KnowledgeEntryOut)
def update_knowledge(entry_id: int, data: schemas.KnowledgeEntryUpdate, db: Session = Depends(get_db)):
    try:
        entry = service.update_knowledge_entry(db, entry_id, data)
    except ValueError as e:
        raise ValidationError(str(e))
    if not entry:
        raise NotFound("Knowledge entry not found")
    return entry


@router.delete("/knowledge/{entry_id}", status_code=204)
def delete_knowledge(entry_id: int, db: Session = Depends(get_db)):
    if not service.delete_knowledge_entry(db, entry_id):
        raise NotFound("Knowledge entry not found")
    return None
