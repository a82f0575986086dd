from fastapi import APIRouter, Depends, HTTPException
from hazardbot.api.auth import require_admin
from hazardbot.api.schemas import ConversationSnapshot
from hazardbot.core.state_machine import derive_stage
from hazardbot.store.models import RECORD_FIELDS
from hazardbot.store.session_repo import get_store
import hazardbot.observability.metrics as metrics

router = APIRouter(prefix="/admin", tags=["admin"])

@router.get("/conversation/{conversation_id}", response_model=ConversationSnapshot)
def get_conversation_snapshot(conversation_id: str, _=Depends(require_admin)):
    """Progress snapshot. Field values are not exposed, only whether each is collected."""
    s = get_store().load(conversation_id)
    if s is None:
        raise HTTPException(status_code=404, detail="Unknown conversation")
    return ConversationSnapshot(
        conversationId=s.conversationId,
        stage=derive_stage(s.record),
        awaitingStage=s.awaitingStage,
        completed=bool(s.completed),
        caseReference=s.caseReference,
        collected={f: s.record.is_collected(f) for f in RECORD_FIELDS},
        repromptCount=int(s.repromptCount or 0),
        createdAtMs=int(s.createdAtMs or 0),
        updatedAtMs=int(s.updatedAtMs or 0),
        completedAtMs=s.completedAtMs,
    )

@router.get("/stats")
def get_stats(_=Depends(require_admin)):
    """Turn counters backed by Redis."""
    return metrics.get_stats_snapshot()
