import time
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from starlette.concurrency import run_in_threadpool

from hazardbot.api.auth import require_api_key
from hazardbot.api.normalize import normalize_turn_payload
from hazardbot.api.schemas import OutboundMessage, TurnRequest, TurnResponse
from hazardbot.core import controller as ctl
from hazardbot.core import state_machine as sm
from hazardbot.messaging.reply_buffer import ReplyBuffer
from hazardbot.messaging.webhook import WebhookMessenger
from hazardbot.observability.logging import log
from hazardbot.queue.jobs import enqueue_case_dispatch
from hazardbot.settings import settings
from hazardbot.store.session_repo import PersistenceFailure, get_store
from hazardbot.utils.lock import ConversationBusy, turn_lock
import hazardbot.observability.metrics as metrics

router = APIRouter()


def _ensure_case_dispatch(store, conversation_id: str) -> None:
    """Queue the intake dispatch of a completed conversation once; retried on later turns until it is recorded."""
    if not settings.CASE_WEBHOOK_URL:
        return
    try:
        session = store.load(conversation_id)
        if session is None or not session.completed or session.dispatchQueued:
            return
        enqueue_case_dispatch(conversation_id)
        session.dispatchQueued = True
        store.save(session)
    except (RedisError, PersistenceFailure) as e:
        log(event="case_dispatch_enqueue_failed", conversationId=conversation_id, error=str(e))


def _run_turn(req: TurnRequest):
    """Runs one controller turn under the per-conversation lock (worker thread)."""
    buffer = ReplyBuffer()
    messenger = WebhookMessenger(buffer=buffer) if settings.CHANNEL_WEBHOOK_URL else buffer
    store = get_store()
    controller = ctl.ConversationController(store, messenger)
    try:
        with turn_lock(req.conversationId):
            outcome = controller.advance(req.conversationId, req.text, seed=req.seed)
            if outcome.stage == sm.DONE:
                _ensure_case_dispatch(store, req.conversationId)
    except RedisError as e:
        # The store wraps its own Redis errors; this one comes from the lock
        log(event="turn_failed", conversationId=req.conversationId, phase="lock", error=str(e))
        outcome = ctl.TurnOutcome(kind=ctl.FAILED, conversationId=req.conversationId, error=f"lock: {e}")
    return outcome, buffer


def _after_turn(outcome, latency_ms: int) -> None:
    try:
        metrics.record_turn(outcome.kind, latency_ms)
    except RedisError as e:
        log(event="metrics_unavailable", error=str(e))


@router.post("/api/turn", response_model=TurnResponse, dependencies=[Depends(require_api_key)])
async def post_turn(payload: Any = Body(None)):
    req = TurnRequest.model_validate(normalize_turn_payload(payload))
    if not req.conversationId.strip():
        raise HTTPException(status_code=422, detail="conversationId is required")

    start = time.time()
    try:
        outcome, buffer = await run_in_threadpool(_run_turn, req)
    except ConversationBusy as e:
        log(event="turn_lock_busy", conversationId=req.conversationId, error=str(e))
        raise HTTPException(status_code=409, detail="Conversation is busy, retry the turn")
    latency_ms = int((time.time() - start) * 1000)

    await run_in_threadpool(_after_turn, outcome, latency_ms)

    body = TurnResponse(
        status="error" if outcome.kind == ctl.FAILED else "success",
        outcome=outcome.kind,
        stage=outcome.stage,
        messages=[
            OutboundMessage(type=m["type"], text=m["text"], choices=m["choices"])
            for m in buffer.messages
        ],
        choices=outcome.choices,
        caseReference=outcome.case_reference,
        error=outcome.error,
    )
    if outcome.kind == ctl.FAILED:
        return JSONResponse(status_code=503, content=body.model_dump())
    return body
