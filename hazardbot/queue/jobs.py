import time
from typing import Optional

import httpx
from redis import Redis
from rq import Queue, Retry

from hazardbot.observability.logging import log
from hazardbot.settings import settings
from hazardbot.store.session_repo import get_store
from hazardbot.utils.time import iso_from_ms


def get_queue() -> Queue:
    # RQ stores pickled job payloads, so this connection must not decode responses
    conn = Redis.from_url(settings.REDIS_URL)
    return Queue(settings.RQ_QUEUE_NAME, connection=conn)


def build_case_payload(session) -> dict:
    """Intake payload for a completed conversation."""
    rec = session.record
    return {
        "conversationId": session.conversationId,
        "caseReference": session.caseReference,
        "identifier": rec.identifier,
        "category": rec.category,
        "description": rec.description,
        "completedAt": iso_from_ms(session.completedAtMs),
    }


def enqueue_case_dispatch(conversation_id: str) -> Optional[str]:
    """Queue the intake dispatch for a completed conversation. Returns the job id."""
    if not settings.CASE_WEBHOOK_URL:
        return None
    retries = int(settings.CASE_DISPATCH_MAX_RETRIES or 0)
    intervals = [5, 15, 30, 60, 120][:max(1, retries)]
    q = get_queue()
    job = q.enqueue(
        dispatch_case_job,
        conversation_id,
        retry=Retry(max=retries, interval=intervals) if retries > 0 else None,
    )
    log(event="case_dispatch_queued", conversationId=conversation_id, jobId=job.id)
    return job.id


def dispatch_case_job(conversation_id: str, store=None) -> bool:
    """
    Background job: POST the completed report to CASE_WEBHOOK_URL.
    Raises on delivery failure so RQ's retry policy applies.
    """
    if not settings.CASE_WEBHOOK_URL:
        log(event="case_dispatch_disabled", conversationId=conversation_id)
        return False

    store = store or get_store()
    session = store.load(conversation_id)
    if session is None or not session.completed:
        log(event="case_dispatch_skipped", conversationId=conversation_id,
            reason="missing" if session is None else "incomplete")
        return False

    payload = build_case_payload(session)
    log(event="case_dispatch_start", conversationId=conversation_id, caseReference=session.caseReference)

    start = time.time()
    try:
        with httpx.Client(timeout=settings.WEBHOOK_TIMEOUT_SEC) as client:
            resp = client.post(settings.CASE_WEBHOOK_URL, json=payload)
    except httpx.HTTPError as e:
        log(event="case_dispatch_exception", conversationId=conversation_id, error=str(e))
        raise

    elapsed_ms = int((time.time() - start) * 1000)
    if not (200 <= resp.status_code < 300):
        log(
            event="case_dispatch_failed",
            conversationId=conversation_id,
            statusCode=int(resp.status_code),
            elapsedMs=elapsed_ms,
        )
        raise RuntimeError(f"Case webhook returned {resp.status_code}")

    log(
        event="case_dispatch_success",
        conversationId=conversation_id,
        caseReference=session.caseReference,
        statusCode=int(resp.status_code),
        elapsedMs=elapsed_ms,
    )
    return True
