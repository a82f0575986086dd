import time
from dataclasses import asdict, dataclass, field, replace
from typing import Any, List, Optional, Sequence

from hazardbot.core import state_machine as sm
from hazardbot.core.finalize import case_reference, confirmation_messages
from hazardbot.core.prompts import hazard_categories
from hazardbot.messaging.webhook import MessagingFailure
from hazardbot.observability.logging import log
from hazardbot.settings import settings
from hazardbot.store.models import RECORD_FIELDS, ConversationRecord, ConversationSession
from hazardbot.store.session_repo import PersistenceFailure
from hazardbot.utils.time import now_ms

# Turn outcome kinds
PROMPT = "PROMPT"
REPROMPT = "REPROMPT"
COMPLETED = "COMPLETED"
CLOSED = "CLOSED"   # conversation already completed earlier; nothing emitted
FAILED = "FAILED"   # persistence/messaging failure; caller should retry the turn


@dataclass
class TurnOutcome:
    kind: str
    conversationId: str
    stage: Optional[str] = None
    prompt: Optional[str] = None
    choices: List[str] = field(default_factory=list)
    failure_message: Optional[str] = None
    failure_reason: Optional[str] = None
    case_reference: Optional[str] = None
    record: Optional[ConversationRecord] = None
    error: Optional[str] = None
    # Messages emitted this turn, in order ({"type", "text", "choices"})
    messages: List[dict] = field(default_factory=list)


def _record_from_seed(seed: Any, conversation_id: str) -> ConversationRecord:
    """
    Initial record for a brand-new conversation.
    A seed of the wrong shape is discarded (logged) and an empty record is used.
    """
    if seed is None:
        return ConversationRecord()

    if isinstance(seed, ConversationRecord):
        data = asdict(seed)
    elif isinstance(seed, dict):
        data = seed
    else:
        log(event="seed_malformed", conversationId=conversation_id, reason=f"type:{type(seed).__name__}")
        return ConversationRecord()

    unknown = [k for k in data.keys() if k not in RECORD_FIELDS]
    bad_values = [k for k, v in data.items() if v is not None and not isinstance(v, str)]
    if unknown or bad_values:
        log(
            event="seed_malformed",
            conversationId=conversation_id,
            unknownKeys=sorted(str(k) for k in unknown),
            nonStringKeys=sorted(str(k) for k in bad_values),
        )
        return ConversationRecord()

    return ConversationRecord(**{k: (v or "").strip() for k, v in data.items()})


class ConversationController:
    """
    Runs one turn of the hazard intake flow.

    Per turn: load the envelope, derive the stage from the record, validate the
    reply if it answers the outstanding prompt, then either finalize or prompt
    for the (possibly new) stage. The envelope is saved before any message of
    the turn is emitted.
    """

    def __init__(self, store, messenger, categories: Optional[Sequence[str]] = None):
        self.store = store
        self.messenger = messenger
        if categories is None:
            categories = hazard_categories(settings.HAZARD_CATEGORIES)
        self.steps = sm.build_steps(categories)

    def advance(self, conversation_id: str, raw_input: Optional[str] = None, seed: Any = None) -> TurnOutcome:
        start_time = time.time()
        try:
            session = self.store.load(conversation_id)
        except PersistenceFailure as e:
            return self._failed(conversation_id, None, "load", e)

        if session is None:
            session = ConversationSession(
                conversationId=conversation_id,
                record=_record_from_seed(seed, conversation_id),
            )

        if session.completed:
            if not session.confirmationSent:
                # Latched earlier but the confirmation never went out
                log(event="confirmation_resend", conversationId=conversation_id, caseReference=session.caseReference)
                return self._confirm(session, start_time)
            log(event="turn_closed", conversationId=conversation_id, caseReference=session.caseReference)
            return TurnOutcome(
                kind=CLOSED,
                conversationId=conversation_id,
                stage=sm.DONE,
                case_reference=session.caseReference,
                record=replace(session.record),
            )

        stage = sm.derive_stage(session.record)
        awaiting = session.awaitingStage if sm.is_stage(session.awaitingStage) else None
        failure = None

        # Only a reply to the prompt we issued for this stage counts as an answer
        if raw_input is not None and stage != sm.DONE and awaiting == stage:
            step = self.steps[stage]
            result = step.validate(raw_input)
            if result.ok:
                setattr(session.record, step.field, result.value)
                stage = sm.derive_stage(session.record)
            else:
                failure = result
                session.repromptCount += 1
                log(
                    event="validation_failed",
                    conversationId=conversation_id,
                    stage=stage,
                    reason=result.reason,
                    repromptCount=session.repromptCount,
                )

        if stage == sm.DONE:
            return self._finalize(session, start_time)

        step = self.steps[stage]
        session.awaitingStage = stage
        try:
            self.store.save(session)
        except PersistenceFailure as e:
            return self._failed(conversation_id, stage, "save", e)

        sent = []
        try:
            if failure is not None:
                self._send_text(sent, conversation_id, failure.message)
            self._send_prompt(sent, conversation_id, step.prompt, list(step.choices))
        except MessagingFailure as e:
            return self._failed(conversation_id, stage, "send", e)

        kind = REPROMPT if failure is not None else PROMPT
        log(
            event="turn_processed",
            conversationId=conversation_id,
            outcome=kind,
            stage=stage,
            missingFields=session.record.missing_fields(),
            total_latency_ms=int((time.time() - start_time) * 1000),
        )
        return TurnOutcome(
            kind=kind,
            conversationId=conversation_id,
            stage=stage,
            prompt=step.prompt,
            choices=list(step.choices),
            failure_message=failure.message if failure is not None else None,
            failure_reason=failure.reason if failure is not None else None,
            record=replace(session.record),
            messages=sent,
        )

    def _finalize(self, session: ConversationSession, start_time: float) -> TurnOutcome:
        conversation_id = session.conversationId
        completed_at = now_ms()
        session.completed = True
        session.awaitingStage = None
        session.completedAtMs = completed_at
        session.caseReference = case_reference(conversation_id, completed_at)

        # Nothing is reported as complete until the latch is durably stored
        try:
            self.store.save(session)
        except PersistenceFailure as e:
            return self._failed(conversation_id, sm.DONE, "save", e)

        return self._confirm(session, start_time)

    def _confirm(self, session: ConversationSession, start_time: float) -> TurnOutcome:
        """Send the confirmation sequence of a latched session and mark it delivered."""
        conversation_id = session.conversationId
        sent = []
        try:
            for text in confirmation_messages(session.caseReference):
                self._send_text(sent, conversation_id, text)
        except MessagingFailure as e:
            return self._failed(conversation_id, sm.DONE, "send", e)

        session.confirmationSent = True
        try:
            self.store.save(session)
        except PersistenceFailure as e:
            # Delivered already; the worst case is a repeated confirmation next turn
            log(event="confirmation_marker_save_failed", conversationId=conversation_id, error=str(e))

        log(
            event="conversation_completed",
            conversationId=conversation_id,
            caseReference=session.caseReference,
            category=session.record.category,
            repromptCount=session.repromptCount,
            total_latency_ms=int((time.time() - start_time) * 1000),
        )
        return TurnOutcome(
            kind=COMPLETED,
            conversationId=conversation_id,
            stage=sm.DONE,
            case_reference=session.caseReference,
            record=replace(session.record),
            messages=sent,
        )

    def _send_text(self, sent: list, conversation_id: str, text: str) -> None:
        self.messenger.send_text(conversation_id, text)
        sent.append({"type": "text", "text": text, "choices": []})

    def _send_prompt(self, sent: list, conversation_id: str, text: str, choices: List[str]) -> None:
        self.messenger.send_prompt(conversation_id, text, choices or None)
        sent.append({"type": "prompt", "text": text, "choices": list(choices)})

    def _failed(self, conversation_id: str, stage: Optional[str], phase: str, exc: Exception) -> TurnOutcome:
        log(event="turn_failed", conversationId=conversation_id, stage=stage, phase=phase, error=str(exc))
        return TurnOutcome(kind=FAILED, conversationId=conversation_id, stage=stage, error=f"{phase}: {exc}")
