from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field

class TurnRequest(BaseModel):
    conversationId: str
    # None on the opening turn (no reply yet)
    text: Optional[str] = None
    # Initial field values, adopted only when the conversation is created
    seed: Optional[Any] = None

class OutboundMessage(BaseModel):
    type: Literal["prompt", "text"]
    text: str
    choices: List[str] = Field(default_factory=list)

class TurnResponse(BaseModel):
    status: Literal["success", "error"] = "success"
    outcome: str
    stage: Optional[str] = None
    messages: List[OutboundMessage] = Field(default_factory=list)
    choices: List[str] = Field(default_factory=list)
    caseReference: Optional[str] = None
    error: Optional[str] = None

class ConversationSnapshot(BaseModel):
    conversationId: str
    stage: str
    awaitingStage: Optional[str] = None
    completed: bool
    caseReference: Optional[str] = None
    collected: Dict[str, bool]
    repromptCount: int = 0
    createdAtMs: int = 0
    updatedAtMs: int = 0
    completedAtMs: Optional[int] = None
