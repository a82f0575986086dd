def normalize_turn_payload(payload) -> dict:
    """
    Accepts the shapes channel connectors tend to send and converts them into
    the canonical TurnRequest structure:

    {"conversationId": "...", "text": "..." | None, "seed": {...} | None}

    - id aliases: conversationId, conversation_id, sessionId, session_id
    - text aliases: text, message (string or {"text": ...}), value
      (a resolved choice selection is passed as plain text)
    """
    if not isinstance(payload, dict):
        payload = {}

    conversation_id = (
        payload.get("conversationId")
        or payload.get("conversation_id")
        or payload.get("sessionId")
        or payload.get("session_id")
        or ""
    )

    text = payload.get("text")
    if text is None:
        msg = payload.get("message")
        if isinstance(msg, dict):
            text = msg.get("text")
        elif isinstance(msg, str):
            text = msg
    if text is None:
        value = payload.get("value")
        if isinstance(value, str):
            text = value

    seed = payload.get("seed")
    if seed is None:
        seed = payload.get("initialState")

    return {
        "conversationId": str(conversation_id),
        "text": text if (text is None or isinstance(text, str)) else str(text),
        "seed": seed,
    }
