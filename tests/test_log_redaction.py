import json
from unittest.mock import patch

from hazardbot.observability.logging import log


def _emitted(capsys):
    return json.loads(capsys.readouterr().out.strip().splitlines()[-1])


def test_sensitive_fields_redacted(capsys):
    with patch("hazardbot.observability.logging.settings") as mock_settings:
        mock_settings.ENABLE_PII_REDACTION = True
        log("turn_processed", conversationId="c1", identifier="123456782",
            record={"identifier": "123456782", "category": "Mosquitoes"})
    out = _emitted(capsys)
    assert out["event"] == "turn_processed"
    assert out["conversationId"] == "c1"
    assert out["identifier"] == "[REDACTED:9chars]"
    assert out["record"] == {"identifier": "[REDACTED:9chars]", "category": "Mosquitoes"}


def test_redaction_disabled(capsys):
    with patch("hazardbot.observability.logging.settings") as mock_settings:
        mock_settings.ENABLE_PII_REDACTION = False
        log("turn_processed", description="pothole")
    assert _emitted(capsys)["description"] == "pothole"
