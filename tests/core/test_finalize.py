from unittest.mock import patch
from hazardbot.core import prompts
from hazardbot.core.finalize import case_reference, confirmation_messages

# 2024-03-01T00:00:00Z
TS = 1709251200000


def test_case_reference_is_stable_per_conversation():
    a = case_reference("conv-1", TS, prefix="")
    b = case_reference("conv-1", TS, prefix="")
    assert a == b
    assert a.startswith("2024-")
    assert len(a.split("-")[1]) == 5


def test_case_reference_prefix_from_settings():
    with patch("hazardbot.core.finalize.settings") as mock_settings:
        mock_settings.CASE_REFERENCE_PREFIX = "TLV-"
        assert case_reference("conv-1", TS).startswith("TLV-2024-")


def test_confirmation_sequence():
    msgs = confirmation_messages("2024-00042")
    assert msgs == ["Case reference 2024-00042", prompts.THANK_YOU_TEXT]
