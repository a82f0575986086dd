import time
from datetime import datetime, timezone

def now_ms() -> int:
    return int(time.time() * 1000)

def iso_from_ms(ms) -> str:
    """
    Render epoch milliseconds as an ISO-8601 UTC string ("...Z").
    Falls back to the current time when the value is missing or unusable.
    """
    try:
        v = int(ms or 0)
    except (TypeError, ValueError):
        v = 0
    if v <= 0:
        v = now_ms()
    dt = datetime.fromtimestamp(v / 1000.0, tz=timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{v % 1000:03d}Z"
