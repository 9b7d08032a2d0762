import re
from typing import Optional, Union

# ----------------------------
# Utilities
# ----------------------------
HW_ADDRESS_RE = re.compile(r"[0-9A-Fa-f]{2}(?::[0-9A-Fa-f]{2})+")


def clamp(n: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, n))


def decode_payload(raw: Union[bytes, bytearray, str, None]) -> str:
    """
    Bytes -> text without ever raising. Undecodable bytes are replaced.
    """
    if raw is None:
        return ""
    if isinstance(raw, str):
        return raw
    return bytes(raw).decode("utf-8", "replace")


def _escape_bytes(b: bytes, max_len: int = 240) -> str:
    if len(b) > max_len:
        b = b[:max_len] + b"..."
    return b.decode("utf-8", "backslashreplace").replace("\n", "\\n").replace("\r", "\\r")


def looks_like_hw_address(value: Optional[str]) -> bool:
    return bool(value) and HW_ADDRESS_RE.search(value) is not None


def last_topic_segment(topic: Optional[str]) -> Optional[str]:
    """
    "yokohama/hackathon/running/player1" -> "player1"
    """
    if not topic:
        return None
    seg = topic.rstrip("/").split("/")[-1]
    return seg or None
