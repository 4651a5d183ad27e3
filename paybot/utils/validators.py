"""Input validation for free text collected during conversations."""

import math
import re
from typing import Optional

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
OTP_RE = re.compile(r"^[0-9]{4,8}$")


def is_valid_email(text: str) -> bool:
    return bool(EMAIL_RE.match((text or "").strip()))


def is_valid_otp(text: str) -> bool:
    return bool(OTP_RE.match((text or "").strip()))


# Commas only as thousands separators: "1,000.50" is fine, "1,5" is not
GROUPED_AMOUNT_RE = re.compile(r"^\d{1,3}(,\d{3})+(\.\d+)?$")


def parse_amount(text: str) -> Optional[float]:
    """Return a positive finite amount, or None when the input is not one."""
    text = (text or "").strip()
    if "," in text:
        if not GROUPED_AMOUNT_RE.match(text):
            return None
        text = text.replace(",", "")
    try:
        amount = float(text)
    except ValueError:
        return None
    if not math.isfinite(amount) or amount <= 0:
        return None
    return amount


def is_valid_wallet_address(text: str, min_length: int = 20) -> bool:
    # Length check only; no per-network checksum validation.
    address = (text or "").strip()
    return len(address) >= min_length and " " not in address
