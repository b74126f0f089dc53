"""
Pure formatting helpers: hex decoding, exact amount formatting, unit conversion.

Amounts are handled as strings and Decimals only. Values above 2**53 are
common for token balances and must never pass through a float before they
are formatted.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

ATTO_PER_ALPH = Decimal(10) ** 18

_HEX_RE = re.compile(r"^[0-9A-Fa-f]*$")
_PRINTABLE_ASCII_RE = re.compile(r"^[\x20-\x7E]*$")
_DIGITS_RE = re.compile(r"^\d+$")

IPFS_SCHEME = "ipfs://"
IPFS_PATH_PREFIX = "ipfs/"
DEFAULT_IPFS_GATEWAY = "https://ipfs.io/ipfs/"


def encode_hex_string(text: str) -> str:
    """Hex-encode UTF-8 text the way the chain stores token names."""
    return text.encode("utf-8").hex()


def decode_hex_string(hex_string: str) -> str:
    """Decode a hex-encoded name or symbol to text.

    A ``0x`` prefix is ignored. If the input is not hex, or the decoded text
    is not printable ASCII, the original string is returned unchanged.
    """
    if not hex_string:
        return hex_string

    clean_hex = hex_string[2:] if hex_string.startswith("0x") else hex_string
    if not _HEX_RE.match(clean_hex) or len(clean_hex) % 2 != 0:
        return hex_string

    try:
        decoded = bytes.fromhex(clean_hex).decode("utf-8")
    except (ValueError, UnicodeDecodeError):
        return hex_string

    return decoded if _PRINTABLE_ASCII_RE.match(decoded) else hex_string


def format_token_amount(amount: Union[str, int], decimals: int = 0) -> str:
    """Shift an integer amount ``decimals`` places left for display.

    Works purely on the digit string and trims trailing zero fractional
    digits, so ``("123456789", 6)`` gives ``"123.456789"`` and
    ``("1500000", 6)`` gives ``"1.5"``.

    Raises:
        ValueError: If amount is not a base-10 integer
    """
    text = str(amount).strip()
    negative = text.startswith("-")
    digits = text[1:] if negative else text
    if not _DIGITS_RE.match(digits):
        raise ValueError(f"Amount must be a base-10 integer string, got {amount!r}")

    digits = digits.lstrip("0") or "0"
    sign = "-" if negative and digits != "0" else ""

    if decimals <= 0:
        return f"{sign}{digits}"

    padded = digits.rjust(decimals + 1, "0")
    integer_part = padded[:-decimals]
    fractional_part = padded[-decimals:].rstrip("0")

    if not fractional_part:
        return f"{sign}{integer_part}"
    return f"{sign}{integer_part}.{fractional_part}"


def add_integer_amounts(left: str, right: str) -> str:
    """Sum two base-10 integer strings exactly."""
    return str(int(left) + int(right))


def atto_to_alph(value: Union[str, int, None]) -> Decimal:
    """Convert an atto-denominated amount to whole ALPH. Unparseable input is zero."""
    if value is None or value == "":
        return Decimal(0)
    try:
        return Decimal(str(value)) / ATTO_PER_ALPH
    except InvalidOperation:
        return Decimal(0)


def to_decimal(value: Union[str, int, float, None]) -> Decimal:
    """Parse a numeric field that may arrive as string or number. Unparseable input is zero."""
    if value is None or value == "":
        return Decimal(0)
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return Decimal(0)


def ipfs_to_gateway(uri: Optional[str], gateway: str = DEFAULT_IPFS_GATEWAY) -> Optional[str]:
    """Rewrite ``ipfs://<cid>`` or ``ipfs/<cid>`` to an HTTP gateway URL."""
    if not uri:
        return uri
    if uri.startswith(IPFS_SCHEME):
        return f"{gateway}{uri[len(IPFS_SCHEME):]}"
    if uri.startswith(IPFS_PATH_PREFIX):
        return f"{gateway}{uri[len(IPFS_PATH_PREFIX):]}"
    return uri


def format_compact_count(count: int) -> str:
    """1234567 -> '1.23M', 12345 -> '12.3K', 999 -> '999'."""
    if count > 1_000_000:
        return f"{count / 1e6:.2f}M"
    if count > 1_000:
        return f"{count / 1e3:.1f}K"
    return str(count)
