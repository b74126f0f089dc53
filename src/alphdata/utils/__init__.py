from .http_client import DataHTTPClient, HTTPClientError
from .formatting import (
    decode_hex_string,
    encode_hex_string,
    format_token_amount,
    add_integer_amounts,
    atto_to_alph,
    to_decimal,
    ipfs_to_gateway,
    format_compact_count,
)

__all__ = [
    "DataHTTPClient",
    "HTTPClientError",
    "decode_hex_string",
    "encode_hex_string",
    "format_token_amount",
    "add_integer_amounts",
    "atto_to_alph",
    "to_decimal",
    "ipfs_to_gateway",
    "format_compact_count",
]
