"""CRC-32 checksums over scan payloads.

The checksum is computed over the exact bytes handed in. Callers that
checksum structured data must serialize it canonically first; nothing is
normalized here.
"""

import zlib

CHECKSUM_WIDTH = 8


def _to_bytes(payload):
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload)
    if isinstance(payload, str):
        return payload.encode('utf-8')
    raise TypeError(f"Cannot checksum payload of type {type(payload).__name__}")


def compute_checksum(payload):
    """Return the CRC-32 of ``payload`` as 8 lowercase hex characters."""
    return format(zlib.crc32(_to_bytes(payload)) & 0xFFFFFFFF, f'0{CHECKSUM_WIDTH}x')


def verify_checksum(payload, checksum):
    """Check ``payload`` against a previously computed checksum."""
    if not checksum:
        return False
    return compute_checksum(payload) == checksum.lower()
