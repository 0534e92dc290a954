"""
HMAC request authentication shared by the gateway and first-party clients.

A signed request carries two headers:

    X-Timestamp: unix seconds, decimal
    X-Signature: hex(HMAC-SHA256(secret, f"{timestamp}:{path}"))

There is no nonce store. Replays are bounded only by the clock-skew window,
which applies in both directions.
"""

import hashlib
import hmac
import re
import time
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from .config import MAX_CLOCK_SKEW, RELAY_CLOUD_SECRET
from .errors import ConfigurationError

TIMESTAMP_HEADER = "X-Timestamp"
SIGNATURE_HEADER = "X-Signature"

MISSING_HEADERS = "missing timestamp or signature"
INVALID_TIMESTAMP = "invalid timestamp format"
TIMESTAMP_EXPIRED = "timestamp expired"
INVALID_SIGNATURE = "invalid signature"

# Plain ASCII decimal seconds with an optional leading minus
_DECIMAL_TIMESTAMP = re.compile(r"-?[0-9]+")


@dataclass(frozen=True)
class AuthResult:
    valid: bool
    reason: Optional[str] = None


def decode_secret(secret: str) -> bytes:
    """Turn the configured hex secret into key bytes."""
    if not secret:
        raise ConfigurationError("Signing secret is not configured")
    try:
        return bytes.fromhex(secret)
    except ValueError as exc:
        raise ConfigurationError("Signing secret is not valid hex") from exc


def compute_signature(secret: str, timestamp: str, path: str) -> str:
    """
    Sign ``timestamp:path`` with the shared secret.

    Args:
        secret: Hex-encoded key
        timestamp: Decimal unix seconds, exactly as sent in X-Timestamp
        path: Request path, e.g. "/tts"

    Returns:
        Lowercase hex digest
    """
    message = f"{timestamp}:{path}".encode("utf-8")
    return hmac.new(decode_secret(secret), message, hashlib.sha256).hexdigest()


def _get_header(headers: Mapping[str, str], name: str) -> Optional[str]:
    value = headers.get(name)
    if value is None:
        value = headers.get(name.lower())
    return value


def authorize(
    headers: Mapping[str, str],
    path: str,
    secret: str,
    now: Optional[float] = None,
    max_skew: int = MAX_CLOCK_SKEW,
) -> AuthResult:
    """
    Validate the signature headers of an inbound request.

    Never raises for bad client input; the reason for a rejection is carried
    in the returned AuthResult. A missing or malformed secret is a server
    problem and raises ConfigurationError.
    """
    # Misconfiguration is reported before the client's headers are judged
    decode_secret(secret)

    timestamp = _get_header(headers, TIMESTAMP_HEADER)
    signature = _get_header(headers, SIGNATURE_HEADER)
    if not timestamp or not signature:
        return AuthResult(False, MISSING_HEADERS)

    stamp = timestamp.strip()
    if not _DECIMAL_TIMESTAMP.fullmatch(stamp):
        return AuthResult(False, INVALID_TIMESTAMP)
    issued_at = int(stamp)

    current = time.time() if now is None else now
    if abs(current - issued_at) > max_skew:
        return AuthResult(False, TIMESTAMP_EXPIRED)

    # Header values arrive latin-1 decoded and may hold non-ASCII characters
    expected = compute_signature(secret, stamp, path).encode("ascii")
    supplied = signature.strip().lower().encode("utf-8")
    if not hmac.compare_digest(expected, supplied):
        return AuthResult(False, INVALID_SIGNATURE)

    return AuthResult(True)


class RequestSigner:
    """Produces signature headers for calls to the built-in cloud gateway."""

    def __init__(self, secret: str):
        decode_secret(secret)
        self._secret = secret

    @classmethod
    def from_env(cls) -> "RequestSigner":
        """Signer keyed with RELAY_CLOUD_SECRET (or GATEWAY_SECRET)."""
        return cls(RELAY_CLOUD_SECRET)

    def sign(self, path: str, timestamp: Optional[int] = None) -> Dict[str, str]:
        if timestamp is None:
            timestamp = int(time.time())
        stamp = str(timestamp)
        return {
            TIMESTAMP_HEADER: stamp,
            SIGNATURE_HEADER: compute_signature(self._secret, stamp, path),
        }
