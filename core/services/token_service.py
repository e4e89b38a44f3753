import base64
import binascii
import hashlib
import hmac
import json
import re
import time
from enum import Enum
from typing import Callable, Optional, Union

from core.base.exception import (
    ConfigurationError,
    InvalidSignatureError,
    MalformedTokenError,
    TokenExpiredError,
    WrongPurposeError,
)

SECONDS_PER_DAY = 24 * 60 * 60
DEFAULT_TTL_DAYS = 365

_SEGMENT = re.compile(r"[A-Za-z0-9_-]+")

class TokenPurpose(str, Enum):
    Newsletter = "newsletter"


def b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")

def b64url_decode(segment: str) -> bytes:
    """Decode unpadded base64url, accepting only the canonical spelling of the bytes."""
    if not _SEGMENT.fullmatch(segment):
        raise ValueError("segment contains characters outside the base64url alphabet")
    try:
        data = base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"segment is not valid base64url: {e}")
    # Reject alternate spellings that differ only in the unused trailing bits
    if b64url_encode(data) != segment:
        raise ValueError("segment is not canonically encoded")
    return data


class TokenService:
    def __init__(self,
        secret: Optional[str],
        clock: Callable[[], float] = time.time,
        require_expiry: bool = False,
    ):
        self.secret = secret
        self.clock = clock
        self.require_expiry = require_expiry

    def _key(self) -> bytes:
        if not self.secret:
            raise ConfigurationError("NEWSLETTER_SECRET")
        return self.secret.encode("utf-8")

    def _now(self) -> int:
        return int(self.clock())

    def _signature(self, payload_b64: str) -> bytes:
        return hmac.new(self._key(), payload_b64.encode("ascii"), hashlib.sha256).digest()

    def sign(self,
        identity: str,
        purpose: Union[TokenPurpose, str],
        ttl_days: int = DEFAULT_TTL_DAYS,
    ) -> str:
        """Issue a URL-safe `<payload>.<signature>` token for identity, valid for ttl_days."""
        self._key()
        purpose = TokenPurpose(purpose)
        payload = {
            "email": identity.lower(),
            "purpose": purpose.value,
            "exp": self._now() + ttl_days * SECONDS_PER_DAY,
        }
        # Compact separators and key order match tokens minted by the web frontend
        payload_json = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
        payload_b64 = b64url_encode(payload_json.encode("utf-8"))
        return f"{payload_b64}.{b64url_encode(self._signature(payload_b64))}"

    def verify(self, token: str, expected_purpose: Union[TokenPurpose, str]) -> dict:
        """
        Verify a token and return its claims.
        - (token) The `<payload>.<signature>` string from a link.
        - (expected_purpose) The workflow the caller is serving.
        - `returns`: `{"email": <lower-cased email>, "purpose": TokenPurpose}`.
        - `raises`: `ConfigurationError` when no secret is configured, otherwise a
          `TokenVerificationError` subclass naming the failed check.
        """
        self._key()
        expected_purpose = TokenPurpose(expected_purpose)

        if not isinstance(token, str):
            raise MalformedTokenError()
        payload_b64, _, supplied = token.partition(".")
        if not payload_b64 or not supplied or not _SEGMENT.fullmatch(payload_b64):
            raise MalformedTokenError()

        expected = self._signature(payload_b64)
        try:
            supplied_bytes = b64url_decode(supplied)
        except ValueError:
            raise InvalidSignatureError()
        if not hmac.compare_digest(supplied_bytes, expected):
            raise InvalidSignatureError()

        try:
            payload = json.loads(b64url_decode(payload_b64).decode("utf-8"))
        except (ValueError, UnicodeDecodeError):
            raise MalformedTokenError("Invalid token payload")
        if not isinstance(payload, dict) or not isinstance(payload.get("email"), str):
            raise MalformedTokenError("Invalid token payload")

        exp = payload.get("exp")
        if exp is None:
            if self.require_expiry:
                raise MalformedTokenError("Token has no expiry")
        else:
            if isinstance(exp, bool) or not isinstance(exp, (int, float)):
                raise MalformedTokenError("Invalid token expiry")
            now = self._now()
            if exp < now:
                raise TokenExpiredError(exp=exp, now=now)

        if payload.get("purpose") != expected_purpose.value:
            raise WrongPurposeError(expected=expected_purpose.value, actual=payload.get("purpose"))

        return {
            "email": payload["email"].lower(),
            "purpose": expected_purpose,
        }


def new_token_service(
    secret: Optional[str],
    clock: Callable[[], float] = time.time,
    require_expiry: bool = False,
) -> TokenService:
    return TokenService(secret, clock=clock, require_expiry=require_expiry)
