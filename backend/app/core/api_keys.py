"""
API key generation and hashing

Plaintext keys look like ``b2b_<43 url-safe chars>``. Only the SHA-256
hash and an 8 character prefix are ever stored.

Author: TM3
Date: 2025-12-02
"""
import hashlib
import hmac
import re
import secrets
from dataclasses import dataclass

KEY_PREFIX = "b2b_"
PREFIX_LENGTH = 8
KEY_BYTES = 32

_KEY_BODY = re.compile(r"^[A-Za-z0-9_-]+$")


@dataclass(frozen=True)
class GeneratedApiKey:
    plain_key: str
    key_hash: str
    key_prefix: str


class ApiKeyGenerator:

    @staticmethod
    def generate_key() -> GeneratedApiKey:
        # token_urlsafe is url-safe base64 without padding
        plain_key = KEY_PREFIX + secrets.token_urlsafe(KEY_BYTES)
        return GeneratedApiKey(
            plain_key=plain_key,
            key_hash=ApiKeyGenerator.hash_key(plain_key),
            key_prefix=ApiKeyGenerator.extract_prefix(plain_key),
        )

    @staticmethod
    def hash_key(plain_key: str) -> str:
        return hashlib.sha256(plain_key.encode("utf-8")).hexdigest()

    @staticmethod
    def extract_prefix(plain_key: str) -> str:
        """First 8 characters after the ``b2b_`` marker, used to identify a key in logs and listings"""
        body = plain_key[len(KEY_PREFIX):] if plain_key.startswith(KEY_PREFIX) else plain_key
        return body[:PREFIX_LENGTH]

    @staticmethod
    def verify_key(plain_key: str, key_hash: str) -> bool:
        return hmac.compare_digest(ApiKeyGenerator.hash_key(plain_key), key_hash)

    @staticmethod
    def validate_key_format(plain_key: str) -> bool:
        if not plain_key or not plain_key.startswith(KEY_PREFIX):
            return False
        body = plain_key[len(KEY_PREFIX):]
        return len(body) >= PREFIX_LENGTH and bool(_KEY_BODY.match(body))
