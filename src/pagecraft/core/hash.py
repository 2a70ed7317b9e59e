"""Content fingerprints.

Saved documents and memoized templates are keyed by xxhash digests. A
digest only has to tell one document revision from the next, so the fast
non-cryptographic xxh3 variant is used throughout.
"""

import xxhash

DIGEST_LENGTH = 16


def hash_bytes(data: bytes, truncate: int | None = None) -> str:
    """Hex digest of data, optionally cut to ``truncate`` characters."""
    digest = xxhash.xxh3_64_hexdigest(data)
    return digest[:truncate] if truncate else digest


def hash_string(text: str, truncate: int | None = None) -> str:
    """
    Hex digest of a UTF-8 string.

    Examples:
        >>> len(hash_string("Hello {{user.name}}"))
        16
    """
    return hash_bytes(text.encode("utf-8"), truncate)


__all__ = ["DIGEST_LENGTH", "hash_bytes", "hash_string"]
