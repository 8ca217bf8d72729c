"""Evidence fingerprinting."""

from src.evidence.fingerprint import (
    fingerprint_file,
    fingerprint_text,
    master_digest,
    sha512_hex,
)

__all__ = [
    "sha512_hex",
    "fingerprint_file",
    "fingerprint_text",
    "master_digest",
]
