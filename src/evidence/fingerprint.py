"""SHA-512 content fingerprints used as the evidence identity anchor."""

import hashlib
from pathlib import Path
from typing import Iterable

READ_BLOCK_SIZE = 1024 * 1024


def sha512_hex(content: bytes) -> str:
    """Return the lowercase hex SHA-512 digest of content."""
    return hashlib.sha512(content).hexdigest()


def fingerprint_text(text: str) -> str:
    """Digest of UTF-8 encoded text."""
    return sha512_hex(text.encode("utf-8"))


def fingerprint_file(file_path: str | Path) -> str:
    """Digest a file without loading it into memory at once.

    Raises:
        OSError: If the file cannot be read
    """
    digest = hashlib.sha512()
    with Path(file_path).open("rb") as f:
        for block in iter(lambda: f.read(READ_BLOCK_SIZE), b""):
            digest.update(block)
    return digest.hexdigest()


def master_digest(digests: Iterable[str]) -> str:
    """Case-level digest over a set of evidence digests.

    Digests are sorted before concatenation so the result does not depend on
    the order evidence was listed in.
    """
    return fingerprint_text("".join(sorted(digests)))
