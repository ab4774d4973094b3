"""Script source loaders and checksum verification."""

import hashlib
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional

from loguru import logger

from luagate.core.exceptions import ChecksumMismatchError, WrongChecksumTypeError


class OnceLoader:
    """Sources read once, when the configuration is parsed."""

    def __init__(self, sources: Optional[Dict[str, str]] = None) -> None:
        self._sources: Dict[str, str] = dict(sources or {})

    @classmethod
    def from_files(cls, paths: Iterable[str]) -> "OnceLoader":
        """Read every path; unreadable files are logged and left out."""
        sources: Dict[str, str] = {}
        for path in paths:
            try:
                sources[path] = Path(path).read_text(encoding="utf-8")
            except OSError as e:
                logger.error(f"[Lua] Opening the source file {path}: {e}")
        return cls(sources)

    def get(self, name: str) -> Optional[str]:
        return self._sources.get(name)


class LiveLoader:
    """Sources re-read from disk on every lookup."""

    def get(self, name: str) -> Optional[str]:
        try:
            return Path(name).read_text(encoding="utf-8")
        except OSError:
            return None


def md5_hex(content: str) -> str:
    return hashlib.md5(content.encode("utf-8")).hexdigest()


def verify_checksums(loader: Any, checksums: Mapping[str, Any]) -> None:
    """Check every configured md5 digest against the loaded content.

    Raises:
        WrongChecksumTypeError: a digest is not a string
        ChecksumMismatchError: the content does not hash to the digest
    """
    for source, expected in checksums.items():
        if not isinstance(expected, str):
            raise WrongChecksumTypeError(source)
        actual = md5_hex(loader.get(source) or "")
        if actual != expected:
            raise ChecksumMismatchError(source=source, actual=actual, expected=expected)
