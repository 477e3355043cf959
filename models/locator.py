from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Union
from urllib.parse import quote, unquote, urlparse, urlunparse
import os

from .errors import MalformedRecordError

@dataclass(frozen=True)
class Locator:
    """Reference to a file: a scheme plus an absolute path"""
    scheme: str
    path: str
    authority: str = ''

    @classmethod
    def from_path(cls, path: Union[str, os.PathLike]) -> 'Locator':
        """Build a file locator from a filesystem path"""
        resolved = Path(path).expanduser().resolve()
        return cls(scheme='file', path=resolved.as_posix())

    @classmethod
    def parse(cls, text: str) -> 'Locator':
        """Parse the canonical string form, e.g. file:///home/user/notes.md"""
        if not isinstance(text, str) or not text.strip():
            raise MalformedRecordError(f"Locator must be a non-empty string, got {text!r}", text)

        parsed = urlparse(text.strip())
        # A bare Windows drive ("C:/x") parses as a one-letter scheme
        if not parsed.scheme or len(parsed.scheme) == 1:
            raise MalformedRecordError(f"Locator has no scheme: {text!r}", text)
        if not parsed.path:
            raise MalformedRecordError(f"Locator has no path: {text!r}", text)
        if parsed.scheme.lower() == 'file' and not parsed.path.startswith('/'):
            raise MalformedRecordError(f"File locator path is not absolute: {text!r}", text)

        return cls(scheme=parsed.scheme.lower(), path=unquote(parsed.path), authority=parsed.netloc)

    @classmethod
    def coerce(cls, value: Union['Locator', str, os.PathLike]) -> 'Locator':
        """Accept a Locator, its canonical string form, or a filesystem path"""
        if isinstance(value, Locator):
            return value
        # Single-letter schemes are Windows drives, not URIs
        if isinstance(value, str) and len(urlparse(value.strip()).scheme) > 1:
            return cls.parse(value)
        if isinstance(value, (str, os.PathLike)):
            return cls.from_path(value)
        raise MalformedRecordError(f"Cannot build a locator from {value!r}", value)

    @property
    def basename(self) -> str:
        return PurePosixPath(self.path).name

    @property
    def fs_path(self) -> Path:
        """Local filesystem path (only meaningful for file locators)"""
        return Path(self.path)

    def __str__(self) -> str:
        return urlunparse((self.scheme, self.authority, quote(self.path, safe='/:'), '', '', ''))
