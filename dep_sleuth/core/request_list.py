"""Parsing of requested package lists (one ``name@version`` per line)."""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional


@dataclass(frozen=True)
class RequestedPackage:
    """A package the user asked about, with an optional version specifier."""

    name: str
    specifier: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate the request."""
        if not self.name:
            raise ValueError("Requested package name cannot be empty")

    @property
    def key(self) -> str:
        return f"{self.name}@{self.specifier}" if self.specifier else self.name

    @property
    def requested_version(self) -> str:
        return self.specifier or "(any)"


def parse_request_line(line: str) -> Optional[RequestedPackage]:
    """Parse one line of a request list.

    The last ``@`` after the first character separates name and specifier,
    so ``@scope/name@1.0.0`` works. ``name@`` means any version.

    Args:
        line: Raw line

    Returns:
        Parsed request, or None for blank lines, comments and ``---``
    """
    text = line.strip()
    if not text or text.startswith("#") or text == "---":
        return None

    at = text.rfind("@")
    if at > 0:
        name = text[:at].strip()
        specifier = text[at + 1:].strip()
        return RequestedPackage(name=name, specifier=specifier or None)
    return RequestedPackage(name=text)


def parse_requests(lines: Iterable[str]) -> List[RequestedPackage]:
    """Parse request lines, skipping blanks and comments."""
    requests = []
    for line in lines:
        request = parse_request_line(line)
        if request is not None:
            requests.append(request)
    return requests


def load_requests(file_path: Path) -> List[RequestedPackage]:
    """Read a request list file.

    Args:
        file_path: Path to the list

    Returns:
        Parsed requests

    Raises:
        FileNotFoundError: If the file does not exist
    """
    with open(file_path, 'r', encoding='utf-8') as f:
        return parse_requests(f.read().splitlines())
