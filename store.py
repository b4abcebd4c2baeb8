"""File-backed store mapping short-link tokens to destination URLs."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when the backing links file cannot be checked or loaded."""


class LinkSource(Protocol):
    """What the accept loop and connection handler need from a store."""

    def has_changed(self) -> bool: ...

    def refresh(self) -> None: ...

    def __len__(self) -> int: ...

    def get(self, token: str) -> str | None: ...


class LinkStore:
    """Token -> URL mapping loaded from a JSON object file.

    Reloads build a fresh dict and swap it in whole, so a failed reload leaves
    the previous mapping serving. Not synchronized: one thread owns it.
    """

    def __init__(self, *, links_file: str) -> None:
        self._links_file = Path(links_file)
        self._links: dict[str, str] = {}
        self._signature: tuple[int, int] | None = None
        self.refresh()

    @property
    def links_file(self) -> Path:
        return self._links_file

    def __len__(self) -> int:
        return len(self._links)

    def get(self, token: str) -> str | None:
        return self._links.get(token)

    def has_changed(self) -> bool:
        return self._stat_signature() != self._signature

    def refresh(self) -> None:
        # Stat before reading so a write racing the read is seen next check.
        signature = self._stat_signature()
        try:
            payload = json.loads(self._links_file.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as exc:
            raise StoreError(f"Cannot read {self._links_file}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise StoreError(f"Invalid JSON in {self._links_file}: {exc}") from exc

        if not isinstance(payload, dict):
            raise StoreError(f"{self._links_file} must contain a JSON object")

        links: dict[str, str] = {}
        for token, link in payload.items():
            if not isinstance(link, str) or not _is_valid_link(link):
                logger.warning("Skipping invalid link for token %r", token)
                continue
            links[token] = link

        self._links = links
        self._signature = signature

    def _stat_signature(self) -> tuple[int, int]:
        try:
            stat_result = os.stat(self._links_file)
        except OSError as exc:
            raise StoreError(f"Cannot stat {self._links_file}: {exc}") from exc
        return stat_result.st_mtime_ns, stat_result.st_size


def _is_valid_link(link: str) -> bool:
    # Control characters would end up verbatim in the Location header.
    return bool(link) and not any(ord(char) < 0x20 or char == "\x7f" for char in link)
