"""User-facing notices (the dialog layer's inbox)."""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notice:
    title: str
    message: str


class NoticeBoard:
    def __init__(self) -> None:
        self._pending: list[Notice] = []

    def post(self, title: str, message: str) -> Notice:
        notice = Notice(title, message)
        logger.debug("Notice: %s: %s", title, message)
        self._pending.append(notice)
        return notice

    @property
    def pending(self) -> list[Notice]:
        return list(self._pending)

    def drain(self) -> list[Notice]:
        """Return and forget every pending notice."""
        notices, self._pending = self._pending, []
        return notices
