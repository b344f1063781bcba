"""Per-view generation state: the current suite, pending flag and request token."""

from __future__ import annotations
from typing import Optional
import logging

from .exceptions import AutoQAError, RequestInFlightError
from .mindmap import SelectionState
from .models import TestSuite

logger = logging.getLogger(__name__)


class GenerationSession:
    """
    State owned by one tab. Tabs never share a session.

    Each request is tagged with a token; outcomes carrying a token that is no
    longer current are discarded, so a slow response can never overwrite the
    result of a newer request.
    """

    def __init__(self, name: str = "default"):
        self.name = name
        self.suite: Optional[TestSuite] = None
        self.error: Optional[str] = None
        self.pending = False
        self.selection = SelectionState()
        self._token = 0

    @property
    def token(self) -> int:
        return self._token

    def begin(self) -> int:
        """Start a request: clear previous results and hand out a fresh token."""
        if self.pending:
            raise RequestInFlightError("已有生成请求正在进行，请稍候。")
        self._token += 1
        self.pending = True
        self.suite = None
        self.error = None
        self.selection.clear()
        return self._token

    def is_current(self, token: int) -> bool:
        return token == self._token

    def complete(self, token: int, suite: TestSuite) -> bool:
        if not self.is_current(token):
            logger.info(f"[{self.name}] Discarding stale result for request {token}")
            return False
        self.suite = suite
        self.pending = False
        return True

    def fail(self, token: int, error: AutoQAError) -> bool:
        if not self.is_current(token):
            logger.info(f"[{self.name}] Discarding stale error for request {token}")
            return False
        self.error = str(error)
        self.pending = False
        return True

    def cancel_pending(self) -> None:
        """Forget the in-flight request; its outcome will be ignored when it arrives."""
        if self.pending:
            self._token += 1
            self.pending = False
