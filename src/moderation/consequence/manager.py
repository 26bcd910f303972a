"""Consequence managers.

ConsequenceManager executes consequences immediately, in the order they
are added, each at most once.  RecordingConsequenceManager is the test
seam: it records consequences without running them.

Neither manager reorders, batches, deduplicates or rolls back.  A caller
composing several consequences puts the failure-prone ones last, or
accepts partial effects.
"""

from __future__ import annotations

import logging
import weakref
from typing import TYPE_CHECKING

from moderation.exceptions import ConsequenceError
from moderation.models.result import ConsequenceResult

if TYPE_CHECKING:
    from moderation.consequence.base import Consequence, ConsequenceContext

logger = logging.getLogger(__name__)


class ConsequenceManager:
    """Runs consequences synchronously in the calling thread."""

    def __init__(self, context: ConsequenceContext) -> None:
        self._context = context
        self._consequences: list[Consequence] = []
        # Keyed by id(); entries drop out when the consequence is collected.
        self._seen: weakref.WeakValueDictionary[int, Consequence] = weakref.WeakValueDictionary()

    @property
    def consequences(self) -> list[Consequence]:
        """Consequences added so far, in submission order."""
        return list(self._consequences)

    def add(self, consequence: Consequence) -> ConsequenceResult:
        """Execute *consequence* now and return its result.

        Raises:
            ConsequenceError: If this consequence object was already added.
        """
        if self._seen.get(id(consequence)) is consequence:
            raise ConsequenceError(
                f"{consequence.name} was already submitted; consequences run at most once."
            )
        self._seen[id(consequence)] = consequence
        self._consequences.append(consequence)
        return self._dispatch(consequence)

    def _dispatch(self, consequence: Consequence) -> ConsequenceResult:
        logger.debug("Running %s", consequence.name)
        result = consequence.run(self._context)
        if not result.ok:
            logger.debug("%s failed: %s", consequence.name, result)
        return result

    def clear(self) -> None:
        """Forget recorded consequences.

        A consequence object that is still alive stays refused by ``add()``.
        """
        self._consequences.clear()


class RecordingConsequenceManager(ConsequenceManager):
    """Records consequences instead of running them.

    Use :meth:`mock_result` to choose what ``add()`` returns for a given
    consequence class; anything else gets an empty good result.

    Example::

        manager = RecordingConsequenceManager()
        manager.mock_result(ApproveEditConsequence, ConsequenceResult.good(rev_id=5))
        moderation = Moderation.open(manager=manager)
        moderation.approve(pending_id)
        assert manager.consequences == [InstallApproveHookConsequence(...), ...]
    """

    def __init__(self) -> None:
        self._consequences = []
        self._seen = weakref.WeakValueDictionary()
        self._results: dict[type, ConsequenceResult] = {}

    def mock_result(self, consequence_class: type, result: ConsequenceResult) -> None:
        self._results[consequence_class] = result

    def _dispatch(self, consequence: Consequence) -> ConsequenceResult:
        return self._results.get(type(consequence), ConsequenceResult.good())
