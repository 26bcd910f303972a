"""Consequence that installs an approve-hook task."""

from __future__ import annotations

from dataclasses import dataclass

from moderation.consequence.base import Consequence, ConsequenceContext
from moderation.models.change import ChangeKind
from moderation.models.overrides import OverrideBundle, TaskKey
from moderation.models.result import ConsequenceResult


@dataclass(frozen=True)
class InstallApproveHookConsequence(Consequence):
    """Register metadata overrides for the next write matching a key.

    Must run before the write it targets: the write fires the phase
    events synchronously.  Replaces a task already installed for the
    same (document, author, kind).
    """

    document: str
    author_name: str
    kind: ChangeKind
    overrides: OverrideBundle

    @property
    def key(self) -> TaskKey:
        return TaskKey(self.document, self.author_name, ChangeKind(self.kind))

    def run(self, context: ConsequenceContext) -> ConsequenceResult:
        context.approve_hook.install(self.key, self.overrides)
        return ConsequenceResult.good()
