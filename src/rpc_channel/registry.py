"""MethodRegistry — local method implementations keyed by (target_id, method_id)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .method import MethodInfo

if TYPE_CHECKING:
    from .method import MethodDefinition

logger = logging.getLogger(__name__)


class MethodRegistry:
    """Store and retrieve the methods a channel can execute.

    Entries are keyed by the tuple ``(target_id, method_id)`` so several
    targets can publish the same method id independently, and no separator
    character can make two keys collide.

    **Overwrite semantics:** publishing a definition under an existing key
    replaces it (last write wins), which keeps dev reloads and test
    re-implementation simple.
    """

    def __init__(self) -> None:
        self._methods: dict[tuple[str, str], MethodDefinition] = {}

    # ── Registration ─────────────────────────────────────────────

    def publish(self, definition: MethodDefinition) -> None:
        replaced = definition.key in self._methods
        self._methods[definition.key] = definition
        logger.debug(
            "%s method %s for target %s",
            "Replaced" if replaced else "Registered",
            definition.id,
            definition.target_id,
        )

    # ── Lookup ───────────────────────────────────────────────────

    def lookup(self, target_id: str, method_id: str) -> MethodDefinition | None:
        return self._methods.get((target_id, method_id))

    def __contains__(self, key: object) -> bool:
        return key in self._methods

    def __len__(self) -> int:
        return len(self._methods)

    # ── Introspection ────────────────────────────────────────────

    def snapshot(self) -> list[MethodInfo]:
        """Return ``MethodInfo`` for every registered method, in publish order."""
        return [
            MethodInfo(id=definition.id, name=definition.short_name)
            for definition in self._methods.values()
        ]

    # ── Cleanup ──────────────────────────────────────────────────

    def clear(self) -> None:
        """Remove all registrations (testing utility)."""
        self._methods.clear()


__all__ = ["MethodRegistry"]
