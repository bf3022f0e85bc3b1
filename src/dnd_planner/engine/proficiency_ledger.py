"""Sourced-grant ledger: who granted which proficiency, and retraction by source.

A proficiency can be granted by several rules at once (Race, Subrace,
Class, "Background Choice", ...). The ledger keeps one listed entry per
proficiency, in first-seen casing, plus the set of source labels behind it.
A proficiency stays listed exactly as long as that set is non-empty.

Malformed input never raises here: grants fire from UI event loops, so the
ledger logs a warning and returns its "nothing happened" value instead.
"""

from __future__ import annotations

import logging

from dnd_planner.engine.errors import ValidationFailure
from dnd_planner.engine.events import EventBus, ProficiencyEventName, ProficiencyNotice
from dnd_planner.engine.proficiency_config import ProficiencyConfig
from dnd_planner.engine.refunds import RefundReconciler
from dnd_planner.models.character import ProficiencyHolder, ensure_holder
from dnd_planner.models.constants import ALL_TYPES, ProficiencyType
from dnd_planner.models.names import normalize


logger = logging.getLogger(__name__)


class ProficiencyLedger:
    """Grant/retract/query over one character's proficiency fields.

    Keeps a normalized-key → canonical-name index per type next to the
    character's display lists. The index is a lookup cache: every hit is
    checked against the display list and every miss falls back to a scan, so
    data written by older code (or by hand) is matched correctly too.
    """

    __slots__ = ("_holder", "_config", "_events", "_index", "_reconciler")

    def __init__(
        self,
        holder: ProficiencyHolder,
        config: ProficiencyConfig | None = None,
        events: EventBus | None = None,
    ) -> None:
        self._holder = ensure_holder(holder)
        self._config = config or ProficiencyConfig()
        self._events = events
        self._index: dict[ProficiencyType, dict[str, str]] = {t: {} for t in ALL_TYPES}
        self._reconciler = RefundReconciler(self)
        self.reindex()

    # --- Properties --------------------------------------------------------

    @property
    def holder(self) -> ProficiencyHolder:
        return self._holder

    @property
    def config(self) -> ProficiencyConfig:
        return self._config

    @property
    def events(self) -> EventBus | None:
        return self._events

    # --- Index helpers -----------------------------------------------------

    def reindex(self) -> None:
        """Rebuild the lookup index from the display lists (first spelling wins)."""
        for ptype in ALL_TYPES:
            index = self._index[ptype]
            index.clear()
            for name in self._holder.proficiencies.get(ptype, []):
                key = normalize(name)
                if key and key not in index:
                    index[key] = name

    def _canonical(self, ptype: ProficiencyType, name: str) -> str | None:
        """Listed spelling of *name*, or None if it isn't listed."""
        key = normalize(name)
        listed = self._holder.proficiencies.get(ptype, [])
        cached = self._index[ptype].get(key)
        if cached is not None and cached in listed:
            return cached
        for entry in listed:
            if normalize(entry) == key:
                self._index[ptype][key] = entry
                return entry
        self._index[ptype].pop(key, None)
        return None

    def _sources_key(self, ptype: ProficiencyType, name: str) -> str | None:
        """Key of *name* in the source map, exact spelling preferred."""
        sources_map = self._holder.proficiency_sources.get(ptype, {})
        if name in sources_map:
            return name
        key = normalize(name)
        for entry in sources_map:
            if normalize(entry) == key:
                return entry
        return None

    def _delete(self, ptype: ProficiencyType, sources_key: str) -> None:
        """Drop a proficiency whose last source just went away."""
        del self._holder.proficiency_sources[ptype][sources_key]
        key = normalize(sources_key)
        listed = self._holder.proficiencies.get(ptype, [])
        for i, entry in enumerate(listed):
            if normalize(entry) == key:
                del listed[i]
                break
        self._index[ptype].pop(key, None)

    def _coerce_type(self, ptype: ProficiencyType | str, action: str) -> ProficiencyType | None:
        try:
            return ProficiencyType.parse(ptype)
        except ValidationFailure as exc:
            logger.warning("Ignoring %s: %s", action, exc)
            return None

    def _emit(self, event: ProficiencyEventName, **payload) -> None:
        if self._events is not None:
            self._events.emit(
                ProficiencyNotice(event=event, character=self._holder, **payload)
            )

    # --- Grants ------------------------------------------------------------

    def add_grant(self, ptype: ProficiencyType | str, name: str, source: str) -> bool:
        """Record that *source* grants *name*.

        Returns True only when *name* was not listed before (any casing).
        A non-choice skill grant also refunds matching optional picks before
        this returns.
        """
        resolved = self._coerce_type(ptype, "add_grant")
        if resolved is None:
            return False
        if not normalize(name) or not isinstance(source, str) or not source.strip():
            logger.warning(
                "Ignoring add_grant with missing name or source: type=%s name=%r source=%r",
                resolved.value, name, source,
            )
            return False

        listed = self._holder.proficiencies.setdefault(resolved, [])
        sources_map = self._holder.proficiency_sources.setdefault(resolved, {})

        canonical = self._canonical(resolved, name)
        was_new = canonical is None
        if was_new:
            listed.append(name)
            self._index[resolved][normalize(name)] = name
            canonical = name

        sources_key = self._sources_key(resolved, canonical) or canonical
        sources_map.setdefault(sources_key, set()).add(source)
        logger.debug("Granted %s %r from %s (new=%s)", resolved.value, canonical, source, was_new)

        if resolved in self._config.refund_types and not self._config.is_choice_source(source):
            self._reconciler.reconcile(resolved, canonical, source)

        self._emit(ProficiencyEventName.ADDED, type=resolved, name=canonical, source=source)
        return was_new

    def retract_grant(self, ptype: ProficiencyType | str, name: str, source: str) -> bool:
        """Remove one *source* from one proficiency. Returns True if it was there."""
        resolved = self._coerce_type(ptype, "retract_grant")
        if resolved is None:
            return False
        sources_key = self._sources_key(resolved, name)
        if sources_key is None:
            return False
        sources = self._holder.proficiency_sources[resolved][sources_key]
        if source not in sources:
            return False
        sources.discard(source)
        if not sources:
            self._delete(resolved, sources_key)
        logger.debug("Retracted %s from %s %r", source, resolved.value, sources_key)
        return True

    def remove_grants_by_source(self, source: str) -> dict[ProficiencyType, list[str]]:
        """Strip *source* from every proficiency of every type.

        Returns, per affected type, every name that lost *source*, whether or
        not it is still listed through other sources. Unaffected types are
        omitted, so a second call with the same source returns ``{}``.
        """
        if not isinstance(source, str) or not source.strip():
            logger.warning("Ignoring remove_grants_by_source with missing source: %r", source)
            return {}

        removed: dict[ProficiencyType, list[str]] = {}
        for ptype in ALL_TYPES:
            # Unknown keys kept from saved data are not part of any type
            sources_map = self._holder.proficiency_sources.get(ptype)
            if not sources_map:
                continue
            for name, sources in list(sources_map.items()):
                if source not in sources:
                    continue
                sources.discard(source)
                removed.setdefault(ptype, []).append(name)
                if not sources:
                    self._delete(ptype, name)

        if removed:
            logger.debug("Removed source %s from %d type(s)", source, len(removed))
            self._emit(ProficiencyEventName.REMOVED_BY_SOURCE, source=source, removed=removed)
        return removed

    # --- Queries -----------------------------------------------------------

    def has_grant(self, ptype: ProficiencyType | str, name: str) -> bool:
        resolved = self._coerce_type(ptype, "has_grant")
        if resolved is None or not normalize(name):
            return False
        return self._canonical(resolved, name) is not None

    def grant_sources(self, ptype: ProficiencyType | str, name: str) -> set[str]:
        """Copy of the sources granting *name*; empty if it isn't granted."""
        resolved = self._coerce_type(ptype, "grant_sources")
        if resolved is None:
            return set()
        sources_key = self._sources_key(resolved, name)
        if sources_key is None:
            return set()
        return set(self._holder.proficiency_sources[resolved][sources_key])

    def has_non_choice_grant(self, ptype: ProficiencyType | str, name: str) -> bool:
        """True if any source other than a paid pick grants *name*."""
        return any(
            not self._config.is_choice_source(source)
            for source in self.grant_sources(ptype, name)
        )

    def listed(self, ptype: ProficiencyType | str) -> list[str]:
        resolved = self._coerce_type(ptype, "listed")
        if resolved is None:
            return []
        return list(self._holder.proficiencies.get(resolved, []))

    def grants_with_sources(
        self, ptype: ProficiencyType | str
    ) -> list[tuple[str, frozenset[str]]]:
        """Listed names of *ptype* in display order, each with its sources."""
        return [
            (name, frozenset(self.grant_sources(ptype, name)))
            for name in self.listed(ptype)
        ]
