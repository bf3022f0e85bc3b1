"""Proficiency engine: one character's grants, optional slots, and refunds.

Binds a ProficiencyLedger, an OptionalAllocationTracker, and an EventBus to
a single Character and exposes the operations a build wizard or level-up
flow needs. There is no shared instance: every character gets its own
engine, and the engine mutates that character in place.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from dnd_planner.engine.errors import ProficiencyError
from dnd_planner.engine.events import EventBus
from dnd_planner.engine.optional_tracker import OptionalAllocationTracker
from dnd_planner.engine.proficiency_config import ProficiencyConfig
from dnd_planner.engine.proficiency_ledger import ProficiencyLedger
from dnd_planner.engine.structures import initialize_structures, seed_structures
from dnd_planner.models.allocation import AllocationConfig, OptionalProficiencies
from dnd_planner.models.character import Character
from dnd_planner.models.constants import Ability, Origin, ProficiencyType
from dnd_planner.models.derived_stats import (
    proficiency_bonus,
    saving_throw_modifier,
    skill_modifier,
)


logger = logging.getLogger(__name__)


class ProficiencyEngine:
    """Facade over the ledger and optional-slot tracker for one character."""

    __slots__ = ("_character", "_config", "_events", "_ledger", "_tracker")

    def __init__(
        self,
        character: Character,
        config: ProficiencyConfig | None = None,
        events: EventBus | None = None,
    ) -> None:
        self._character = character
        self._config = config or ProficiencyConfig()
        self._events = events if events is not None else EventBus()
        self._ledger = ProficiencyLedger(character, self._config, self._events)
        self._tracker = OptionalAllocationTracker(self._ledger)

    # --- Factories ---------------------------------------------------------

    @classmethod
    def new_character(
        cls,
        name: str = "Adventurer",
        level: int = 1,
        config: ProficiencyConfig | None = None,
        events: EventBus | None = None,
    ) -> ProficiencyEngine:
        """Create a fresh character with seeded proficiency structures."""
        return cls.for_character(Character(name=name, level=level), config, events)

    @classmethod
    def for_character(
        cls,
        character: Character,
        config: ProficiencyConfig | None = None,
        events: EventBus | None = None,
    ) -> ProficiencyEngine:
        """Bind to an existing (possibly legacy) character and repair it.

        The default-language grant goes through the new engine's ledger, so
        listeners already registered on *events* see it. Missing or malformed
        fields are repaired before the ledger checks the character.
        """
        seed_structures(character)
        engine = cls(character, config, events)
        initialize_structures(character, engine.ledger)
        return engine

    # --- Properties --------------------------------------------------------

    @property
    def character(self) -> Character:
        return self._character

    @property
    def config(self) -> ProficiencyConfig:
        return self._config

    @property
    def events(self) -> EventBus:
        return self._events

    @property
    def ledger(self) -> ProficiencyLedger:
        return self._ledger

    @property
    def tracker(self) -> OptionalAllocationTracker:
        return self._tracker

    # --- Grants ------------------------------------------------------------

    def add_grant(self, ptype: ProficiencyType | str, name: str, source: str) -> bool:
        return self._ledger.add_grant(ptype, name, source)

    def retract_grant(self, ptype: ProficiencyType | str, name: str, source: str) -> bool:
        return self._ledger.retract_grant(ptype, name, source)

    def remove_grants_by_source(self, source: str) -> dict[ProficiencyType, list[str]]:
        return self._ledger.remove_grants_by_source(source)

    def apply_grants(
        self,
        source: str,
        grants: Mapping[ProficiencyType | str, Iterable[str]],
    ) -> dict[ProficiencyType, list[str]]:
        """Grant every listed name from *source*.

        Returns, per type, the names that became newly listed.
        """
        added: dict[ProficiencyType, list[str]] = {}
        for ptype, names in grants.items():
            for name in names:
                if self._ledger.add_grant(ptype, name, source):
                    added.setdefault(ProficiencyType.parse(ptype), []).append(name)
        return added

    def replace_source(
        self,
        source: str,
        grants: Mapping[ProficiencyType | str, Iterable[str]],
    ) -> dict[ProficiencyType, list[str]]:
        """Swap everything *source* grants for *grants* (e.g. a race change).

        Old grants are retracted before new ones land, so a pick made
        redundant by the new grants is refunded against current data.
        """
        removed = self._ledger.remove_grants_by_source(source)
        if removed:
            logger.debug("Replacing %s: retracted %d type(s)", source, len(removed))
        return self.apply_grants(source, grants)

    def has_grant(self, ptype: ProficiencyType | str, name: str) -> bool:
        return self._ledger.has_grant(ptype, name)

    def grant_sources(self, ptype: ProficiencyType | str, name: str) -> set[str]:
        return self._ledger.grant_sources(ptype, name)

    def grants_with_sources(
        self, ptype: ProficiencyType | str
    ) -> list[tuple[str, frozenset[str]]]:
        return self._ledger.grants_with_sources(ptype)

    # --- Optional slots ----------------------------------------------------

    def set_allocation(
        self,
        ptype: ProficiencyType | str,
        origin: Origin | str,
        allowed: int,
        options: Iterable[str],
    ) -> None:
        self._tracker.set_allocation(ptype, origin, allowed, options)

    def clear_allocation(self, ptype: ProficiencyType | str, origin: Origin | str) -> None:
        self._tracker.clear_allocation(ptype, origin)

    def select_optional(self, ptype: ProficiencyType | str, origin: Origin | str, name: str) -> bool:
        return self._tracker.select_optional(ptype, origin, name)

    def deselect_optional(self, ptype: ProficiencyType | str, origin: Origin | str, name: str) -> bool:
        return self._tracker.deselect_optional(ptype, origin, name)

    def check_selection(
        self, ptype: ProficiencyType | str, origin: Origin | str, name: str
    ) -> ProficiencyError | None:
        return self._tracker.check_selection(ptype, origin, name)

    def available_options(self, ptype: ProficiencyType | str, origin: Origin | str) -> list[str]:
        return self._tracker.available_options(ptype, origin)

    def allocation(self, ptype: ProficiencyType | str, origin: Origin | str) -> AllocationConfig | None:
        return self._tracker.allocation(ptype, origin)

    def aggregate(self, ptype: ProficiencyType | str) -> OptionalProficiencies | None:
        return self._tracker.aggregate(ptype)

    # --- Derived numbers ---------------------------------------------------

    def proficiency_bonus(self) -> int:
        return proficiency_bonus(self._character.level)

    def skill_modifier(self, skill: str) -> int:
        return skill_modifier(self._character, skill)

    def saving_throw_modifier(self, ability: Ability) -> int:
        return saving_throw_modifier(self._character, ability)
