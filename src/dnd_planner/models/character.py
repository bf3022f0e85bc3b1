"""Character build data model.

Represents a player's identity, ability scores, and the proficiency fields
the proficiency engine owns the shape of: listed proficiencies, their
granting sources, and optional-slot allocations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from dnd_planner.engine.errors import ValidationFailure
from dnd_planner.models.allocation import OptionalProficiencies
from dnd_planner.models.constants import Ability, ProficiencyType


# Default ability scores: all 10s (modifier +0) before point-buy or rolling.
_DEFAULT_ABILITIES: dict[Ability, int] = {ability: 10 for ability in Ability}


@runtime_checkable
class ProficiencyHolder(Protocol):
    """Anything that carries the three proficiency fields.

    ``Character`` is the normal holder; tests and migration code may pass a
    lighter object as long as these attributes exist.
    """

    proficiencies: dict[ProficiencyType, list[str]]
    proficiency_sources: dict[ProficiencyType, dict[str, set[str]]]
    optional_proficiencies: dict[ProficiencyType, OptionalProficiencies]


@dataclass
class Character:
    """A D&D 5e character build.

    The proficiency dicts start empty; ``initialize_structures()`` seeds all
    six types (and the default language) before the engine touches them.
    """

    # Identity
    name: str = "Adventurer"
    level: int = 1

    # Ability scores, 1-30
    ability_scores: dict[Ability, int] = field(
        default_factory=lambda: dict(_DEFAULT_ABILITIES)
    )

    # Listed proficiencies per type, insertion order, first-seen casing
    proficiencies: dict[ProficiencyType, list[str]] = field(default_factory=dict)

    # Canonical name → labels of every rule that granted it
    proficiency_sources: dict[ProficiencyType, dict[str, set[str]]] = field(
        default_factory=dict
    )

    # Optional-slot allocations per type
    optional_proficiencies: dict[ProficiencyType, OptionalProficiencies] = field(
        default_factory=dict
    )

    def ability_score(self, ability: Ability) -> int:
        return self.ability_scores.get(ability, 10)


_HOLDER_FIELDS = ("proficiencies", "proficiency_sources", "optional_proficiencies")


def ensure_holder(obj: object) -> ProficiencyHolder:
    """Check *obj* exposes the three proficiency dicts, once, at the boundary."""
    if obj is None:
        raise ValidationFailure("A character is required")
    for name in _HOLDER_FIELDS:
        value = getattr(obj, name, None)
        if not isinstance(value, dict):
            raise ValidationFailure(
                f"{type(obj).__name__}.{name} must be a dict, "
                f"got {type(value).__name__}"
            )
    return obj  # type: ignore[return-value]
