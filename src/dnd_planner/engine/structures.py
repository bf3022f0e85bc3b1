"""Seeding and repair of a character's proficiency fields.

New characters get empty containers for all six types. Characters restored
from older saves may be missing whole fields, use plain strings as type
keys, store source sets as lists, or carry optional-slot blocks without
their race/class/background sub-blocks; all of that is filled in place.
Containers that already exist are kept (same objects), so references held
by a UI stay valid. Keys that name no known type are kept untouched and
ignored by the ledger. Running ``initialize_structures`` again on its own
output changes nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from dnd_planner.engine.errors import ValidationFailure
from dnd_planner.engine.proficiency_config import ProficiencyConfig
from dnd_planner.engine.proficiency_ledger import ProficiencyLedger
from dnd_planner.models.allocation import OptionalProficiencies
from dnd_planner.models.character import ProficiencyHolder
from dnd_planner.models.constants import ALL_TYPES, ProficiencyType
from dnd_planner.models.names import unique_names


logger = logging.getLogger(__name__)


def _field(holder, name: str) -> dict:
    """The holder's dict for *name*, created if missing, keyed by ProficiencyType."""
    value = getattr(holder, name, None)
    if value is None:
        value = {}
        setattr(holder, name, value)
    elif not isinstance(value, dict):
        raise ValidationFailure(f"{name} must be a dict, got {type(value).__name__}")

    for key in list(value):
        if isinstance(key, ProficiencyType):
            continue
        try:
            ptype = ProficiencyType.parse(key)
        except ValidationFailure:
            logger.warning("Keeping unknown %s key %r as-is", name, key)
            continue
        value[ptype] = value.pop(key)
    return value


def _seed_proficiencies(holder) -> None:
    fields = _field(holder, "proficiencies")
    for ptype in ALL_TYPES:
        names = fields.get(ptype)
        if names is None:
            fields[ptype] = []
            continue
        if not isinstance(names, list):
            names = fields[ptype] = list(names)
        deduped = unique_names(names)
        if len(deduped) != len(names):
            names[:] = deduped


def _seed_sources(holder) -> None:
    fields = _field(holder, "proficiency_sources")
    for ptype in ALL_TYPES:
        sources_map = fields.get(ptype)
        if sources_map is None:
            fields[ptype] = {}
            continue
        if not isinstance(sources_map, dict):
            # Saved data may store [name, [sources]] pairs instead of a mapping
            sources_map = fields[ptype] = {name: sources for name, sources in sources_map}
        for name in list(sources_map):
            sources = sources_map[name]
            if isinstance(sources, str):
                sources = [sources]
            if not isinstance(sources, set):
                sources = sources_map[name] = {
                    s for s in (sources or ()) if isinstance(s, str) and s
                }
            if not sources:
                del sources_map[name]


def _seed_optional(holder) -> None:
    fields = _field(holder, "optional_proficiencies")
    for ptype in ALL_TYPES:
        block = fields.get(ptype)
        if isinstance(block, OptionalProficiencies):
            block.recompute()
        elif isinstance(block, Mapping):
            fields[ptype] = OptionalProficiencies.from_mapping(block)
        else:
            fields[ptype] = OptionalProficiencies()


def seed_structures(holder: ProficiencyHolder) -> ProficiencyHolder:
    """Create or repair the three proficiency fields without granting anything."""
    if holder is None:
        raise ValidationFailure("A character is required")

    _seed_proficiencies(holder)
    _seed_sources(holder)
    _seed_optional(holder)
    return holder


def initialize_structures(
    holder: ProficiencyHolder,
    ledger: ProficiencyLedger | None = None,
    config: ProficiencyConfig | None = None,
) -> ProficiencyHolder:
    """Seed/repair *holder*'s proficiency fields and grant the default language.

    The default language ("Common" from "Default") is granted only when the
    languages list is empty. Pass the ledger that will manage *holder* so its
    event listeners see that grant.
    """
    seed_structures(holder)

    if ledger is None:
        ledger = ProficiencyLedger(holder, config)
    else:
        ledger.reindex()

    cfg = ledger.config
    if not holder.proficiencies[ProficiencyType.LANGUAGES]:
        ledger.add_grant(
            ProficiencyType.LANGUAGES, cfg.default_language, cfg.default_language_source
        )
    return holder
