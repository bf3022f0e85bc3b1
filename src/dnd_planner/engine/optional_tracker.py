"""Optional proficiency slots per (type, origin), and their aggregate view.

Each origin (race, class, background) can offer "choose N from this list"
slots for a proficiency type. Picks are recorded twice: in the origin's
``selected`` list and as an ``"<Origin> Choice"`` grant in the ledger.

Identifiers are checked strictly: an unknown type or origin, an empty name,
or a negative slot count raises ``ValidationFailure``. Ordinary "no"
answers (slots full, already picked, not offered) are logged and returned
as False, since the UI shows those as feedback rather than errors.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from dnd_planner.engine.errors import (
    LimitExceededFailure,
    NotAvailableFailure,
    NotConfiguredFailure,
    ProficiencyError,
    ValidationFailure,
)
from dnd_planner.engine.events import ProficiencyEventName, ProficiencyNotice
from dnd_planner.engine.proficiency_ledger import ProficiencyLedger
from dnd_planner.models.allocation import AllocationConfig, OptionalProficiencies
from dnd_planner.models.constants import Origin, ProficiencyType
from dnd_planner.models.names import normalize, unique_names


logger = logging.getLogger(__name__)


class OptionalAllocationTracker:
    """Configures, fills, and empties optional slots for one character."""

    __slots__ = ("_ledger",)

    def __init__(self, ledger: ProficiencyLedger) -> None:
        self._ledger = ledger

    # --- Helpers -----------------------------------------------------------

    @property
    def _optional(self) -> dict[ProficiencyType, OptionalProficiencies]:
        return self._ledger.holder.optional_proficiencies

    @staticmethod
    def _require_name(name: str) -> None:
        if not normalize(name):
            raise ValidationFailure(f"A proficiency name is required, got {name!r}")

    def _emit(self, event: ProficiencyEventName, **payload) -> None:
        events = self._ledger.events
        if events is not None:
            events.emit(
                ProficiencyNotice(event=event, character=self._ledger.holder, **payload)
            )

    # --- Configuration -----------------------------------------------------

    def set_allocation(
        self,
        ptype: ProficiencyType | str,
        origin: Origin | str,
        allowed: int,
        options: Iterable[str],
    ) -> None:
        """Replace an origin's slot count and candidate list.

        Existing picks are kept even if *options* no longer lists them; only
        picks beyond the new *allowed* count are dropped.
        """
        ptype = ProficiencyType.parse(ptype)
        origin = Origin.parse(origin)
        if isinstance(allowed, bool) or not isinstance(allowed, int) or allowed < 0:
            raise ValidationFailure(f"Allowed count must be an int >= 0, got {allowed!r}")
        if isinstance(options, str):
            raise ValidationFailure("Options must be a list of names, not a string")

        optional = self._optional.setdefault(ptype, OptionalProficiencies())
        config = optional.origin_config(origin)
        config.allowed = allowed
        config.options = unique_names(options)

        # Fewer slots than picks: the latest picks go back.
        overflow = config.selected[allowed:]
        if overflow:
            del config.selected[allowed:]
            for name in overflow:
                self._ledger.retract_grant(ptype, name, origin.choice_source)
            logger.warning(
                "%s %s reduced to %d slot(s); dropped %s",
                origin.value, ptype.value, allowed, ", ".join(overflow),
            )
        optional.recompute()

        stale = [name for name in config.selected if config.find_option(name) is None]
        if stale:
            logger.warning(
                "%s %s picks no longer offered: %s", origin.value, ptype.value, ", ".join(stale)
            )
        logger.debug(
            "Configured %s %s: %d of %d option(s)",
            origin.value, ptype.value, allowed, len(config.options),
        )
        self._emit(
            ProficiencyEventName.OPTIONAL_CONFIGURED,
            type=ptype,
            origin=origin,
            allowed=allowed,
            options=tuple(config.options),
        )

    def clear_allocation(self, ptype: ProficiencyType | str, origin: Origin | str) -> None:
        """Retract every pick from *origin* and reset its slots to zero."""
        ptype = ProficiencyType.parse(ptype)
        origin = Origin.parse(origin)
        optional = self._optional.get(ptype)
        if optional is None:
            logger.debug("Nothing to clear for %s %s", origin.value, ptype.value)
            return

        config = optional.origin_config(origin)
        for name in list(config.selected):
            self._ledger.retract_grant(ptype, name, origin.choice_source)
        config.reset()
        optional.recompute()
        self._emit(ProficiencyEventName.OPTIONAL_CLEARED, type=ptype, origin=origin)

    # --- Selection ---------------------------------------------------------

    def check_selection(
        self, ptype: ProficiencyType | str, origin: Origin | str, name: str
    ) -> ProficiencyError | None:
        """The failure ``select_optional`` would hit, or None if it would succeed.

        The failure is returned, not raised.
        """
        ptype = ProficiencyType.parse(ptype)
        origin = Origin.parse(origin)
        self._require_name(name)

        optional = self._optional.get(ptype)
        config = optional.origin_config(origin) if optional is not None else None
        if config is None or (config.allowed == 0 and not config.options):
            return NotConfiguredFailure(
                f"No optional {ptype.value} configured for {origin.value}"
            )
        if config.find_selected(name) is not None:
            return NotAvailableFailure(f"{name} is already selected for {origin.value}")
        if len(config.selected) >= config.allowed:
            return LimitExceededFailure(
                f"All {config.allowed} optional {ptype.value} for {origin.value} are used"
            )
        if config.find_option(name) is None:
            return NotAvailableFailure(
                f"{name} is not an option for {origin.value} {ptype.value}"
            )
        return None

    def select_optional(
        self, ptype: ProficiencyType | str, origin: Origin | str, name: str
    ) -> bool:
        """Spend one of *origin*'s slots on *name*. Returns False if refused."""
        failure = self.check_selection(ptype, origin, name)
        if failure is not None:
            logger.warning("Cannot select %r: %s", name, failure)
            return False

        ptype = ProficiencyType.parse(ptype)
        origin = Origin.parse(origin)
        optional = self._optional[ptype]
        config = optional.origin_config(origin)
        stored = config.find_option(name)
        config.selected.append(stored)
        self._ledger.add_grant(ptype, stored, origin.choice_source)
        optional.recompute()
        self._emit(
            ProficiencyEventName.OPTIONAL_SELECTED, type=ptype, origin=origin, name=stored
        )
        return True

    def deselect_optional(
        self, ptype: ProficiencyType | str, origin: Origin | str, name: str
    ) -> bool:
        """Give back a slot. Only the origin's choice grant is retracted."""
        ptype = ProficiencyType.parse(ptype)
        origin = Origin.parse(origin)
        self._require_name(name)

        optional = self._optional.get(ptype)
        if optional is None:
            logger.warning(
                "Cannot deselect %r: no optional %s configured", name, ptype.value
            )
            return False
        config = optional.origin_config(origin)
        match = config.find_selected(name)
        if match is None:
            logger.warning(
                "Cannot deselect %r: not selected for %s %s", name, origin.value, ptype.value
            )
            return False

        config.selected.remove(match)
        self._ledger.retract_grant(ptype, match, origin.choice_source)
        optional.recompute()
        self._emit(
            ProficiencyEventName.OPTIONAL_DESELECTED, type=ptype, origin=origin, name=match
        )
        return True

    # --- Queries -----------------------------------------------------------

    def available_options(
        self, ptype: ProficiencyType | str, origin: Origin | str
    ) -> list[str]:
        """Options still worth offering: not picked here, not already free."""
        ptype = ProficiencyType.parse(ptype)
        origin = Origin.parse(origin)
        optional = self._optional.get(ptype)
        if optional is None:
            return []
        config = optional.origin_config(origin)
        return [
            option
            for option in config.options
            if config.find_selected(option) is None
            and not self._ledger.has_non_choice_grant(ptype, option)
        ]

    def allocation(
        self, ptype: ProficiencyType | str, origin: Origin | str
    ) -> AllocationConfig | None:
        optional = self._optional.get(ProficiencyType.parse(ptype))
        if optional is None:
            return None
        return optional.origin_config(Origin.parse(origin))

    def aggregate(self, ptype: ProficiencyType | str) -> OptionalProficiencies | None:
        return self._optional.get(ProficiencyType.parse(ptype))

    def remaining(self, ptype: ProficiencyType | str, origin: Origin | str) -> int:
        config = self.allocation(ptype, origin)
        return config.remaining if config is not None else 0

    def recompute_aggregate(self, ptype: ProficiencyType | str) -> None:
        optional = self._optional.get(ProficiencyType.parse(ptype))
        if optional is not None:
            optional.recompute()
