"""Automatic refund of optional picks that became free grants.

If a player spent a race slot on Stealth and then picks a class that grants
Stealth outright, the race slot should come back. The ledger calls
``RefundReconciler.reconcile`` after every non-choice grant of a refundable
type, and the refund (including the aggregate recompute) finishes before
the grant call returns.

The origin skip compares the granting source literally against "Race",
"Class" and "Background". Other labels, such as "Subrace" or "race", skip
nothing, so a subrace grant refunds a race pick as well.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from dnd_planner.engine.events import ProficiencyEventName, ProficiencyNotice
from dnd_planner.models.constants import Origin, ProficiencyType

if TYPE_CHECKING:
    from dnd_planner.engine.proficiency_ledger import ProficiencyLedger


logger = logging.getLogger(__name__)


class RefundReconciler:
    """Reverses optional picks made redundant by an unconditional grant."""

    __slots__ = ("_ledger",)

    def __init__(self, ledger: ProficiencyLedger) -> None:
        self._ledger = ledger

    def reconcile(self, ptype: ProficiencyType, name: str, source: str) -> tuple[Origin, ...]:
        """Refund *name* from every origin except the one *source* names.

        Returns the origins whose pick was refunded (empty if none).
        """
        ledger = self._ledger
        optional = ledger.holder.optional_proficiencies.get(ptype)
        if optional is None:
            return ()

        refunded: list[Origin] = []
        for origin, config in optional.configs():
            if source == origin.label:
                continue
            match = config.find_selected(name)
            if match is None:
                continue
            config.selected.remove(match)
            ledger.retract_grant(ptype, match, origin.choice_source)
            refunded.append(origin)

        if not refunded:
            return ()

        optional.recompute()
        logger.info(
            "Refunded %s pick %r from %s (now granted by %s)",
            ptype.value, name, ", ".join(o.value for o in refunded), source,
        )
        if ledger.events is not None:
            ledger.events.emit(
                ProficiencyNotice(
                    event=ProficiencyEventName.REFUNDED,
                    character=ledger.holder,
                    type=ptype,
                    name=name,
                    source=source,
                    refunded_origins=tuple(refunded),
                )
            )
        return tuple(refunded)
