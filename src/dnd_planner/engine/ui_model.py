"""UI-facing adapter over ProficiencyEngine for the proficiencies screen.

This module intentionally contains no GUI code. It provides stable, testable
data shapes that any UI toolkit can render.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from dnd_planner.engine.proficiency_engine import ProficiencyEngine
from dnd_planner.models.constants import ALL_TYPES, ORIGIN_ORDER, Origin, ProficiencyType
from dnd_planner.models.names import normalize


@dataclass(frozen=True, slots=True)
class ProficiencyRow:
    """A listed proficiency, with enough info to explain or remove it."""

    type: ProficiencyType
    name: str
    sources: tuple[str, ...]
    from_choice_only: bool

    @property
    def label(self) -> str:
        return f"{self.name} ({', '.join(self.sources)})"


@dataclass(frozen=True, slots=True)
class AllocationView:
    """Optional-slot state for one origin (or the aggregate when origin is None)."""

    type: ProficiencyType
    origin: Origin | None
    allowed: int
    selected: tuple[str, ...]
    available: tuple[str, ...]
    remaining: int


@dataclass(frozen=True, slots=True)
class UiDiagnostic:
    """UI-facing warning about allocation data the engine keeps but can't vouch for."""

    severity: Literal["info", "warning", "error"]
    code: str
    message: str
    type: ProficiencyType | None = None
    origin: Origin | None = None


class ProficiencyUiModel:
    """Read/write adapter for UI operations over a ProficiencyEngine."""

    __slots__ = ("_engine",)

    def __init__(self, engine: ProficiencyEngine) -> None:
        self._engine = engine

    def rows(self, ptype: ProficiencyType | str) -> list[ProficiencyRow]:
        ptype = ProficiencyType.parse(ptype)
        is_choice = self._engine.config.is_choice_source
        result: list[ProficiencyRow] = []
        for name, sources in self._engine.grants_with_sources(ptype):
            result.append(ProficiencyRow(
                type=ptype,
                name=name,
                sources=tuple(sorted(sources)),
                from_choice_only=bool(sources) and all(is_choice(s) for s in sources),
            ))
        return result

    def sheet(self) -> dict[ProficiencyType, list[ProficiencyRow]]:
        """All six types, in declaration order."""
        return {ptype: self.rows(ptype) for ptype in ALL_TYPES}

    def search_rows(self, query: str) -> list[ProficiencyRow]:
        q = normalize(query)
        rows = [row for rows in self.sheet().values() for row in rows]
        if not q:
            return rows
        return [row for row in rows if q in normalize(row.name)]

    def remove_row(self, row: ProficiencyRow) -> bool:
        """Undo a pick shown in the list. Fixed grants can't be removed here."""
        if not row.from_choice_only:
            return False
        removed = False
        for origin in ORIGIN_ORDER:
            if origin.choice_source in row.sources:
                removed |= self._engine.deselect_optional(row.type, origin, row.name)
        return removed

    def allocation_view(
        self, ptype: ProficiencyType | str, origin: Origin | str
    ) -> AllocationView:
        ptype = ProficiencyType.parse(ptype)
        origin = Origin.parse(origin)
        config = self._engine.allocation(ptype, origin)
        if config is None:
            return AllocationView(ptype, origin, 0, (), (), 0)
        return AllocationView(
            type=ptype,
            origin=origin,
            allowed=config.allowed,
            selected=tuple(config.selected),
            available=tuple(self._engine.available_options(ptype, origin)),
            remaining=config.remaining,
        )

    def aggregate_view(self, ptype: ProficiencyType | str) -> AllocationView:
        """Combined control: summed slots, union of picks and offers."""
        ptype = ProficiencyType.parse(ptype)
        aggregate = self._engine.aggregate(ptype)
        if aggregate is None:
            return AllocationView(ptype, None, 0, (), (), 0)
        available: list[str] = []
        for origin in ORIGIN_ORDER:
            for name in self._engine.available_options(ptype, origin):
                if name not in available:
                    available.append(name)
        return AllocationView(
            type=ptype,
            origin=None,
            allowed=aggregate.allowed,
            selected=tuple(aggregate.selected),
            available=tuple(available),
            remaining=max(0, aggregate.allowed - len(aggregate.selected)),
        )

    def diagnostics(self) -> list[UiDiagnostic]:
        """Warnings for picks no longer offered and for over-full origins."""
        diagnostics: list[UiDiagnostic] = []
        for ptype in ALL_TYPES:
            aggregate = self._engine.aggregate(ptype)
            if aggregate is None:
                continue
            for origin, config in aggregate.configs():
                for name in config.selected:
                    if config.find_option(name) is None:
                        diagnostics.append(UiDiagnostic(
                            severity="warning",
                            code="optional_pick_not_offered",
                            message=(
                                f"{name} is still selected for {origin.value} "
                                f"{ptype.value} but is no longer an option."
                            ),
                            type=ptype,
                            origin=origin,
                        ))
                if len(config.selected) > config.allowed:
                    diagnostics.append(UiDiagnostic(
                        severity="warning",
                        code="optional_over_capacity",
                        message=(
                            f"{origin.value} {ptype.value}: {len(config.selected)} "
                            f"selected but only {config.allowed} allowed."
                        ),
                        type=ptype,
                        origin=origin,
                    ))
        return diagnostics
