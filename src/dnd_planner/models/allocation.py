"""Optional proficiency slots ("choose two skills") per granting origin.

Each proficiency type carries one AllocationConfig per origin plus an
aggregate view (allowed/options/selected) that the UI renders as a single
combined control. The aggregate is derived data: only ``recompute()`` writes
it.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from dnd_planner.models.constants import ORIGIN_ORDER, Origin
from dnd_planner.models.names import normalize, unique_names


@dataclass(slots=True)
class AllocationConfig:
    """Slots granted by one origin for one proficiency type."""

    allowed: int = 0
    options: list[str] = field(default_factory=list)
    selected: list[str] = field(default_factory=list)

    def find_selected(self, name: str) -> str | None:
        """Stored spelling of *name* in ``selected``, or None."""
        key = normalize(name)
        for entry in self.selected:
            if normalize(entry) == key:
                return entry
        return None

    def find_option(self, name: str) -> str | None:
        key = normalize(name)
        for entry in self.options:
            if normalize(entry) == key:
                return entry
        return None

    @property
    def remaining(self) -> int:
        return max(0, self.allowed - len(self.selected))

    def reset(self) -> None:
        self.allowed = 0
        self.options = []
        self.selected = []

    @classmethod
    def from_mapping(cls, raw: Mapping | None) -> AllocationConfig:
        """Build from saved data, filling whatever sub-fields are missing."""
        if not raw:
            return cls()
        allowed = raw.get("allowed")
        return cls(
            allowed=int(allowed) if allowed is not None else 0,
            options=unique_names(raw.get("options") or []),
            selected=unique_names(raw.get("selected") or []),
        )

    def to_dict(self) -> dict:
        return {
            "allowed": self.allowed,
            "options": list(self.options),
            "selected": list(self.selected),
        }


@dataclass(slots=True)
class OptionalProficiencies:
    """Per-type container: aggregate view plus one config per origin.

    ``class_`` carries a trailing underscore because ``class`` is reserved;
    use ``origin_config()`` to address origins generically.
    """

    allowed: int = 0
    options: list[str] = field(default_factory=list)
    selected: list[str] = field(default_factory=list)
    race: AllocationConfig = field(default_factory=AllocationConfig)
    class_: AllocationConfig = field(default_factory=AllocationConfig)
    background: AllocationConfig = field(default_factory=AllocationConfig)

    def origin_config(self, origin: Origin) -> AllocationConfig:
        if origin is Origin.RACE:
            return self.race
        if origin is Origin.CLASS:
            return self.class_
        return self.background

    def configs(self) -> list[tuple[Origin, AllocationConfig]]:
        """Origin configs in aggregate order (race, class, background)."""
        return [(origin, self.origin_config(origin)) for origin in ORIGIN_ORDER]

    def recompute(self) -> None:
        """Rebuild the aggregate: summed allowed, ordered unions of the lists.

        Unions de-duplicate case-insensitively; the first origin (in
        race, class, background order) to mention a name fixes its spelling.
        """
        configs = [cfg for _, cfg in self.configs()]
        self.allowed = sum(cfg.allowed for cfg in configs)
        self.options = unique_names(name for cfg in configs for name in cfg.options)
        self.selected = unique_names(name for cfg in configs for name in cfg.selected)

    @classmethod
    def from_mapping(cls, raw: Mapping | None) -> OptionalProficiencies:
        """Build from saved data; missing origin blocks become empty configs.

        The stored aggregate is ignored and recomputed, since it can never be
        more trustworthy than the origin configs it summarises.
        """
        raw = raw or {}
        result = cls(
            race=AllocationConfig.from_mapping(raw.get("race")),
            class_=AllocationConfig.from_mapping(raw.get("class")),
            background=AllocationConfig.from_mapping(raw.get("background")),
        )
        result.recompute()
        return result

    def to_dict(self) -> dict:
        return {
            "allowed": self.allowed,
            "options": list(self.options),
            "selected": list(self.selected),
            "race": self.race.to_dict(),
            "class": self.class_.to_dict(),
            "background": self.background.to_dict(),
        }
