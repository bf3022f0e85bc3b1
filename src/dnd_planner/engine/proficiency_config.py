"""Configuration knobs for the proficiency engine.

Defaults match the 5e character builder: picks are tagged "<Origin> Choice",
every new character speaks Common, and only skills take part in automatic
refunds.
"""

from dataclasses import dataclass

from dnd_planner.models.constants import ProficiencyType


@dataclass(slots=True)
class ProficiencyConfig:
    """Tuneable labels and policies that aren't part of rule-book data."""

    choice_marker: str = "Choice"            # Substring marking a paid pick
    default_language: str = "Common"
    default_language_source: str = "Default"
    refund_types: frozenset[ProficiencyType] = frozenset({ProficiencyType.SKILLS})

    def is_choice_source(self, source: str) -> bool:
        return self.choice_marker in source
