"""Derived numbers that depend on proficiencies.

Formulas follow the 5e Player's Handbook:
  - proficiency bonus: +2 at levels 1-4, +1 every four levels after
  - ability modifier: (score - 10) // 2, rounding toward negative infinity
  - skill check: governing ability modifier, plus the proficiency bonus if
    the character is proficient in the skill
"""

from dnd_planner.models.character import Character
from dnd_planner.models.constants import SKILL_ABILITY, Ability, ProficiencyType
from dnd_planner.models.names import normalize


MIN_LEVEL = 1
MAX_LEVEL = 20


def proficiency_bonus(level: int) -> int:
    """Bonus for a total character level in 1..20."""
    if level < MIN_LEVEL or level > MAX_LEVEL:
        raise ValueError(f"Level must be {MIN_LEVEL}..{MAX_LEVEL}, got {level}")
    return (level - 1) // 4 + 2


def ability_modifier(score: int) -> int:
    return (score - 10) // 2


def skill_ability(skill: str) -> Ability | None:
    """Governing ability for a standard skill name, any casing."""
    return SKILL_ABILITY.get(normalize(skill))


def is_proficient(character: Character, ptype: ProficiencyType, name: str) -> bool:
    key = normalize(name)
    if not key:
        return False
    listed = character.proficiencies.get(ptype, [])
    return any(normalize(entry) == key for entry in listed)


def skill_modifier(character: Character, skill: str) -> int:
    """Total check modifier; 0 for names that aren't standard skills."""
    ability = skill_ability(skill)
    if ability is None:
        return 0
    modifier = ability_modifier(character.ability_score(ability))
    if is_proficient(character, ProficiencyType.SKILLS, skill):
        modifier += proficiency_bonus(character.level)
    return modifier


def saving_throw_modifier(character: Character, ability: Ability) -> int:
    modifier = ability_modifier(character.ability_score(ability))
    if is_proficient(character, ProficiencyType.SAVING_THROWS, ability.value):
        modifier += proficiency_bonus(character.level)
    return modifier


def format_modifier(value: int) -> str:
    """``2`` → ``"+2"``, ``0`` → ``"+0"``, ``-1`` → ``"-1"``."""
    return f"+{value}" if value >= 0 else str(value)
