"""Proficiency types, grant origins, and standard 5e catalogs.

Skill → ability mapping and the language/tool lists come from the Player's
Handbook. They are reference catalogs only; rule-book loaders own the full
content and nothing here validates it.
"""

from enum import Enum

from dnd_planner.engine.errors import ValidationFailure
from dnd_planner.models.names import normalize


class ProficiencyType(str, Enum):
    """The six proficiency families tracked per character.

    Values match the keys used in saved characters, so ``savingThrows``
    keeps its camel case.
    """
    ARMOR = "armor"
    WEAPONS = "weapons"
    TOOLS = "tools"
    SKILLS = "skills"
    LANGUAGES = "languages"
    SAVING_THROWS = "savingThrows"

    @classmethod
    def parse(cls, value: "ProficiencyType | str") -> "ProficiencyType":
        """Coerce a member or a (case-insensitive) string value to a member."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = normalize(value)
            for member in cls:
                if normalize(member.value) == key:
                    return member
        raise ValidationFailure(f"Unknown proficiency type: {value!r}")


class Origin(str, Enum):
    """Channels that hand out optional proficiency slots, in aggregate order."""
    RACE = "race"
    CLASS = "class"
    BACKGROUND = "background"

    @property
    def label(self) -> str:
        """Source label used for unconditional grants, e.g. ``"Race"``."""
        return self.value.capitalize()

    @property
    def choice_source(self) -> str:
        """Source label attached to picks made from this origin's slots."""
        return f"{self.label} Choice"

    @classmethod
    def parse(cls, value: "Origin | str") -> "Origin":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = normalize(value)
            for member in cls:
                if member.value == key:
                    return member
        raise ValidationFailure(f"Unknown proficiency origin: {value!r}")


ALL_TYPES: tuple[ProficiencyType, ...] = tuple(ProficiencyType)
ORIGIN_ORDER: tuple[Origin, ...] = (Origin.RACE, Origin.CLASS, Origin.BACKGROUND)


class Ability(str, Enum):
    STRENGTH = "strength"
    DEXTERITY = "dexterity"
    CONSTITUTION = "constitution"
    INTELLIGENCE = "intelligence"
    WISDOM = "wisdom"
    CHARISMA = "charisma"


# Normalized skill name → governing ability
SKILL_ABILITY: dict[str, Ability] = {
    "acrobatics": Ability.DEXTERITY,
    "animal handling": Ability.WISDOM,
    "arcana": Ability.INTELLIGENCE,
    "athletics": Ability.STRENGTH,
    "deception": Ability.CHARISMA,
    "history": Ability.INTELLIGENCE,
    "insight": Ability.WISDOM,
    "intimidation": Ability.CHARISMA,
    "investigation": Ability.INTELLIGENCE,
    "medicine": Ability.WISDOM,
    "nature": Ability.INTELLIGENCE,
    "perception": Ability.WISDOM,
    "performance": Ability.CHARISMA,
    "persuasion": Ability.CHARISMA,
    "religion": Ability.INTELLIGENCE,
    "sleight of hand": Ability.DEXTERITY,
    "stealth": Ability.DEXTERITY,
    "survival": Ability.WISDOM,
}

STANDARD_SKILLS: tuple[str, ...] = (
    "Acrobatics",
    "Animal Handling",
    "Arcana",
    "Athletics",
    "Deception",
    "History",
    "Insight",
    "Intimidation",
    "Investigation",
    "Medicine",
    "Nature",
    "Perception",
    "Performance",
    "Persuasion",
    "Religion",
    "Sleight of Hand",
    "Stealth",
    "Survival",
)

LANGUAGES_STANDARD: tuple[str, ...] = (
    "Common",
    "Dwarvish",
    "Elvish",
    "Giant",
    "Gnomish",
    "Goblin",
    "Halfling",
    "Orc",
)

LANGUAGES_EXOTIC: tuple[str, ...] = (
    "Abyssal",
    "Celestial",
    "Draconic",
    "Deep Speech",
    "Infernal",
    "Primordial",
    "Sylvan",
    "Undercommon",
)

LANGUAGES_SECRET: tuple[str, ...] = ("Druidic", "Thieves' Cant")

STANDARD_TOOLS: tuple[str, ...] = (
    "Alchemist's Supplies",
    "Brewer's Supplies",
    "Calligrapher's Supplies",
    "Carpenter's Tools",
    "Cartographer's Tools",
    "Cobbler's Tools",
    "Cook's Utensils",
    "Disguise Kit",
    "Forgery Kit",
    "Glassblower's Tools",
    "Herbalism Kit",
    "Jeweler's Tools",
    "Leatherworker's Tools",
    "Mason's Tools",
    "Navigator's Tools",
    "Painter's Supplies",
    "Poisoner's Kit",
    "Potter's Tools",
    "Smith's Tools",
    "Thieves' Tools",
    "Tinker's Tools",
    "Weaver's Tools",
    "Woodcarver's Tools",
)


def _in_catalog(name: str, catalog: tuple[str, ...]) -> bool:
    key = normalize(name)
    return bool(key) and any(normalize(entry) == key for entry in catalog)


def is_standard_skill(name: str) -> bool:
    return normalize(name) in SKILL_ABILITY


def is_standard_language(name: str) -> bool:
    return _in_catalog(name, LANGUAGES_STANDARD + LANGUAGES_EXOTIC + LANGUAGES_SECRET)


def is_standard_tool(name: str) -> bool:
    return _in_catalog(name, STANDARD_TOOLS)
