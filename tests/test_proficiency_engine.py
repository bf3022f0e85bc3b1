"""Tests for the ProficiencyEngine facade: full build flows end to end."""

import pytest

from dnd_planner.engine.errors import NotConfiguredFailure, ValidationFailure
from dnd_planner.engine.events import EventBus, ProficiencyEventName
from dnd_planner.engine.proficiency_config import ProficiencyConfig
from dnd_planner.engine.proficiency_engine import ProficiencyEngine
from dnd_planner.models.character import Character
from dnd_planner.models.constants import ALL_TYPES, Ability, Origin, ProficiencyType


PT = ProficiencyType


def _engine(**kwargs) -> ProficiencyEngine:
    return ProficiencyEngine.new_character(**kwargs)


# ===========================================================================
# Factories
# ===========================================================================


class TestFactories:
    def test_new_character_is_seeded(self):
        engine = _engine(name="Mira", level=3)
        assert engine.character.name == "Mira"
        assert engine.character.level == 3
        assert set(engine.character.proficiencies) == set(ALL_TYPES)
        assert engine.grant_sources(PT.LANGUAGES, "Common") == {"Default"}

    def test_for_character_reports_default_grant(self):
        events = EventBus()
        received = []
        events.on(ProficiencyEventName.ADDED, received.append)
        character = Character()

        engine = ProficiencyEngine.for_character(character, events=events)

        assert engine.events is events
        assert engine.character is character
        assert [n.name for n in received] == ["Common"]

    def test_for_character_keeps_existing_data(self):
        character = Character(
            proficiencies={"skills": ["Arcana"], "languages": ["Elvish"]},
            proficiency_sources={"skills": {"Arcana": {"Class"}}, "languages": {"Elvish": {"Race"}}},
        )
        engine = ProficiencyEngine.for_character(character)
        assert engine.has_grant(PT.SKILLS, "arcana")
        assert not engine.has_grant(PT.LANGUAGES, "Common")

    def test_for_character_repairs_missing_fields(self):
        character = Character()
        character.proficiency_sources = None
        character.optional_proficiencies = None

        engine = ProficiencyEngine.for_character(character)

        assert set(character.proficiency_sources) == set(ALL_TYPES)
        assert engine.grant_sources(PT.LANGUAGES, "Common") == {"Default"}
        engine.set_allocation(PT.SKILLS, Origin.CLASS, 1, ["Arcana"])
        assert engine.select_optional(PT.SKILLS, Origin.CLASS, "Arcana")

    def test_engines_do_not_share_state(self):
        a, b = _engine(), _engine()
        a.add_grant(PT.SKILLS, "Arcana", "Class")
        assert not b.has_grant(PT.SKILLS, "Arcana")
        assert a.events is not b.events

    def test_config_flows_to_ledger(self):
        config = ProficiencyConfig(default_language="Dwarvish")
        engine = _engine(config=config)
        assert engine.config is config
        assert engine.ledger.config is config
        assert engine.has_grant(PT.LANGUAGES, "Dwarvish")


# ===========================================================================
# Grant helpers
# ===========================================================================


class TestApplyGrants:
    def test_reports_newly_listed(self):
        engine = _engine()
        engine.add_grant(PT.TOOLS, "Thieves' Tools", "Class")
        added = engine.apply_grants("Background", {
            "tools": ["Thieves' Tools", "Disguise Kit"],
            PT.SKILLS: ["Deception"],
        })
        assert added == {PT.TOOLS: ["Disguise Kit"], PT.SKILLS: ["Deception"]}
        assert engine.grant_sources(PT.TOOLS, "Thieves' Tools") == {"Class", "Background"}

    def test_unknown_type_skipped(self):
        engine = _engine()
        assert engine.apply_grants("Feat", {"feats": ["Alert"]}) == {}

    def test_replace_source_swaps_grants(self):
        engine = _engine()
        engine.apply_grants("Race", {PT.LANGUAGES: ["Elvish"], PT.WEAPONS: ["Longswords"]})
        engine.add_grant(PT.LANGUAGES, "Elvish", "Background")

        engine.replace_source("Race", {PT.LANGUAGES: ["Dwarvish"], PT.TOOLS: ["Smith's Tools"]})

        assert not engine.has_grant(PT.WEAPONS, "Longswords")
        assert engine.grant_sources(PT.LANGUAGES, "Elvish") == {"Background"}
        assert engine.has_grant(PT.LANGUAGES, "Dwarvish")
        assert engine.has_grant(PT.TOOLS, "Smith's Tools")

    def test_replace_source_refunds_against_new_grants(self):
        engine = _engine()
        engine.apply_grants("Race", {PT.SKILLS: ["Perception"]})
        engine.set_allocation(PT.SKILLS, Origin.CLASS, 2, ["Perception", "Stealth", "Arcana"])
        engine.select_optional(PT.SKILLS, Origin.CLASS, "Stealth")

        engine.replace_source("Race", {PT.SKILLS: ["Stealth"]})

        assert not engine.has_grant(PT.SKILLS, "Perception")
        assert engine.allocation(PT.SKILLS, Origin.CLASS).selected == []
        assert engine.grant_sources(PT.SKILLS, "Stealth") == {"Race"}
        assert engine.available_options(PT.SKILLS, Origin.CLASS) == ["Perception", "Arcana"]


# ===========================================================================
# Whole build flows
# ===========================================================================


class TestBuildFlow:
    def test_class_change_clears_picks(self):
        engine = _engine()
        engine.apply_grants("Class", {PT.ARMOR: ["Light Armor"], PT.SAVING_THROWS: ["wisdom"]})
        engine.set_allocation(PT.SKILLS, Origin.CLASS, 2, ["Arcana", "History", "Insight"])
        engine.select_optional(PT.SKILLS, Origin.CLASS, "Arcana")
        engine.select_optional(PT.SKILLS, Origin.CLASS, "Insight")

        engine.clear_allocation(PT.SKILLS, Origin.CLASS)
        engine.remove_grants_by_source("Class")

        for ptype in (PT.ARMOR, PT.SKILLS, PT.SAVING_THROWS):
            assert engine.ledger.listed(ptype) == []
        assert engine.aggregate(PT.SKILLS).allowed == 0

    def test_pick_survives_fixed_grant_removal(self):
        engine = _engine()
        engine.set_allocation(PT.TOOLS, Origin.BACKGROUND, 1, ["Disguise Kit"])
        engine.select_optional(PT.TOOLS, Origin.BACKGROUND, "Disguise Kit")
        engine.add_grant(PT.TOOLS, "Disguise Kit", "Class")

        engine.remove_grants_by_source("Class")

        assert engine.grant_sources(PT.TOOLS, "Disguise Kit") == {"Background Choice"}

    def test_check_selection_passthrough(self):
        engine = _engine()
        failure = engine.check_selection(PT.WEAPONS, Origin.CLASS, "Longbows")
        assert isinstance(failure, NotConfiguredFailure)

    def test_strict_identifiers(self):
        engine = _engine()
        with pytest.raises(ValidationFailure):
            engine.set_allocation("spells", Origin.CLASS, 1, ["Fire Bolt"])

    def test_retract_grant_passthrough(self):
        engine = _engine()
        engine.add_grant(PT.ARMOR, "Shields", "Class")
        assert engine.retract_grant(PT.ARMOR, "shields", "Class") is True
        assert not engine.has_grant(PT.ARMOR, "Shields")


# ===========================================================================
# Derived numbers
# ===========================================================================


class TestDerived:
    def test_skill_modifier_tracks_grants(self):
        engine = _engine(level=5)
        engine.character.ability_scores[Ability.WISDOM] = 14
        assert engine.skill_modifier("Perception") == 2
        engine.add_grant(PT.SKILLS, "Perception", "Race")
        assert engine.skill_modifier("perception") == 5
        engine.remove_grants_by_source("Race")
        assert engine.skill_modifier("Perception") == 2

    def test_saving_throw_modifier(self):
        engine = _engine(level=17)
        engine.character.ability_scores[Ability.CONSTITUTION] = 12
        engine.add_grant(PT.SAVING_THROWS, "constitution", "Class")
        assert engine.saving_throw_modifier(Ability.CONSTITUTION) == 7

    def test_proficiency_bonus(self):
        assert _engine(level=1).proficiency_bonus() == 2
        assert _engine(level=20).proficiency_bonus() == 6
