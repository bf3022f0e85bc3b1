"""Tests for the sourced-grant ledger.

All tests use in-memory characters; nothing touches rule-book data.
"""

import logging

import pytest

from dnd_planner.engine.proficiency_ledger import ProficiencyLedger
from dnd_planner.engine.structures import initialize_structures
from dnd_planner.models.character import Character
from dnd_planner.models.constants import ProficiencyType


PT = ProficiencyType


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _ledger(character: Character | None = None) -> ProficiencyLedger:
    character = character or Character()
    ledger = ProficiencyLedger(character)
    initialize_structures(character, ledger)
    return ledger


# ===========================================================================
# add_grant
# ===========================================================================


class TestAddGrant:
    def test_first_grant_is_new(self):
        ledger = _ledger()
        assert ledger.add_grant(PT.SKILLS, "Stealth", "Race") is True
        assert ledger.listed(PT.SKILLS) == ["Stealth"]
        assert ledger.grant_sources(PT.SKILLS, "Stealth") == {"Race"}

    def test_second_source_is_not_new(self):
        ledger = _ledger()
        ledger.add_grant(PT.ARMOR, "Light Armor", "Class")
        assert ledger.add_grant(PT.ARMOR, "Light Armor", "Race") is False
        assert ledger.listed(PT.ARMOR) == ["Light Armor"]
        assert ledger.grant_sources(PT.ARMOR, "Light Armor") == {"Class", "Race"}

    def test_different_casing_collapses_to_first_seen(self):
        ledger = _ledger()
        assert ledger.add_grant(PT.TOOLS, "Thieves' Tools", "Class") is True
        assert ledger.add_grant(PT.TOOLS, "THIEVES' TOOLS", "Background") is False
        assert ledger.listed(PT.TOOLS) == ["Thieves' Tools"]
        assert ledger.grant_sources(PT.TOOLS, "thieves' tools") == {"Class", "Background"}

    def test_diacritics_are_folded(self):
        ledger = _ledger()
        ledger.add_grant(PT.LANGUAGES, "Élvish", "Race")
        assert ledger.add_grant(PT.LANGUAGES, "elvish", "Background") is False
        assert ledger.listed(PT.LANGUAGES) == ["Common", "Élvish"]

    def test_same_source_twice_is_a_noop(self):
        ledger = _ledger()
        ledger.add_grant(PT.WEAPONS, "Longswords", "Race")
        ledger.add_grant(PT.WEAPONS, "Longswords", "Race")
        assert ledger.listed(PT.WEAPONS) == ["Longswords"]
        assert ledger.grant_sources(PT.WEAPONS, "Longswords") == {"Race"}

    def test_string_type_accepted(self):
        ledger = _ledger()
        assert ledger.add_grant("savingThrows", "dexterity", "Class") is True
        assert ledger.has_grant(PT.SAVING_THROWS, "Dexterity")

    def test_name_stored_as_given(self):
        ledger = _ledger()
        ledger.add_grant(PT.SKILLS, "sleight of hand", "Race")
        ledger.add_grant(PT.SKILLS, "Sleight of Hand", "Class")
        assert ledger.listed(PT.SKILLS) == ["sleight of hand"]


class TestAddGrantRejectsBadInput:
    @pytest.mark.parametrize(
        "ptype, name, source",
        [
            ("bogus", "Stealth", "Race"),
            (None, "Stealth", "Race"),
            (PT.SKILLS, "", "Race"),
            (PT.SKILLS, "   ", "Race"),
            (PT.SKILLS, None, "Race"),
            (PT.SKILLS, "Stealth", ""),
            (PT.SKILLS, "Stealth", None),
        ],
    )
    def test_returns_false_without_mutation(self, ptype, name, source):
        ledger = _ledger()
        assert ledger.add_grant(ptype, name, source) is False
        assert ledger.listed(PT.SKILLS) == []

    def test_logs_a_warning(self, caplog):
        ledger = _ledger()
        with caplog.at_level(logging.WARNING):
            ledger.add_grant("bogus", "Stealth", "Race")
        assert "Unknown proficiency type" in caplog.text


# ===========================================================================
# remove_grants_by_source / retract_grant
# ===========================================================================


class TestRemoveGrantsBySource:
    def test_only_source_fully_retracts(self):
        ledger = _ledger()
        ledger.add_grant(PT.SKILLS, "Perception", "Race")
        removed = ledger.remove_grants_by_source("Race")
        assert removed == {PT.SKILLS: ["Perception"]}
        assert not ledger.has_grant(PT.SKILLS, "Perception")
        assert ledger.grant_sources(PT.SKILLS, "Perception") == set()

    def test_other_source_keeps_entry(self):
        ledger = _ledger()
        ledger.add_grant(PT.SKILLS, "Perception", "Race")
        ledger.add_grant(PT.SKILLS, "perception", "Class")
        removed = ledger.remove_grants_by_source("Race")
        assert removed == {PT.SKILLS: ["Perception"]}
        assert ledger.has_grant(PT.SKILLS, "Perception")
        assert ledger.grant_sources(PT.SKILLS, "Perception") == {"Class"}

    def test_multi_type_retraction(self):
        ledger = _ledger()
        ledger.add_grant(PT.ARMOR, "Light Armor", "Race")
        ledger.add_grant(PT.ARMOR, "Medium Armor", "Race")
        ledger.add_grant(PT.WEAPONS, "Longswords", "Race")
        ledger.add_grant(PT.WEAPONS, "Shortbows", "Class")
        ledger.add_grant(PT.SKILLS, "Perception", "Race")

        removed = ledger.remove_grants_by_source("Race")

        assert removed == {
            PT.ARMOR: ["Light Armor", "Medium Armor"],
            PT.WEAPONS: ["Longswords"],
            PT.SKILLS: ["Perception"],
        }
        assert ledger.listed(PT.ARMOR) == []
        assert ledger.listed(PT.WEAPONS) == ["Shortbows"]

    def test_second_call_is_empty(self):
        ledger = _ledger()
        ledger.add_grant(PT.TOOLS, "Smith's Tools", "Race")
        ledger.add_grant(PT.TOOLS, "Smith's Tools", "Class")
        ledger.remove_grants_by_source("Race")
        before = (ledger.listed(PT.TOOLS), ledger.grant_sources(PT.TOOLS, "Smith's Tools"))
        assert ledger.remove_grants_by_source("Race") == {}
        after = (ledger.listed(PT.TOOLS), ledger.grant_sources(PT.TOOLS, "Smith's Tools"))
        assert before == after

    def test_unknown_source_is_empty(self):
        ledger = _ledger()
        assert ledger.remove_grants_by_source("Feat") == {}
        assert ledger.listed(PT.LANGUAGES) == ["Common"]

    @pytest.mark.parametrize("source", ["", "  ", None])
    def test_missing_source_returns_empty(self, source):
        ledger = _ledger()
        assert ledger.remove_grants_by_source(source) == {}
        assert ledger.listed(PT.LANGUAGES) == ["Common"]

    def test_listed_order_preserved_after_removal(self):
        ledger = _ledger()
        for name in ("Arcana", "History", "Nature"):
            ledger.add_grant(PT.SKILLS, name, "Class")
        ledger.add_grant(PT.SKILLS, "History", "Race")
        ledger.remove_grants_by_source("Class")
        assert ledger.listed(PT.SKILLS) == ["History"]


class TestRetractGrant:
    def test_retracts_one_source(self):
        ledger = _ledger()
        ledger.add_grant(PT.SKILLS, "Arcana", "Class")
        ledger.add_grant(PT.SKILLS, "Arcana", "Class Choice")
        assert ledger.retract_grant(PT.SKILLS, "arcana", "Class Choice") is True
        assert ledger.grant_sources(PT.SKILLS, "Arcana") == {"Class"}

    def test_last_source_deletes_entry(self):
        ledger = _ledger()
        ledger.add_grant(PT.SKILLS, "Arcana", "Class Choice")
        assert ledger.retract_grant(PT.SKILLS, "Arcana", "Class Choice") is True
        assert not ledger.has_grant(PT.SKILLS, "Arcana")

    def test_missing_source_or_name(self):
        ledger = _ledger()
        ledger.add_grant(PT.SKILLS, "Arcana", "Class")
        assert ledger.retract_grant(PT.SKILLS, "Arcana", "Race") is False
        assert ledger.retract_grant(PT.SKILLS, "History", "Class") is False
        assert ledger.retract_grant("bogus", "Arcana", "Class") is False


# ===========================================================================
# Queries
# ===========================================================================


class TestQueries:
    def test_has_grant_is_case_insensitive(self):
        ledger = _ledger()
        ledger.add_grant(PT.SKILLS, "Animal Handling", "Background")
        assert ledger.has_grant(PT.SKILLS, "animal handling")
        assert ledger.has_grant("skills", " ANIMAL HANDLING ")
        assert not ledger.has_grant(PT.TOOLS, "Animal Handling")

    def test_has_grant_bad_input(self):
        ledger = _ledger()
        assert ledger.has_grant("bogus", "Common") is False
        assert ledger.has_grant(PT.LANGUAGES, "") is False

    def test_grant_sources_returns_copy(self):
        ledger = _ledger()
        ledger.add_grant(PT.SKILLS, "Insight", "Race")
        ledger.grant_sources(PT.SKILLS, "Insight").add("Tampered")
        assert ledger.grant_sources(PT.SKILLS, "Insight") == {"Race"}

    def test_grants_with_sources_in_display_order(self):
        ledger = _ledger()
        ledger.add_grant(PT.WEAPONS, "Rapiers", "Class")
        ledger.add_grant(PT.WEAPONS, "Hand Crossbows", "Class")
        ledger.add_grant(PT.WEAPONS, "rapiers", "Race")
        assert ledger.grants_with_sources(PT.WEAPONS) == [
            ("Rapiers", frozenset({"Class", "Race"})),
            ("Hand Crossbows", frozenset({"Class"})),
        ]

    def test_has_non_choice_grant(self):
        ledger = _ledger()
        ledger.add_grant(PT.TOOLS, "Disguise Kit", "Background Choice")
        assert not ledger.has_non_choice_grant(PT.TOOLS, "Disguise Kit")
        ledger.add_grant(PT.TOOLS, "Disguise Kit", "Class")
        assert ledger.has_non_choice_grant(PT.TOOLS, "Disguise Kit")


# ===========================================================================
# Legacy / externally written data
# ===========================================================================


class TestLegacyData:
    def test_existing_casing_is_authoritative(self):
        character = Character()
        character.proficiencies = {PT.SKILLS: ["stealth"]}
        character.proficiency_sources = {PT.SKILLS: {"stealth": {"Race"}}}
        ledger = _ledger(character)

        assert ledger.add_grant(PT.SKILLS, "Stealth", "Class") is False
        assert character.proficiencies[PT.SKILLS] == ["stealth"]
        assert character.proficiency_sources[PT.SKILLS] == {"stealth": {"Race", "Class"}}

    def test_source_key_casing_differs_from_list(self):
        character = Character()
        character.proficiencies = {PT.SKILLS: ["Stealth"]}
        character.proficiency_sources = {PT.SKILLS: {"stealth": {"Race"}}}
        ledger = _ledger(character)

        assert ledger.grant_sources(PT.SKILLS, "Stealth") == {"Race"}
        ledger.remove_grants_by_source("Race")
        assert character.proficiencies[PT.SKILLS] == []
        assert character.proficiency_sources[PT.SKILLS] == {}

    def test_names_appended_outside_the_ledger_are_found(self):
        ledger = _ledger()
        ledger.holder.proficiencies[PT.SKILLS].append("Arcana")
        ledger.holder.proficiency_sources[PT.SKILLS]["Arcana"] = {"Manual"}
        assert ledger.has_grant(PT.SKILLS, "arcana")
        assert ledger.add_grant(PT.SKILLS, "ARCANA", "Class") is False
        assert ledger.listed(PT.SKILLS) == ["Arcana"]

    def test_names_removed_outside_the_ledger_are_not_found(self):
        ledger = _ledger()
        ledger.add_grant(PT.SKILLS, "Arcana", "Class")
        ledger.holder.proficiencies[PT.SKILLS].clear()
        ledger.holder.proficiency_sources[PT.SKILLS].clear()
        assert not ledger.has_grant(PT.SKILLS, "Arcana")
        assert ledger.add_grant(PT.SKILLS, "arcana", "Race") is True
        assert ledger.listed(PT.SKILLS) == ["arcana"]

    def test_works_on_uninitialized_character(self):
        ledger = ProficiencyLedger(Character())
        assert ledger.add_grant(PT.ARMOR, "Shields", "Class") is True
        assert ledger.listed(PT.ARMOR) == ["Shields"]
