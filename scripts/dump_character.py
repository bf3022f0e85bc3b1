"""Dump the proficiency sheet for a sample character build.

Builds a sample half-elf rogue, spends optional skill slots, then applies a
criminal background that grants one of those picks outright, so the pick is
refunded: grants → choices → refund.

Usage:
    python -m scripts.dump_character [--json] [--log-level LEVEL]
"""

import argparse
import json
import logging

from dnd_planner.engine.events import ProficiencyEventName, ProficiencyNotice
from dnd_planner.engine.proficiency_engine import ProficiencyEngine
from dnd_planner.engine.ui_model import ProficiencyUiModel
from dnd_planner.models.constants import ALL_TYPES, Ability, Origin, ProficiencyType
from dnd_planner.models.derived_stats import format_modifier


PT = ProficiencyType

ROGUE_SKILLS = [
    "Acrobatics", "Athletics", "Deception", "Insight", "Intimidation",
    "Investigation", "Perception", "Performance", "Persuasion",
    "Sleight of Hand", "Stealth",
]


def build_sample() -> tuple[ProficiencyEngine, list[str]]:
    """Return the sample engine and the refund messages it produced."""
    refunds: list[str] = []
    engine = ProficiencyEngine.new_character(name="Vex", level=5)

    def on_refund(notice: ProficiencyNotice) -> None:
        origins = ", ".join(o.value for o in notice.refunded_origins)
        refunds.append(f"{notice.name} refunded from {origins} (granted by {notice.source})")

    engine.events.on(ProficiencyEventName.REFUNDED, on_refund)

    engine.character.ability_scores.update({
        Ability.DEXTERITY: 16,
        Ability.INTELLIGENCE: 13,
        Ability.WISDOM: 12,
        Ability.CHARISMA: 14,
    })

    # Half-elf: Elvish, two skills of choice
    engine.apply_grants("Race", {PT.LANGUAGES: ["Elvish"]})
    engine.set_allocation(PT.SKILLS, Origin.RACE, 2, list(ROGUE_SKILLS) + ["Survival"])
    engine.select_optional(PT.SKILLS, Origin.RACE, "Stealth")
    engine.select_optional(PT.SKILLS, Origin.RACE, "Survival")

    # Rogue: light armor, simple weapons + four, thieves' tools, 4 of 11 skills
    engine.apply_grants("Class", {
        PT.ARMOR: ["Light Armor"],
        PT.WEAPONS: ["Simple Weapons", "Hand Crossbows", "Longswords", "Rapiers", "Shortswords"],
        PT.TOOLS: ["Thieves' Tools"],
        PT.SAVING_THROWS: ["dexterity", "intelligence"],
    })
    engine.set_allocation(PT.SKILLS, Origin.CLASS, 4, ROGUE_SKILLS)
    for skill in ("Acrobatics", "Perception", "Sleight of Hand", "Investigation"):
        engine.select_optional(PT.SKILLS, Origin.CLASS, skill)

    # Criminal background grants Stealth outright: the race pick is refunded
    engine.apply_grants("Background", {
        PT.SKILLS: ["Deception", "Stealth"],
        PT.TOOLS: ["Thieves' Tools"],
    })
    return engine, refunds


def sheet_to_dict(engine: ProficiencyEngine) -> dict:
    character = engine.character
    return {
        "name": character.name,
        "level": character.level,
        "proficiency_bonus": engine.proficiency_bonus(),
        "proficiencies": {
            ptype.value: [
                {"name": name, "sources": sorted(sources)}
                for name, sources in engine.grants_with_sources(ptype)
            ]
            for ptype in ALL_TYPES
        },
        "optional_proficiencies": {
            ptype.value: character.optional_proficiencies[ptype].to_dict()
            for ptype in ALL_TYPES
        },
    }


def render_sheet(engine: ProficiencyEngine, refunds: list[str]) -> list[str]:
    character = engine.character
    ui = ProficiencyUiModel(engine)
    lines = [
        "=" * 50,
        f"  {character.name}, level {character.level} "
        f"(proficiency {format_modifier(engine.proficiency_bonus())})",
        "=" * 50,
    ]
    for ptype, rows in ui.sheet().items():
        lines.append(f"\n--- {ptype.value.upper()} ---")
        if not rows:
            lines.append("  (none)")
        for row in rows:
            lines.append(f"  {row.name:<22} {', '.join(row.sources)}")

    lines.append("\n--- SKILL CHECKS ---")
    for row in ui.rows(PT.SKILLS):
        lines.append(f"  {row.name:<22} {format_modifier(engine.skill_modifier(row.name))}")

    lines.append("\n--- OPTIONAL SKILL SLOTS ---")
    for origin in Origin:
        view = ui.allocation_view(PT.SKILLS, origin)
        lines.append(
            f"  {origin.value:<11} {len(view.selected)}/{view.allowed} "
            f"{', '.join(view.selected) or '-'}"
        )

    if refunds:
        lines.append("\n--- REFUNDS ---")
        lines.extend(f"  {message}" for message in refunds)
    for diagnostic in ui.diagnostics():
        lines.append(f"  [{diagnostic.severity}] {diagnostic.message}")
    return lines


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Dump sample character proficiencies")
    parser.add_argument("--json", action="store_true", help="Print JSON instead of text")
    parser.add_argument("--log-level", default="WARNING",
                        help="Logging level (DEBUG, INFO, WARNING, ...)")
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(),
                        format="%(levelname)s %(name)s: %(message)s")

    engine, refunds = build_sample()
    if args.json:
        print(json.dumps(sheet_to_dict(engine), indent=2))
        return
    print("\n".join(render_sheet(engine, refunds)))
    print()


if __name__ == "__main__":
    main()
