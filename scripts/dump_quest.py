"""Dump a Blue Burst .qst file: header info, entities and disassembled script.

Usage:
    python -m scripts.dump_quest QUEST.qst [--lenient] [--objects] [--npcs]
                                 [--script] [--verbose]

If no section flags are given, everything is shown.
"""

import argparse
import logging
from collections import Counter
from pathlib import Path

from psoquest.codec_config import CodecConfig
from psoquest.models.constants import Language
from psoquest.models.quest import Quest
from psoquest.parser.errors import QuestFormatError
from psoquest.parser.quest_parser import parse_quest
from psoquest.scripting.disassembly import disassemble


def language_name(language: int) -> str:
    try:
        return Language(language).name.title()
    except ValueError:
        return f"unknown ({language})"


def format_summary(quest: Quest) -> list[str]:
    lines = [
        f"Quest {quest.id}: {quest.name}",
        f"  Language: {language_name(quest.language)}",
        f"  Episode: {quest.episode.name}",
        f"  Short description: {quest.short_description}",
        f"  Objects: {len(quest.objects)}, NPCs: {len(quest.npcs)}, "
        f"unknown DAT sections: {len(quest.dat_unknowns)}",
        f"  Segments: {len(quest.object_code)}",
    ]
    if quest.map_designations:
        designations = ", ".join(
            f"{area}→{variant}" for area, variant in sorted(quest.map_designations.items())
        )
        lines.append(f"  Map designations: {designations}")
    shop_items = [item for item in quest.shop_items if item]
    if shop_items:
        lines.append(f"  Shop items: {len(shop_items)}")
    return lines


def format_objects(quest: Quest) -> list[str]:
    lines = []
    for obj in quest.objects:
        labels = obj.script_labels
        label_text = f" script {', '.join(map(str, labels))}" if labels else ""
        lines.append(
            f"  [area {obj.area_id:>2}] {obj.type_name} (id {obj.id}, "
            f"section {obj.section_id}){label_text}"
        )
    return lines


def format_npcs(quest: Quest) -> list[str]:
    lines = []
    counts = Counter(npc.type.value for npc in quest.npcs)
    for name, count in sorted(counts.items()):
        lines.append(f"  {name}: {count}")
    return lines


def main():
    parser = argparse.ArgumentParser(description="Dump a PSO Blue Burst quest file")
    parser.add_argument("qst", type=Path, help="Path to the .qst file")
    parser.add_argument("--lenient", action="store_true",
                        help="Keep partially decoded script segments instead of failing")
    parser.add_argument("--objects", action="store_true", help="Show objects")
    parser.add_argument("--npcs", action="store_true", help="Show NPC type counts")
    parser.add_argument("--script", action="store_true", help="Show the disassembled script")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    show_all = not (args.objects or args.npcs or args.script)

    try:
        parsed = parse_quest(args.qst.read_bytes(), config=CodecConfig(lenient=args.lenient))
    except (OSError, QuestFormatError) as exc:
        print(f"Error: {exc}")
        raise SystemExit(1)

    quest = parsed.quest
    for line in format_summary(quest):
        print(line)

    if parsed.warnings:
        print(f"\n{len(parsed.warnings)} warnings:")
        for warning in parsed.warnings:
            print(f"  - {warning}")

    if show_all or args.objects:
        print("\nObjects:")
        for line in format_objects(quest):
            print(line)

    if show_all or args.npcs:
        print("\nNPCs:")
        for line in format_npcs(quest):
            print(line)

    if show_all or args.script:
        print("\nScript:")
        for line in disassemble(quest.object_code):
            print(line)


if __name__ == "__main__":
    main()
