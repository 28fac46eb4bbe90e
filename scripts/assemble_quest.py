"""Replace the script of a .qst file with assembled source and write a new .qst.

Usage:
    python -m scripts.assemble_quest QUEST.qst SCRIPT.asm -o OUT.qst [--verbose]
    python -m scripts.assemble_quest QUEST.qst --export SCRIPT.asm

--export writes the quest's current script as source, ready for editing.
"""

import argparse
import dataclasses
import logging
from pathlib import Path

from psoquest.parser.errors import QuestFormatError
from psoquest.parser.quest_parser import parse_quest, write_quest_qst
from psoquest.scripting.assembly import assemble
from psoquest.scripting.disassembly import disassemble


def main():
    parser = argparse.ArgumentParser(description="Assemble a quest script into a .qst file")
    parser.add_argument("qst", type=Path, help="Quest to take objects, NPCs and texts from")
    parser.add_argument("source", type=Path, nargs="?", help="Script source to assemble")
    parser.add_argument("-o", "--output", type=Path, help="Where to write the new .qst")
    parser.add_argument("--export", type=Path,
                        help="Write the quest's current script as source and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        quest = parse_quest(args.qst.read_bytes()).quest
    except (OSError, QuestFormatError) as exc:
        print(f"Error: {exc}")
        raise SystemExit(1)

    if args.export:
        args.export.write_text("\n".join(disassemble(quest.object_code)) + "\n", encoding="utf-8")
        print(f"Wrote {args.export}")
        return

    if args.source is None or args.output is None:
        parser.error("SOURCE and --output are required unless --export is given")

    result = assemble(args.source.read_text(encoding="utf-8").splitlines())
    for warning in result.warnings:
        print(f"Warning: {warning}")
    if result.errors:
        for error in result.errors:
            print(f"Error: {error}")
        raise SystemExit(1)

    quest = dataclasses.replace(quest, object_code=tuple(result.object_code))
    try:
        data = write_quest_qst(quest, args.output.name)
    except ValueError as exc:
        print(f"Error: {exc}")
        raise SystemExit(1)

    args.output.write_bytes(data)
    print(f"Wrote {args.output} ({len(data)} bytes, episode {quest.episode.name})")


if __name__ == "__main__":
    main()
