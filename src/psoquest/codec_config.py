"""Configuration knobs for the quest codec.

Defaults match what the Blue Burst client and the common quest tools
produce. None of these are stored in the files themselves.
"""

from dataclasses import dataclass

from psoquest.models.npc_types import REGULAR_SCALE_EPSILON


@dataclass(slots=True)
class CodecConfig:
    """Tuneable parameters that aren't part of the file formats."""

    lenient: bool = False             # Keep partially decoded segments instead of failing
    base_name_length: int = 11        # Output .dat/.bin names: first N chars of the file stem
    name2_suffix: str = "_j"          # quest1.dat → quest1_j.dat in the QST header
    regular_scale_epsilon: float = REGULAR_SCALE_EPSILON
