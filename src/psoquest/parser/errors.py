"""Fatal codec errors.

Everything derives from ValueError so callers that only care about "this
file is bad" can keep catching ValueError, like they do for BinaryReader
over-reads.
"""


class QuestFormatError(ValueError):
    """Base class for fatal quest file errors."""


class UnsupportedFormatError(QuestFormatError):
    """The archive is a QST variant other than Blue Burst."""

    def __init__(self, version: str) -> None:
        super().__init__(f"Can't parse {version} QST files.")
        self.version = version


class NameTooLongError(QuestFormatError):
    pass


class InternalConsistencyError(QuestFormatError):
    """The encoder produced a different amount of data than it predicted."""


class DatFormatError(QuestFormatError):
    pass


class BinFormatError(QuestFormatError):
    pass


class ObjectCodeError(QuestFormatError):
    """Malformed bytecode in strict mode."""


class MissingDatFileError(QuestFormatError):
    def __init__(self) -> None:
        super().__init__("File contains no DAT file.")


class MissingBinFileError(QuestFormatError):
    def __init__(self) -> None:
        super().__init__("File contains no BIN file.")


class NpcTypeError(QuestFormatError):
    """An NPC type with no mapping back to on-disk type data."""


class ObjectPropertyError(QuestFormatError):
    """An object's property names don't match the slots of its type."""


class PrsError(ValueError):
    """Truncated or corrupt PRS stream."""
