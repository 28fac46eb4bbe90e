"""Read and write the .bin script container.

Layout (all little-endian):
  0     object code offset (uint32, always 4652)
  4     label table offset (uint32)
  8     file size (uint32)
  12    0xFFFFFFFF
  16    quest id (uint32)
  20    language (uint32)
  24    quest name (UTF-16LE, 64 bytes)
  88    short description (UTF-16LE, 256 bytes)
  344   long description (UTF-16LE, 576 bytes)
  920   padding (4 bytes)
  924   shop item ids (932 x uint32)
  4652  object code
  ...   label table (int32 offset per label number, relative to the object
        code; -1 = unused)
"""

import logging
from collections.abc import Iterable

from psoquest.models.constants import (
    BIN_LONG_DESCRIPTION_SIZE,
    BIN_OBJECT_CODE_OFFSET,
    BIN_QUEST_NAME_SIZE,
    BIN_SHOP_ITEM_COUNT,
    BIN_SHORT_DESCRIPTION_SIZE,
)
from psoquest.models.diagnostics import Diagnostic, report
from psoquest.models.records import BinFile
from psoquest.parser.binary_reader import BinaryReader
from psoquest.parser.binary_writer import BinaryWriter
from psoquest.parser.errors import BinFormatError
from psoquest.scripting.object_code import parse_object_code, write_object_code


logger = logging.getLogger(__name__)


def parse_bin(
    data: bytes,
    entry_labels: Iterable[int] = (0,),
    lenient: bool = False,
) -> BinFile:
    """Parse a decompressed .bin file.

    `entry_labels` are the labels known to start instruction segments (label
    0 plus the script labels used by the quest's objects and NPCs).

    Raises:
        BinFormatError: If the header offsets point outside the file.
        ObjectCodeError: In strict mode, on malformed bytecode.
    """
    warnings: list[Diagnostic] = []
    reader = BinaryReader(data)

    object_code_offset = reader.uint32()
    label_offset_table_offset = reader.uint32()
    size = reader.uint32()
    reader.skip(4)   # always 0xFFFFFFFF
    quest_id = reader.uint32()
    language = reader.uint32()
    quest_name = reader.string_utf16(BIN_QUEST_NAME_SIZE)
    short_description = reader.string_utf16(BIN_SHORT_DESCRIPTION_SIZE)
    long_description = reader.string_utf16(BIN_LONG_DESCRIPTION_SIZE)

    if size != len(data):
        report(
            warnings, logger, "bin_size_mismatch",
            f"Value {size} in bin size field does not match actual size {len(data)}.",
        )

    reader.skip(4)   # padding
    shop_items = reader.uint32_array(BIN_SHOP_ITEM_COUNT)

    if not (object_code_offset <= label_offset_table_offset <= len(data)):
        raise BinFormatError(
            f"Object code offset {object_code_offset} and label table offset "
            f"{label_offset_table_offset} don't fit in a file of {len(data)} bytes."
        )

    reader.seek(label_offset_table_offset)
    label_count = (len(data) - label_offset_table_offset) // 4
    label_offsets = reader.int32_array(label_count)

    object_code = parse_object_code(
        data[object_code_offset:label_offset_table_offset],
        label_offsets,
        entry_labels,
        lenient=lenient,
        warnings=warnings,
    )

    return BinFile(
        quest_id=quest_id,
        language=language,
        quest_name=quest_name,
        short_description=short_description,
        long_description=long_description,
        object_code=object_code,
        shop_items=shop_items,
        warnings=warnings,
    )


def write_bin(bin_file: BinFile) -> bytes:
    """Encode a BinFile; the label table is rebuilt from the segments' labels.

    Raises:
        BinFormatError: If there are more than 932 shop items.
    """
    if len(bin_file.shop_items) > BIN_SHOP_ITEM_COUNT:
        raise BinFormatError(
            f"Bin file can't contain more than {BIN_SHOP_ITEM_COUNT} shop items."
        )

    object_code, label_offsets = write_object_code(bin_file.object_code)

    writer = BinaryWriter()
    writer.uint32(BIN_OBJECT_CODE_OFFSET)
    writer.uint32(0)   # label table offset, patched below
    writer.uint32(0)   # file size, patched below
    writer.uint32(0xFFFFFFFF)
    writer.uint32(bin_file.quest_id)
    writer.uint32(bin_file.language)
    writer.string_utf16(bin_file.quest_name, BIN_QUEST_NAME_SIZE)
    writer.string_utf16(bin_file.short_description, BIN_SHORT_DESCRIPTION_SIZE)
    writer.string_utf16(bin_file.long_description, BIN_LONG_DESCRIPTION_SIZE)
    writer.zeros(4)
    for item in bin_file.shop_items:
        writer.uint32(item)
    writer.zeros(4 * (BIN_SHOP_ITEM_COUNT - len(bin_file.shop_items)))

    writer.bytes(object_code)

    label_offset_table_offset = writer.position
    for offset in label_offsets:
        writer.int32(offset)

    file_size = writer.size
    writer.seek(4)
    writer.uint32(label_offset_table_offset)
    writer.uint32(file_size)

    return writer.getvalue()
