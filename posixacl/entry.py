# SPDX-License-Identifier: LGPL-3.0-or-later
"""
A single POSIX ACL entry and its 8-byte little-endian wire record.
"""

import dataclasses
import enum
import struct

from .errors import MalformedDataError
from .perm import PERM_NONE, perm_to_str


class POSIXTag(enum.IntEnum):
    UNDEFINED = 0x00
    USER_OBJ = 0x01
    USER = 0x02
    GROUP_OBJ = 0x04
    GROUP = 0x08
    MASK = 0x10
    OTHER = 0x20
    EVERYONE = 0x40


TAG_NAMES = {tag: tag.name for tag in POSIXTag}

# qualifier carried by entries that do not name a user or group
SPECIAL_ID = 0xFFFFFFFF

_ENTRY = struct.Struct('<HHI')      # tag, perm, id
ENTRY_SIZE = _ENTRY.size


def _coerce_tag(value):
    try:
        return POSIXTag(value)
    except ValueError:
        return int(value)


@dataclasses.dataclass(frozen=True, slots=True)
class ACLEntry:
    """An immutable ``(tag, id, perm)`` record.

    ``id`` is the uid/gid qualifier for USER and GROUP entries and
    SPECIAL_ID for everything else.  Tag codes outside POSIXTag are kept
    as plain ints so they survive a parse/serialize round trip.
    """
    tag: int
    id: int = SPECIAL_ID
    perm: int = PERM_NONE

    def __post_init__(self):
        if not 0 <= self.tag <= 0xFFFF:
            raise ValueError(f'tag out of range: {self.tag!r}')
        if not 0 <= self.id <= 0xFFFFFFFF:
            raise ValueError(f'id out of range: {self.id!r}')
        if not 0 <= self.perm <= 0xFFFF:
            raise ValueError(f'perm out of range: {self.perm!r}')
        object.__setattr__(self, 'tag', _coerce_tag(self.tag))
        object.__setattr__(self, 'perm', int(self.perm))

    @classmethod
    def parse(cls, data):
        """Decode one record from the front of ``data``.

        Returns the entry and the bytes following the consumed record.
        """
        if len(data) < ENTRY_SIZE:
            raise MalformedDataError(
                f'expected {ENTRY_SIZE} bytes for an ACL entry, got {len(data)}'
            )
        tag, perm, id_ = _ENTRY.unpack_from(data, 0)
        return cls(tag, id_, perm), data[ENTRY_SIZE:]

    def serialize(self, sink: bytearray) -> None:
        sink.extend(_ENTRY.pack(int(self.tag), self.perm, self.id))

    def key_equals(self, other: 'ACLEntry') -> bool:
        """True when ``other`` has the same tag and id; perm is ignored."""
        return self.tag == other.tag and self.id == other.id

    def with_perm(self, perm: int) -> 'ACLEntry':
        return dataclasses.replace(self, perm=perm)

    def with_added_perm(self, bits: int) -> 'ACLEntry':
        return dataclasses.replace(self, perm=self.perm | int(bits))

    def with_removed_perm(self, bits: int) -> 'ACLEntry':
        return dataclasses.replace(self, perm=self.perm & ~int(bits) & 0xFFFF)

    def display(self) -> str:
        name = TAG_NAMES.get(self.tag, str(int(self.tag)))
        return (f'Tag: {name:>10} ({int(self.tag):2d}), ID: {self.id:10d}, '
                f'Perm: {perm_to_str(self.perm)} ({self.perm})')

    __str__ = display
