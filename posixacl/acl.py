# SPDX-License-Identifier: LGPL-3.0-or-later
"""
POSIX ACL collection and the ``system.posix_acl_*`` xattr payload codec.

The payload is a little-endian uint32 version followed by zero or more
8-byte entry records filling the rest of the buffer; there is no count or
terminator.  The kernel rejects payloads whose entries are not sorted by
tag, so serialization always sorts first.
"""

import struct

from .entry import ACLEntry, POSIXTag, SPECIAL_ID
from .errors import TruncatedHeaderError
from .perm import PERM_ALL

_HEADER = struct.Struct('<I')       # version

ACL_VERSION = 2


def _tag_order(entry):
    return entry.tag


def _key_order(entry):
    return entry.tag, entry.id, entry.perm


class POSIXACL:
    """An ordered set of ACLEntry values keyed by ``(tag, id)``."""

    __hash__ = None

    def __init__(self, entries=(), version=ACL_VERSION):
        self.version = version
        self._entries = []
        for entry in entries:
            self.add_entry(entry)

    @classmethod
    def parse(cls, data) -> 'POSIXACL':
        """Decode an xattr payload.

        Entries are kept in the order they appear on the wire.
        """
        if len(data) < _HEADER.size:
            raise TruncatedHeaderError(
                f'expecting at least a {_HEADER.size} byte header, '
                f'got {len(data)} bytes'
            )
        view = memoryview(data)
        acl = cls(version=_HEADER.unpack_from(view, 0)[0])
        remainder = view[_HEADER.size:]
        while remainder:
            entry, remainder = ACLEntry.parse(remainder)
            acl._entries.append(entry)
        return acl

    @classmethod
    def bootstrap(cls, uid: int, gid: int, mode: int) -> 'POSIXACL':
        """Build the ACL equivalent to traditional owner/group/other bits."""
        return cls([
            ACLEntry(POSIXTag.USER_OBJ, uid, (mode >> 6) & 7),
            ACLEntry(POSIXTag.GROUP_OBJ, gid, (mode >> 3) & 7),
            ACLEntry(POSIXTag.MASK, SPECIAL_ID, PERM_ALL),
            ACLEntry(POSIXTag.OTHER, SPECIAL_ID, mode & 7),
        ])

    @classmethod
    def from_stat(cls, st) -> 'POSIXACL':
        return cls.bootstrap(st.st_uid, st.st_gid, st.st_mode)

    @property
    def entries(self) -> list[ACLEntry]:
        """A copy of the entries; changing it does not affect the ACL."""
        return list(self._entries)

    def sort(self) -> None:
        """Sort entries in place by tag; equal tags keep insertion order."""
        self._entries.sort(key=_tag_order)

    def serialize(self, sink: bytearray) -> None:
        self.sort()
        sink.extend(_HEADER.pack(self.version))
        for entry in self._entries:
            entry.serialize(sink)

    def __bytes__(self):
        buf = bytearray()
        self.serialize(buf)
        return bytes(buf)

    def entry_exists(self, entry: ACLEntry) -> int | None:
        """Return the position of the entry matching ``entry``'s tag and id."""
        for pos, existing in enumerate(self._entries):
            if existing.key_equals(entry):
                return pos
        return None

    def add_entry(self, entry: ACLEntry) -> ACLEntry | None:
        """Add ``entry``, replacing (not merging) any entry with its key.

        Every entry sharing the key is dropped, including duplicates read
        off the wire.  Returns the first replaced entry, or None.
        """
        replaced = self.get_entry(entry)
        self._entries = [e for e in self._entries if not e.key_equals(entry)]
        self._entries.append(entry)
        return replaced

    def delete_entry(self, entry: ACLEntry) -> ACLEntry | None:
        pos = self.entry_exists(entry)
        if pos is None:
            return None
        return self._entries.pop(pos)

    def get_entry(self, key: ACLEntry) -> ACLEntry | None:
        pos = self.entry_exists(key)
        if pos is None:
            return None
        return self._entries[pos]

    def copy(self) -> 'POSIXACL':
        acl = type(self)(version=self.version)
        acl._entries = list(self._entries)
        return acl

    def __eq__(self, other):
        if not isinstance(other, POSIXACL):
            return NotImplemented
        if self.version != other.version:
            return False
        if len(self._entries) != len(other._entries):
            return False
        ours = sorted(self._entries, key=_key_order)
        theirs = sorted(other._entries, key=_key_order)
        return all(a == b for a, b in zip(ours, theirs))

    def __len__(self):
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries))

    def __repr__(self):
        return f'POSIXACL(version={self.version}, entries={self._entries!r})'

    def display(self) -> str:
        self.sort()
        lines = ''.join(f'{entry.display()}\n' for entry in self._entries)
        return f'Version: {self.version}\nEntries:\n{lines}'

    __str__ = display
