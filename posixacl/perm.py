# SPDX-License-Identifier: LGPL-3.0-or-later

import enum

from .errors import FormatError


class POSIXPerm(enum.IntFlag):
    EXECUTE = 0x1
    WRITE = 0x2
    READ = 0x4


PERM_NONE = 0x0
PERM_ALL = 0x7

_PERM_CHARS = (
    (POSIXPerm.READ,    'r'),
    (POSIXPerm.WRITE,   'w'),
    (POSIXPerm.EXECUTE, 'x'),
)


def perm_to_str(perm: int) -> str:
    """Return the ``rwx`` form of a permission value.

    Bits above the low three are ignored.
    """
    return ''.join(c if perm & bit else '-' for bit, c in _PERM_CHARS)


def perm_from_str(s: str) -> POSIXPerm:
    """Parse an ``rwx`` string.

    Any character other than the expected letter at a position leaves that
    bit clear; only the length is validated.
    """
    if len(s) != 3:
        raise FormatError(f'invalid permission string length: {s!r}')
    perm = POSIXPerm(0)
    for (bit, c), ch in zip(_PERM_CHARS, s):
        if ch == c:
            perm |= bit
    return perm
