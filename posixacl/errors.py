# SPDX-License-Identifier: LGPL-3.0-or-later
"""Errors raised while decoding POSIX ACL payloads and permission strings."""


class ACLError(ValueError):
    """Base class for codec errors."""


class FormatError(ACLError):
    """A permission string is not exactly three characters long."""


class TruncatedHeaderError(ACLError):
    """Fewer than 4 bytes are available for the ACL version header."""


class MalformedDataError(ACLError):
    """Fewer than 8 bytes are available where an entry record is expected."""
