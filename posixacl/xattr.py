# SPDX-License-Identifier: LGPL-3.0-or-later
"""
Read and write POSIX ACLs through the Linux extended attribute interface.

``path`` arguments accept whatever os.getxattr() accepts: a path string or
bytes, an os.PathLike, or an open file descriptor.
"""

import enum
import errno
import os

from .acl import POSIXACL


class ACLAttr(enum.Enum):
    ACCESS = 'system.posix_acl_access'
    DEFAULT = 'system.posix_acl_default'


def get_acl_bytes(path, attr=ACLAttr.ACCESS):
    """Return the raw ACL payload, or None if the attribute is absent.

    Any other OSError (EOPNOTSUPP, EACCES, ENOENT...) is raised unchanged.
    """
    try:
        return os.getxattr(path, attr.value)
    except OSError as e:
        if e.errno == errno.ENODATA:
            return None
        raise


def load_acl(path, attr=ACLAttr.ACCESS):
    """Load the ACL stored in ``attr``.

    When the attribute is absent the mode bits are authoritative and the
    ACL is synthesised from os.stat().
    """
    data = get_acl_bytes(path, attr)
    if data is None:
        return POSIXACL.from_stat(os.stat(path))
    return POSIXACL.parse(data)


def apply_acl(path, acl, attr=ACLAttr.ACCESS):
    os.setxattr(path, attr.value, bytes(acl))


def remove_acl(path, attr=ACLAttr.ACCESS):
    """Remove ``attr``.  Returns False if it was not present."""
    try:
        os.removexattr(path, attr.value)
    except OSError as e:
        if e.errno == errno.ENODATA:
            return False
        raise
    return True
