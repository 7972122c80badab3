# SPDX-License-Identifier: LGPL-3.0-or-later
"""
posixacl - POSIX.1e ACL model and ``system.posix_acl_*`` xattr codec.
"""

from .acl import ACL_VERSION, POSIXACL
from .entry import ACLEntry, ENTRY_SIZE, POSIXTag, SPECIAL_ID, TAG_NAMES
from .errors import ACLError, FormatError, MalformedDataError, TruncatedHeaderError
from .perm import PERM_ALL, PERM_NONE, POSIXPerm, perm_from_str, perm_to_str
from .xattr import ACLAttr, apply_acl, get_acl_bytes, load_acl, remove_acl

__all__ = [
    'ACL_VERSION', 'ENTRY_SIZE', 'PERM_ALL', 'PERM_NONE', 'SPECIAL_ID',
    'TAG_NAMES', 'ACLAttr', 'ACLEntry', 'ACLError', 'FormatError',
    'MalformedDataError', 'POSIXACL', 'POSIXPerm', 'POSIXTag',
    'TruncatedHeaderError', 'apply_acl', 'get_acl_bytes', 'load_acl',
    'perm_from_str', 'perm_to_str', 'remove_acl',
]
