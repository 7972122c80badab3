# SPDX-License-Identifier: LGPL-3.0-or-later

import argparse
import grp
import json
import os
import pwd
import sys

import posixacl as p


_POSIX_TAG_PREFIX = {
    p.POSIXTag.USER_OBJ:  'user',
    p.POSIXTag.USER:      'user',
    p.POSIXTag.GROUP_OBJ: 'group',
    p.POSIXTag.GROUP:     'group',
    p.POSIXTag.MASK:      'mask',
    p.POSIXTag.OTHER:     'other',
    p.POSIXTag.EVERYONE:  'everyone',
}


def _name_of_uid(uid, numeric):
    if not numeric:
        try:
            return pwd.getpwuid(uid).pw_name
        except KeyError:
            pass
    return str(uid)


def _name_of_gid(gid, numeric):
    if not numeric:
        try:
            return grp.getgrgid(gid).gr_name
        except KeyError:
            pass
    return str(gid)


def _posix_tag_prefix(entry):
    return _POSIX_TAG_PREFIX.get(entry.tag, str(int(entry.tag)))


def _posix_qualifier(entry, numeric):
    if entry.tag == p.POSIXTag.USER:
        return _name_of_uid(entry.id, numeric)
    if entry.tag == p.POSIXTag.GROUP:
        return _name_of_gid(entry.id, numeric)
    if entry.tag in _POSIX_TAG_PREFIX or entry.id == p.SPECIAL_ID:
        return ''
    return str(entry.id)


def _posix_entry_str(entry, numeric, default=False):
    """Format an entry as [default:]tag:qualifier:perms text."""
    tag = _posix_tag_prefix(entry)
    qual = _posix_qualifier(entry, numeric)
    perms = p.perm_to_str(entry.perm)
    prefix = 'default:' if default else ''
    return f'{prefix}{tag}:{qual}:{perms}'


def _trivial_posix_from_mode(mode):
    """Return the 3-entry ACL classic getfacl shows for a file without one."""
    return p.POSIXACL([
        p.ACLEntry(p.POSIXTag.USER_OBJ,  p.SPECIAL_ID, (mode >> 6) & 7),
        p.ACLEntry(p.POSIXTag.GROUP_OBJ, p.SPECIAL_ID, (mode >> 3) & 7),
        p.ACLEntry(p.POSIXTag.OTHER,     p.SPECIAL_ID, mode & 7),
    ])


def _header_lines(path, uid, gid, numeric):
    return [
        f'# file: {path}',
        f'# owner: {_name_of_uid(uid, numeric)}',
        f'# group: {_name_of_gid(gid, numeric)}',
    ]


def _sorted_entries(acl):
    if acl is None:
        return []
    acl.sort()
    return acl.entries


def _format_posix_text(path, acl, default_acl, uid, gid, numeric, quiet):
    lines = [] if quiet else _header_lines(path, uid, gid, numeric)
    for entry in _sorted_entries(acl):
        lines.append(_posix_entry_str(entry, numeric))
    for entry in _sorted_entries(default_acl):
        lines.append(_posix_entry_str(entry, numeric, default=True))
    return '\n'.join(lines)


def _format_posix_table(path, acl, default_acl, quiet):
    parts = [] if quiet else [f'# file: {path}\n']
    if acl is not None:
        parts.append(acl.display())
    if default_acl is not None:
        parts.append('# default\n')
        parts.append(default_acl.display())
    return ''.join(parts).rstrip('\n')


def _format_posix_hex(path, acl, default_acl, quiet):
    lines = [] if quiet else [f'# file: {path}']
    if acl is not None:
        lines.append(bytes(acl).hex())
    if default_acl is not None:
        lines.append('default:' + bytes(default_acl).hex())
    return '\n'.join(lines)


def _posix_entry_to_dict(entry, numeric, default=False):
    qual = _posix_qualifier(entry, numeric)
    return {
        'tag': p.TAG_NAMES.get(entry.tag, str(int(entry.tag))),
        'qualifier': qual if qual else None,
        'perms': [perm.name for perm in p.POSIXPerm if entry.perm & perm],
        'default': default,
    }


def _format_posix_json(path, acl, default_acl, uid, gid, numeric):
    return {
        'path': path,
        'uid': uid,
        'gid': gid,
        'owner': _name_of_uid(uid, numeric),
        'group': _name_of_gid(gid, numeric),
        'version': acl.version if acl is not None else p.ACL_VERSION,
        'entries': ([_posix_entry_to_dict(e, numeric)
                     for e in _sorted_entries(acl)] +
                    [_posix_entry_to_dict(e, numeric, default=True)
                     for e in _sorted_entries(default_acl)]),
    }


def _read_acls(path, access=True, default=True):
    """Return (access_acl, default_acl).

    The access ACL falls back to the three entries implied by the mode
    when no xattr is present.  The default ACL is None when absent or not
    requested.
    """
    acl = None
    if access:
        data = p.get_acl_bytes(path, p.ACLAttr.ACCESS)
        if data is None:
            acl = _trivial_posix_from_mode(os.stat(path).st_mode)
        else:
            acl = p.POSIXACL.parse(data)
    default_acl = None
    if default:
        data = p.get_acl_bytes(path, p.ACLAttr.DEFAULT)
        if data is not None:
            default_acl = p.POSIXACL.parse(data)
    return acl, default_acl


def _process_path(path, numeric, quiet, output, access, default):
    st = os.stat(path)
    acl, default_acl = _read_acls(path, access, default)
    if output == 'json':
        print(json.dumps(_format_posix_json(path, acl, default_acl,
                                            st.st_uid, st.st_gid, numeric)))
        return
    if output == 'table':
        print(_format_posix_table(path, acl, default_acl, quiet))
    elif output == 'hex':
        print(_format_posix_hex(path, acl, default_acl, quiet))
    else:
        print(_format_posix_text(path, acl, default_acl, st.st_uid,
                                 st.st_gid, numeric, quiet))
    print()


def main(argv=None):
    ap = argparse.ArgumentParser(
        prog='posixacl_getfacl',
        description='Display POSIX ACL entries for files.',
    )
    ap.add_argument('-n', '--numeric', action='store_true',
                    help='Display numeric UIDs/GIDs')
    ap.add_argument('-q', '--quiet', action='store_true',
                    help='Omit comment headers (text, table and hex modes)')
    which = ap.add_mutually_exclusive_group()
    which.add_argument('-a', '--access', action='store_true',
                       help='Display the access ACL only')
    which.add_argument('-d', '--default', action='store_true',
                       help='Display the default ACL only')
    fmt = ap.add_mutually_exclusive_group()
    fmt.add_argument('-j', '--json', dest='output', action='store_const',
                     const='json',
                     help='Output ACLs as JSONL (one object per line)')
    fmt.add_argument('--table', dest='output', action='store_const',
                     const='table',
                     help='Output the fixed-width Version/Entries listing')
    fmt.add_argument('--hex', dest='output', action='store_const',
                     const='hex',
                     help='Output the raw xattr payload as hex')
    ap.add_argument('path', nargs='+')
    args = ap.parse_args(argv)

    rc = 0
    for path in args.path:
        try:
            _process_path(path, args.numeric, args.quiet, args.output,
                          access=not args.default, default=not args.access)
        except (OSError, ValueError) as e:
            print(f'posixacl_getfacl: {path}: {e}', file=sys.stderr)
            rc = 1

    sys.exit(rc)


if __name__ == '__main__':
    main()
