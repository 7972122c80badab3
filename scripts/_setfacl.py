# SPDX-License-Identifier: LGPL-3.0-or-later

import argparse
import grp
import os
import pwd
import sys

import posixacl as p


# ── permission table (mirrors _getfacl.py output) ────────────────────────────

_POSIX_PERM_FROM_CHAR = {
    'r': p.POSIXPerm.READ,
    'w': p.POSIXPerm.WRITE,
    'x': p.POSIXPerm.EXECUTE,
}

_NAMED_TAGS = (p.POSIXTag.USER, p.POSIXTag.GROUP)
_BASE_TAGS = (p.POSIXTag.USER_OBJ, p.POSIXTag.GROUP_OBJ, p.POSIXTag.OTHER)


# ── mode-to-ACL helpers ───────────────────────────────────────────────────────

def _make_trivial_posix(stat_mode):
    """Return the minimal 3-entry ACL equivalent to the mode bits."""
    return p.POSIXACL([
        p.ACLEntry(p.POSIXTag.USER_OBJ,  p.SPECIAL_ID, (stat_mode >> 6) & 7),
        p.ACLEntry(p.POSIXTag.GROUP_OBJ, p.SPECIAL_ID, (stat_mode >> 3) & 7),
        p.ACLEntry(p.POSIXTag.OTHER,     p.SPECIAL_ID, stat_mode & 7),
    ])


def _strip_posix(acl):
    """Return a new ACL holding only the USER_OBJ, GROUP_OBJ and OTHER entries.

    GROUP_OBJ is taken from the ACL rather than the mode: while a MASK is
    present the group mode bits mirror the mask.
    """
    return p.POSIXACL([e for e in acl.entries if e.tag in _BASE_TAGS],
                      version=acl.version)


def _load_access_acl(path):
    """Load the access ACL, synthesising the 3-entry form from the mode.

    posixacl.load_acl() falls back to an ACL carrying a full MASK, which
    would widen the group mode bits if written back.
    """
    data = p.get_acl_bytes(path, p.ACLAttr.ACCESS)
    if data is None:
        return _make_trivial_posix(os.stat(path).st_mode)
    return p.POSIXACL.parse(data)


# ── name resolution ───────────────────────────────────────────────────────────

def _resolve_uid(s):
    try:
        return int(s)
    except ValueError:
        pass
    try:
        return pwd.getpwnam(s).pw_uid
    except KeyError:
        raise ValueError(f'unknown user: {s!r}') from None


def _resolve_gid(s):
    try:
        return int(s)
    except ValueError:
        pass
    try:
        return grp.getgrnam(s).gr_gid
    except KeyError:
        raise ValueError(f'unknown group: {s!r}') from None


# ── entry text splitting ──────────────────────────────────────────────────────

def _split_entries(text):
    result = []
    for line in text.replace(',', '\n').splitlines():
        line = line.strip()
        if not line or line.startswith('#'):
            continue
        result.append(line)
    return result


# ── entry parsing ─────────────────────────────────────────────────────────────

def _parse_posix_perms(s):
    perms = p.POSIXPerm(0)
    for ch in s:
        if ch == '-':
            continue
        if ch not in _POSIX_PERM_FROM_CHAR:
            raise ValueError(f'invalid POSIX perm char: {ch!r}')
        perms |= _POSIX_PERM_FROM_CHAR[ch]
    return perms


def _parse_tag_qualifier(tag_str, qual_str):
    """Return (tag, id) for a getfacl-style tag and qualifier."""
    if tag_str == 'user':
        if not qual_str:
            return p.POSIXTag.USER_OBJ, p.SPECIAL_ID
        return p.POSIXTag.USER, _resolve_uid(qual_str)
    if tag_str == 'group':
        if not qual_str:
            return p.POSIXTag.GROUP_OBJ, p.SPECIAL_ID
        return p.POSIXTag.GROUP, _resolve_gid(qual_str)
    if tag_str == 'mask':
        return p.POSIXTag.MASK, p.SPECIAL_ID
    if tag_str == 'other':
        return p.POSIXTag.OTHER, p.SPECIAL_ID
    if tag_str == 'everyone':
        return p.POSIXTag.EVERYONE, p.SPECIAL_ID
    raise ValueError(f'invalid POSIX tag: {tag_str!r}')


def _parse_posix_ace(s):
    """Parse [default:]tag:qualifier:perms.  Returns (entry, default)."""
    default = s.startswith('default:')
    if default:
        s = s[8:]
    parts = s.split(':')
    if len(parts) != 3:
        raise ValueError(f'invalid POSIX ACE: {s!r}')
    tag_str, qual_str, perms_str = parts
    perms = _parse_posix_perms(perms_str)
    tag, id_ = _parse_tag_qualifier(tag_str, qual_str)
    return p.ACLEntry(tag, id_, perms), default


def _parse_posix_remove_spec(s):
    """Parse [default:]tag[:qualifier].  Returns (lookup entry, default)."""
    default = s.startswith('default:')
    if default:
        s = s[8:]
    parts = s.split(':', 2)
    tag_str = parts[0]
    qual_str = parts[1].split(':')[0] if len(parts) > 1 else ''
    try:
        tag, id_ = _parse_tag_qualifier(tag_str, qual_str)
    except ValueError:
        raise ValueError(f'invalid POSIX remove spec: {s!r}') from None
    return p.ACLEntry(tag, id_), default


# ── ACL modification helpers ──────────────────────────────────────────────────

def _recalc_posix_mask(acl):
    """Set MASK to the union of named USER/GROUP and GROUP_OBJ perms.

    A plain 3-entry ACL without a mask is left alone.  acl_calc_mask
    includes ACL_GROUP_OBJ in the union:
    https://cgit.git.savannah.nongnu.org/cgit/acl.git/tree/libacl/acl_calc_mask.c
    """
    entries = acl.entries
    has_ext = any(e.tag in _NAMED_TAGS for e in entries)
    has_mask = any(e.tag == p.POSIXTag.MASK for e in entries)
    if not has_ext and not has_mask:
        return acl
    mask_perm = p.PERM_NONE
    for e in entries:
        if e.tag in _NAMED_TAGS or e.tag == p.POSIXTag.GROUP_OBJ:
            mask_perm |= e.perm
    acl.add_entry(p.ACLEntry(p.POSIXTag.MASK, p.SPECIAL_ID, mask_perm))
    return acl


def _ensure_posix_mask(acl):
    """Add a MASK only when named entries exist but no MASK is present.

    Used with --no-mask or an explicit mask in -m: an existing mask is not
    recalculated, but the kernel still requires one whenever named USER or
    GROUP entries are present.  The seed value is GROUP_OBJ's perms, as
    standard setfacl -n does.
    """
    entries = acl.entries
    has_ext = any(e.tag in _NAMED_TAGS for e in entries)
    has_mask = any(e.tag == p.POSIXTag.MASK for e in entries)
    if not has_ext or has_mask:
        return acl
    group_perm = next((e.perm for e in entries
                       if e.tag == p.POSIXTag.GROUP_OBJ), p.PERM_NONE)
    acl.add_entry(p.ACLEntry(p.POSIXTag.MASK, p.SPECIAL_ID, group_perm))
    return acl


def _apply_posix_modify(acl, new_entries, recalc_mask):
    for entry in new_entries:
        acl.add_entry(entry)
    if recalc_mask:
        _recalc_posix_mask(acl)
    return acl


def _apply_posix_remove(acl, remove_keys):
    for key in remove_keys:
        acl.delete_entry(key)
    return acl


def _edit_posix_acl(acl, remove_keys, new_entries, no_mask):
    """Apply -x then -m to one ACL and fix up its mask."""
    _apply_posix_remove(acl, remove_keys)
    # An explicit mask entry in -m overrides recalculation: do_set.c sets
    # acl_mask_provided=1 and skips acl_calc_mask when set:
    # https://cgit.git.savannah.nongnu.org/cgit/acl.git/tree/tools/do_set.c
    has_explicit_mask = any(e.tag == p.POSIXTag.MASK for e in new_entries)
    recalc = not no_mask and not has_explicit_mask
    _apply_posix_modify(acl, new_entries, recalc)
    if not recalc:
        _ensure_posix_mask(acl)
    return acl


def _split_by_default(pairs):
    access = [e for e, default in pairs if not default]
    default = [e for e, default in pairs if default]
    return access, default


# ── per-path operation ────────────────────────────────────────────────────────

def _write_default(path, default_acl):
    if default_acl is None or not len(default_acl):
        p.remove_acl(path, p.ACLAttr.DEFAULT)
    else:
        p.apply_acl(path, default_acl, p.ACLAttr.DEFAULT)


def _do_setfacl_path(path, strip, remove_default, remove_entries,
                     modify_entries, acl_file_entries, no_mask, default_only):
    """Apply operations to path.  Returns (access_acl, default_acl)."""
    acl = _load_access_acl(path)
    data = p.get_acl_bytes(path, p.ACLAttr.DEFAULT)
    default_acl = p.POSIXACL.parse(data) if data is not None else None
    access_changed = False
    default_changed = False

    if strip:
        acl = _strip_posix(acl)
        default_acl = None
        access_changed = default_changed = True

    if remove_default:
        default_acl = None
        default_changed = True

    # When --default is active, -m/-x target the default ACL.
    if default_only:
        remove_entries = [e if e.startswith('default:') else 'default:' + e
                          for e in remove_entries]
        modify_entries = [e if e.startswith('default:') else 'default:' + e
                          for e in modify_entries]

    access_rm, default_rm = _split_by_default(
        [_parse_posix_remove_spec(e) for e in remove_entries])
    access_mod, default_mod = _split_by_default(
        [_parse_posix_ace(e) for e in modify_entries])

    if access_rm or access_mod:
        _edit_posix_acl(acl, access_rm, access_mod, no_mask)
        access_changed = True

    if default_mod and default_acl is None:
        # A new default ACL needs the base entries to be valid; seed them
        # from the access ACL.
        default_acl = _strip_posix(acl)
    if default_acl is not None and (default_rm or default_mod):
        _edit_posix_acl(default_acl, default_rm, default_mod, no_mask)
        default_changed = True

    if acl_file_entries is not None:
        access_new, default_new = _split_by_default(
            [_parse_posix_ace(e) for e in acl_file_entries])
        acl = p.POSIXACL(access_new)
        default_acl = p.POSIXACL(default_new) if default_new else None
        access_changed = default_changed = True

    if access_changed:
        p.apply_acl(path, acl, p.ACLAttr.ACCESS)
    if default_changed:
        _write_default(path, default_acl)
    return acl, default_acl


# ── restore ───────────────────────────────────────────────────────────────────

def _parse_restore_file(text):
    """Parse getfacl output into a list of (path, [entry_lines]) pairs."""
    blocks = []
    current_path = None
    current_entries = []

    for line in text.splitlines():
        line = line.rstrip()
        if not line:
            if current_path is not None:
                blocks.append((current_path, current_entries))
                current_path = None
                current_entries = []
        elif line.startswith('# file: '):
            if current_path is not None:
                blocks.append((current_path, current_entries))
            current_path = line[8:]
            current_entries = []
        elif line.startswith('#'):
            pass  # owner/group comment lines
        else:
            if current_path is not None:
                current_entries.append(line)

    if current_path is not None:
        blocks.append((current_path, current_entries))

    return blocks


def _read_text(src):
    if src == '-':
        return sys.stdin.read()
    with open(src) as f:
        return f.read()


# ── main ──────────────────────────────────────────────────────────────────────

def main(argv=None):
    ap = argparse.ArgumentParser(
        prog='posixacl_setfacl',
        description='Set POSIX ACL entries on files.',
    )
    ap.add_argument('-b', '--strip', action='store_true',
                    help='Strip the ACL to its owner, group and other entries '
                         'and remove the default ACL')
    ap.add_argument('-k', '--remove-default', action='store_true',
                    help='Remove the default ACL')
    ap.add_argument('-d', '--default', dest='default_only', action='store_true',
                    help='Apply -m and -x to the default ACL')
    ap.add_argument('-m', dest='modify', action='append', default=[],
                    metavar='entries',
                    help='Add/replace ACL entries (comma-separated); '
                         'applied after -b, -k, and -x')
    ap.add_argument('-x', dest='remove', action='append', default=[],
                    metavar='entries',
                    help='Remove ACL entries by tag and qualifier '
                         '(comma-separated); applied after -b and -k')
    ap.add_argument('-f', dest='acl_file', default=None, metavar='file',
                    help='Replace entire ACL from file (- for stdin); '
                         'applied last')
    ap.add_argument('-n', '--no-mask', action='store_true',
                    help='Do not recalculate the mask after -m and -x')
    ap.add_argument('--restore', metavar='file',
                    help='Restore ACLs from a getfacl backup file '
                         '(- for stdin); paths are taken from the backup')
    ap.add_argument('path', nargs='*')
    args = ap.parse_args(argv)

    if not args.restore and not args.path:
        ap.error('path arguments are required when not using --restore')

    rc = 0

    if args.restore:
        for path, entries in _parse_restore_file(_read_text(args.restore)):
            try:
                _do_setfacl_path(path, strip=False, remove_default=False,
                                 remove_entries=[], modify_entries=[],
                                 acl_file_entries=entries, no_mask=False,
                                 default_only=False)
            except (OSError, ValueError) as e:
                print(f'posixacl_setfacl: {path}: {e}', file=sys.stderr)
                rc = 1
        sys.exit(rc)

    remove_entries = _split_entries(','.join(args.remove))
    modify_entries = _split_entries(','.join(args.modify))

    acl_file_entries = None
    if args.acl_file:
        acl_file_entries = _split_entries(_read_text(args.acl_file))

    for path in args.path:
        try:
            _do_setfacl_path(path, args.strip, args.remove_default,
                             remove_entries, modify_entries,
                             acl_file_entries, args.no_mask,
                             args.default_only)
        except (OSError, ValueError) as e:
            print(f'posixacl_setfacl: {path}: {e}', file=sys.stderr)
            rc = 1

    sys.exit(rc)


if __name__ == '__main__':
    main()
