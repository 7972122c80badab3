# SPDX-License-Identifier: LGPL-3.0-or-later
"""
Tests for loading and applying ACLs through extended attributes.

Most tests run against the in-memory ``xattr_store`` fixture.  The live
tests at the end use ``posix_dir`` and are skipped when the tmpdir
filesystem has no POSIX ACL support.
"""

import errno
import os

import pytest

import posixacl as p


_KERNEL_HEX = ('0200000001000700ffffffff04000700ffffffff08000700b6150000'
               '10000700ffffffff20000500ffffffff')


def test_acl_attr_names():
    assert p.ACLAttr.ACCESS.value  == 'system.posix_acl_access'
    assert p.ACLAttr.DEFAULT.value == 'system.posix_acl_default'


# ── get_acl_bytes ─────────────────────────────────────────────────────────────

def test_get_acl_bytes_absent_is_none(xattr_store, acl_file):
    assert p.get_acl_bytes(acl_file) is None


def test_get_acl_bytes_returns_payload(xattr_store, acl_file):
    xattr_store.put(acl_file, bytes.fromhex(_KERNEL_HEX))
    assert p.get_acl_bytes(acl_file) == bytes.fromhex(_KERNEL_HEX)


def test_get_acl_bytes_other_errors_propagate(xattr_store, tmp_path):
    with pytest.raises(FileNotFoundError):
        p.get_acl_bytes(str(tmp_path / 'missing'))


def test_get_acl_bytes_eopnotsupp_propagates(monkeypatch, acl_file):
    def _getxattr(path, name, *, follow_symlinks=True):
        raise OSError(errno.EOPNOTSUPP, os.strerror(errno.EOPNOTSUPP))
    monkeypatch.setattr(os, 'getxattr', _getxattr)
    with pytest.raises(OSError) as exc:
        p.get_acl_bytes(acl_file)
    assert exc.value.errno == errno.EOPNOTSUPP


# ── load_acl ──────────────────────────────────────────────────────────────────

def test_load_acl_parses_payload(xattr_store, acl_file):
    xattr_store.put(acl_file, bytes.fromhex(_KERNEL_HEX))
    acl = p.load_acl(acl_file)
    assert len(acl) == 5
    assert acl.get_entry(p.ACLEntry(p.POSIXTag.GROUP, 5558)).perm == 7


def test_load_acl_bootstraps_when_absent(xattr_store, acl_file):
    st = os.stat(acl_file)
    acl = p.load_acl(acl_file)
    assert acl == p.POSIXACL([
        p.ACLEntry(p.POSIXTag.USER_OBJ,  st.st_uid,    6),
        p.ACLEntry(p.POSIXTag.GROUP_OBJ, st.st_gid,    4),
        p.ACLEntry(p.POSIXTag.MASK,      p.SPECIAL_ID, 7),
        p.ACLEntry(p.POSIXTag.OTHER,     p.SPECIAL_ID, 0),
    ])


def test_load_acl_default_attr(xattr_store, acl_dir):
    payload = bytes(p.POSIXACL.bootstrap(0, 0, 0o700))
    xattr_store.put(acl_dir, payload, name=p.ACLAttr.DEFAULT.value)
    acl = p.load_acl(acl_dir, p.ACLAttr.DEFAULT)
    assert bytes(acl) == payload


def test_load_acl_malformed_payload_raises(xattr_store, acl_file):
    xattr_store.put(acl_file, bytes.fromhex('0200000001000700ff'))
    with pytest.raises(p.MalformedDataError):
        p.load_acl(acl_file)


# ── apply_acl / remove_acl ────────────────────────────────────────────────────

def test_apply_acl_writes_sorted_payload(xattr_store, acl_file):
    acl = p.POSIXACL([
        p.ACLEntry(p.POSIXTag.OTHER,     p.SPECIAL_ID, 5),
        p.ACLEntry(p.POSIXTag.MASK,      p.SPECIAL_ID, 7),
        p.ACLEntry(p.POSIXTag.GROUP,     5558,         7),
        p.ACLEntry(p.POSIXTag.GROUP_OBJ, p.SPECIAL_ID, 7),
        p.ACLEntry(p.POSIXTag.USER_OBJ,  p.SPECIAL_ID, 7),
    ])
    p.apply_acl(acl_file, acl)
    assert xattr_store.get(acl_file).hex() == _KERNEL_HEX


def test_load_apply_load(xattr_store, acl_file):
    acl = p.load_acl(acl_file)
    acl.add_entry(p.ACLEntry(p.POSIXTag.USER, 1234, 5))
    p.apply_acl(acl_file, acl)
    assert p.load_acl(acl_file) == acl


def test_apply_default_acl_on_file_raises(xattr_store, acl_file):
    with pytest.raises(PermissionError):
        p.apply_acl(acl_file, p.POSIXACL.bootstrap(0, 0, 0o700),
                    p.ACLAttr.DEFAULT)


def test_remove_acl(xattr_store, acl_file):
    xattr_store.put(acl_file, bytes.fromhex(_KERNEL_HEX))
    assert p.remove_acl(acl_file) is True
    assert xattr_store.get(acl_file) is None
    assert p.remove_acl(acl_file) is False


def test_file_descriptor_accepted(xattr_store, acl_file):
    fd = os.open(acl_file, os.O_RDONLY)
    try:
        p.apply_acl(fd, p.POSIXACL.parse(bytes.fromhex(_KERNEL_HEX)))
        assert bytes(p.load_acl(fd)).hex() == _KERNEL_HEX
    finally:
        os.close(fd)


# ── live filesystem ───────────────────────────────────────────────────────────

def _new_file(directory, name='live', mode=0o644):
    path = os.path.join(directory, name)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    os.close(fd)
    os.chmod(path, mode)
    return path


def test_live_load_without_acl_matches_mode(posix_dir):
    path = _new_file(posix_dir, mode=0o604)
    st = os.stat(path)
    assert p.load_acl(path) == p.POSIXACL.bootstrap(st.st_uid, st.st_gid,
                                                    0o604)


def test_live_apply_named_user_round_trip(posix_dir):
    path = _new_file(posix_dir)
    acl = p.POSIXACL([
        p.ACLEntry(p.POSIXTag.OTHER,     p.SPECIAL_ID, 4),
        p.ACLEntry(p.POSIXTag.USER,      1001,         5),
        p.ACLEntry(p.POSIXTag.MASK,      p.SPECIAL_ID, 5),
        p.ACLEntry(p.POSIXTag.GROUP_OBJ, p.SPECIAL_ID, 4),
        p.ACLEntry(p.POSIXTag.USER_OBJ,  p.SPECIAL_ID, 6),
    ])
    p.apply_acl(path, acl)
    loaded = p.load_acl(path)
    assert loaded.get_entry(p.ACLEntry(p.POSIXTag.USER, 1001)).perm == 5
    assert loaded.get_entry(p.ACLEntry(p.POSIXTag.MASK)).perm == 5
    assert len(loaded) == 5
    assert p.remove_acl(path) is True
