# SPDX-License-Identifier: LGPL-3.0-or-later
"""
Pytest fixtures for posixacl tests.

``xattr_store`` replaces os.getxattr/os.setxattr/os.removexattr with an
in-memory dict so that load/apply logic runs on any filesystem and without
privileges.  Paths must still exist; os.stat() is not faked, so the
mode-bit fallback sees the real file.

``posix_dir`` is a tmpdir on a filesystem that really supports POSIX ACLs.
Tests using it are skipped when the tmpdir filesystem does not.
"""

import errno
import os

import pytest


_ACCESS = 'system.posix_acl_access'
_DEFAULT = 'system.posix_acl_default'


class FakeXattrStore:
    """Dict-backed stand-in for the kernel xattr interface."""

    def __init__(self):
        self.data = {}
        self.calls = []

    @staticmethod
    def _key(path, name):
        if not isinstance(path, int):
            path = os.fsdecode(os.fspath(path))
            if not os.path.lexists(path):
                raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT),
                                        path)
        return path, name

    def getxattr(self, path, name, *, follow_symlinks=True):
        self.calls.append(('get', path, name))
        key = self._key(path, name)
        try:
            return self.data[key]
        except KeyError:
            raise OSError(errno.ENODATA, os.strerror(errno.ENODATA)) from None

    def setxattr(self, path, name, value, flags=0, *, follow_symlinks=True):
        self.calls.append(('set', path, name))
        key = self._key(path, name)
        if name == _DEFAULT and not os.path.isdir(key[0]):
            raise PermissionError(errno.EACCES, os.strerror(errno.EACCES))
        self.data[key] = bytes(value)

    def removexattr(self, path, name, *, follow_symlinks=True):
        self.calls.append(('remove', path, name))
        key = self._key(path, name)
        try:
            del self.data[key]
        except KeyError:
            raise OSError(errno.ENODATA, os.strerror(errno.ENODATA)) from None

    def get(self, path, name=_ACCESS):
        return self.data.get((os.fsdecode(os.fspath(path)), name))

    def put(self, path, value, name=_ACCESS):
        self.data[(os.fsdecode(os.fspath(path)), name)] = bytes(value)


@pytest.fixture
def xattr_store(monkeypatch):
    store = FakeXattrStore()
    monkeypatch.setattr(os, 'getxattr', store.getxattr)
    monkeypatch.setattr(os, 'setxattr', store.setxattr)
    monkeypatch.setattr(os, 'removexattr', store.removexattr)
    return store


@pytest.fixture
def acl_file(tmp_path):
    """A regular file with mode 0o640.  Yields its path as str."""
    path = tmp_path / 'testfile'
    path.touch()
    path.chmod(0o640)
    return str(path)


@pytest.fixture
def acl_dir(tmp_path):
    """A directory with mode 0o750.  Yields its path as str."""
    path = tmp_path / 'testdir'
    path.mkdir()
    path.chmod(0o750)
    return str(path)


@pytest.fixture
def posix_dir(tmp_path):
    try:
        os.getxattr(tmp_path, _ACCESS)
    except OSError as e:
        if e.errno != errno.ENODATA:
            pytest.skip(f'POSIX ACLs unavailable on {tmp_path}: {e}')
    return str(tmp_path)
