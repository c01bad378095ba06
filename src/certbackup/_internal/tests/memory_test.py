"""Tests for the in-memory storage backend and secret store."""
import sys
import unittest

import pytest

from certbackup import errors
from certbackup._internal.secrets.memory import MemorySecretStore
from certbackup._internal.storage.memory import MemoryStorage
from certbackup.secret import Identity
from certbackup.tests import util as test_util


class MemoryStorageTest(unittest.TestCase):
    """Tests for certbackup._internal.storage.memory.MemoryStorage."""

    def setUp(self):
        self.storage = MemoryStorage()

    def test_upload_download(self):
        self.storage.upload('b.json', b'1')
        self.storage.upload('a.json', b'2')
        self.storage.upload('b.json', b'3')
        assert self.storage.download('b.json') == b'3'
        assert self.storage.list_names() == ['a.json', 'b.json']

    def test_download_not_found(self):
        with pytest.raises(errors.BackupNotFound):
            self.storage.download('a.json')


class MemorySecretStoreTest(unittest.TestCase):
    """Tests for certbackup._internal.secrets.memory.MemorySecretStore."""

    def setUp(self):
        self.store = MemorySecretStore()

    def test_get_missing(self):
        assert self.store.get(test_util.IDENTITY) is None

    def test_create_assigns_resource_version(self):
        self.store.create(test_util.make_secret())
        self.store.create(test_util.make_secret(Identity('other', 'www-tls')))
        assert self.store.get(test_util.IDENTITY).metadata.resource_version == '1'
        assert self.store.get(Identity('other', 'www-tls')).metadata.resource_version == '2'

    def test_create_conflict(self):
        self.store.create(test_util.make_secret())
        with pytest.raises(errors.AlreadyExists):
            self.store.create(test_util.make_secret())

    def test_delete(self):
        self.store.create(test_util.make_secret())
        self.store.delete(test_util.IDENTITY)
        self.store.delete(test_util.IDENTITY)
        assert self.store.get(test_util.IDENTITY) is None


if __name__ == "__main__":
    sys.exit(pytest.main(sys.argv[1:] + [__file__]))  # pragma: no cover
