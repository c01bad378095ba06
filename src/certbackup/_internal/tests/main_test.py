"""Tests for certbackup._internal.main."""
import io
import os
import signal
import sys
from unittest import mock

import pytest

from certbackup import errors
from certbackup import interfaces
from certbackup import secret as secret_lib
from certbackup._internal import cli
from certbackup._internal import constants
from certbackup._internal import main
from certbackup._internal.secrets.kubectl import KubectlSecretStore
from certbackup._internal.secrets.memory import MemorySecretStore
from certbackup._internal.storage.filesystem import FilesystemStorage
from certbackup._internal.storage.s3 import S3Storage
from certbackup.configuration import NamespaceConfig
from certbackup.secret import Identity
from certbackup.tests import util as test_util

OTHER = Identity('kube-system', 'api-tls')


class MainTest(test_util.TempDirTestCase):
    """Tests for certbackup._internal.main.main."""

    def setUp(self):
        super().setUp()
        self.backup_dir = os.path.join(self.tempdir, 'backups')
        self.secrets = MemorySecretStore()

        for patcher in (
                mock.patch.dict(os.environ, {}, clear=True),
                mock.patch('certbackup._internal.main.log'),
                mock.patch('certbackup._internal.main.make_secret_store',
                           side_effect=lambda config: self.secrets),
                mock.patch('certbackup._internal.reconciler.crypto_util.utcnow',
                           return_value=test_util.NOW)):
            patcher.start()
            self.addCleanup(patcher.stop)

    def _call(self, args):
        args = ['--storage', 'filesystem', '--backup-dir', self.backup_dir] + args
        with mock.patch('sys.stdout', new_callable=io.StringIO) as mock_stdout:
            status = main.main(args)
        return status, mock_stdout.getvalue()

    def test_backup(self):
        self.secrets.create(test_util.make_secret())

        status, output = self._call(['reconcile', str(test_util.IDENTITY)])

        assert status == constants.EXIT_OK
        assert output == 'default/www-tls: backed-up\n'
        assert os.listdir(self.backup_dir) == ['default:www-tls.json']

    def test_restore_and_noop(self):
        backup = test_util.make_secret()
        FilesystemStorage(self.backup_dir).upload(
            'default:www-tls.json', secret_lib.dumps(backup))

        status, output = self._call(['reconcile', str(test_util.IDENTITY), str(OTHER)])

        assert status == constants.EXIT_OK
        assert output == 'default/www-tls: restored\nkube-system/api-tls: noop\n'
        assert self.secrets.get(test_util.IDENTITY).data == backup.data

    def test_failed(self):
        expired = test_util.make_secret(chain=test_util.cert_pem(test_util.expired_cert()))
        self.secrets.create(expired)
        FilesystemStorage(self.backup_dir).upload(
            'default:www-tls.json', secret_lib.dumps(expired))
        self.secrets.create(test_util.make_secret(OTHER))

        status, output = self._call(['reconcile', str(test_util.IDENTITY), str(OTHER)])

        assert status == constants.EXIT_FAILED
        assert output == 'default/www-tls: failed\nkube-system/api-tls: backed-up\n'

    def test_retry(self):
        self.secrets = mock.MagicMock(spec=interfaces.SecretStore)
        self.secrets.get.side_effect = errors.ClusterError('connection refused')

        status, output = self._call(['reconcile', str(test_util.IDENTITY)])

        assert status == constants.EXIT_RETRY
        assert output == 'default/www-tls: retry\n'

    def test_signal_cancels_remaining_work(self):
        live = test_util.make_secret()

        def get(identity):
            # deliver SIGTERM through the handler installed by reconcile
            signal.getsignal(signal.SIGTERM)(signal.SIGTERM, None)
            return live
        self.secrets = mock.MagicMock(spec=interfaces.SecretStore)
        self.secrets.get.side_effect = get
        previous = signal.getsignal(signal.SIGTERM)

        status, output = self._call(['reconcile', str(test_util.IDENTITY), str(OTHER)])

        assert status == constants.EXIT_RETRY
        assert output == 'default/www-tls: retry\nkube-system/api-tls: retry\n'
        assert self.secrets.get.call_count == 1
        assert signal.getsignal(signal.SIGTERM) is previous
        assert not os.path.exists(self.backup_dir)

    def test_list(self):
        storage = FilesystemStorage(self.backup_dir)
        storage.upload('kube-system:api-tls.json', b'{}')
        storage.upload('default:www-tls.json', b'{}')

        status, output = self._call(['list'])

        assert status == constants.EXIT_OK
        assert output == 'default:www-tls.json\nkube-system:api-tls.json\n'

    def test_logging_setup(self):
        self._call(['list'])
        main.log.pre_arg_parse_setup.assert_called_once_with()
        config = main.log.post_arg_parse_setup.call_args[0][0]
        assert isinstance(config, NamespaceConfig)
        assert config.backup_dir == self.backup_dir

    def test_configuration_error(self):
        with pytest.raises(errors.ConfigurationError):
            main.main(['--storage', 'filesystem', 'list'])

    def test_public_main(self):
        from certbackup import main as public_main
        with mock.patch('certbackup._internal.main.main', return_value=75) as mock_main:
            assert public_main.main(['list']) == 75
        mock_main.assert_called_once_with(['list'])


class FactoryTest(test_util.TempDirTestCase):
    """Tests for certbackup._internal.main.make_storage and make_secret_store."""

    def setUp(self):
        super().setUp()
        patcher = mock.patch.dict(os.environ, {}, clear=True)
        patcher.start()
        self.addCleanup(patcher.stop)

    @classmethod
    def _config(cls, args):
        return NamespaceConfig(cli.prepare_and_parse_args(args + ['list']))

    def test_filesystem(self):
        storage = main.make_storage(self._config(
            ['--storage', 'filesystem', '--backup-dir', self.tempdir]))
        assert isinstance(storage, FilesystemStorage)
        assert storage.directory == self.tempdir

    @mock.patch('certbackup._internal.storage.s3.boto3.client')
    def test_s3(self, mock_client):
        storage = main.make_storage(self._config(
            ['--s3-bucket', 'backups', '--s3-region', 'eu-west-1']))
        assert isinstance(storage, S3Storage)
        assert storage.bucket == 'backups'
        mock_client.assert_called_once_with('s3', region_name='eu-west-1')

    def test_secret_store(self):
        store = main.make_secret_store(self._config(
            ['--s3-bucket', 'b', '--kubeconfig', '/etc/kube/config',
             '--context', 'prod', '--kubectl-timeout', '5']))
        assert isinstance(store, KubectlSecretStore)
        assert store.kubectl == 'kubectl'
        assert store.kubeconfig == '/etc/kube/config'
        assert store.context == 'prod'
        assert store.timeout == 5


if __name__ == "__main__":
    sys.exit(pytest.main(sys.argv[1:] + [__file__]))  # pragma: no cover
