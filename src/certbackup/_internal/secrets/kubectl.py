"""Secret store talking to a Kubernetes cluster through kubectl."""
import logging
import subprocess
from typing import List
from typing import Optional
from typing import Tuple

from certbackup import errors
from certbackup import interfaces
from certbackup import secret as secret_lib
from certbackup.secret import Identity
from certbackup.secret import Secret

logger = logging.getLogger(__name__)


class KubectlSecretStore(interfaces.SecretStore):
    """Reads and creates secrets by running ``kubectl``.

    :ivar str kubectl: kubectl executable
    :ivar str kubeconfig: kubeconfig file, or None for kubectl's default
    :ivar str context: kubeconfig context, or None for the current one
    :ivar int timeout: seconds to wait for each kubectl invocation

    """

    def __init__(self, kubectl: str = 'kubectl', kubeconfig: Optional[str] = None,
                 context: Optional[str] = None, timeout: int = 30) -> None:
        self.kubectl = kubectl
        self.kubeconfig = kubeconfig
        self.context = context
        self.timeout = timeout

    def get(self, identity: Identity) -> Optional[Secret]:
        returncode, stdout, stderr = self._run(
            ['get', 'secret', identity.name, '--namespace', identity.namespace,
             '--output', 'json'])
        if returncode != 0:
            if 'NotFound' in stderr:
                return None
            raise errors.ClusterError(
                f'Unable to get secret {identity}: {stderr.strip()}')
        try:
            return secret_lib.loads(stdout)
        except errors.ParseError as error:
            raise errors.ClusterError(f'Unexpected kubectl output for {identity}: {error}')

    def create(self, secret: Secret) -> None:
        returncode, _, stderr = self._run(
            ['create', '--namespace', secret.metadata.namespace, '--filename', '-'],
            stdin=secret.json_dumps())
        if returncode != 0:
            if 'AlreadyExists' in stderr:
                raise errors.AlreadyExists(f'Secret {secret.identity} already exists')
            raise errors.ClusterError(
                f'Unable to create secret {secret.identity}: {stderr.strip()}')
        logger.debug('Created secret %s', secret.identity)

    def _command(self, args: List[str]) -> List[str]:
        cmd = [self.kubectl]
        if self.kubeconfig:
            cmd.extend(['--kubeconfig', self.kubeconfig])
        if self.context:
            cmd.extend(['--context', self.context])
        return cmd + args

    def _run(self, args: List[str], stdin: Optional[str] = None) -> Tuple[int, str, str]:
        """Run kubectl.

        :returns: `tuple` (`int` returncode, `str` stdout, `str` stderr)

        :raises errors.ClusterError: if kubectl could not be run or timed out

        """
        cmd = self._command(args)
        logger.debug('Running %s', ' '.join(cmd))
        try:
            proc = subprocess.run(cmd, input=stdin, stdout=subprocess.PIPE,
                                  stderr=subprocess.PIPE, universal_newlines=True,
                                  check=False, timeout=self.timeout)
        except subprocess.TimeoutExpired:
            raise errors.ClusterError(
                f'{" ".join(cmd)} did not finish within {self.timeout} seconds')
        except (OSError, ValueError) as error:
            raise errors.ClusterError(f'Unable to run the command: {" ".join(cmd)}: {error}')
        return proc.returncode, proc.stdout, proc.stderr
