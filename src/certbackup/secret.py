"""TLS secrets and the identities they are backed up under."""
import datetime
import logging
from typing import Any
from typing import Dict
from typing import NamedTuple
from typing import Optional
from typing import Union

import josepy as jose

from certbackup import errors
from certbackup import fields

logger = logging.getLogger(__name__)

TLS_PRIVATE_KEY_KEY = 'tls.key'
"""Data field holding the PEM encoded private key."""

TLS_CERT_KEY = 'tls.crt'
"""Data field holding the PEM encoded certificate chain, leaf first."""

SECRET_TYPE_TLS = 'kubernetes.io/tls'

BACKUP_SUFFIX = '.json'


class Identity(NamedTuple):
    """Namespace and name of one secret and of its backup slot."""
    namespace: str
    name: str

    def __str__(self) -> str:
        return f'{self.namespace}/{self.name}'

    @classmethod
    def parse(cls, value: str) -> 'Identity':
        """Parse ``namespace/name``.

        :raises errors.ConfigurationError: if `value` is not of that form

        """
        namespace, sep, name = value.partition('/')
        if not sep or not namespace or not name or '/' in name:
            raise errors.ConfigurationError(
                f'Expected NAMESPACE/NAME, got {value!r}')
        return cls(namespace, name)


def backup_key(identity: Identity) -> str:
    """Storage object name for the backup of `identity`.

    There is exactly one object per identity, overwritten by every
    backup.

    """
    return f'{identity.namespace}:{identity.name}{BACKUP_SUFFIX}'


class Metadata(jose.JSONObjectWithFields):
    """Secret metadata.

    ``resourceVersion``, ``uid`` and ``creationTimestamp`` are assigned by
    the cluster and are not part of what gets restored.

    """
    namespace: str = jose.field('namespace')
    name: str = jose.field('name')
    labels: Optional[Dict[str, str]] = fields.string_map('labels')
    annotations: Optional[Dict[str, str]] = fields.string_map('annotations')
    resource_version: Optional[str] = jose.field('resourceVersion', omitempty=True)
    uid: Optional[str] = jose.field('uid', omitempty=True)
    creation_timestamp: Optional[datetime.datetime] = fields.rfc3339(
        'creationTimestamp', omitempty=True)


class Secret(jose.JSONObjectWithFields):
    """A TLS secret, in the JSON form used by the Kubernetes API.

    :ivar Metadata metadata: identity and bookkeeping
    :ivar str typ: secret type, usually ``kubernetes.io/tls``
    :ivar dict data: data field names mapped to raw bytes

    """
    api_version: str = fields.fixed('apiVersion', 'v1', omitempty=True)
    kind: str = fields.fixed('kind', 'Secret', omitempty=True)
    metadata: Metadata = jose.field('metadata', decoder=Metadata.from_json)
    typ: str = jose.field('type', omitempty=True, default=SECRET_TYPE_TLS)
    data: Dict[str, bytes] = fields.base64_data('data', omitempty=True)

    @classmethod
    def new(cls, identity: Identity, key_pem: bytes, cert_pem: bytes,
            **kwargs: Any) -> 'Secret':
        """Build a TLS secret for `identity` from PEM key and chain."""
        return cls(metadata=Metadata(namespace=identity.namespace, name=identity.name),
                   data={TLS_PRIVATE_KEY_KEY: key_pem, TLS_CERT_KEY: cert_pem},
                   **kwargs)

    @property
    def identity(self) -> Identity:
        """Identity recorded in the metadata."""
        return Identity(self.metadata.namespace, self.metadata.name)


def dumps(secret: Secret) -> bytes:
    """Serialize `secret` for storage.

    :raises errors.Error: if the secret cannot be serialized

    """
    try:
        return secret.json_dumps(sort_keys=True).encode('utf-8')
    except (jose.SerializationError, TypeError, ValueError) as error:
        raise errors.Error(f'Unable to serialize secret {secret.identity}: {error}')


def loads(content: Union[str, bytes]) -> Secret:
    """Deserialize a secret from its stored form.

    :raises errors.ParseError: if `content` is not a serialized secret

    """
    try:
        return Secret.json_loads(content)
    except (jose.DeserializationError, TypeError, ValueError) as error:
        raise errors.ParseError(f'Unable to deserialize secret: {error}')


def strip_bookkeeping(secret: Secret) -> Secret:
    """Copy of `secret` without the fields assigned by the cluster."""
    metadata = secret.metadata.update(
        resource_version=None, uid=None, creation_timestamp=None)
    return secret.update(metadata=metadata)
