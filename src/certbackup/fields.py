"""JSON fields for serialized secrets."""
import base64
import binascii
import datetime
import logging
from typing import Any
from typing import Dict
from typing import Mapping
from typing import Optional

import josepy as jose
import pyrfc3339

logger = logging.getLogger(__name__)


class Fixed(jose.Field):
    """Fixed field."""

    def __init__(self, json_name: str, value: Any, omitempty: bool = False) -> None:
        self.value = value
        super().__init__(
            json_name=json_name, default=value, omitempty=omitempty)

    def decode(self, value: Any) -> Any:
        if value != self.value:
            raise jose.DeserializationError(f'Expected {self.value!r}')
        return self.value

    def encode(self, value: Any) -> Any:
        if value != self.value:
            logger.warning(
                'Overriding fixed field (%s) with %r', self.json_name, value)
        return value


class RFC3339Field(jose.Field):
    """RFC3339 field encoder/decoder.

    Handles decoding/encoding between RFC3339 strings and aware (not
    naive) `datetime.datetime` objects
    (e.g. ``datetime.datetime.now(datetime.timezone.utc)``).

    """

    @classmethod
    def default_encoder(cls, value: datetime.datetime) -> str:
        return pyrfc3339.generate(value)

    @classmethod
    def default_decoder(cls, value: Optional[str]) -> Optional[datetime.datetime]:
        if value is None:
            return None
        try:
            return pyrfc3339.parse(value)
        except ValueError as error:
            raise jose.DeserializationError(error)


class Base64DataField(jose.Field):
    """Mapping of names to bytes, encoded with standard (padded) base64.

    This is the encoding Kubernetes uses for the ``data`` of a Secret,
    which differs from the URL-safe, unpadded flavour of
    `josepy.encode_b64jose`.

    """

    @classmethod
    def default_encoder(cls, value: Mapping[str, bytes]) -> Dict[str, str]:
        return {key: base64.b64encode(content).decode('ascii')
                for key, content in value.items()}

    @classmethod
    def default_decoder(cls, value: Any) -> Dict[str, bytes]:
        if value is None:
            return {}
        if not isinstance(value, Mapping):
            raise jose.DeserializationError('Expected a mapping of base64 strings')
        data: Dict[str, bytes] = {}
        for key, content in value.items():
            if not isinstance(content, str):
                raise jose.DeserializationError(f'Expected a string for {key!r}')
            try:
                data[key] = base64.b64decode(content, validate=True)
            except (binascii.Error, ValueError) as error:
                raise jose.DeserializationError(f'{key!r}: {error}')
        return data


class StringMapField(jose.Field):
    """Mapping of strings to strings, such as labels or annotations."""

    @classmethod
    def default_encoder(cls, value: Mapping[str, str]) -> Dict[str, str]:
        return dict(value)

    @classmethod
    def default_decoder(cls, value: Any) -> Optional[Dict[str, str]]:
        if value is None:
            return None
        if not isinstance(value, Mapping) or not all(
                isinstance(key, str) and isinstance(item, str)
                for key, item in value.items()):
            raise jose.DeserializationError('Expected a mapping of strings')
        return dict(value)


def fixed(json_name: str, value: Any, omitempty: bool = False) -> Any:
    """Generates a type-friendly Fixed field.

    With `omitempty`, a missing member decodes to `value`; a present one
    must still equal it.

    """
    return Fixed(json_name, value, omitempty=omitempty)


def rfc3339(json_name: str, omitempty: bool = False) -> Any:
    """Generates a type-friendly RFC3339 field."""
    return RFC3339Field(json_name, omitempty=omitempty)


def base64_data(json_name: str, omitempty: bool = False) -> Any:
    """Generates a type-friendly base64 data mapping field."""
    return Base64DataField(json_name, omitempty=omitempty, default={})


def string_map(json_name: str) -> Any:
    """Generates a type-friendly optional string mapping field."""
    return StringMapField(json_name, omitempty=True, default=None)
