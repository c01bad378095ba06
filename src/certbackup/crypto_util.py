"""Validation of TLS secrets.

Nothing in this module performs I/O. The current time is always obtained
from a caller supplied clock so that validity can be judged at any instant.

"""
import datetime
import ipaddress
import logging
import re
from typing import Callable
from typing import List
from typing import Mapping
from typing import NamedTuple
from typing import Optional
from typing import Tuple

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from certbackup import errors
from certbackup import secret as secret_lib

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime.datetime]


class ValidationOutcome(NamedTuple):
    """Result of judging a secret.

    `valid` False is a normal answer, not an error. `cause` explains it.

    """
    valid: bool
    cause: Optional[str] = None


def utcnow() -> datetime.datetime:
    """Default clock."""
    return datetime.datetime.now(tz=datetime.timezone.utc)


# Finds one CERTIFICATE stricttextualmsg according to rfc7468#section-3.
# Does not validate the base64text - use x509.load_pem_x509_certificate.
CERT_PEM_REGEX = re.compile(
    rb"-----BEGIN CERTIFICATE-----\r?\n.+?\r?\n-----END CERTIFICATE-----",
    re.DOTALL  # DOTALL (/s) because the base64text may include newlines
)


def validate(data: Mapping[str, bytes], clock: Optional[Clock] = None) -> ValidationOutcome:
    """Judge the key and certificate chain held in a secret's data.

    The secret is valid when its private key is RSA, every certificate
    in the chain is inside its validity window at ``clock()``, and every
    DNS name of every certificate verifies against that certificate.

    :param data: secret data, see `.secret.TLS_PRIVATE_KEY_KEY` and
        `.secret.TLS_CERT_KEY`
    :param clock: returns the current time, defaults to `utcnow`

    :returns: the judgment
    :rtype: `ValidationOutcome`

    :raises errors.UnsupportedKeyType: if the private key is not RSA
    :raises errors.ParseError: if the key or chain cannot be decoded

    """
    _, certs = read_key_and_chain(data)
    if not certs:
        return ValidationOutcome(False, 'empty certificate chain')

    now = _aware((clock or utcnow)())
    for cert in certs:
        for name in get_sans_from_cert(cert):
            if not verify_hostname(cert, name):
                return ValidationOutcome(
                    False, f'{name} does not verify against {cert.subject.rfc4514_string()}')
        not_before, not_after = cert.not_valid_before_utc, cert.not_valid_after_utc
        if now < not_before or now > not_after:
            return ValidationOutcome(
                False, '{0} is valid from {1} to {2}, not at {3}'.format(
                    cert.subject.rfc4514_string(), not_before.isoformat(),
                    not_after.isoformat(), now.isoformat()))
    return ValidationOutcome(True)


def verify_secret(secret: secret_lib.Secret,
                  clock: Optional[Clock] = None) -> ValidationOutcome:
    """`validate` the data of `secret`."""
    return validate(secret.data, clock)


def read_key_and_chain(data: Mapping[str, bytes]
                       ) -> Tuple[rsa.RSAPrivateKey, List[x509.Certificate]]:
    """Decode the private key and the certificate chain of a secret.

    :raises errors.UnsupportedKeyType: if the private key is not RSA
    :raises errors.ParseError: if a field is missing or cannot be decoded

    """
    for field in (secret_lib.TLS_PRIVATE_KEY_KEY, secret_lib.TLS_CERT_KEY):
        if field not in data:
            raise errors.ParseError(f'secret has no {field} field')
    key = load_rsa_private_key(data[secret_lib.TLS_PRIVATE_KEY_KEY])
    return key, load_certificate_chain(data[secret_lib.TLS_CERT_KEY])


def load_rsa_private_key(key_pem: bytes) -> rsa.RSAPrivateKey:
    """Load an unencrypted PEM private key, which must be RSA.

    Both PKCS#1 (``RSA PRIVATE KEY``) and PKCS#8 (``PRIVATE KEY``) are
    accepted.

    """
    try:
        key = serialization.load_pem_private_key(key_pem, password=None)
    except UnsupportedAlgorithm as error:
        raise errors.UnsupportedKeyType(f'unsupported private key algorithm: {error}')
    except (ValueError, TypeError) as error:
        logger.debug('', exc_info=True)
        raise errors.ParseError(f'unable to load private key: {error}')
    if not isinstance(key, rsa.RSAPrivateKey):
        raise errors.UnsupportedKeyType(
            f'private key is not an RSA key ({type(key).__name__})')
    return key


def load_certificate_chain(chain_pem: bytes) -> List[x509.Certificate]:
    """Load every certificate of a PEM chain, in order.

    Blank input is an empty chain. Non blank input without any
    certificate, or with a certificate that does not parse, is an error.

    :raises errors.ParseError: if the chain is malformed

    """
    blocks = CERT_PEM_REGEX.findall(chain_pem)
    if not blocks:
        if chain_pem.strip():
            raise errors.ParseError('certificate chain contains no PEM certificates')
        return []
    certs = []
    for block in blocks:
        try:
            certs.append(x509.load_pem_x509_certificate(block))
        except ValueError as error:
            raise errors.ParseError(f'unable to load certificate: {error}')
    return certs


def get_sans_from_cert(cert: x509.Certificate) -> List[str]:
    """Get the DNS Subject Alternative Names of a certificate.

    :returns: A list of Subject Alternative Names.
    :rtype: list

    """
    san = _get_san(cert)
    if san is None:
        return []
    return san.get_values_for_type(x509.DNSName)


def verify_hostname(cert: x509.Certificate, hostname: str) -> bool:
    """Does `hostname` match one of the subject alternative names of `cert`?

    IP literals are compared with IP address names. Otherwise the
    comparison is case insensitive, ignores one trailing dot and allows a
    ``*`` wildcard only as the whole left-most label of a name.

    """
    san = _get_san(cert)
    if san is None:
        return False

    try:
        address = ipaddress.ip_address(hostname.strip('[]'))
    except ValueError:
        pass
    else:
        return address in san.get_values_for_type(x509.IPAddress)

    candidate = hostname.lower()
    return any(_match_hostname(pattern.lower(), candidate)
               for pattern in san.get_values_for_type(x509.DNSName))


def _get_san(cert: x509.Certificate) -> Optional[x509.SubjectAlternativeName]:
    """Subject Alternative Name extension of `cert`, if it has one.

    :raises errors.ParseError: if the extensions are malformed

    """
    try:
        return cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
    except x509.ExtensionNotFound:
        return None
    except (x509.DuplicateExtension, x509.UnsupportedGeneralNameType, ValueError) as error:
        raise errors.ParseError(f'malformed certificate extensions: {error}')


def _match_hostname(pattern: str, host: str) -> bool:
    pattern, host = _strip_dot(pattern), _strip_dot(host)
    if not pattern or not host:
        return False
    if pattern == host:
        return True

    pattern_labels, host_labels = pattern.split('.'), host.split('.')
    if len(pattern_labels) != len(host_labels) or len(pattern_labels) < 3:
        return False
    if pattern_labels[0] != '*' or not host_labels[0]:
        return False
    return pattern_labels[1:] == host_labels[1:] and all(host_labels[1:])


def get_names_from_chain(chain_pem: bytes) -> List[str]:
    """DNS names of every certificate in a PEM chain, without duplicates.

    :raises errors.ParseError: if the chain is malformed

    """
    names: List[str] = []
    for cert in load_certificate_chain(chain_pem):
        names.extend(name for name in get_sans_from_cert(cert) if name not in names)
    return names


def notBefore(chain_pem: bytes) -> datetime.datetime:
    """When does the leaf certificate of `chain_pem` start being valid?

    :param bytes chain_pem: certificate chain in PEM format, leaf first

    :returns: the notBefore value of the leaf certificate
    :rtype: :class:`datetime.datetime`

    :raises errors.ParseError: if the chain is malformed or empty

    """
    return _leaf(chain_pem).not_valid_before_utc


def notAfter(chain_pem: bytes) -> datetime.datetime:
    """When does the leaf certificate of `chain_pem` stop being valid?

    :param bytes chain_pem: certificate chain in PEM format, leaf first

    :returns: the notAfter value of the leaf certificate
    :rtype: :class:`datetime.datetime`

    :raises errors.ParseError: if the chain is malformed or empty

    """
    return _leaf(chain_pem).not_valid_after_utc


def _leaf(chain_pem: bytes) -> x509.Certificate:
    certs = load_certificate_chain(chain_pem)
    if not certs:
        raise errors.ParseError('certificate chain is empty')
    return certs[0]


def _aware(now: datetime.datetime) -> datetime.datetime:
    if now.tzinfo is None:
        return now.replace(tzinfo=datetime.timezone.utc)
    return now


def _strip_dot(name: str) -> str:
    return name[:-1] if name.endswith('.') else name
