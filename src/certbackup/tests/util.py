"""Test utilities."""
import datetime
import functools
import ipaddress
import shutil
import tempfile
import unittest
from typing import Iterable
from typing import Optional
from typing import Sequence

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from certbackup import secret as secret_lib
from certbackup.secret import Identity

NOW = datetime.datetime(2021, 8, 1, tzinfo=datetime.timezone.utc)
"""Instant the test certificates are judged at."""

IDENTITY = Identity('default', 'www-tls')
NAMES = ('example.com', 'www.example.com')


def clock(now: datetime.datetime = NOW):
    """Clock always returning `now`."""
    return lambda: now


@functools.lru_cache(maxsize=None)
def rsa_key(index: int = 0) -> rsa.RSAPrivateKey:
    """RSA key, cached because generating one is slow.

    Distinct `index` values give distinct keys.

    """
    del index
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def ec_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(ec.SECP256R1())


def key_pem(key, private_format=serialization.PrivateFormat.PKCS8) -> bytes:
    """Unencrypted PEM of `key`."""
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=private_format,
        encryption_algorithm=serialization.NoEncryption(),
    )


def make_cert(not_before: datetime.datetime, not_after: datetime.datetime,
              names: Iterable[str] = NAMES, key=None, ips: Sequence[str] = (),
              common_name: str = 'certbackup test') -> x509.Certificate:
    """Self-signed certificate with the given window and subject alternative names."""
    key = key if key is not None else rsa_key()
    general_names = [x509.DNSName(name) for name in names]
    general_names.extend(x509.IPAddress(ipaddress.ip_address(ip))
                         for ip in ips)
    builder = x509.CertificateBuilder(
        issuer_name=x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)]),
        subject_name=x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)]),
        public_key=key.public_key(),
        serial_number=x509.random_serial_number(),
        not_valid_before=not_before,
        not_valid_after=not_after,
    )
    if general_names:
        builder = builder.add_extension(
            x509.SubjectAlternativeName(general_names), critical=False)
    return builder.sign(private_key=key, algorithm=hashes.SHA256())


def cert_pem(*certs: x509.Certificate) -> bytes:
    """PEM chain made of `certs`, in order."""
    return b''.join(cert.public_bytes(serialization.Encoding.PEM) for cert in certs)


def valid_cert(**kwargs) -> x509.Certificate:
    """Certificate valid at `NOW`."""
    return make_cert(NOW - datetime.timedelta(days=30),
                     NOW + datetime.timedelta(days=60), **kwargs)


def expired_cert(**kwargs) -> x509.Certificate:
    """Certificate that expired before `NOW`."""
    return make_cert(NOW - datetime.timedelta(days=120),
                     NOW - datetime.timedelta(days=30), **kwargs)


def make_secret(identity: Identity = IDENTITY, chain: Optional[bytes] = None,
                key: Optional[bytes] = None, **kwargs) -> secret_lib.Secret:
    """TLS secret for `identity`, holding a valid chain unless `chain` is given."""
    return secret_lib.Secret.new(
        identity,
        key if key is not None else key_pem(rsa_key()),
        chain if chain is not None else cert_pem(valid_cert()),
        **kwargs)


class TempDirTestCase(unittest.TestCase):
    """Base test class which sets up and tears down a temporary directory"""

    def setUp(self):
        """Execute before test"""
        self.tempdir = tempfile.mkdtemp()

    def tearDown(self):
        """Execute after test"""
        shutil.rmtree(self.tempdir)
