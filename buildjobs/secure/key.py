"""
Per-repository key material for secure environment entries.

Secure entries are encrypted with the repository's RSA public key
(OAEP with SHA-256) and stored base64 encoded. Only the private key held here
can turn them back into plain text.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
from typing import Dict, Optional

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

LOG = logging.getLogger(__name__)


def _padding():
    return padding.OAEP(
        mgf=padding.MGF1(algorithm=hashes.SHA256()),
        algorithm=hashes.SHA256(),
        label=None)


class DecryptionError(Exception):
    pass


class RepositoryKey(object):
    def __init__(self, privateKey: rsa.RSAPrivateKey):
        self._privateKey = privateKey

    @classmethod
    def fromPem(cls, pem: bytes, password: Optional[bytes] = None):
        privateKey = serialization.load_pem_private_key(pem, password=password)
        if not isinstance(privateKey, rsa.RSAPrivateKey):
            raise ValueError("repository keys must be RSA private keys")
        return cls(privateKey)

    @classmethod
    def generate(cls, keySize: int = 2048):
        return cls(rsa.generate_private_key(public_exponent=65537, key_size=keySize))

    def encrypt(self, plain: str) -> str:
        cipher = self._privateKey.public_key().encrypt(
            plain.encode("utf-8"), _padding())
        return base64.b64encode(cipher).decode("ascii")

    def decrypt(self, payload: str) -> str:
        try:
            cipher = base64.b64decode(payload, validate=True)
            return self._privateKey.decrypt(cipher, _padding()).decode("utf-8")
        except (binascii.Error, TypeError, ValueError) as error:
            # the payload itself is never part of the message
            raise DecryptionError(
                "could not decrypt secure entry ({})".format(
                    type(error).__name__)) from error


def keyFileName(slug: str) -> str:
    return slug.replace("/", "_") + ".pem"


class KeyRing(object):
    """
    Loads repository keys from `<keysDir>/<owner>_<name>.pem` on demand.
    """

    def __init__(self, keysDir: Optional[str]):
        self._keysDir = keysDir
        self._cache: Dict[str, RepositoryKey] = {}

    def add(self, slug: str, key: RepositoryKey) -> None:
        self._cache[slug] = key

    def get(self, slug: str) -> Optional[RepositoryKey]:
        if slug in self._cache:
            return self._cache[slug]
        if not self._keysDir:
            return None
        path = os.path.join(self._keysDir, keyFileName(slug))
        try:
            with open(path, "rb") as keyFile:
                pem = keyFile.read()
        except FileNotFoundError:
            LOG.debug("no key file for %s at %s", slug, path)
            return None
        try:
            key = RepositoryKey.fromPem(pem)
        except (TypeError, ValueError, UnsupportedAlgorithm) as error:
            # only the error type, the key file contents stay out of the log
            LOG.warning("unusable key file for %s at %s (%s)",
                        slug, path, type(error).__name__)
            return None
        self._cache[slug] = key
        return key
