import os

from cryptography import x509
from cryptography.hazmat.primitives import serialization

from .errors import KeyLoadError


def _read(path) -> bytes:
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise KeyLoadError("can not read %s: %s" % (path, e)) from e


def load_certificate_file(path) -> x509.Certificate:
    """Read an X.509 certificate in PEM or DER form."""
    data = _read(path)
    try:
        if b"-----BEGIN" in data:
            return x509.load_pem_x509_certificate(data)
        return x509.load_der_x509_certificate(data)
    except ValueError as e:
        raise KeyLoadError("can not parse certificate %s: %s" % (path, e)) from e


def _load_private_key(data: bytes, password):
    if b"-----BEGIN" in data:
        return serialization.load_pem_private_key(data, password=password)
    return serialization.load_der_private_key(data, password=password)


def load_private_key_file(path, password=None):
    """
    Read a private key in PEM or DER form.

    Like sign-file, the password falls back to KBUILD_SIGN_PIN, which is
    ignored for keys that are not encrypted.
    """
    data = _read(path)
    from_env = password is None and "KBUILD_SIGN_PIN" in os.environ
    if from_env:
        password = os.environ["KBUILD_SIGN_PIN"]
    if isinstance(password, str):
        password = password.encode("utf-8")
    try:
        try:
            return _load_private_key(data, password)
        except TypeError:
            if not from_env:
                raise
            return _load_private_key(data, None)
    except (ValueError, TypeError) as e:
        raise KeyLoadError("can not parse private key %s: %s" % (path, e)) from e
