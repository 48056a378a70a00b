from datetime import datetime, timedelta, timezone

import pytest
from asn1crypto import cms, core
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, padding, rsa
from cryptography.x509.oid import NameOID

from lkmsign.header import MODULE_SIG_STRING

HASHES = {
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
}


def make_cert(key, common_name="lkmsign test key", serial=0x1234):
    name = x509.Name([
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "lkmsign"),
        x509.NameAttribute(NameOID.COMMON_NAME, common_name),
    ])
    now = datetime.now(timezone.utc)
    algorithm = None if isinstance(key, ed25519.Ed25519PrivateKey) else hashes.SHA256()
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(serial)
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=365))
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .sign(key, algorithm)
    )


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_cert(rsa_key):
    return make_cert(rsa_key)


@pytest.fixture(scope="session")
def ec_keys():
    return {
        "secp256r1": ec.generate_private_key(ec.SECP256R1()),
        "secp384r1": ec.generate_private_key(ec.SECP384R1()),
        "secp521r1": ec.generate_private_key(ec.SECP521R1()),
    }


@pytest.fixture(scope="session")
def ed25519_key():
    return ed25519.Ed25519PrivateKey.generate()


def split_signed(output: bytes):
    """Split a signed module into (payload, signature DER, descriptor)."""
    assert output.endswith(MODULE_SIG_STRING)
    trailer_end = len(output) - len(MODULE_SIG_STRING)
    descriptor = output[trailer_end - 12:trailer_end]
    sig_len = int.from_bytes(descriptor[8:12], "big")
    sig_start = trailer_end - 12 - sig_len
    return output[:sig_start], output[sig_start:trailer_end - 12], descriptor


def verify_detached(der: bytes, payload: bytes, cert: x509.Certificate):
    """Check a detached CMS signature over payload, raising InvalidSignature on mismatch."""
    content_info = cms.ContentInfo.load(der)
    signer_info = content_info["content"]["signer_infos"][0]
    signature = signer_info["signature"].native
    digest_algorithm = signer_info["digest_algorithm"]["algorithm"].native

    signed_attrs = signer_info["signed_attrs"]
    if isinstance(signed_attrs, core.Void):
        message = payload
    else:
        message = signed_attrs.untag().dump()

    public_key = cert.public_key()
    if isinstance(public_key, rsa.RSAPublicKey):
        public_key.verify(signature, message, padding.PKCS1v15(), HASHES[digest_algorithm]())
    elif isinstance(public_key, ec.EllipticCurvePublicKey):
        public_key.verify(signature, message, ec.ECDSA(HASHES[digest_algorithm]()))
    else:
        public_key.verify(signature, message)
