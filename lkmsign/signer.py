from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, padding, rsa
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed

from .errors import InvalidCertificate, SignerSetupFailed


HASH_ALGORITHMS = {
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
}

# curve name -> digest the CMS layer picks for it
EC_DIGESTS = {
    "secp256r1": "sha256",
    "secp384r1": "sha384",
    "secp521r1": "sha512",
}


def key_algorithm(public_key) -> str:
    """Return "rsa", "ec" or "ed25519" for a supported public key."""
    if isinstance(public_key, rsa.RSAPublicKey):
        return "rsa"
    if isinstance(public_key, ec.EllipticCurvePublicKey):
        if public_key.curve.name not in EC_DIGESTS:
            raise InvalidCertificate("unsupported elliptic curve: %s" % public_key.curve.name)
        return "ec"
    if isinstance(public_key, ed25519.Ed25519PublicKey):
        return "ed25519"
    raise InvalidCertificate("unsupported public key type: %s" % type(public_key).__name__)


def select_digest_algorithm(public_key, requested=None) -> str:
    """
    Pick the digest algorithm for a signer key.

    RSA and P-256 use sha256, P-384 uses sha384, P-521 uses sha512 and
    Ed25519 always uses sha512. A requested algorithm overrides the choice
    for RSA and ECDSA keys but must be one of HASH_ALGORITHMS.
    """
    algo = key_algorithm(public_key)
    if algo == "ed25519":
        default = "sha512"
    elif algo == "ec":
        default = EC_DIGESTS[public_key.curve.name]
    else:
        # TODO: kernels built without CONFIG_CRYPTO_SHA256 need the digest from CONFIG_MODULE_SIG_HASH
        default = "sha256"

    if requested is None:
        return default
    if requested not in HASH_ALGORITHMS:
        raise SignerSetupFailed("unsupported digest algorithm: %s" % requested)
    if algo == "ed25519" and requested != default:
        raise SignerSetupFailed("Ed25519 signatures require sha512, not %s" % requested)
    return requested


def compute_digest(data: bytes, digest_algorithm: str) -> bytes:
    h = hashes.Hash(HASH_ALGORITHMS[digest_algorithm]())
    h.update(data)
    return h.finalize()


class Signer(object):
    """
    Something that can produce a raw signature without handing out its key.

    For RSA and ECDSA keys ``data`` is the digest computed with
    ``digest_algorithm``. Ed25519 hashes internally, so it receives the
    whole message instead.
    """

    @property
    def public_key(self):
        raise NotImplementedError

    def sign(self, data: bytes, digest_algorithm: str) -> bytes:
        raise NotImplementedError


class KeySigner(Signer):
    """Signer backed by a private key object from ``cryptography``."""

    def __init__(self, private_key):
        self.private_key = private_key

    @property
    def public_key(self):
        return self.private_key.public_key()

    def sign(self, data: bytes, digest_algorithm: str) -> bytes:
        key = self.private_key
        if isinstance(key, ed25519.Ed25519PrivateKey):
            return key.sign(data)

        algorithm = Prehashed(HASH_ALGORITHMS[digest_algorithm]())
        if isinstance(key, rsa.RSAPrivateKey):
            return key.sign(data, padding.PKCS1v15(), algorithm)
        if isinstance(key, ec.EllipticCurvePrivateKey):
            return key.sign(data, ec.ECDSA(algorithm))
        raise TypeError("unsupported private key type: %s" % type(key).__name__)
