from dataclasses import dataclass, field
from datetime import datetime, timezone

from asn1crypto import algos, cms, core
from asn1crypto import x509 as asn1_x509
from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from .errors import EncodingFailed, InvalidCertificate, SignatureFailed, SignerSetupFailed
from .signer import Signer, compute_digest, key_algorithm, select_digest_algorithm


@dataclass(frozen=True)
class SignatureAlgorithmPolicy:
    """
    Maps (public key algorithm, digest algorithm) to the mechanism name
    asn1crypto uses for the SignerInfo signatureAlgorithm field.
    """
    name: str
    mechanisms: dict = field(default_factory=dict)

    def override(self, name, mechanisms):
        return SignatureAlgorithmPolicy(name, {**self.mechanisms, **mechanisms})

    def signature_algorithm(self, key_algo: str, digest_algorithm: str) -> algos.SignedDigestAlgorithm:
        mech = self.mechanisms.get((key_algo, digest_algorithm))
        if mech is None:
            raise SignerSetupFailed("no signature algorithm for %s with %s in policy %s" % (key_algo, digest_algorithm, self.name))
        if key_algo == "rsa":
            return algos.SignedDigestAlgorithm({"algorithm": mech, "parameters": core.Null()})
        return algos.SignedDigestAlgorithm({"algorithm": mech})


_DIGESTS = ("md5", "sha1", "sha256", "sha384", "sha512")

DEFAULT_POLICY = SignatureAlgorithmPolicy("default", {
    **{("rsa", d): "%s_rsa" % d for d in _DIGESTS},
    **{("ec", d): "%s_ecdsa" % d for d in ("sha256", "sha384", "sha512")},
    ("ed25519", "sha512"): "ed25519",
})

# the kernel's PKCS#7 parser only knows rsaEncryption for RSA signers
KERNEL_POLICY = DEFAULT_POLICY.override("kernel", {("rsa", d): "rsassa_pkcs1v15" for d in _DIGESTS})


def load_certificate(cert):
    """
    Accept a ``cryptography`` certificate, an asn1crypto certificate or DER
    bytes and return ``(cryptography_cert, asn1crypto_cert)``.
    """
    if isinstance(cert, asn1_x509.Certificate):
        der = cert.dump()
    elif isinstance(cert, x509.Certificate):
        der = cert.public_bytes(Encoding.DER)
    elif isinstance(cert, (bytes, bytearray)):
        der = bytes(cert)
    else:
        raise InvalidCertificate("not a certificate: %s" % type(cert).__name__)

    try:
        crypto_cert = x509.load_der_x509_certificate(der)
        crypto_cert.public_key()
        asn1_cert = asn1_x509.Certificate.load(der)
        # force parsing of the fields the SignerInfo needs
        asn1_cert.issuer.native
        asn1_cert.serial_number
    except (ValueError, UnsupportedAlgorithm) as e:
        raise InvalidCertificate("can not parse certificate: %s" % e) from e
    return crypto_cert, asn1_cert


def _spki(public_key) -> bytes:
    return public_key.public_bytes(Encoding.DER, PublicFormat.SubjectPublicKeyInfo)


def _signed_attrs(content: bytes, digest_algorithm: str) -> cms.CMSAttributes:
    now = datetime.now(timezone.utc).replace(microsecond=0)
    return cms.CMSAttributes([
        cms.CMSAttribute({"type": "content_type", "values": ["data"]}),
        cms.CMSAttribute({"type": "signing_time", "values": [cms.Time({"utc_time": core.UTCTime(now)})]}),
        cms.CMSAttribute({"type": "message_digest", "values": [compute_digest(content, digest_algorithm)]}),
    ])


class SignedData(object):
    """
    In-memory CMS SignedData over a byte string.

    Build it with the content, call :meth:`sign` once per signer, optionally
    :meth:`detached`, then :meth:`to_der`.
    """

    def __init__(self, content: bytes):
        if not isinstance(content, (bytes, bytearray, memoryview)):
            raise SignerSetupFailed("content must be bytes, not %s" % type(content).__name__)
        self.content = bytes(content)
        self.is_detached = False
        self.digest_algorithms = []  # type: list[algos.DigestAlgorithm]
        self.certificates = []  # type: list[asn1_x509.Certificate]
        self.signer_infos = []  # type: list[cms.SignerInfo]

    def sign(self, cert, signer: Signer, no_attr=False, no_certs=False, digest_algorithm=None,
             policy=DEFAULT_POLICY, chain=()):
        """
        Add a SignerInfo for ``cert`` whose signature is produced by ``signer``.

        :param no_attr: omit signed attributes, the signature then covers the content itself
        :param no_certs: do not embed ``cert`` and ``chain`` in the SignedData
        :param digest_algorithm: overrides the digest picked from the key type
        :param policy: the SignatureAlgorithmPolicy labelling the signature
        """
        crypto_cert, asn1_cert = load_certificate(cert)
        public_key = crypto_cert.public_key()
        key_algo = key_algorithm(public_key)
        if _spki(signer.public_key) != _spki(public_key):
            raise InvalidCertificate("certificate public key does not match the signer")

        digest_algorithm = select_digest_algorithm(public_key, digest_algorithm)
        signature_algorithm = policy.signature_algorithm(key_algo, digest_algorithm)

        signed_attrs = None
        if no_attr:
            message = self.content
        else:
            signed_attrs = _signed_attrs(self.content, digest_algorithm)
            message = signed_attrs.dump()

        if key_algo == "ed25519":
            to_sign = message
        else:
            to_sign = compute_digest(message, digest_algorithm)

        try:
            signature = signer.sign(to_sign, digest_algorithm)
        except Exception as e:
            raise SignatureFailed("signer failed: %s" % e) from e
        if not isinstance(signature, bytes) or not signature:
            raise SignatureFailed("signer returned no signature")
        if key_algo == "rsa" and len(signature) != (public_key.key_size + 7) // 8:
            raise SignatureFailed("RSA signature is %d bytes, expected %d" % (len(signature), (public_key.key_size + 7) // 8))

        digest_algorithm_obj = algos.DigestAlgorithm({"algorithm": digest_algorithm})
        signer_info = {
            "version": "v1",
            "sid": cms.SignerIdentifier({
                "issuer_and_serial_number": cms.IssuerAndSerialNumber({
                    "issuer": asn1_cert.issuer,
                    "serial_number": asn1_cert.serial_number,
                })
            }),
            "digest_algorithm": digest_algorithm_obj,
            "signature_algorithm": signature_algorithm,
            "signature": signature,
        }
        if signed_attrs is not None:
            signer_info["signed_attrs"] = signed_attrs
        self.signer_infos.append(cms.SignerInfo(signer_info))

        if digest_algorithm not in [d["algorithm"].native for d in self.digest_algorithms]:
            self.digest_algorithms.append(digest_algorithm_obj)

        if not no_certs:
            for c in (asn1_cert,) + tuple(load_certificate(c)[1] for c in chain):
                if c.dump() not in [known.dump() for known in self.certificates]:
                    self.certificates.append(c)

    def detached(self):
        """Drop the encapsulated content from the serialised form."""
        self.is_detached = True

    def content_info(self) -> cms.ContentInfo:
        encap_content_info = {"content_type": "data"}
        if not self.is_detached:
            encap_content_info["content"] = self.content

        signed_data = {
            "version": "v1",
            "digest_algorithms": cms.DigestAlgorithms(self.digest_algorithms),
            "encap_content_info": encap_content_info,
            "signer_infos": cms.SignerInfos(self.signer_infos),
        }
        if self.certificates:
            signed_data["certificates"] = [
                cms.CertificateChoices(name="certificate", value=c) for c in self.certificates
            ]
        return cms.ContentInfo({
            "content_type": cms.ContentType("signed_data"),
            "content": cms.SignedData(signed_data),
        })

    def to_der(self) -> bytes:
        try:
            return self.content_info().dump()
        except (ValueError, TypeError) as e:
            raise EncodingFailed("failed encoding to DER: %s" % e) from e
