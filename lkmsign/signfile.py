import ctypes
from dataclasses import dataclass

from .errors import SignatureTooLarge
from .header import MODULE_SIG_STRING, PKEY_ID_PKCS7, ModuleSignature
from .signeddata import KERNEL_POLICY, SignatureAlgorithmPolicy, SignedData
from .signer import Signer


@dataclass
class SignConfig:
    digest_algorithm: str = None
    policy: SignatureAlgorithmPolicy = KERNEL_POLICY
    no_attr: bool = True
    no_certs: bool = True
    detached: bool = True


def sig_info(sig_len: int) -> bytes:
    """Return the bytes of struct module_signature for a signature of sig_len bytes."""
    if not 0 <= sig_len <= 0xFFFFFFFF:
        raise SignatureTooLarge("signature of %d bytes does not fit in sig_len" % sig_len)
    info = ModuleSignature(id_type=PKEY_ID_PKCS7, sig_len=sig_len)
    return ctypes.string_at(ctypes.byref(info), ctypes.sizeof(info))


def finalize(ko: bytes, signature: bytes) -> bytes:
    buf = bytearray(ko)
    info = sig_info(len(signature))
    buf += signature
    buf += info
    buf += MODULE_SIG_STRING
    return bytes(buf)


def sign_ko(ko: bytes, cert, signer: Signer, config: SignConfig = None) -> bytes:
    """Build the DER CMS signature the kernel expects for ``ko``."""
    if config is None:
        config = SignConfig()
    sd = SignedData(ko)
    sd.sign(cert, signer,
            no_attr=config.no_attr,
            no_certs=config.no_certs,
            digest_algorithm=config.digest_algorithm,
            policy=config.policy)
    if config.detached:
        sd.detached()
    return sd.to_der()


def sign_ko_attached(signer: Signer, cert, ko: bytes, config: SignConfig = None) -> bytes:
    """
    Sign a kernel module the way scripts/sign-file does in its CMS mode.

    Returns ``ko`` followed by the DER signature, the module_signature
    block and the magic string.
    """
    signature = sign_ko(ko, cert, signer, config)
    return finalize(ko, signature)
