from .errors import (
    EncodingFailed,
    InvalidCertificate,
    ModuleSignError,
    SignatureFailed,
    SignatureTooLarge,
    SignerSetupFailed,
)
from .signer import KeySigner, Signer
from .signfile import SignConfig, finalize, sign_ko, sign_ko_attached

__all__ = [
    "EncodingFailed",
    "InvalidCertificate",
    "KeySigner",
    "ModuleSignError",
    "SignConfig",
    "SignatureFailed",
    "SignatureTooLarge",
    "Signer",
    "SignerSetupFailed",
    "finalize",
    "sign_ko",
    "sign_ko_attached",
]
