class ModuleSignError(Exception):
    """Base class for every error raised while signing or reading a module."""


class InvalidCertificate(ModuleSignError):
    """The certificate is malformed, unsupported, or does not match the signer."""


class SignerSetupFailed(ModuleSignError):
    """The SignedData structure could not be set up with the given inputs."""


class SignatureFailed(ModuleSignError):
    """The signer raised or returned an implausible signature."""


class EncodingFailed(ModuleSignError):
    """DER serialisation of the SignedData failed."""


class SignatureTooLarge(ModuleSignError):
    """The DER signature does not fit in the 32-bit sig_len field."""


class ModuleFormatError(ModuleSignError):
    """An appended signature trailer is present but malformed."""


class KeyLoadError(ModuleSignError):
    """A key or certificate file could not be read or parsed."""
