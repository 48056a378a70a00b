import pytest

from lkmsign.errors import ModuleFormatError
from lkmsign.header import MODULE_SIG_STRING, PKEY_ID_PKCS7, idtype2str
from lkmsign.module import Module, ModuleSig, load_module, parse_modinfo, parse_sig
from lkmsign.signer import KeySigner
from lkmsign.signfile import sign_ko_attached


def test_unsigned():
    assert parse_sig(b"\x7fELF plain module") is None
    assert parse_sig(b"") is None


def test_signed_module(rsa_key, rsa_cert):
    ko = b"\x7fELF" + b"\x00" * 60
    out = sign_ko_attached(KeySigner(rsa_key), rsa_cert, ko)
    sig = parse_sig(out)
    assert sig.id_type == PKEY_ID_PKCS7
    assert sig.payload_len == len(ko)
    assert sig.sig_len == len(sig.sig_buf) == len(out) - len(ko) - 12 - len(MODULE_SIG_STRING)
    assert Module(data=out, sig=sig).payload == ko


def test_wrong_id_type():
    data = b"sig" + b"\x00\x00\x01\x00\x00\x00\x00\x00\x00\x00\x00\x03" + MODULE_SIG_STRING
    with pytest.raises(ModuleFormatError):
        parse_sig(data)


def test_sig_len_exceeds_module():
    data = b"sig" + b"\x00\x00\x02\x00\x00\x00\x00\x00\x00\x00\x10\x00" + MODULE_SIG_STRING
    with pytest.raises(ModuleFormatError):
        parse_sig(data)


def test_truncated_trailer():
    with pytest.raises(ModuleFormatError):
        parse_sig(b"\x00\x02" + MODULE_SIG_STRING)


def test_parse_modinfo():
    data = b"license=GPL\x00vermagic=6.1.0 SMP mod_unload\x00\x00depends=\x00junk\x00"
    assert parse_modinfo(data) == [
        ("license", "GPL"),
        ("vermagic", "6.1.0 SMP mod_unload"),
        ("depends", ""),
    ]


def test_get_modinfo():
    module = Module(mod_info=[("license", "GPL")])
    assert module.get_modinfo("license", None) == "GPL"
    assert module.get_modinfo("author", "unknown") == "unknown"


def test_payload_of_unsigned_module():
    module = Module(data=b"abc", sig=None)
    assert module.payload == b"abc"
    module.sig = ModuleSig(id_type=2, sig_len=1, sig_buf=b"c", payload_len=2)
    assert module.payload == b"ab"


def test_load_non_elf(tmp_path):
    path = tmp_path / "not_a_module.ko"
    path.write_bytes(b"this is not an ELF file at all" * 4)
    assert load_module(str(path)) is None


def test_idtype2str():
    assert idtype2str(2) == "PKEY_ID_PKCS7"
    assert idtype2str(9) == "9"
