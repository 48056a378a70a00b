import ctypes
from dataclasses import dataclass, field

import lief

from .errors import ModuleFormatError
from .header import MODULE_SIG_STRING, PKEY_ID_PKCS7, ModuleSignature, idtype2str


@dataclass
class ModuleSig:
    id_type: int
    sig_len: int
    sig_buf: bytes
    payload_len: int


@dataclass
class Module:
    file_name: str = ""
    data: bytes = b""
    elf: lief.ELF.Binary = None
    mod_info: list = field(default_factory=list)
    sig: ModuleSig = None

    @property
    def payload(self) -> bytes:
        if self.sig is None:
            return self.data
        return self.data[:self.sig.payload_len]

    def get_modinfo(self, name, def_val):
        for key, value in self.mod_info:
            if name == key:
                return value
        return def_val

    def dump(self):
        print("Module info:")
        print("File name: %s" % self.file_name)
        print("ELF:")
        print("\tarch: %s" % self.elf.header.machine_type)
        print("Signature:")
        if self.sig:
            print("\tid_type: %s" % idtype2str(self.sig.id_type))
            print("\tsig_len: %d" % self.sig.sig_len)
            print("\tpayload_len: %d" % self.sig.payload_len)
        else:
            print("\tNot signed")
        print("Modinfo:")
        for key, value in self.mod_info:
            print("\t%s = %s" % (key, value))
        print("")


def parse_modinfo(data) -> list:
    modinfo = []
    for entry in bytes(data).split(b"\0"):
        if b"=" in entry:
            key, value = entry.split(b"=", 1)
            modinfo.append((key.decode("utf-8", "replace"), value.decode("utf-8", "replace")))
    return modinfo


def parse_sig(data: bytes):
    """
    Locate an appended module signature.

    Returns None when ``data`` does not end with the magic string.
    """
    data = memoryview(data)
    size = len(data)
    info_size = ctypes.sizeof(ModuleSignature)
    if size < len(MODULE_SIG_STRING) or data[size - len(MODULE_SIG_STRING):].tobytes() != MODULE_SIG_STRING:
        return None

    off = size - len(MODULE_SIG_STRING) - info_size
    if off < 0:
        raise ModuleFormatError("module too short for a signature block")
    info = ModuleSignature.from_buffer_copy(data[off:off + info_size].tobytes())
    if info.id_type != PKEY_ID_PKCS7:
        raise ModuleFormatError("unsupported signature id_type: %s" % idtype2str(info.id_type))
    if info.sig_len > off:
        raise ModuleFormatError("sig_len %d exceeds module size" % info.sig_len)

    sig_off = off - info.sig_len
    return ModuleSig(id_type=info.id_type,
                     sig_len=info.sig_len,
                     sig_buf=data[sig_off:off].tobytes(),
                     payload_len=sig_off)


def load_module(ko_file) -> Module:
    with open(ko_file, "rb") as f:
        data = f.read()

    binary = lief.parse(ko_file)
    if not isinstance(binary, lief.ELF.Binary):
        return None
    elf = binary  # type: lief.ELF.Binary

    module = Module(file_name=ko_file, data=data, elf=elf)
    section = elf.get_section(".modinfo")  # type: lief.Section
    if section:
        module.mod_info = parse_modinfo(section.content)
    module.sig = parse_sig(data)
    return module
