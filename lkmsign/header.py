import ctypes


MODULE_SIG_STRING = b"~Module signature appended~\n"

PKEY_ID_PGP = 0
PKEY_ID_X509 = 1
PKEY_ID_PKCS7 = 2


class ModuleSignature(ctypes.BigEndianStructure):
    """
    /*
     * Module signature information block.
     *
     * The constituents of the signature section are, in order:
     *
     *	- Signer's name
     *	- Key identifier
     *	- Signature data
     *	- Information block
     */
    struct module_signature {
        u8	algo;		/* Public-key crypto algorithm [0] */
        u8	hash;		/* Digest algorithm [0] */
        u8	id_type;	/* Key identifier type [PKEY_ID_PKCS7] */
        u8	signer_len;	/* Length of signer's name [0] */
        u8	key_id_len;	/* Length of key identifier [0] */
        u8	__pad[3];
        __be32	sig_len;	/* Length of signature data */
    };
    """
    _fields_ = [
        ("algo", ctypes.c_uint8),
        ("hash", ctypes.c_uint8),
        ("id_type", ctypes.c_uint8),
        ("signer_len", ctypes.c_uint8),
        ("key_id_len", ctypes.c_uint8),
        ("__pad", ctypes.c_uint8 * 3),
        ("sig_len", ctypes.c_uint32),
    ]


def idtype2str(val):
    if val == PKEY_ID_PGP:
        return "PKEY_ID_PGP"
    elif val == PKEY_ID_X509:
        return "PKEY_ID_X509"
    elif val == PKEY_ID_PKCS7:
        return "PKEY_ID_PKCS7"
    return str(val)
