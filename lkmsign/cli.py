import argparse
import os.path

from .errors import ModuleSignError
from .keys import load_certificate_file, load_private_key_file
from .module import load_module, parse_sig
from .signer import HASH_ALGORITHMS, KeySigner
from .signfile import SignConfig, sign_ko_attached


def cmd_sign(args):
    if not os.path.exists(args.module):
        print("Error: %s file does not exist!" % args.module)
        exit(1)
    dest = args.dest or args.module

    with open(args.module, "rb") as f:
        ko = f.read()
    try:
        if parse_sig(ko) is not None:
            print("[Warning]: `%s` already carries a module signature, appending another one" % args.module)
        key = load_private_key_file(args.key, args.password)
        cert = load_certificate_file(args.x509)
        config = SignConfig(digest_algorithm=args.hash_algo)
        signed = sign_ko_attached(KeySigner(key), cert, ko, config)
    except ModuleSignError as e:
        print("Error: %s" % e)
        exit(1)

    with open(dest, "wb") as f:
        f.write(signed)
    print("Signed %s (%d bytes of signature data), output: %s" % (args.module, len(signed) - len(ko), dest))


def cmd_dump(args):
    if not os.path.exists(args.module):
        print("Error: %s file does not exist!" % args.module)
        exit(1)
    try:
        module = load_module(args.module)
    except ModuleSignError as e:
        print("Error: %s" % e)
        exit(1)
    if module is None:
        print("Error: %s is not an ELF file" % args.module)
        exit(1)
    module.dump()


def main(argv=None):
    parser = argparse.ArgumentParser(prog="lkmsign")
    subparsers = parser.add_subparsers(required=True)

    parser_sign = subparsers.add_parser("sign")
    parser_sign.add_argument("-a", "--hash_algo", choices=sorted(HASH_ALGORITHMS), help="digest algorithm, default depends on the key", required=False)
    parser_sign.add_argument("-p", "--password", help="private key password (default: $KBUILD_SIGN_PIN)", required=False)
    parser_sign.add_argument("key", help="private key file (PEM or DER)")
    parser_sign.add_argument("x509", help="signing certificate file (PEM or DER)")
    parser_sign.add_argument("module", help="kernel module file(*.ko)")
    parser_sign.add_argument("dest", nargs="?", help="output file(*.ko), default: sign in place")
    parser_sign.set_defaults(func=cmd_sign)

    parser_dump = subparsers.add_parser("dump")
    parser_dump.add_argument("module", help="kernel module file(*.ko)")
    parser_dump.set_defaults(func=cmd_dump)

    args = parser.parse_args(argv)
    args.func(args)
