"""
cert-cli：离线创建 CA、签发证书的命令行工具。
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence, TextIO

from dotenv import load_dotenv

from src.certd.ca import create_csr, load_ca, setup_ca, sign, write_ca_cert
from src.certd.ca.errors import CertdError
from src.certd.config import get_config
from src.certd.logging_setup import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cert-cli", description="Create a CA and mint certificates offline")
    parser.add_argument("--json", action="store_true", help="output request in json")
    parser.add_argument("--setup", action="store_true", help="setup a CA")
    parser.add_argument("--config", default="", help="path to config")
    parser.add_argument("--request", default="", help="comma separated list of IPs/hostnames")
    parser.add_argument("--write-ca", default="", metavar="PATH", help="write the CA certificate to PATH")
    return parser


def main(argv: Optional[Sequence[str]] = None, out: Optional[TextIO] = None) -> int:
    out = out or sys.stdout
    load_dotenv(Path.cwd() / ".env")
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.config:
        print("error: no config specified\nusage:", file=out)
        parser.print_help(file=out)
        return 1

    ca = None
    try:
        if args.setup:
            ca = setup_ca(args.config)
            print(f"config successfully written to \"{args.config}\"", file=out)
        else:
            ca = load_ca(args.config)

        if args.write_ca:
            write_ca_cert(args.write_ca, ca)
            print(f"CA certificate written to \"{args.write_ca}\"", file=out)

        if args.request:
            cert = sign(ca, create_csr(args.request))
            print(cert.to_json() if args.json else str(cert), file=out)
            cert.wipe()
        elif not (args.setup or args.write_ca):
            print("nothing to do\n", file=out)
            parser.print_help(file=out)
    except CertdError as e:
        print(f"error: {e}", file=out)
        return 1
    finally:
        if ca is not None:
            ca.wipe()
    return 0


def run() -> None:
    """console_scripts 入口。"""
    try:
        level = get_config().log_level
    except CertdError as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(1)
    configure_logging(level)
    sys.exit(main())


if __name__ == "__main__":
    run()
