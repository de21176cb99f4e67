#!/usr/bin/env python
"""
certd 服务入口：加载（或创建）根 CA，为自身签发 TLS 证书后以 HTTPS 提供服务。
"""

import argparse
import sys
import tempfile
from pathlib import Path
from typing import Optional, Sequence

import uvicorn
from dotenv import load_dotenv
from loguru import logger

from src.certd.api.bootstrap import mint_serving_identity, write_serving_identity
from src.certd.ca import load_or_setup_ca
from src.certd.ca.errors import CertdError
from src.certd.config import Config, get_config
from src.certd.logging_setup import configure_logging
from src.certd.main import create_app


def build_parser(config: Config) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="certd", description="Minimal self-hosted certificate authority")
    parser.add_argument("--setup", action="store_true", help="setup a CA if the config does not exist")
    parser.add_argument("--config", default=config.ca_config, help="path to existing config")
    parser.add_argument("--listen", default=config.listen, help="address to listen on")
    parser.add_argument("--port", type=int, default=config.port, help="port to listen on")
    parser.add_argument(
        "--cert-addrs",
        default=config.cert_addrs,
        help="IPs and hostnames to generate the serving cert for (defaults to --listen)",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv(Path.cwd() / ".env")
    try:
        config = get_config()
        args = build_parser(config).parse_args(argv)

        logger.info("certd CA service, start running!")
        ca = load_or_setup_ca(args.config, setup=args.setup)
        settings = config.model_copy(
            update={
                "ca_config": args.config,
                "listen": args.listen,
                "port": args.port,
                "cert_addrs": args.cert_addrs,
            }
        )
        app = create_app(ca, settings)

        with tempfile.TemporaryDirectory(prefix="certd-") as tls_dir:
            identity = mint_serving_identity(ca, args.listen, args.cert_addrs)
            cert_path, key_path = write_serving_identity(identity, tls_dir)
            identity.wipe()

            logger.info(f"listening for HTTPS connections on {args.listen}:{args.port}")
            uvicorn.run(
                app,
                host=args.listen,
                port=args.port,
                ssl_certfile=str(cert_path),
                ssl_keyfile=str(key_path),
                log_config=None,
            )
    except CertdError as e:
        logger.error(f"certd 启动失败: {e}")
        print(e, file=sys.stderr)
        return 1
    return 0


def run() -> None:
    """console_scripts 入口。"""
    try:
        level = get_config().log_level
    except CertdError as e:
        print(e, file=sys.stderr)
        sys.exit(1)
    configure_logging(level)
    sys.exit(main())


if __name__ == "__main__":
    run()
