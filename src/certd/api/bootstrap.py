"""
服务自身 TLS 身份的引导：启动前用同一个根 CA 为监听地址签发服务证书。

任何一步失败都应终止启动，不能以无效身份对外服务。
"""

from __future__ import annotations

import os
import ssl
from pathlib import Path
from typing import Any, Tuple

from loguru import logger

from src.certd.ca import Cert, CertificateSource, create_csr, sign
from src.certd.ca.errors import CryptoError
from src.certd.ca.store import write_private_file

SERVER_CERT_FILE = "server.crt"
SERVER_KEY_FILE = "server.key"


def serving_hosts(listen: str, cert_addrs: str = "") -> str:
    """显式的 cert_addrs 优先，否则使用监听地址。"""
    return cert_addrs or listen


def mint_serving_identity(
    ca: CertificateSource, listen: str, cert_addrs: str = "", log: Any = logger
) -> Cert:
    hosts = serving_hosts(listen, cert_addrs)
    log.info(f"generating cert for: {hosts}")
    return sign(ca, create_csr(hosts))


def write_serving_identity(cert: Cert, directory: str | os.PathLike) -> Tuple[Path, Path]:
    """
    以 0600 权限写出服务证书与私钥，并加载进 SSLContext 校验二者匹配。
    :return: (证书路径, 私钥路径)
    :raises CryptoError: 证书与私钥无法组成有效的 TLS 身份
    """
    base = Path(directory)
    cert_path = base / SERVER_CERT_FILE
    key_path = base / SERVER_KEY_FILE
    write_private_file(cert_path, cert.cert_bytes)
    write_private_file(key_path, cert.key_bytes.reveal())

    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    try:
        context.load_cert_chain(certfile=str(cert_path), keyfile=str(key_path))
    except ssl.SSLError as e:
        raise CryptoError(f"服务证书与私钥无法组成 TLS 身份: {e}") from e
    return cert_path, key_path
