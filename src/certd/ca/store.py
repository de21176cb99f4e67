"""
根 CA 的创建、持久化与加载。

公开接口：
- CA: 根证书与私钥（PEM）的持有者，提供 certificate() / private_key()
- create_ca: 生成自签名根 CA
- persist_ca / load_ca: 以 JSON 文档读写 CA 配置
- setup_ca: 创建并持久化
- load_or_setup_ca: 服务启动时使用，必要时先创建再加载
- write_ca_cert: 仅导出 CA 公开证书
"""

from __future__ import annotations

import os
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID
from loguru import logger
from pydantic import ValidationError

from . import pem
from .errors import (
    CertCreateError,
    CertParseError,
    ConfigError,
    ConfigNotFoundError,
    ConfigParseError,
    ConfigWriteError,
    KeyGenError,
)
from .schemas import KeyPairDocument
from .secret import SecretBytes

RSA_BITS = 2048
PUBLIC_EXPONENT = 65537
CA_VALIDITY = timedelta(days=365)
SERIAL_BITS = 128


def certd_name(common_name: Optional[str]) -> x509.Name:
    """根 CA 与证书请求共用的组织身份，只有 CN 不同；common_name 为 None 时不含 CN。"""
    attributes = [
        x509.NameAttribute(NameOID.COUNTRY_NAME, "IE"),
        x509.NameAttribute(NameOID.STATE_OR_PROVINCE_NAME, "Cork"),
        x509.NameAttribute(NameOID.LOCALITY_NAME, "Cork"),
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "CERTD"),
        x509.NameAttribute(NameOID.ORGANIZATIONAL_UNIT_NAME, "CERTD"),
    ]
    if common_name is not None:
        attributes.append(x509.NameAttribute(NameOID.COMMON_NAME, common_name))
    return x509.Name(attributes)


def generate_rsa_key() -> rsa.RSAPrivateKey:
    try:
        return rsa.generate_private_key(public_exponent=PUBLIC_EXPONENT, key_size=RSA_BITS)
    except Exception as e:
        raise KeyGenError(f"生成 RSA 私钥失败: {e}") from e


def private_key_pem(key: rsa.RSAPrivateKey) -> SecretBytes:
    return SecretBytes(pem.encode(key))


@dataclass
class CA:
    """根 CA：PEM 证书与 PEM RSA 私钥。加载后只读。"""

    cert_bytes: bytes
    key_bytes: SecretBytes = field(repr=False)

    def certificate(self) -> x509.Certificate:
        """解码并解析 CA 证书。

        :raises InvalidPEMError: cert_bytes 为空或不是 PEM
        :raises CertParseError: 证书内容无法解析
        """
        return pem.decode(pem.CERTIFICATE, self.cert_bytes)

    def private_key(self) -> rsa.RSAPrivateKey:
        """解码并解析 CA 私钥。

        :raises InvalidPEMError: key_bytes 为空或不是 PEM
        :raises CertParseError: 私钥内容无法解析或不是 RSA 私钥
        """
        key = pem.decode(pem.RSA_PRIVATE_KEY, self.key_bytes.reveal())
        if not isinstance(key, rsa.RSAPrivateKey):
            raise CertParseError("CA 私钥不是 RSA 私钥")
        return key

    def wipe(self) -> None:
        self.key_bytes.wipe()


def _random_serial() -> int:
    # 序列号必须为正
    return secrets.randbelow((1 << SERIAL_BITS) - 1) + 1


def create_ca(log: Any = logger) -> CA:
    """生成 2048 位 RSA 私钥并自签名根证书，有效期 365 天。

    :raises KeyGenError: 私钥生成失败
    :raises CertCreateError: 证书构建或签名失败
    """
    log.info("generating new CA cert and key")
    key = generate_rsa_key()

    serial = _random_serial()
    log.debug(f"using generated serial number {serial}")

    subject = certd_name("CERTD")
    now = datetime.now(timezone.utc)
    try:
        cert = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(subject)
            .public_key(key.public_key())
            .serial_number(serial)
            .not_valid_before(now)
            .not_valid_after(now + CA_VALIDITY)
            .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
            .add_extension(x509.SubjectKeyIdentifier.from_public_key(key.public_key()), critical=False)
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    key_encipherment=True,
                    key_cert_sign=True,
                    crl_sign=True,
                    content_commitment=False,
                    data_encipherment=False,
                    key_agreement=False,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
            .sign(private_key=key, algorithm=hashes.SHA256())
        )
    except Exception as e:
        raise CertCreateError(f"创建 CA 证书失败: {e}") from e

    ca = CA(
        cert_bytes=pem.encode(cert),
        key_bytes=private_key_pem(key),
    )
    log.info("new CA cert and key generated successfully")
    return ca


def write_private_file(path: Path, data: bytes) -> None:
    """以 0600 权限写入文件（已存在的文件同样收紧权限）。"""
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as f:
        f.write(data)
    os.chmod(path, 0o600)


def persist_ca(path: str | os.PathLike, ca: CA) -> None:
    """将 CA 以 {"cert", "private_key"} JSON 文档写入 path。

    :raises ConfigWriteError: path 为空或不可写（包括父目录不存在）
    """
    if not path:
        raise ConfigWriteError("未指定 CA 配置路径")

    document = KeyPairDocument(
        cert=ca.cert_bytes.decode("ascii"),
        private_key=ca.key_bytes.reveal().decode("ascii"),
    )
    try:
        write_private_file(Path(path), document.model_dump_json(indent=2).encode("utf-8"))
    except OSError as e:
        raise ConfigWriteError(f"写入 CA 配置 \"{path}\" 失败: {e}") from e


def load_ca(path: str | os.PathLike) -> CA:
    """从 JSON 配置文件加载 CA。

    :raises ConfigError: path 为空或无法读取
    :raises ConfigNotFoundError: path 不存在
    :raises ConfigParseError: 内容不是 CA 配置文档（包括 path 是目录）
    """
    if not path:
        raise ConfigError("未指定 CA 配置路径")

    p = Path(path)
    if not p.exists():
        raise ConfigNotFoundError(f"配置 \"{path}\" 不存在")
    if not p.is_file():
        raise ConfigParseError(f"配置 \"{path}\" 不是常规文件")

    try:
        raw = p.read_bytes()
    except OSError as e:
        raise ConfigError(f"读取配置 \"{path}\" 失败: {e}") from e

    try:
        document = KeyPairDocument.model_validate_json(raw)
    except ValidationError as e:
        raise ConfigParseError(f"配置 \"{path}\" 格式无效: {e.error_count()} 处错误") from e

    return CA(
        cert_bytes=document.cert.encode("ascii"),
        key_bytes=SecretBytes(document.private_key),
    )


def setup_ca(path: str | os.PathLike, log: Any = logger) -> CA:
    """创建新的根 CA 并写入 path。"""
    if not path:
        raise ConfigWriteError("未指定 CA 配置路径")
    ca = create_ca(log=log)
    persist_ca(path, ca)
    log.info(f"CA config written to \"{path}\"")
    return ca


def load_or_setup_ca(path: str | os.PathLike, setup: bool = False, log: Any = logger) -> CA:
    """setup 为真且配置不存在时先创建，然后加载。"""
    if setup and path and not Path(path).exists():
        setup_ca(path, log=log)
    return load_ca(path)


def write_ca_cert(path: str | os.PathLike, ca: CA) -> None:
    """将 CA 公开证书 PEM 写入 path。"""
    if not path:
        raise ConfigWriteError("未指定证书输出路径")
    try:
        write_private_file(Path(path), ca.cert_bytes)
    except OSError as e:
        raise ConfigWriteError(f"写入 CA 证书 \"{path}\" 失败: {e}") from e
