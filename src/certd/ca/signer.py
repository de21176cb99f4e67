"""
使用根 CA 签发叶子证书。

公开接口：
- CertificateSource: 签发所需的 CA 能力（certificate / private_key）
- Cert: 签发结果（PEM 证书 + CSR 自带的 PEM 私钥）
- sign: 用 CA 对 CSR 签发证书
- sign_public_key: 对已校验的公钥与调用方给出的 SAN 列表签发

注意：CSR 的签名并不覆盖 hosts。写进证书的 SAN 完全由调用 sign 的一方决定，
调用方就是信任边界。
"""

from __future__ import annotations

import ipaddress
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol, Union

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import rsa

from . import pem
from .csr import CSR, split_hosts
from .errors import CertCreateError
from .schemas import KeyPairDocument
from .secret import SecretBytes

GeneralName = Union[x509.DNSName, x509.IPAddress]


class CertificateSource(Protocol):
    def certificate(self) -> x509.Certificate: ...

    def private_key(self) -> rsa.RSAPrivateKey: ...


@dataclass
class Cert:
    """签发的叶子证书与其私钥，服务端不保存。"""

    cert_bytes: bytes
    key_bytes: SecretBytes = field(repr=False)

    def to_json(self) -> str:
        document = KeyPairDocument(
            cert=self.cert_bytes.decode("ascii"),
            private_key=self.key_bytes.reveal().decode("ascii"),
        )
        return document.model_dump_json(indent=2)

    def to_plain(self) -> str:
        return f"{self.cert_bytes.decode('ascii')}\n{self.key_bytes.reveal().decode('ascii')}"

    def __str__(self) -> str:
        return self.cert_bytes.decode("ascii") + self.key_bytes.reveal().decode("ascii")

    def wipe(self) -> None:
        self.key_bytes.wipe()


def subject_alt_names(hosts: str) -> list[GeneralName]:
    """逐项解析 hosts：能解析为 IP 的放入 IP SAN，否则作为 DNS 名称。

    保持输入顺序，不去重；空项跳过。
    """
    names: list[GeneralName] = []
    for host in split_hosts(hosts):
        if not host:
            continue
        try:
            names.append(x509.IPAddress(ipaddress.ip_address(host)))
        except ValueError:
            names.append(x509.DNSName(host))
    return names


def leaf_serial_number() -> int:
    # 基于纳秒时间戳，与根 CA 的随机序列号方案不同
    return time.time_ns()


def sign_public_key(
    ca: CertificateSource,
    public_key: rsa.RSAPublicKey,
    subject: x509.Name,
    sans: list[GeneralName],
) -> bytes:
    """用 CA 私钥签发叶子证书，返回 PEM。

    有效期为 [now, CA.not_valid_after]，不会超过根证书。
    :raises InvalidPEMError / CertParseError: CA 材料无法解码
    :raises CertCreateError: 证书构建或签名失败（包括 CA 已过期）
    """
    ca_key = ca.private_key()
    ca_cert = ca.certificate()

    now = datetime.now(timezone.utc)
    try:
        builder = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(ca_cert.subject)
            .public_key(public_key)
            .serial_number(leaf_serial_number())
            .not_valid_before(now)
            .not_valid_after(ca_cert.not_valid_after_utc)
            .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
            .add_extension(
                x509.AuthorityKeyIdentifier.from_issuer_public_key(ca_key.public_key()),
                critical=False,
            )
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    key_encipherment=True,
                    key_cert_sign=False,
                    crl_sign=False,
                    content_commitment=False,
                    data_encipherment=False,
                    key_agreement=False,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
        )
        if sans:
            builder = builder.add_extension(x509.SubjectAlternativeName(sans), critical=False)
        cert = builder.sign(private_key=ca_key, algorithm=hashes.SHA256())
    except (ValueError, TypeError) as e:
        raise CertCreateError(f"签发证书失败: {e}") from e

    return pem.encode(cert)


def sign(ca: CertificateSource, csr: CSR) -> Cert:
    """用 CA 对 CSR 签发证书，SAN 取自 csr.hosts。

    返回的 Cert 使用 CSR 自身的私钥，而不是 CA 的私钥。
    """
    request = csr.request
    try:
        sans = subject_alt_names(csr.hosts)
    except ValueError as e:
        raise CertCreateError(f"无效的主机名 {csr.hosts!r}: {e}") from e
    cert_bytes = sign_public_key(ca, request.public_key(), request.subject, sans)
    return Cert(cert_bytes=cert_bytes, key_bytes=csr.private_key)
