"""
证书签名请求（CSR）工厂。

请求的签名只证明持有私钥；主机列表（hosts）以明文随 CSR 携带，
不写入请求扩展，最终 SAN 由调用签发方决定。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from cryptography import x509
from cryptography.hazmat.primitives import hashes

from . import pem
from .errors import CertCreateError, NoHostsError, SignatureVerifyError
from .secret import SecretBytes
from .store import certd_name, generate_rsa_key, private_key_pem

MAX_COMMON_NAME = 64


@dataclass
class CSR:
    """一次性的签名请求：临时私钥、已校验的请求对象与主机列表。"""

    private_key: SecretBytes = field(repr=False)
    request: x509.CertificateSigningRequest
    hosts: str

    def wipe(self) -> None:
        self.private_key.wipe()


def split_hosts(hosts: str) -> list[str]:
    return hosts.split(",")


def common_name_for(hosts: str) -> Optional[str]:
    """取 hosts 的第一项作为 CN；为空或超过 X.509 上限（64 字节）时不设置 CN，主机名仍由 SAN 承载。"""
    first = split_hosts(hosts)[0]
    if not first or len(first.encode("utf-8")) > MAX_COMMON_NAME:
        return None
    return first


def create_csr(hosts: str) -> CSR:
    """为 hosts（逗号分隔的主机名 / IP）生成 CSR。

    CN 取 hosts 的第一项（见 common_name_for）。
    :raises NoHostsError: hosts 为空
    :raises KeyGenError: 私钥生成失败
    :raises CertCreateError: 请求构建或签名失败
    :raises SignatureVerifyError: 重新解析后的请求自签名校验失败
    """
    if not hosts:
        raise NoHostsError("no hosts specified")

    key = generate_rsa_key()

    common_name = common_name_for(hosts)
    try:
        request = (
            x509.CertificateSigningRequestBuilder()
            .subject_name(certd_name(common_name))
            .sign(key, hashes.SHA256())
        )
    except ValueError as e:
        raise CertCreateError(f"构建证书请求失败 (CN={common_name!r}): {e}") from e

    parsed = pem.decode(pem.CERTIFICATE_REQUEST, pem.encode(request))
    if not parsed.is_signature_valid:
        raise SignatureVerifyError("证书请求自签名校验失败")

    return CSR(private_key=private_key_pem(key), request=parsed, hosts=hosts)
