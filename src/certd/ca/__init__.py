"""
证书颁发核心：PEM 编解码、根 CA 存储、CSR 工厂与签发。
"""

from .csr import CSR, create_csr
from .signer import Cert, CertificateSource, sign
from .store import (
    CA,
    create_ca,
    load_ca,
    load_or_setup_ca,
    persist_ca,
    setup_ca,
    write_ca_cert,
)

__all__ = [
    "CA",
    "CSR",
    "Cert",
    "CertificateSource",
    "create_ca",
    "create_csr",
    "load_ca",
    "load_or_setup_ca",
    "persist_ca",
    "setup_ca",
    "sign",
    "write_ca_cert",
]
