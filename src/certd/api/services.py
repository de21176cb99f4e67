"""
证书签发服务的业务逻辑层。
此模块封装了核心逻辑，提供更清晰的接口供路由层调用。
"""

from __future__ import annotations

import re
import socket
from typing import Any, Callable, Optional, Tuple
from urllib.parse import parse_qsl

from loguru import logger

from src.certd.ca import CA, Cert, create_csr, sign
from src.certd.ca.errors import RequestError

from .schemas import OUTPUT_PLAIN, IssueQuery, RenderedCertificate

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")

ReverseLookup = Callable[[str], Tuple[str, list, list]]


def parse_issue_query(query: str) -> IssueQuery:
    """
    解析 /req 的原始查询字符串，同名参数取第一个值。
    :raises RequestError: 百分号转义无效或解码后不是合法 UTF-8
    """
    if _BAD_ESCAPE.search(query):
        raise RequestError(f"无效的 URL 转义: {query!r}")
    try:
        pairs = parse_qsl(query, keep_blank_values=True, errors="strict")
    except (UnicodeDecodeError, ValueError) as e:
        raise RequestError(f"无法解析查询参数: {e}") from e

    values: dict[str, str] = {}
    for key, value in pairs:
        values.setdefault(key, value)
    return IssueQuery(**{k: v for k, v in values.items() if k in IssueQuery.model_fields})


def resolve_hosts(
    explicit: str, client_host: str, lookup: Optional[ReverseLookup] = None, log: Any = logger
) -> str:
    """
    确定签发的主机列表：优先使用调用方显式给出的 hosts，
    否则对调用方地址做反向解析（主机名、别名、地址），并始终包含地址本身。
    解析失败时退回到地址本身。
    """
    if explicit:
        return explicit
    lookup = lookup or socket.gethostbyaddr

    names: list[str] = []
    if client_host:
        try:
            hostname, aliases, addresses = lookup(client_host)
            names.extend([hostname, *aliases, *addresses])
        except (OSError, UnicodeError) as e:
            log.debug(f"反向解析 {client_host} 失败，使用地址本身: {e}")
        names.append(client_host)

    seen: list[str] = []
    for name in names:
        if name and name not in seen:
            seen.append(name)
    return ",".join(seen).rstrip(",")


def issue_certificate_service(ca: CA, hosts: str) -> Cert:
    """
    生成 CSR 并用 CA 签发。
    :raises NoHostsError / CryptoError / DecodeError
    """
    csr = create_csr(hosts)
    return sign(ca, csr)


def render_certificate(cert: Cert, output: str) -> RenderedCertificate:
    if output == OUTPUT_PLAIN:
        return RenderedCertificate(body=cert.to_plain(), filename="cert.txt")
    return RenderedCertificate(body=cert.to_json(), filename="cert.json")
