"""
证书签发服务的 FastAPI 路由定义。
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from src.certd.ca.errors import CertdError, RequestError
from . import services
from .auth import require_basic_auth

router = APIRouter(tags=["Certificate Authority"])

OCTET_STREAM = "application/octet-stream"


@router.get("/ca")
def download_ca_certificate(request: Request, _user: str = Depends(require_basic_auth)) -> Response:
    """
    返回根 CA 的公开证书，原样输出 PEM。
    """
    ca = request.app.state.ca
    return Response(
        content=ca.cert_bytes,
        media_type=OCTET_STREAM,
        headers={"Content-Disposition": "inline; filename=ca.crt"},
    )


@router.get("/req")
def request_certificate(request: Request, _user: str = Depends(require_basic_auth)) -> Response:
    """
    为 hosts（缺省为调用方地址）生成私钥并签发证书，以 JSON 或纯文本返回。
    """
    log = request.app.state.log
    try:
        query = services.parse_issue_query(request.url.query)
    except RequestError as e:
        log.warning(str(e))
        raise HTTPException(status_code=400, detail=str(e))

    client_host = request.client.host if request.client else ""
    hosts = services.resolve_hosts(query.hosts, client_host, log=log)
    log.info(f"generating cert for \"{hosts}\"")

    try:
        cert = services.issue_certificate_service(request.app.state.ca, hosts)
        try:
            rendered = services.render_certificate(cert, query.output)
        finally:
            cert.wipe()
    except CertdError as e:
        # CSR / 签发 / 渲染失败均视为内部错误
        log.error(f"证书签发失败: {e}")
        raise HTTPException(status_code=500, detail=f"证书签发失败: {e}")

    return Response(
        content=rendered.body + "\n",
        media_type=OCTET_STREAM,
        headers={"Content-Disposition": f"inline; filename=\"{rendered.filename}\""},
    )
