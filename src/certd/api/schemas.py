"""
证书签发接口的数据模型定义。
"""

from pydantic import BaseModel, Field

OUTPUT_JSON = "json"
OUTPUT_PLAIN = "plain"


class IssueQuery(BaseModel):
    """
    GET /req 的查询参数。
    """
    hosts: str = Field(default="", description="逗号分隔的主机名/IP，为空时根据调用方地址推断")
    output: str = Field(default=OUTPUT_JSON, description="plain 输出纯文本，其余值输出 JSON")


class RenderedCertificate(BaseModel):
    """
    渲染后的签发结果。
    """
    body: str
    filename: str
