"""
证书与私钥文档的数据模型定义。
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class KeyPairDocument(BaseModel):
    """
    {"cert", "private_key"} 两段 PEM 文本。
    磁盘上的 CA 配置与签发结果的 JSON 输出共用此结构。
    """

    model_config = ConfigDict(extra="ignore")

    cert: str = Field(description="PEM 编码的证书")
    private_key: str = Field(description="PEM 编码的 RSA 私钥")

    @field_validator("cert", "private_key")
    @classmethod
    def ensure_ascii(cls, value: str) -> str:
        if not value.isascii():
            raise ValueError("PEM 文本只能包含 ASCII 字符")
        return value
