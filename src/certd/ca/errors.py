"""
CA 服务的异常体系。

公开接口：
- CertdError: 所有业务异常的根类
- ConfigError / ConfigWriteError / ConfigParseError / ConfigNotFoundError
- CryptoError / KeyGenError / CertCreateError / SignatureVerifyError
- DecodeError / InvalidPEMError / CertParseError
- NoHostsError, AuthError, RequestError, NotFoundError
"""


class CertdError(Exception):
    """所有 certd 异常的根类。"""


class NotFoundError(CertdError):
    """资源（配置文件、路由）不存在。"""


class ConfigError(CertdError):
    """持久化的 CA 配置缺失、不可读或格式错误。"""


class ConfigWriteError(ConfigError):
    pass


class ConfigParseError(ConfigError):
    pass


class ConfigNotFoundError(ConfigError, NotFoundError):
    pass


class CryptoError(CertdError, RuntimeError):
    """密钥生成、证书创建、签名校验失败，对当前操作不可恢复。"""


class KeyGenError(CryptoError):
    pass


class CertCreateError(CryptoError):
    pass


class SignatureVerifyError(CryptoError):
    pass


class DecodeError(CertdError, ValueError):
    """PEM / DER 结构错误。"""


class InvalidPEMError(DecodeError):
    pass


class CertParseError(DecodeError):
    pass


class NoHostsError(CertdError, ValueError):
    """未提供任何主机名 / IP。"""


class AuthError(CertdError):
    """缺少或错误的认证信息。"""


class RequestError(CertdError, ValueError):
    """入站请求参数格式错误。"""
