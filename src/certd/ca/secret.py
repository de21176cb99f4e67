"""
私钥材料的包装类型。

PEM 私钥以可变缓冲区保存，使用方可以显式调用 wipe() 清零，
而不是等待垃圾回收。reveal() 返回的 bytes 副本不在清零范围内。
"""

from __future__ import annotations

import secrets


class SecretBytes:
    """持有敏感字节（私钥 PEM）的可清零缓冲区。"""

    __slots__ = ("_buf", "_wiped")

    def __init__(self, data: bytes | bytearray | str = b"") -> None:
        if isinstance(data, str):
            data = data.encode("ascii")
        self._buf = bytearray(data)
        self._wiped = False

    def reveal(self) -> bytes:
        return bytes(self._buf)

    def wipe(self) -> None:
        """用 0 覆盖缓冲区后清空，可重复调用。"""
        self._buf[:] = bytes(len(self._buf))
        self._buf.clear()
        self._wiped = True

    @property
    def wiped(self) -> bool:
        return self._wiped

    def __bytes__(self) -> bytes:
        return self.reveal()

    def __len__(self) -> int:
        return len(self._buf)

    def __bool__(self) -> bool:
        return len(self._buf) > 0

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SecretBytes):
            return secrets.compare_digest(bytes(self._buf), bytes(other._buf))
        if isinstance(other, (bytes, bytearray)):
            return secrets.compare_digest(bytes(self._buf), bytes(other))
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        if self._wiped:
            return "SecretBytes(<wiped>)"
        return f"SecretBytes(<redacted, {len(self._buf)} bytes>)"

    def __enter__(self) -> "SecretBytes":
        return self

    def __exit__(self, *exc_info) -> None:
        self.wipe()
