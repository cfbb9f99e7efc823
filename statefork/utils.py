from typing import Optional, Union


def hex_to_bytes(value: Union[str, bytes]) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if value.startswith("0x"):
        return bytes.fromhex(value[2:])
    return value.encode("utf-8")


def to_le_hex(value: int, bits: Optional[int] = None, prefix: bool = True) -> str:
    """Little-endian hex of ``value``, minimal byte length when ``bits`` is None."""
    if value < 0:
        raise ValueError("negative value cannot be encoded")
    if bits is None:
        size = max(1, (value.bit_length() + 7) // 8)
    else:
        size = bits // 8
    out = value.to_bytes(size, "little").hex()
    return "0x" + out if prefix else out


def from_le_hex(value: str) -> int:
    if value.startswith("0x"):
        value = value[2:]
    if not value:
        return 0
    return int.from_bytes(bytes.fromhex(value), "little")


def compact_hex(value: int) -> str:
    # SCALE compact integer, without 0x prefix
    if value < 0:
        raise ValueError("negative value cannot be encoded")
    if value < 1 << 6:
        return to_le_hex(value << 2, 8, prefix=False)
    if value < 1 << 14:
        return to_le_hex((value << 2) | 0b01, 16, prefix=False)
    if value < 1 << 30:
        return to_le_hex((value << 2) | 0b10, 32, prefix=False)
    size = (value.bit_length() + 7) // 8
    return to_le_hex(((size - 4) << 2) | 0b11, 8, prefix=False) + to_le_hex(value, size * 8, prefix=False)


def compact_prefix_length(value: str) -> int:
    """Number of hex digits used by the compact length at the start of ``value`` (no 0x)."""
    first = int(value[:2], 16)
    mode = first & 0b11
    if mode == 0b00:
        return 2
    if mode == 0b01:
        return 4
    if mode == 0b10:
        return 8
    return 2 + ((first >> 2) + 4) * 2


def short(value: object, limit: int = 100) -> str:
    return str(value)[:limit]
