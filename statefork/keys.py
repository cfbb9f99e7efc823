"""
Storage key derivation for the hashed storage scheme of the exporting chain.

Plain storage values live under ``twox128(module) ++ twox128(item)``.
Maps hashed with ``Blake2_128Concat`` append ``blake2_128(key) ++ key`` for
every map key, which keeps the raw key recoverable from the tail of the
storage key.
"""

import hashlib
from typing import Sequence, Union

import xxhash

from .utils import hex_to_bytes

MapKey = Union[str, bytes]


def twox_128(data: bytes) -> bytes:
    o1 = bytearray(xxhash.xxh64(data, seed=0).digest())
    o1.reverse()
    o2 = bytearray(xxhash.xxh64(data, seed=1).digest())
    o2.reverse()
    return bytes(o1 + o2)


def blake2_128(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=16).digest()


def _prefix(module: str, item: str) -> bytes:
    return twox_128(module.encode("utf-8")) + twox_128(item.encode("utf-8"))


def _blake2_128_concat(key: MapKey) -> bytes:
    raw = hex_to_bytes(key)
    return blake2_128(raw) + raw


def encode_storage_key(module: str, item: str) -> str:
    return "0x" + _prefix(module, item).hex()


def encode_storage_blake128_map_key(module: str, item: str, key: MapKey) -> str:
    return "0x" + (_prefix(module, item) + _blake2_128_concat(key)).hex()


def encode_storage_blake128_double_map_key(
    module: str, item: str, keys: Sequence[MapKey]
) -> str:
    key1, key2 = keys
    return "0x" + (_prefix(module, item) + _blake2_128_concat(key1) + _blake2_128_concat(key2)).hex()
