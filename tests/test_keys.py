import hashlib

from statefork.keys import (
    blake2_128,
    encode_storage_blake128_double_map_key,
    encode_storage_blake128_map_key,
    encode_storage_key,
    twox_128,
)

ALICE = "0xd43593c715fdd31c61141abd04a99fd6822c8558854ccde39a5684e7a56da27d"


def test_known_storage_keys():
    assert encode_storage_key("System", "Account") == (
        "0x26aa394eea5630e07c48ae0c9558cef7b99d880ec681799c0cf30e8886371da9"
    )
    assert encode_storage_key("ParachainStaking", "Round") == (
        "0xa686a3043d0adcf2fa655e57bc595a7813792e785168f725b60e2969c7fc2552"
    )
    assert encode_storage_key("AuthorFilter", "EligibleRatio") == (
        "0x76310ee24dbd609d21d08ad7292757d0e48df801946c7a0cc54f1a4e51592741"
    )


def test_storage_key_shape():
    key = encode_storage_key("Balances", "TotalIssuance")
    assert key.startswith("0x")
    assert len(key) == 66
    assert key == key.lower()
    assert twox_128(b"Balances").hex() == key[2:34]


def test_blake128_map_key():
    key = encode_storage_blake128_map_key("System", "Account", ALICE)
    assert key == (
        "0x26aa394eea5630e07c48ae0c9558cef7b99d880ec681799c0cf30e8886371da9"
        "de1e86a9a8c739864cf3cc5ec2bea59f"
        "d43593c715fdd31c61141abd04a99fd6822c8558854ccde39a5684e7a56da27d"
    )
    assert key == encode_storage_blake128_map_key("System", "Account", ALICE)
    # the raw map key is recoverable from the tail
    assert key.endswith(ALICE[2:])


def test_map_key_accepts_bytes():
    raw = bytes.fromhex(ALICE[2:])
    assert encode_storage_blake128_map_key("System", "Account", raw) == (
        encode_storage_blake128_map_key("System", "Account", ALICE)
    )
    assert blake2_128(raw) == hashlib.blake2b(raw, digest_size=16).digest()


def test_double_map_key_is_single_map_applied_twice():
    asset_id = "0x" + "01" * 16
    account = "0x" + "ab" * 20
    double = encode_storage_blake128_double_map_key("Assets", "Account", [asset_id, account])
    single = encode_storage_blake128_map_key("Assets", "Account", asset_id)
    raw = bytes.fromhex(account[2:])
    assert double == single + (blake2_128(raw) + raw).hex()
    assert len(double) == 2 + 64 + (16 + 16) * 2 + (16 + 20) * 2
