import importlib
import json
from types import SimpleNamespace

import pytest

from statefork.keys import (
    encode_storage_blake128_double_map_key,
    encode_storage_blake128_map_key,
    encode_storage_key,
)
from statefork.utils import compact_hex, to_le_hex

ALITH = "0xf24ff3a9cf04c71dbc94d0b566f7a27b94566cac"
ALITH_SESSION = "0xd43593c715fdd31c61141abd04a99fd6822c8558854ccde39a5684e7a56da27d"
BALTATHAR = "0x3cd0a705a2dc65e5b1e1205896baa2be8a07c6e0"
USDT = 311091173110107856861649819128533077277

ORBITER = "0x" + "11" * 20
NO_KEYS = "0x" + "22" * 20
REPLACED = "0x" + "33" * 20
SQUATTER = "0x" + "44" * 20
ORBITER_SESSION = "0x" + "aa" * 32
REPLACED_SESSION = "0x" + "bb" * 32
DEPOSIT = 100 * 10 ** 18

TOTAL_ISSUANCE = 1_000_000 * 10 ** 18
BALTATHAR_FREE = 5 * 10 ** 18
USDT_SUPPLY = 1_000_000
BALTATHAR_USDT = 250_000


def account_info(free, nonce=0):
    return (
        "0x"
        + to_le_hex(nonce, 32, prefix=False)
        + to_le_hex(1, 32, prefix=False)
        + to_le_hex(1, 32, prefix=False)
        + to_le_hex(0, 32, prefix=False)
        + to_le_hex(free, 128, prefix=False)
        + to_le_hex(7, 128, prefix=False)
        + to_le_hex(0, 128, prefix=False) * 2
    )


def author_mapping(account, session):
    return account + to_le_hex(DEPOSIT, 128, prefix=False) + session[2:]


def asset_details(owner, supply, accounts, sufficients):
    return (
        "0x"
        + owner[2:] * 4
        + to_le_hex(supply, 128, prefix=False)
        + to_le_hex(0, 128, prefix=False)
        + to_le_hex(1, 128, prefix=False)
        + "01"
        + to_le_hex(accounts, 32, prefix=False)
        + to_le_hex(sufficients, 32, prefix=False)
        + to_le_hex(0, 32, prefix=False)
        + "00"
    )


def build_top():
    usdt_key = to_le_hex(USDT, 128)
    candidates = [ORBITER, NO_KEYS, REPLACED]
    return {
        encode_storage_key("ParachainStaking", "Round"):
            to_le_hex(1, 32) + to_le_hex(2_000_000, 32, prefix=False) + to_le_hex(600, 32, prefix=False),
        encode_storage_key("ParachainStaking", "TotalSelected"): to_le_hex(8, 32),
        encode_storage_key("ParachainStaking", "SelectedCandidates"):
            "0x" + compact_hex(len(candidates)) + "".join(c[2:] for c in candidates),
        encode_storage_blake128_map_key("MoonbeamOrbiters", "CollatorsPool", ORBITER): "0x00",
        encode_storage_blake128_map_key("AuthorMapping", "MappingWithDeposit", ORBITER_SESSION):
            author_mapping(ORBITER, ORBITER_SESSION),
        encode_storage_blake128_map_key("AuthorMapping", "MappingWithDeposit", REPLACED_SESSION):
            author_mapping(REPLACED, REPLACED_SESSION),
        encode_storage_blake128_map_key("AuthorMapping", "MappingWithDeposit", ALITH_SESSION):
            author_mapping(SQUATTER, ALITH_SESSION),
        encode_storage_blake128_map_key("AuthorMapping", "NimbusLookup", ORBITER): ORBITER_SESSION,
        encode_storage_blake128_map_key("AuthorMapping", "NimbusLookup", REPLACED): REPLACED_SESSION,
        encode_storage_key("AuthorFilter", "EligibleRatio"): "0x32",
        encode_storage_key("AuthorFilter", "EligibleCount"): to_le_hex(4, 32),
        encode_storage_key("AuthorInherent", "HighestSlotSeen"): to_le_hex(12345, 32),
        encode_storage_key("Sudo", "Key"): "0x" + "55" * 20,
        encode_storage_key("Balances", "TotalIssuance"): to_le_hex(TOTAL_ISSUANCE, 128),
        encode_storage_blake128_map_key("System", "Account", BALTATHAR): account_info(BALTATHAR_FREE, 3),
        encode_storage_blake128_map_key("System", "Account", SQUATTER): account_info(10 ** 18),
        encode_storage_key("CouncilCollective", "Members"):
            "0x" + compact_hex(2) + ORBITER[2:] + REPLACED[2:],
        encode_storage_key("TechCommitteeCollective", "Members"): "0x" + compact_hex(1) + NO_KEYS[2:],
        encode_storage_blake128_map_key("Assets", "Asset", usdt_key):
            asset_details("0x" + "66" * 20, USDT_SUPPLY, 1, 1),
        encode_storage_blake128_double_map_key("Assets", "Account", (usdt_key, BALTATHAR)):
            to_le_hex(BALTATHAR_USDT, 128) + "00" + "01",
        encode_storage_key("AsyncBacking", "SlotInfo"): to_le_hex(999, 64) + "02000000",
        encode_storage_key("ParachainSystem", "ValidationData"):
            "0x" + "12" * 40 + to_le_hex(4_000_000, 32, prefix=False) + "cd" * 32
            + to_le_hex(5 * 1024 * 1024, 32, prefix=False),
        encode_storage_key("ParachainSystem", "LastRelayChainBlockNumber"): to_le_hex(4_000_000, 32),
        encode_storage_key("ParachainSystem", "RelevantMessagingState"): "0x" + "ef" * 32 + "0102030405",
        encode_storage_key("XcmpQueue", "InboundXcmpStatus"): "0x00",
        encode_storage_key("XcmpQueue", "OverweightCount"): to_le_hex(2, 64),
        encode_storage_blake128_map_key("XcmpQueue", "OutboundXcmpMessages", "0xd0070000"): "0x1234",
        encode_storage_key("System", "Number"): to_le_hex(3_000_000, 32),
        encode_storage_key("ParachainSystem", "LastDmqMqcHead"): "0x" + "ef" * 32,
    }


def build_spec(top):
    return {
        "name": "Moonbase Alpha",
        "id": "moonbase_alpha",
        "chainType": "Live",
        "bootNodes": [
            "/ip4/127.0.0.1/tcp/30333/p2p/12D3KooWC7wPZMC44rnA9X132J6uAudNQyARQq2rRpmvguD4oz2U",
            "/ip4/127.0.0.1/tcp/30334/ws/p2p/QmSk5HQbn6LhUwDiNMseVUjuRYhEtYj4aUZ6WfWoGURpdV",
        ],
        "telemetryEndpoints": None,
        "protocolId": "moonbase",
        "properties": {"ss58Format": 1287, "tokenDecimals": 18, "tokenSymbol": "DEV"},
        "relayChain": "westend_moonbase_relay_testnet",
        "paraId": 1000,
        "codeSubstitutes": {},
        "genesis": {"raw": {"top": top, "childrenDefault": {}}},
    }


def write_state(path, spec):
    path.write_text(json.dumps(spec, indent=2) + "\n", encoding="utf-8")
    return str(path)


def read_spec(path):
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def load_parser_module():
    def _loader(monkeypatch, buffer_lines="200"):
        monkeypatch.setenv("STATEFORK_BUFFER_LINES", buffer_lines)
        import statefork.parser as parser
        return importlib.reload(parser)

    return _loader


@pytest.fixture
def sample(tmp_path):
    top = build_top()
    spec = build_spec(top)
    return SimpleNamespace(
        spec=spec,
        top=top,
        path=write_state(tmp_path / "sample-state.json", spec),
        out=str(tmp_path / "sample-state.mod.json"),
        read_spec=read_spec,
        write_state=write_state,
        alith=ALITH,
        alith_session=ALITH_SESSION,
        baltathar=BALTATHAR,
        usdt=USDT,
        orbiter=ORBITER,
        no_keys=NO_KEYS,
        replaced=REPLACED,
        squatter=SQUATTER,
        replaced_session=REPLACED_SESSION,
        total_issuance=TOTAL_ISSUANCE,
        baltathar_free=BALTATHAR_FREE,
        usdt_supply=USDT_SUPPLY,
        baltathar_usdt=BALTATHAR_USDT,
        asset_details=asset_details,
    )
