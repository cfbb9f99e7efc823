"""
Snapshot download and the standard set of manipulations applied to turn an
exported live network state into a locally runnable fork.
"""

import json
import logging
import os
from typing import Callable, Dict, Optional, Tuple
from urllib.request import urlopen

from .manipulators import (
    ASSET_MANAGER_ACCOUNT,
    AssetBalance,
    AssetsManipulator,
    AuthorFilteringManipulator,
    BalancesManipulator,
    CollatorManipulator,
    CollectiveManipulator,
    HRMPManipulator,
    RoundManipulator,
    SpecManipulator,
    SudoManipulator,
    ValidationManipulator,
    XCMPManipulator,
    fixed_round,
)
from .parser import process_state

log = logging.getLogger(__name__)

SNAPSHOT_URL = os.getenv(
    "STATEFORK_SNAPSHOT_URL", "https://s3.us-east-2.amazonaws.com/snapshots.moonbeam.network"
)
DOWNLOAD_TIMEOUT = int(os.getenv("STATEFORK_DOWNLOAD_TIMEOUT", "60"))
DOWNLOAD_CHUNK_SIZE = 1 << 20

STORAGE_NAMES: Dict[str, str] = {
    "moonbeam": "moonbeam",
    "moonriver": "moonriver",
    "alphanet": "moonbase-alpha",
}

# Development accounts
ALITH_ADDRESS = "0xf24ff3a9cf04c71dbc94d0b566f7a27b94566cac"
ALITH_SESSION_ADDRESS = "0xd43593c715fdd31c61141abd04a99fd6822c8558854ccde39a5684e7a56da27d"
BALTATHAR_ADDRESS = "0x3cd0a705a2dc65e5b1e1205896baa2be8a07c6e0"
USDT_ASSET_ID = 311091173110107856861649819128533077277

GLMR = 10 ** 18


def _snapshot_url(network: str, file_name: str) -> str:
    return f"{SNAPSHOT_URL}/{STORAGE_NAMES[network]}/latest/{file_name}"


def _read_json(path: str) -> Optional[dict]:
    if not os.path.exists(path):
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except ValueError:
        log.warning("Ignoring unreadable chain info %s", path)
        return None


def fetch_chain_info(network: str) -> dict:
    url = _snapshot_url(network, f"{STORAGE_NAMES[network]}-chain-info.json")
    with urlopen(url, timeout=DOWNLOAD_TIMEOUT) as resp:
        return json.loads(resp.read().decode())


def download_exported_state(
    network: str,
    out_dir: str,
    check_latest: bool = True,
    on_progress: Optional[Callable[[int], None]] = None,
) -> Tuple[str, int]:
    """Download the latest exported state of ``network`` into ``out_dir``.

    The download is skipped when the cached ``<network>-chain-info.json``
    matches the remote one (or unconditionally when ``check_latest`` is
    false). Returns the state file path and its block number.
    """
    if network not in STORAGE_NAMES:
        raise ValueError(f"Invalid network {network}, expecting {', '.join(STORAGE_NAMES)}")

    os.makedirs(out_dir, exist_ok=True)
    state_info_file = os.path.join(out_dir, f"{network}-chain-info.json")
    state_file = os.path.join(out_dir, f"{network}-state.json")
    state_info = _read_json(state_info_file) if os.path.exists(state_file) else None

    if state_info and not check_latest:
        return state_file, int(state_info["best_number"])

    downloaded_info = fetch_chain_info(network)
    if state_info and state_info.get("best_hash") == downloaded_info.get("best_hash"):
        log.info("%s already at latest (best-hash: %s)", state_file, state_info.get("best_hash"))
        return state_file, int(state_info["best_number"])

    log.info("Downloading %s state (best-hash: %s) to %s",
             network, downloaded_info.get("best_hash"), state_file)
    transferred = 0
    url = _snapshot_url(network, f"{STORAGE_NAMES[network]}-state.json")
    with urlopen(url, timeout=DOWNLOAD_TIMEOUT) as resp, open(state_file, "wb") as out:
        while True:
            chunk = resp.read(DOWNLOAD_CHUNK_SIZE)
            if not chunk:
                break
            out.write(chunk)
            transferred += len(chunk)
            if on_progress:
                on_progress(transferred)

    # chain info is written last so a failed download is fetched again
    with open(state_info_file, "w", encoding="utf-8") as f:
        json.dump(downloaded_info, f)
    log.info("Downloaded %s (%d bytes)", state_file, transferred)
    return state_file, int(downloaded_info["best_number"])


def neutralize_exported_state(in_file: str, out_file: str) -> None:
    """Make an exported state usable locally.

    Alith becomes sudo, council and tech committee member and takes over a
    collator; relay, HRMP and XCMP linkage to the original network is reset.
    """
    process_state(in_file, out_file, [
        RoundManipulator(fixed_round(first=0, length=100)),
        AuthorFilteringManipulator(100),
        SudoManipulator(ALITH_ADDRESS),
        CollatorManipulator(ALITH_ADDRESS, ALITH_SESSION_ADDRESS),
        HRMPManipulator(),
        SpecManipulator(name="Fork Network", relay_chain="rococo-local"),
        CollectiveManipulator("TechCommitteeCollective", [ALITH_ADDRESS]),
        CollectiveManipulator("CouncilCollective", [ALITH_ADDRESS]),
        ValidationManipulator(),
        XCMPManipulator(),
        BalancesManipulator([
            (ALITH_ADDRESS, 10_000 * GLMR),
            (BALTATHAR_ADDRESS, 10_000 * GLMR),
        ]),
        AssetsManipulator(
            [AssetBalance(ALITH_ADDRESS, USDT_ASSET_ID, 20_000 * 10 ** 6)],
            owner=ASSET_MANAGER_ACCOUNT,
        ),
    ])
