import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from ..keys import (
    encode_storage_blake128_double_map_key,
    encode_storage_blake128_map_key,
    encode_storage_key,
)
from ..manipulator import StateLine, StateManipulator, WriteDecision
from ..utils import from_le_hex, to_le_hex

log = logging.getLogger(__name__)

# AccountInfo: nonce, consumers, providers, sufficients (u32) then free (u128)
FREE_BALANCE = slice(34, 66)


@dataclass
class _AccountEntry:
    account: str
    target_amount: int
    key: str
    current_amount: int = 0
    already_exists: bool = False


def new_account_info(free: int) -> str:
    nonce = to_le_hex(0, 32, prefix=False)
    consumers = to_le_hex(0, 32, prefix=False)
    providers = to_le_hex(1, 32, prefix=False)
    sufficients = to_le_hex(0, 32, prefix=False)
    data = to_le_hex(free, 128, prefix=False) + to_le_hex(0, 128, prefix=False) * 3
    return f"0x{nonce}{consumers}{providers}{sufficients}{data}"


class BalancesManipulator(StateManipulator):
    """Sets the free balance of ``balances`` accounts, keeping total issuance consistent."""

    def __init__(self, balances: Iterable[Tuple[str, int]]) -> None:
        self.balances_data = [
            _AccountEntry(
                account=account.lower(),
                target_amount=amount,
                key=encode_storage_blake128_map_key("System", "Account", account.lower()),
            )
            for account, amount in balances
        ]
        self.total_issuance: Optional[int] = None
        self.total_issuance_key = encode_storage_key("Balances", "TotalIssuance")

    def _find(self, key: str) -> Optional[_AccountEntry]:
        for entry in self.balances_data:
            if key.startswith(entry.key):
                return entry
        return None

    def process_read(self, line: StateLine) -> None:
        if line.key.startswith(self.total_issuance_key):
            self.total_issuance = from_le_hex(line.value)
        entry = self._find(line.key)
        if entry:
            entry.current_amount = from_le_hex(line.value[FREE_BALANCE])
            entry.already_exists = True

    @property
    def issuance_delta(self) -> int:
        return sum(e.target_amount - e.current_amount for e in self.balances_data)

    def process_write(self, line: StateLine) -> Optional[WriteDecision]:
        key, value = line.key, line.value
        if key.startswith(self.total_issuance_key):
            total = from_le_hex(value)
            diff = self.issuance_delta
            log.debug("Found total issuance from %s to %s [%+d]", total, total + diff, diff)
            extra_lines = [StateLine(key, to_le_hex(total + diff, 128))]
            for entry in self.balances_data:
                if entry.already_exists:
                    continue
                log.debug("Adding account %s", entry.account)
                extra_lines.append(StateLine(entry.key, new_account_info(entry.target_amount)))
            return WriteDecision.remove(extra_lines)

        entry = self._find(key)
        if entry:
            log.debug("Found balance account %s, from %s to %s",
                      entry.account, entry.current_amount, entry.target_amount)
            new_value = (
                value[:FREE_BALANCE.start]
                + to_le_hex(entry.target_amount, 128, prefix=False)
                + value[FREE_BALANCE.stop:]
            )
            return WriteDecision.replace(key, new_value)
        return None


# pallet-asset-manager sovereign account ("modlasstmngr")
ASSET_MANAGER_ACCOUNT = "0x6d6f646c617373746d6e67720000000000000000"

# AssetDetails field offsets in the hex value (20-byte accounts)
ASSET_SUPPLY = slice(162, 194)
ASSET_ACCOUNTS = slice(260, 268)
ASSET_SUFFICIENTS = slice(268, 276)


@dataclass
class AssetBalance:
    account: str
    asset_id: int
    amount: int
    key: str = ""
    current_amount: int = 0
    already_exists: bool = False

    def __post_init__(self) -> None:
        self.account = self.account.lower()
        self.key = encode_storage_blake128_double_map_key(
            "Assets", "Account", (asset_id_key(self.asset_id), self.account)
        )


def asset_id_key(asset_id: int) -> str:
    return to_le_hex(asset_id, 128)


def new_asset_account(amount: int) -> str:
    # balance, is_frozen = false, reason = Sufficient
    return to_le_hex(amount, 128) + "00" + "01"


class AssetsManipulator(StateManipulator):
    """Sets asset balances, adjusting the supply and account count of each asset.

    Missing accounts are inserted next to the first ``Assets.Account`` record,
    so nothing is injected, nor counted in the asset totals, in a state
    without any asset account.
    """

    def __init__(self, balances: Iterable[AssetBalance], owner: Optional[str] = None) -> None:
        self.assets_data: List[AssetBalance] = list(balances)
        self.owner = owner.lower() if owner else None
        self.has_accounts = False
        self.injected = False
        self.assets_general_prefix = encode_storage_key("Assets", "Account")
        self.asset_keys: Dict[str, int] = {
            encode_storage_blake128_map_key("Assets", "Asset", asset_id_key(b.asset_id)): b.asset_id
            for b in self.assets_data
        }

    def _find(self, key: str) -> Optional[AssetBalance]:
        for entry in self.assets_data:
            if key.startswith(entry.key):
                return entry
        return None

    def process_read(self, line: StateLine) -> None:
        if line.key.startswith(self.assets_general_prefix):
            self.has_accounts = True
        entry = self._find(line.key)
        if entry:
            entry.current_amount = from_le_hex(line.value[2:34])
            entry.already_exists = True

    def _asset_details(self, asset_id: int, value: str) -> str:
        # missing accounts only count when they get injected
        entries = [
            e for e in self.assets_data
            if e.asset_id == asset_id and (e.already_exists or self.has_accounts)
        ]
        delta = sum(e.amount - e.current_amount for e in entries)
        new_accounts = sum(1 for e in entries if not e.already_exists)
        supply = from_le_hex(value[ASSET_SUPPLY]) + delta
        accounts = from_le_hex(value[ASSET_ACCOUNTS]) + new_accounts
        sufficients = from_le_hex(value[ASSET_SUFFICIENTS]) + new_accounts
        log.debug("Asset %s supply %+d, %d new accounts", asset_id, delta, new_accounts)

        head = value[:ASSET_SUPPLY.start]
        if self.owner:
            head = "0x" + self.owner[2:] * 4
        return (
            head
            + to_le_hex(supply, 128, prefix=False)
            + value[ASSET_SUPPLY.stop:ASSET_ACCOUNTS.start]
            + to_le_hex(accounts, 32, prefix=False)
            + to_le_hex(sufficients, 32, prefix=False)
            + value[ASSET_SUFFICIENTS.stop:]
        )

    def process_write(self, line: StateLine) -> Optional[WriteDecision]:
        key, value = line.key, line.value
        if key in self.asset_keys:
            return WriteDecision.replace(key, self._asset_details(self.asset_keys[key], value))

        decision = None
        entry = self._find(key)
        if entry:
            log.debug("Found asset %s account %s, from %s to %s",
                      entry.asset_id, entry.account, entry.current_amount, entry.amount)
            decision = WriteDecision.replace(key, to_le_hex(entry.amount, 128) + value[34:])

        if not self.injected and key.startswith(self.assets_general_prefix):
            self.injected = True
            extra_lines = [
                StateLine(e.key, new_asset_account(e.amount))
                for e in self.assets_data
                if not e.already_exists
            ]
            if extra_lines:
                decision = decision or WriteDecision.keep()
                decision.extra_lines.extend(extra_lines)
        return decision
