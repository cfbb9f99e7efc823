import logging
from typing import List, Optional

from ..keys import encode_storage_key
from ..manipulator import StateLine, StateManipulator, WriteDecision
from ..utils import compact_hex

log = logging.getLogger(__name__)


def encode_members(members: List[str]) -> str:
    return "0x" + compact_hex(len(members)) + "".join(member[2:].lower() for member in members)


class CollectiveManipulator(StateManipulator):
    def __init__(self, collective_name: str, new_members: List[str]) -> None:
        self.collective_name = collective_name
        self.new_members = list(new_members)
        self.collective_members_key = encode_storage_key(collective_name, "Members")
        log.debug("Using key %s for %s members", self.collective_members_key, collective_name)

    def process_write(self, line: StateLine) -> Optional[WriteDecision]:
        if not line.key.startswith(self.collective_members_key):
            return None
        log.debug("Replacing %s members: %s", self.collective_name, line.value)
        return WriteDecision.replace(line.key, encode_members(self.new_members))


class SudoManipulator(StateManipulator):
    def __init__(self, sudo_account: str) -> None:
        self.storage_prefix = encode_storage_key("Sudo", "Key")
        self.sudo_account = sudo_account.lower()

    def process_write(self, line: StateLine) -> Optional[WriteDecision]:
        if not line.key.startswith(self.storage_prefix):
            return None
        log.debug("Found sudo key: %s", line.value)
        return WriteDecision.replace(line.key, self.sudo_account)


class AuthorizeUpgradeManipulator(StateManipulator):
    """Authorizes a runtime upgrade to ``code_hash`` with version checks on.

    ``System.AuthorizedUpgrade`` is usually absent, so the record is inserted
    next to ``ParachainSystem.LastRelayChainBlockNumber``, which always exists.
    """

    def __init__(self, code_hash: str) -> None:
        self.code_hash = code_hash.lower()
        self.storage_key = encode_storage_key("System", "AuthorizedUpgrade")
        self.last_relay_chain_block_number_key = encode_storage_key(
            "ParachainSystem", "LastRelayChainBlockNumber"
        )

    def process_write(self, line: StateLine) -> Optional[WriteDecision]:
        if line.key.startswith(self.last_relay_chain_block_number_key):
            log.debug("Adding authorized upgrade hash: %s", self.code_hash)
            return WriteDecision.keep([StateLine(self.storage_key, self.code_hash + "01")])
        if line.key.startswith(self.storage_key):
            log.debug("Removing authorized upgrade hash: %s", line.value)
            return WriteDecision.remove()
        return None
