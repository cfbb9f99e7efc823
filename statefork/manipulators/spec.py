import logging
import random
from typing import Optional

from ..manipulator import StateLine, StateManipulator, WriteDecision

log = logging.getLogger(__name__)


def random_protocol_id() -> str:
    # a fresh protocol id keeps the fork from talking to the original network
    return f"fork{random.randint(0, 99999)}"


class SpecManipulator(StateManipulator):
    """Rewrites the top-level chain spec fields (outside of ``genesis``)."""

    def __init__(
        self,
        clear_boot_nodes: bool = True,
        name: Optional[str] = None,
        protocol_id: Optional[str] = None,
        relay_chain: Optional[str] = None,
        chain_type: Optional[str] = "Local",
        para_id: Optional[int] = None,
        dev_service: bool = False,
    ) -> None:
        self.clear_boot_nodes = clear_boot_nodes
        self.name = name
        self.protocol_id = protocol_id or random_protocol_id()
        self.relay_chain = relay_chain
        self.chain_type = chain_type
        self.para_id = para_id
        self.dev_service = dev_service

    def process_write(self, line: StateLine) -> Optional[WriteDecision]:
        key = line.key
        if self.clear_boot_nodes and key == "bootNodes":
            return WriteDecision.remove()
        replacements = {
            "name": self.name,
            "chainType": self.chain_type,
            "protocolId": self.protocol_id,
            "relayChain": self.relay_chain,
            "paraId": self.para_id,
        }
        if replacements.get(key) is not None:
            log.debug("Replacing %s: %s -> %s", key, line.value, replacements[key])
            return WriteDecision.replace(key, replacements[key])
        if self.dev_service and key == "id":
            return WriteDecision.replace(key, f"{line.value}_dev")
        return None
