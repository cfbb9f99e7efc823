import logging
from typing import Optional

from ..keys import encode_storage_key
from ..manipulator import StateLine, StateManipulator, WriteDecision
from ..utils import to_le_hex

log = logging.getLogger(__name__)

EMPTY_HASH = "0" * 64


class HRMPManipulator(StateManipulator):
    def __init__(self) -> None:
        self.relevant_messaging_key = encode_storage_key("ParachainSystem", "RelevantMessagingState")
        self.last_dmq_mqc_head_key = encode_storage_key("ParachainSystem", "LastDmqMqcHead")

    def process_write(self, line: StateLine) -> Optional[WriteDecision]:
        key, value = line.key, line.value
        if key.startswith(self.relevant_messaging_key):
            log.debug("Clearing RelevantMessagingState dmq_mqc_head: %s", value[:66])
            return WriteDecision.replace(key, "0x" + EMPTY_HASH + value[66:])
        if key.startswith(self.last_dmq_mqc_head_key):
            log.debug("Clearing LastDmqMqcHead: %s", value)
            return WriteDecision.remove()
        return None


XCMP_QUEUE_ITEMS = (
    "InboundXcmpMessages",
    "InboundXcmpStatus",
    "OutboundXcmpMessages",
    "OutboundXcmpStatus",
    "Overweight",
    "OverweightCount",
    "SignalMessages",
)


class XCMPManipulator(StateManipulator):
    def __init__(self) -> None:
        self.prefixes = {item: encode_storage_key("XcmpQueue", item) for item in XCMP_QUEUE_ITEMS}

    def process_write(self, line: StateLine) -> Optional[WriteDecision]:
        for item, prefix in self.prefixes.items():
            if line.key.startswith(prefix):
                log.debug("Clearing %s: %s", item, line.value)
                return WriteDecision.remove()
        return None


class ValidationManipulator(StateManipulator):
    """Detaches the parachain from the relay chain it was exported from.

    ``ValidationData`` ends with relay_parent_number (u32),
    relay_parent_storage_root (32 bytes) and max_pov_size (u32).
    """

    def __init__(self, parent_number: int = 0) -> None:
        self.parent_number = parent_number
        self.validation_data_key = encode_storage_key("ParachainSystem", "ValidationData")
        self.last_relay_chain_block_number_key = encode_storage_key(
            "ParachainSystem", "LastRelayChainBlockNumber"
        )

    def process_write(self, line: StateLine) -> Optional[WriteDecision]:
        key, value = line.key, line.value
        if key.startswith(self.validation_data_key):
            head = value[:-(8 + 64 + 8)]
            max_pov_size = value[-8:]
            log.debug("Reset parachain validation data: %s", head[:100])
            new_value = head + to_le_hex(self.parent_number, 32, prefix=False) + EMPTY_HASH + max_pov_size
            return WriteDecision.replace(key, new_value)
        if key.startswith(self.last_relay_chain_block_number_key):
            log.debug("Reset parachain relay chain block number: %s", value)
            return WriteDecision.replace(key, to_le_hex(self.parent_number, 32))
        return None


class CumulusManipulator(StateManipulator):
    """Resets ``AsyncBacking.SlotInfo`` to ``new_slot`` with one authored block."""

    def __init__(self, new_slot: int) -> None:
        self.new_slot = new_slot
        self.slot_info_key = encode_storage_key("AsyncBacking", "SlotInfo")

    def process_write(self, line: StateLine) -> Optional[WriteDecision]:
        if not line.key.startswith(self.slot_info_key):
            return None
        log.debug("Found async backing SlotInfo: %s. Resetting to %s", line.value, self.new_slot)
        return WriteDecision.replace(line.key, to_le_hex(self.new_slot, 64) + "01000000")
