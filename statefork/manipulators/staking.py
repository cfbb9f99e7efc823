import logging
from typing import Callable, Dict, List, Optional, Tuple, Union

from ..keys import encode_storage_blake128_map_key, encode_storage_key
from ..manipulator import StateLine, StateManipulator, WriteDecision
from ..utils import compact_prefix_length, from_le_hex, to_le_hex

log = logging.getLogger(__name__)

RoundInfo = Tuple[int, int, int]
RoundProcessor = Callable[[int, int, int], Union[RoundInfo, Dict[str, int]]]


class RoundManipulator(StateManipulator):
    """Rewrites ``ParachainStaking.Round`` through ``round_processor``.

    The record starts with three u32: current round, first block, length.
    """

    def __init__(self, round_processor: RoundProcessor) -> None:
        self.storage_prefix = encode_storage_key("ParachainStaking", "Round")
        self.round_processor = round_processor

    def process_write(self, line: StateLine) -> Optional[WriteDecision]:
        if not line.key.startswith(self.storage_prefix):
            return None
        value = line.value
        current = from_le_hex(value[2:10])
        first = from_le_hex(value[10:18])
        length = from_le_hex(value[18:26])
        log.debug("Found round info current=%s first=%s length=%s", current, first, length)
        result = self.round_processor(current, first, length)
        if isinstance(result, dict):
            result = (result["current"], result["first"], result["length"])
        new_current, new_first, new_length = result
        new_value = (
            to_le_hex(new_current, 32)
            + to_le_hex(new_first, 32, prefix=False)
            + to_le_hex(new_length, 32, prefix=False)
            + value[26:]
        )
        return WriteDecision.replace(line.key, new_value)


class AuthorFilteringManipulator(StateManipulator):
    def __init__(self, target_eligibility_ratio: int, highest_slot_seen: int = 0) -> None:
        self.target_eligibility_ratio = target_eligibility_ratio
        self.highest_slot_seen = highest_slot_seen
        self.total_selected = 100
        self.eligible_ratio_key = encode_storage_key("AuthorFilter", "EligibleRatio")
        self.eligible_count_key = encode_storage_key("AuthorFilter", "EligibleCount")
        self.total_selected_key = encode_storage_key("ParachainStaking", "TotalSelected")
        self.highest_slot_seen_key = encode_storage_key("AuthorInherent", "HighestSlotSeen")

    def process_read(self, line: StateLine) -> None:
        if line.key.startswith(self.total_selected_key):
            self.total_selected = from_le_hex(line.value[2:10])

    @property
    def eligible_count(self) -> int:
        return self.total_selected * self.target_eligibility_ratio // 100

    def process_write(self, line: StateLine) -> Optional[WriteDecision]:
        key = line.key
        if key.startswith(self.eligible_ratio_key):
            log.debug("Found eligibility ratio: %s", from_le_hex(line.value))
            return WriteDecision.replace(key, to_le_hex(self.target_eligibility_ratio, 8))
        if key.startswith(self.eligible_count_key):
            log.debug("Found eligibility count: %s", line.value)
            return WriteDecision.replace(key, to_le_hex(self.eligible_count, 32))
        if key.startswith(self.highest_slot_seen_key):
            log.debug("Found highest slot seen: %s", from_le_hex(line.value))
            return WriteDecision.replace(key, to_le_hex(self.highest_slot_seen, 32))
        return None


def parse_account_list(value: str) -> List[str]:
    """Decode a compact-prefixed vector of 20-byte accounts."""
    body = value[2:]
    body = body[compact_prefix_length(body):]
    return ["0x" + body[i:i + 40] for i in range(0, len(body) - 39, 40)]


class CollatorManipulator(StateManipulator):
    """Hands the identity of an existing collator over to ``new_session_key``.

    The replaced collator stays selected in staking; its author mapping and
    nimbus lookup are moved to the new session key so the local node holding
    that key authors its blocks.
    """

    def __init__(self, new_collator: str, new_session_key: str) -> None:
        self.new_collator = new_collator.lower()
        self.new_session_key = new_session_key.lower()
        self.collators: List[str] = []
        self.orbiters: List[str] = []
        self.author_mapping: Dict[str, StateLine] = {}
        self.replaced_collator = ""
        self.replaced_author_mapping_key = ""
        self.replaced_nimbus_lookup_key = ""

        self.selected_candidates_key = encode_storage_key("ParachainStaking", "SelectedCandidates")
        self.orbiter_collators_pool_key = encode_storage_key("MoonbeamOrbiters", "CollatorsPool")
        self.author_mapping_key = encode_storage_key("AuthorMapping", "MappingWithDeposit")
        self.new_author_mapping_key = encode_storage_blake128_map_key(
            "AuthorMapping", "MappingWithDeposit", self.new_session_key
        )

    def process_read(self, line: StateLine) -> None:
        key, value = line.key, line.value
        if key.startswith(self.selected_candidates_key):
            self.collators.extend(parse_account_list(value.lower()))
            log.debug("Found candidates: %d", len(self.collators))
        if key.startswith(self.orbiter_collators_pool_key):
            self.orbiters.append("0x" + key[-40:].lower())
        if key.startswith(self.author_mapping_key):
            self.author_mapping[value[:42].lower()] = StateLine(key, value)

    def prepare_write(self) -> None:
        for collator in self.collators:
            if collator not in self.orbiters and collator in self.author_mapping:
                self.replaced_collator = collator
                break
        else:
            raise RuntimeError("No collator available")
        self.replaced_author_mapping_key = self.author_mapping[self.replaced_collator].key
        self.replaced_nimbus_lookup_key = encode_storage_blake128_map_key(
            "AuthorMapping", "NimbusLookup", self.replaced_collator
        )
        log.info("Replacing collator %s keys with %s (%s)",
                 self.replaced_collator, self.new_session_key, self.new_collator)

    def process_write(self, line: StateLine) -> Optional[WriteDecision]:
        key, value = line.key, line.value
        # checked first: on an already swapped state both keys are the same
        if key.startswith(self.replaced_author_mapping_key):
            log.debug("Found replaced collator mapping key: %s", value)
            return WriteDecision.remove([
                StateLine(self.new_author_mapping_key, value[:-64] + self.new_session_key[2:]),
            ])
        if key.startswith(self.new_author_mapping_key):
            log.debug("Found new collator already existing session key: %s", value)
            return WriteDecision.remove()
        if key.startswith(self.replaced_nimbus_lookup_key):
            log.debug("Found nimbus lookup for replaced collator: %s", value)
            return WriteDecision.replace(key, self.new_session_key)
        return None


def fixed_round(first: int = 0, length: int = 100) -> RoundProcessor:
    """Round processor keeping the current round and forcing first/length."""

    def _process(current: int, _first: int, _length: int) -> RoundInfo:
        return current, first, length

    return _process
