from .manipulator import KEEP, REMOVE, LineMeta, StateLine, StateManipulator, WriteDecision
from .parser import process_state

__all__ = [
    "keys",
    "manipulator",
    "manipulators",
    "parser",
    "state_manager",
    "utils",
    "KEEP",
    "REMOVE",
    "LineMeta",
    "StateLine",
    "StateManipulator",
    "WriteDecision",
    "process_state",
]
