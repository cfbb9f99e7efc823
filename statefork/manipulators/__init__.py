from .balances import ASSET_MANAGER_ACCOUNT, AssetBalance, AssetsManipulator, BalancesManipulator
from .governance import AuthorizeUpgradeManipulator, CollectiveManipulator, SudoManipulator
from .messaging import CumulusManipulator, HRMPManipulator, ValidationManipulator, XCMPManipulator
from .spec import SpecManipulator
from .staking import (
    AuthorFilteringManipulator,
    CollatorManipulator,
    RoundManipulator,
    fixed_round,
)

__all__ = [
    "ASSET_MANAGER_ACCOUNT",
    "AssetBalance",
    "AssetsManipulator",
    "AuthorFilteringManipulator",
    "AuthorizeUpgradeManipulator",
    "BalancesManipulator",
    "CollatorManipulator",
    "CollectiveManipulator",
    "CumulusManipulator",
    "HRMPManipulator",
    "RoundManipulator",
    "SpecManipulator",
    "SudoManipulator",
    "ValidationManipulator",
    "XCMPManipulator",
    "fixed_round",
]
