"""
Domain models — Pydantic types for owl.

All models are re-exported here for convenient access:

    from owl.core.models import DeclaredConfig, PackageState, Receipt
"""

from owl.core.models.action import Receipt
from owl.core.models.adoption import AddResult, AdoptOutcome, PackageAction
from owl.core.models.config import ConfigRef, DeclaredConfig, PackageEntry
from owl.core.models.state import PackageState

__all__ = [
    # action.py
    "Receipt",
    # adoption.py
    "AddResult",
    "AdoptOutcome",
    "PackageAction",
    # config.py
    "ConfigRef",
    "DeclaredConfig",
    "PackageEntry",
    # state.py
    "PackageState",
]
