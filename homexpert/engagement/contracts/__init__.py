"""Contract subsystem.

Models:
- HireContract: The employment relationship made from an accepted request
- ContractStatus: active, completed, terminated

Service:
- ContractManager: create from request, complete, terminate
"""

from homexpert.engagement.contracts.manager import ContractManager
from homexpert.engagement.contracts.models import (
    VALID_CONTRACT_TRANSITIONS,
    ContractStatus,
    HireContract,
)

__all__ = [
    "HireContract",
    "ContractStatus",
    "VALID_CONTRACT_TRANSITIONS",
    "ContractManager",
]
