"""Administrator identity and administrator-settable parameters."""

from planledger.billing.access.models import AdminConfig
from planledger.billing.access.service import AccessControl

__all__ = ["AccessControl", "AdminConfig"]
