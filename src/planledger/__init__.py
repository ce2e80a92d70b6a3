"""
planledger - subscription billing ledger.

Tracks a shared catalog of service plans and one subscription per account,
and settles money at every lifecycle transition:
- Purchase and renewal charges
- Pro-rated refunds inside a refund window
- Upgrade charges and downgrade credits between plan tiers

Privileged operations are gated by a single transferable administrator, and
all time arithmetic runs on an external logical clock.
"""

__version__ = "1.0.0"


def get_version() -> str:
    """Get planledger version."""
    return __version__
