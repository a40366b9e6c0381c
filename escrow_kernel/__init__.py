"""
Escrow Kernel

A project-escrow ledger for freelance engagements with:
- Guarded project state machine (open, assigned, submitted, completed, cancelled)
- Client funds held in trust for the lifetime of a project
- Exact fee/payout split on completion, full refund on cancellation
- Atomic transitions with custody-failure rollback
- Append-only event log
"""

__version__ = "0.1.0"
