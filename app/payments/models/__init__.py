"""
Settlement ledger models.

- Payment: One settlement per completed, paid ServiceRequest
- PlatformFeeTransfer: Service-fee sweep to the master account
- SettlementRun: Audit record of each weekly settlement run
- TherapistPayoutAccount: Stripe Connect account receiving a therapist's payouts
"""

from payments.models.fee_transfer import PlatformFeeTransfer
from payments.models.payment import Payment
from payments.models.payout_account import TherapistPayoutAccount
from payments.models.settlement_run import SettlementRun

__all__ = [
    "Payment",
    "PlatformFeeTransfer",
    "SettlementRun",
    "TherapistPayoutAccount",
]
