"""Credits domain use cases"""
from .open_account import OpenAccount
from .provision_platform_account import ProvisionPlatformAccount
from .enroll_course import EnrollInCourse
from .get_balance import GetBalance
from .list_transactions import ListTransactions
from .request_cashout import RequestCashout
from .settle_cashout import MarkCashoutCompleted, MarkCashoutFailed, CancelCashout
from .purchase_credits import PurchaseCredits
from .reconcile_ledger import ReconcileLedger
from .dtos import (
    OpenAccountCommandDTO,
    AccountResponseDTO,
    PlatformAccountDTO,
    EnrollCommandDTO,
    EnrollmentReceiptDTO,
    BalanceResponseDTO,
    TransactionDTO,
    ListTransactionsResponseDTO,
    CashoutCommandDTO,
    CashoutResponseDTO,
    CashoutSettlementResponseDTO,
    PurchaseCommandDTO,
    PurchaseResponseDTO,
    LedgerDiscrepancyDTO,
    SettlementDiscrepancyDTO,
    ReconciliationResultDTO,
)

__all__ = [
    "OpenAccount",
    "ProvisionPlatformAccount",
    "EnrollInCourse",
    "GetBalance",
    "ListTransactions",
    "RequestCashout",
    "MarkCashoutCompleted",
    "MarkCashoutFailed",
    "CancelCashout",
    "PurchaseCredits",
    "ReconcileLedger",
    "OpenAccountCommandDTO",
    "AccountResponseDTO",
    "PlatformAccountDTO",
    "EnrollCommandDTO",
    "EnrollmentReceiptDTO",
    "BalanceResponseDTO",
    "TransactionDTO",
    "ListTransactionsResponseDTO",
    "CashoutCommandDTO",
    "CashoutResponseDTO",
    "CashoutSettlementResponseDTO",
    "PurchaseCommandDTO",
    "PurchaseResponseDTO",
    "LedgerDiscrepancyDTO",
    "SettlementDiscrepancyDTO",
    "ReconciliationResultDTO",
]
