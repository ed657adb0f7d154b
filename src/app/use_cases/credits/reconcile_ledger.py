"""ReconcileLedger Use Case

Reconciles account balances against ledger history and checks that every
enrollment settlement conserved credits.
"""

import logging
import time
from collections import defaultdict
from datetime import datetime
from typing import Dict, List
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.user_account_repository import UserAccountRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.domain.credit_transaction import CreditTransaction, TransactionType
from .dtos import LedgerDiscrepancyDTO, ReconciliationResultDTO, SettlementDiscrepancyDTO
from .enroll_course import ENROLLMENT_REFERENCE

logger = logging.getLogger(__name__)

# settlement leg name -> transaction type of that leg
SETTLEMENT_LEGS = {
    "enroll": TransactionType.ENROLL,
    "earn": TransactionType.EARN,
    "platform_fee": TransactionType.BONUS,
}


class ReconcileLedger:
    """
    Use Case: Reconcile balances against the ledger

    Business Rules:
    1. Expected balance = sum of signed ledger entries per account
       (enroll and cashout subtract their amount, everything else adds its net)
    2. Every enrollment settlement satisfies
       enroll.amount == earn.net + platform_fee.amount
    3. Does NOT modify any data (read-only reconciliation)
    """

    def __init__(
        self,
        uow: UnitOfWork,
        user_repo: UserAccountRepository,
        transaction_repo: CreditTransactionRepository,
    ):
        self.uow = uow
        self.user_repo = user_repo
        self.transaction_repo = transaction_repo

    async def execute(self) -> Result[ReconciliationResultDTO]:
        """
        Execute ledger reconciliation

        Returns:
            Result[ReconciliationResultDTO]: Reconciliation result with any discrepancies
        """
        start_time = time.time()
        reconciliation_time = datetime.utcnow()

        try:
            logger.info("Starting credit ledger reconciliation")

            accounts = await self.user_repo.get_all()
            signed_sums = await self.transaction_repo.get_signed_sum_by_user()
            total_accounts = len(accounts)

            logger.info(f"Found {total_accounts} accounts to reconcile")

            discrepancies: List[LedgerDiscrepancyDTO] = []
            for account in accounts:
                calculated = signed_sums.get(account.id, 0)
                if account.credits != calculated:
                    discrepancy = LedgerDiscrepancyDTO(
                        user_id=account.id,
                        username=account.username,
                        account_balance=account.credits,
                        calculated_balance=calculated,
                        discrepancy=account.credits - calculated,
                    )
                    discrepancies.append(discrepancy)

                    logger.warning(
                        f"Discrepancy found for user {account.id} ({account.username}): "
                        f"balance={account.credits}, ledger_sum={calculated}, "
                        f"discrepancy={discrepancy.discrepancy}"
                    )

            settlement_entries = await self.transaction_repo.get_by_reference_type(
                ENROLLMENT_REFERENCE
            )
            settlements = self._group_settlements(settlement_entries)
            settlement_discrepancies = [
                discrepancy
                for discrepancy in (
                    self._check_settlement(reference_id, legs)
                    for reference_id, legs in settlements.items()
                )
                if discrepancy is not None
            ]

            for d in settlement_discrepancies:
                logger.warning(
                    f"Settlement {d.reference_id} does not conserve credits: "
                    f"debit={d.learner_debit}, instructor={d.instructor_net}, "
                    f"platform={d.platform_fee}, missing={d.missing_legs}"
                )

            execution_time_ms = int((time.time() - start_time) * 1000)

            response = ReconciliationResultDTO(
                total_accounts_checked=total_accounts,
                discrepancies_found=len(discrepancies),
                discrepancies=discrepancies,
                settlements_checked=len(settlements),
                settlement_discrepancies=settlement_discrepancies,
                reconciliation_time=reconciliation_time,
                execution_time_ms=execution_time_ms,
            )

            if response.is_balanced:
                logger.info(
                    f"Reconciliation complete. All {total_accounts} accounts and "
                    f"{len(settlements)} settlements balanced in {execution_time_ms}ms"
                )
            else:
                logger.warning(
                    f"Reconciliation complete. Found {len(discrepancies)} balance and "
                    f"{len(settlement_discrepancies)} settlement discrepancies in {execution_time_ms}ms"
                )

            return Return.ok(response)

        except Exception as e:
            logger.error(f"Ledger reconciliation failed: {e}")
            return Return.err(
                Error(
                    code="RECONCILIATION_FAILED",
                    message="Failed to reconcile credit ledger",
                    reason=str(e),
                )
            )

    def _group_settlements(
        self, entries: List[CreditTransaction]
    ) -> Dict[str, Dict[str, CreditTransaction]]:
        settlements: Dict[str, Dict[str, CreditTransaction]] = defaultdict(dict)
        for entry in entries:
            for leg, transaction_type in SETTLEMENT_LEGS.items():
                if entry.transaction_type == transaction_type:
                    settlements[entry.reference_id][leg] = entry
        return settlements

    def _check_settlement(self, reference_id: str, legs: Dict[str, CreditTransaction]):
        missing = [leg for leg in SETTLEMENT_LEGS if leg not in legs]

        learner_debit = legs["enroll"].amount_credits if "enroll" in legs else 0
        instructor_net = legs["earn"].net_credits if "earn" in legs else 0
        platform_fee = legs["platform_fee"].amount_credits if "platform_fee" in legs else 0
        difference = learner_debit - (instructor_net + platform_fee)

        if difference == 0 and not missing:
            return None

        return SettlementDiscrepancyDTO(
            reference_id=reference_id,
            learner_debit=learner_debit,
            instructor_net=instructor_net,
            platform_fee=platform_fee,
            difference=difference,
            missing_legs=missing,
        )
