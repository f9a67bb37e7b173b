"""Payroll period processing services."""

from funeral_payroll.services.approval_service import ApprovalService
from funeral_payroll.services.computation_service import ComputationService, ComputeResult
from funeral_payroll.services.directory import AssignmentLedger, CollaboratorDirectory
from funeral_payroll.services.period_service import PeriodFilter, PeriodService
from funeral_payroll.services.receipt_service import ReceiptBatchResult, ReceiptService
from funeral_payroll.services.record_service import RecordService
from funeral_payroll.services.state_machine import PeriodStateMachine, ReceiptStatusMachine

__all__ = [
    "ApprovalService",
    "AssignmentLedger",
    "CollaboratorDirectory",
    "ComputationService",
    "ComputeResult",
    "PeriodFilter",
    "PeriodService",
    "PeriodStateMachine",
    "ReceiptBatchResult",
    "ReceiptService",
    "ReceiptStatusMachine",
    "RecordService",
]
