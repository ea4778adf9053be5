"""This module handles the approval request lifecycle: record, gate and store."""
from .approval_gate import ApprovalGate
from .default_approval_gate import DefaultApprovalGate
from .record import ApprovalRequest
