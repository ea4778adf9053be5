"""Approval workflow engine for permission, regularization and reimbursement requests."""
