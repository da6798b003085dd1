"""
Google Docs Operation Managers

This package provides high-level manager classes for document editing
operations. Each manager resolves its targets against a fresh snapshot and
applies mutations through a DocumentSession.
"""

from .batch_operation_manager import DocumentSession, MutationKind, OperationPhase, sequence_requests
from .list_operation_manager import ListOperationManager
from .table_operation_manager import TableOperationManager
from .text_operation_manager import TextOperationManager
from .validation_manager import ValidationManager

__all__ = [
    "DocumentSession",
    "MutationKind",
    "OperationPhase",
    "sequence_requests",
    "ListOperationManager",
    "TableOperationManager",
    "TextOperationManager",
    "ValidationManager",
]
