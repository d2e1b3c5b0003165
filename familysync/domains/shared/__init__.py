"""Shared domain components."""

from familysync.domains.shared.repository import DocumentRepository

__all__ = ["DocumentRepository"]
