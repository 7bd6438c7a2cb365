"""Mutation verbs: single-record, batch and retry."""

from optibook.mutations.batch import BatchCoordinator, BatchPatch
from optibook.mutations.coordinator import FeedbackMessage, MutationCoordinator
from optibook.mutations.retry import RetryManager

__all__ = [
    "BatchCoordinator",
    "BatchPatch",
    "FeedbackMessage",
    "MutationCoordinator",
    "RetryManager",
]
