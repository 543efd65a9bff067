"""Sync Use Cases"""
from .dtos import SyncJobArgs, RefreshItemArgs, SyncPassReport, RefreshItemReport
from .sync_items_use_case import SyncItemsUseCase
from .refresh_item_use_case import RefreshItemUseCase

__all__ = [
    # DTOs
    "SyncJobArgs",
    "RefreshItemArgs",
    "SyncPassReport",
    "RefreshItemReport",
    # Use Cases
    "SyncItemsUseCase",
    "RefreshItemUseCase",
]
