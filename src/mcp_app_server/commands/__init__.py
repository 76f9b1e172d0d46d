"""Configuration commands, applicable to live servers or configuration files."""
from .base import (
    CommandFailedException,
    UnsupportedModeError,
    OnlineCommandContext,
    OfflineCommandContext,
    apply_command,
    offline_support,
)
from .messaging import AddQueue, AddQueueBuilder, RemoveQueue
from .infinispan import (
    AddCache,
    RemoveCache,
    CacheType,
    CacheMode,
    ConsistentHashStrategy,
    LocalCacheBuilder,
    DistributedCacheBuilder,
    ReplicatedCacheBuilder,
    InvalidationCacheBuilder,
)

__all__ = [
    "CommandFailedException",
    "UnsupportedModeError",
    "OnlineCommandContext",
    "OfflineCommandContext",
    "apply_command",
    "offline_support",
    "AddQueue",
    "AddQueueBuilder",
    "RemoveQueue",
    "AddCache",
    "RemoveCache",
    "CacheType",
    "CacheMode",
    "ConsistentHashStrategy",
    "LocalCacheBuilder",
    "DistributedCacheBuilder",
    "ReplicatedCacheBuilder",
    "InvalidationCacheBuilder",
]
