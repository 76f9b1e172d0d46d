"""Infinispan cache commands.

Every cache type shares one set of settings (container, name, JNDI name,
module, start mode, statistics) and adds its own options:

- local-cache: ``LocalCacheOptions``
- replicated-cache, invalidation-cache: ``ClusteredCacheOptions``
- distributed-cache: ``DistributedCacheOptions`` (clustered options plus
  ownership and hashing)

Usage:
    cmd = (DistributedCacheBuilder("sessions")
           .cache_container("web")
           .mode(CacheMode.SYNC)
           .owners(2)
           .build())
    await apply_command(cmd, ctx)
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Union

from ..management.address import Address
from ..management.operations import OperationException
from ..management.values import Values
from ..management.version import ServerVersion, VERSION_3_0_0
from .base import CommandFailedException, OnlineCommandContext, online_applier

logger = logging.getLogger(__name__)


class CacheType(str, Enum):
    LOCAL = "local-cache"
    DISTRIBUTED = "distributed-cache"
    REPLICATED = "replicated-cache"
    INVALIDATION = "invalidation-cache"


class CacheMode(str, Enum):
    SYNC = "SYNC"
    ASYNC = "ASYNC"


class ConsistentHashStrategy(str, Enum):
    INTRA_CACHE = "INTRA_CACHE"
    INTER_CACHE = "INTER_CACHE"


def cache_address(container: str, cache_type: CacheType, name: str) -> Address:
    return Address.subsystem("infinispan").and_("cache-container", container).and_(cache_type.value, name)


# === Data ===

@dataclass(frozen=True)
class CacheSettings:
    """Settings common to all cache types."""
    container: str
    name: str
    jndi_name: Optional[str] = None
    module: Optional[str] = None
    start: Optional[str] = None
    statistics_enabled: Optional[bool] = None


@dataclass(frozen=True)
class LocalCacheOptions:
    batching: Optional[bool] = None
    indexing: Optional[str] = None


@dataclass(frozen=True)
class ClusteredCacheOptions:
    mode: Optional[CacheMode] = None
    async_marshalling: Optional[bool] = None
    queue_flush_interval: Optional[int] = None
    queue_size: Optional[int] = None
    remote_timeout: Optional[int] = None


@dataclass(frozen=True)
class DistributedCacheOptions:
    clustered: ClusteredCacheOptions = field(default_factory=ClusteredCacheOptions)
    # capacity-factor and consistent-hash-strategy need management version 3.0.0+
    capacity_factor: Optional[float] = None
    consistent_hash_strategy: Optional[ConsistentHashStrategy] = None
    l1_lifespan: Optional[int] = None
    owners: Optional[int] = None
    segments: Optional[int] = None


CacheOptions = Union[LocalCacheOptions, ClusteredCacheOptions, DistributedCacheOptions]

# Options variant each cache type is created with
OPTIONS_TYPES: dict[CacheType, type] = {
    CacheType.LOCAL: LocalCacheOptions,
    CacheType.DISTRIBUTED: DistributedCacheOptions,
    CacheType.REPLICATED: ClusteredCacheOptions,
    CacheType.INVALIDATION: ClusteredCacheOptions,
}


@dataclass(frozen=True)
class AddCache:
    """Creates a cache in an Infinispan cache container."""
    cache_type: CacheType
    settings: CacheSettings
    options: CacheOptions

    def __post_init__(self):
        if not isinstance(self.cache_type, CacheType):
            raise ValueError(f"Unknown cache type: {self.cache_type}")
        if not self.settings.container:
            raise ValueError("Cache container is required")
        if not self.settings.name:
            raise ValueError("Name of the cache must be specified")
        expected = OPTIONS_TYPES[self.cache_type]
        if type(self.options) is not expected:
            raise ValueError(
                f"{self.cache_type.value} takes {expected.__name__}, "
                f"not {type(self.options).__name__}"
            )
        if isinstance(self.options, DistributedCacheOptions):
            if self.options.owners is not None and self.options.owners < 1:
                raise ValueError("Number of owners must be at least 1")
            if self.options.segments is not None and self.options.segments < 1:
                raise ValueError("Number of segments must be at least 1")

    @property
    def address(self) -> Address:
        return cache_address(self.settings.container, self.cache_type, self.settings.name)

    def __str__(self) -> str:
        return f"AddCache {self.cache_type.value} {self.settings.name}"


@dataclass(frozen=True)
class RemoveCache:
    """Removes a cache; removing an absent cache is a no-op."""
    container: str
    cache_type: CacheType
    name: str

    def __post_init__(self):
        if not self.container:
            raise ValueError("Cache container is required")
        if not isinstance(self.cache_type, CacheType):
            raise ValueError(f"Unknown cache type: {self.cache_type}")
        if not self.name:
            raise ValueError("Name of the cache must be specified")

    @property
    def address(self) -> Address:
        return cache_address(self.container, self.cache_type, self.name)

    def __str__(self) -> str:
        return f"RemoveCache {self.cache_type.value} {self.name}"


# === Encoders ===

def encode_settings(settings: CacheSettings) -> Values:
    return (Values.empty()
            .and_optional("jndi-name", settings.jndi_name)
            .and_optional("module", settings.module)
            .and_optional("start", settings.start)
            .and_optional("statistics-enabled", settings.statistics_enabled))


def encode_local(options: LocalCacheOptions, version: ServerVersion) -> Values:
    return (Values.empty()
            .and_optional("batching", options.batching)
            .and_optional("indexing", options.indexing))


def encode_clustered(options: ClusteredCacheOptions, version: ServerVersion) -> Values:
    return (Values.empty()
            .and_optional("mode", options.mode)
            .and_optional("async-marshalling", options.async_marshalling)
            .and_optional("queue-flush-interval", options.queue_flush_interval)
            .and_optional("queue-size", options.queue_size)
            .and_optional("remote-timeout", options.remote_timeout))


def encode_distributed(options: DistributedCacheOptions, version: ServerVersion) -> Values:
    values = (encode_clustered(options.clustered, version)
              .and_optional("l1-lifespan", options.l1_lifespan)
              .and_optional("owners", options.owners)
              .and_optional("segments", options.segments))

    if version.greater_than_or_equal_to(VERSION_3_0_0):
        return (values
                .and_optional("capacity-factor", options.capacity_factor)
                .and_optional("consistent-hash-strategy", options.consistent_hash_strategy))

    for attribute, value in (
        ("capacity-factor", options.capacity_factor),
        ("consistent-hash-strategy", options.consistent_hash_strategy),
    ):
        if value is not None:
            logger.warning(f"Server version {version} has no '{attribute}' attribute, ignoring it")
    return values


ENCODERS: dict[type, Callable[[CacheOptions, ServerVersion], Values]] = {
    LocalCacheOptions: encode_local,
    ClusteredCacheOptions: encode_clustered,
    DistributedCacheOptions: encode_distributed,
}


def cache_values(command: AddCache, version: ServerVersion) -> Values:
    """Attributes of the cache's add operation."""
    encoder = ENCODERS[type(command.options)]
    return encode_settings(command.settings).merge(encoder(command.options, version))


# === Builders ===

class CacheBuilder:
    """Settings shared by all cache builders.

    Concrete builders set ``cache_type``; the base classes cannot be built.
    """
    cache_type: CacheType

    def __init__(self, name: str):
        if not hasattr(type(self), "cache_type"):
            raise TypeError(f"{type(self).__name__} does not build a specific cache type")
        if not name:
            raise ValueError("Name of the cache must be specified")
        self._name = name
        self._container: Optional[str] = None
        self._jndi_name: Optional[str] = None
        self._module: Optional[str] = None
        self._start: Optional[str] = None
        self._statistics_enabled: Optional[bool] = None

    def cache_container(self, container: str):
        self._container = container
        return self

    def jndi_name(self, jndi_name: str):
        self._jndi_name = jndi_name
        return self

    def module(self, module: str):
        self._module = module
        return self

    def start(self, start: str):
        self._start = start
        return self

    def statistics_enabled(self, enabled: bool):
        self._statistics_enabled = enabled
        return self

    def _settings(self) -> CacheSettings:
        if not self._container:
            raise ValueError("Cache container is required")
        return CacheSettings(
            container=self._container,
            name=self._name,
            jndi_name=self._jndi_name,
            module=self._module,
            start=self._start,
            statistics_enabled=self._statistics_enabled,
        )


class LocalCacheBuilder(CacheBuilder):
    cache_type = CacheType.LOCAL

    def __init__(self, name: str):
        super().__init__(name)
        self._batching: Optional[bool] = None
        self._indexing: Optional[str] = None

    def batching(self, batching: bool) -> "LocalCacheBuilder":
        self._batching = batching
        return self

    def indexing(self, indexing: str) -> "LocalCacheBuilder":
        self._indexing = indexing
        return self

    def build(self) -> AddCache:
        return AddCache(
            CacheType.LOCAL,
            self._settings(),
            LocalCacheOptions(batching=self._batching, indexing=self._indexing),
        )


class ClusteredCacheBuilder(CacheBuilder):
    """Options of caches that replicate across a cluster."""

    def __init__(self, name: str):
        super().__init__(name)
        self._mode: Optional[CacheMode] = None
        self._async_marshalling: Optional[bool] = None
        self._queue_flush_interval: Optional[int] = None
        self._queue_size: Optional[int] = None
        self._remote_timeout: Optional[int] = None

    def mode(self, mode: CacheMode):
        self._mode = mode
        return self

    def async_marshalling(self, enabled: bool):
        self._async_marshalling = enabled
        return self

    def queue_flush_interval(self, millis: int):
        self._queue_flush_interval = millis
        return self

    def queue_size(self, size: int):
        self._queue_size = size
        return self

    def remote_timeout(self, millis: int):
        self._remote_timeout = millis
        return self

    def _clustered(self) -> ClusteredCacheOptions:
        if self._mode is not None and not isinstance(self._mode, CacheMode):
            raise ValueError(f"Unknown cache mode: {self._mode}")
        return ClusteredCacheOptions(
            mode=self._mode,
            async_marshalling=self._async_marshalling,
            queue_flush_interval=self._queue_flush_interval,
            queue_size=self._queue_size,
            remote_timeout=self._remote_timeout,
        )

    def build(self) -> AddCache:
        return AddCache(self.cache_type, self._settings(), self._clustered())


class ReplicatedCacheBuilder(ClusteredCacheBuilder):
    cache_type = CacheType.REPLICATED


class InvalidationCacheBuilder(ClusteredCacheBuilder):
    cache_type = CacheType.INVALIDATION


class DistributedCacheBuilder(ClusteredCacheBuilder):
    cache_type = CacheType.DISTRIBUTED

    def __init__(self, name: str):
        super().__init__(name)
        self._capacity_factor: Optional[float] = None
        self._consistent_hash_strategy: Optional[ConsistentHashStrategy] = None
        self._l1_lifespan: Optional[int] = None
        self._owners: Optional[int] = None
        self._segments: Optional[int] = None

    def capacity_factor(self, factor: float) -> "DistributedCacheBuilder":
        """Management version 3.0.0+ only; ignored on older servers."""
        self._capacity_factor = factor
        return self

    def consistent_hash_strategy(self, strategy: ConsistentHashStrategy) -> "DistributedCacheBuilder":
        """Management version 3.0.0+ only; ignored on older servers."""
        self._consistent_hash_strategy = strategy
        return self

    def l1_lifespan(self, millis: int) -> "DistributedCacheBuilder":
        self._l1_lifespan = millis
        return self

    def owners(self, owners: int) -> "DistributedCacheBuilder":
        self._owners = owners
        return self

    def segments(self, segments: int) -> "DistributedCacheBuilder":
        self._segments = segments
        return self

    def build(self) -> AddCache:
        return AddCache(
            self.cache_type,
            self._settings(),
            DistributedCacheOptions(
                clustered=self._clustered(),
                capacity_factor=self._capacity_factor,
                consistent_hash_strategy=self._consistent_hash_strategy,
                l1_lifespan=self._l1_lifespan,
                owners=self._owners,
                segments=self._segments,
            ),
        )


# === Appliers ===

@online_applier(AddCache)
async def add_cache_online(command: AddCache, ctx: OnlineCommandContext) -> None:
    values = cache_values(command, await ctx.version())
    try:
        await ctx.ops.add(command.address, values)
    except OperationException as e:
        raise CommandFailedException(
            f"Failed to add {command.cache_type.value} {command.settings.name}: {e.description}"
        ) from e


@online_applier(RemoveCache)
async def remove_cache_online(command: RemoveCache, ctx: OnlineCommandContext) -> None:
    try:
        removed = await ctx.ops.remove_if_exists(command.address)
    except OperationException as e:
        raise CommandFailedException(
            f"Failed to remove {command.cache_type.value} {command.name}: {e.description}"
        ) from e
    if not removed:
        logger.info(f"{command.cache_type.value} {command.name} does not exist, nothing removed")
