"""
Relay service - wires storage, fetching and delivery into the cycle engine.

Owns every external resource (Postgres pool, Redis client, HTTP
clients) and the scheduler that drives delivery cycles.

Backends:
- postgres: subscribers and delivery history in PostgreSQL, admission
  records in Redis
- memory: everything in process (local runs and tests)
"""

import redis.asyncio as redis
import structlog

from feedrelay.admission.config import AdmissionConfig
from feedrelay.admission.service import AdmissionController
from feedrelay.admission.store import (
    AdmissionStore,
    InMemoryAdmissionStore,
    RedisAdmissionStore,
)
from feedrelay.commands.handlers import build_router
from feedrelay.commands.router import CommandRouter
from feedrelay.config.settings import Settings, get_settings
from feedrelay.dedup.base import DedupStore
from feedrelay.dedup.config import DedupConfig
from feedrelay.dedup.memory import InMemoryDedupStore
from feedrelay.dedup.repository import DedupRepository
from feedrelay.delivery.config import DeliveryConfig
from feedrelay.delivery.rate_limiter import DeliveryRateLimiter
from feedrelay.delivery.transport import (
    DeliveryTransport,
    LoggingTransport,
    TelegramTransport,
)
from feedrelay.engine.config import EngineConfig
from feedrelay.engine.cycle import CycleEngine, CycleStats
from feedrelay.engine.scheduler import CycleScheduler
from feedrelay.fetching import create_fetcher
from feedrelay.fetching.base import SourceFetcher
from feedrelay.storage.database import Database
from feedrelay.subscribers.base import SubscriberRegistry
from feedrelay.subscribers.memory import InMemorySubscriberRegistry
from feedrelay.subscribers.repository import SubscriberRepository
from feedrelay.subscribers.service import SubscriptionService

logger = structlog.get_logger(__name__)


class RelayService:
    """
    Long-running feed relay.

    Usage:
        service = RelayService()
        await service.start()  # Runs until stop() is called

        service = RelayService(use_memory=True)
        async with service:
            stats = await service.run_once()
    """

    def __init__(
        self,
        use_memory: bool = False,
        settings: Settings | None = None,
        engine_config: EngineConfig | None = None,
        dedup_config: DedupConfig | None = None,
        delivery_config: DeliveryConfig | None = None,
        admission_config: AdmissionConfig | None = None,
        fetcher: SourceFetcher | None = None,
        transport: DeliveryTransport | None = None,
    ):
        self._settings = settings or get_settings()
        self._use_memory = use_memory or self._settings.storage_backend == "memory"
        self._engine_config = engine_config or EngineConfig()
        self._dedup_config = dedup_config or DedupConfig()
        self._delivery_config = delivery_config or DeliveryConfig()
        self._admission_config = admission_config or AdmissionConfig()

        self._fetcher = fetcher
        self._transport = transport
        self._database: Database | None = None
        self._redis: redis.Redis | None = None

        self._registry: SubscriberRegistry | None = None
        self._dedup: DedupStore | None = None
        self._admission_store: AdmissionStore | None = None
        self._engine: CycleEngine | None = None
        self._scheduler: CycleScheduler | None = None
        self._subscriptions: SubscriptionService | None = None
        self._router: CommandRouter | None = None
        self._connected = False

        logger.info(
            "Relay service initialized",
            backend="memory" if self._use_memory else "postgres",
            fetcher=self._settings.fetcher,
            interval=self._engine_config.cycle_interval_seconds,
        )

    async def __aenter__(self) -> "RelayService":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def engine(self) -> CycleEngine:
        return self._require(self._engine)

    @property
    def subscriptions(self) -> SubscriptionService:
        return self._require(self._subscriptions)

    @property
    def router(self) -> CommandRouter:
        return self._require(self._router)

    def _require(self, component):
        if component is None:
            raise RuntimeError("Relay service not connected. Call connect() first.")
        return component

    def _create_transport(self) -> DeliveryTransport:
        if self._settings.telegram_configured:
            return TelegramTransport(
                bot_token=self._settings.bot_token,
                api_base=self._settings.telegram_api_base,
                timeout=self._delivery_config.request_timeout_seconds,
                disable_preview=self._delivery_config.disable_web_page_preview,
            )
        if self._use_memory:
            logger.warning("No bot token configured, logging messages instead of sending")
            return LoggingTransport()
        raise ValueError("BOT_TOKEN is required for delivery")

    async def connect(self) -> None:
        """Open storage connections and build the engine."""
        if self._connected:
            return

        history_size = self._dedup_config.history_size
        if self._use_memory:
            self._registry = InMemorySubscriberRegistry()
            self._dedup = InMemoryDedupStore(history_size=history_size)
            self._admission_store = InMemoryAdmissionStore()
        else:
            self._database = Database()
            await self._database.connect()
            self._redis = redis.from_url(
                str(self._settings.redis_url),
                encoding="utf-8",
                decode_responses=True,
            )
            self._registry = SubscriberRepository(self._database)
            self._dedup = DedupRepository(self._database, history_size=history_size)
            self._admission_store = RedisAdmissionStore(
                self._redis,
                key_prefix=self._admission_config.key_prefix,
                ttl_seconds=self._admission_config.record_ttl_seconds,
            )

        if self._fetcher is None:
            self._fetcher = create_fetcher(self._settings)
        if self._transport is None:
            self._transport = self._create_transport()

        limiter = DeliveryRateLimiter(
            min_interval=self._delivery_config.min_interval_seconds,
        )
        self._engine = CycleEngine(
            registry=self._registry,
            dedup=self._dedup,
            fetcher=self._fetcher,
            transport=self._transport,
            limiter=limiter,
            config=self._engine_config,
        )
        self._scheduler = CycleScheduler(
            self._engine,
            interval_seconds=self._engine_config.cycle_interval_seconds,
        )
        self._subscriptions = SubscriptionService(
            registry=self._registry,
            dedup=self._dedup,
            fetcher=self._fetcher,
            transport=self._transport,
            limiter=limiter,
        )
        self._router = build_router(
            self._subscriptions,
            admission=AdmissionController(self._admission_store, self._admission_config),
            owner_id=self._settings.owner_id,
        )
        self._connected = True
        logger.info("Relay service connected", transport=self._transport.name)

    async def close(self) -> None:
        """Release every external resource."""
        if self._fetcher is not None:
            await self._fetcher.close()
        if self._transport is not None:
            await self._transport.close()
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
        if self._database is not None:
            await self._database.close()
            self._database = None
        self._connected = False
        logger.info("Relay service cleaned up")

    async def init_db(self) -> None:
        """Create tables for the Postgres backend."""
        database = Database()
        await database.connect()
        try:
            await SubscriberRepository(database).create_table()
            await DedupRepository(database).create_table()
        finally:
            await database.close()

    async def run_once(self) -> CycleStats | None:
        await self.connect()
        return await self.engine.run_cycle()

    async def start(self) -> None:
        """Run delivery cycles until stop() is called."""
        await self.connect()
        logger.info("Starting relay service")
        try:
            await self._require(self._scheduler).start()
        finally:
            await self.close()

    async def stop(self) -> None:
        logger.info("Stopping relay service")
        if self._scheduler is not None:
            self._scheduler.stop()
