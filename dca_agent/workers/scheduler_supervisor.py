import asyncio
import contextlib
import logging

from motor.motor_asyncio import AsyncIOMotorClient
from web3 import Web3

from ..config import Settings, get_settings
from ..adapters.external.chain.uniswap_v3_swap_builder import UniswapV3SwapBuilder
from ..adapters.external.chain.web3_chain_reader import Web3ChainReader
from ..adapters.external.chain.web3_delegation_executor import Web3DelegationExecutor
from ..adapters.external.database.account_repository_mongodb import (
    SessionAccountRepositoryMongoDB,
    UserRepositoryMongoDB,
)
from ..adapters.external.database.execution_repository_mongodb import ExecutionRepositoryMongoDB
from ..adapters.external.database.permission_repository_mongodb import PermissionRepositoryMongoDB
from ..adapters.external.database.strategy_repository_mongodb import StrategyRepositoryMongoDB
from ..adapters.external.indexer.indexer_graphql_client import IndexerGraphqlClient
from ..adapters.external.notify.execution_publisher_mongodb import ExecutionOutboxMongoDB
from ..adapters.external.notify.telegram_notifier import TelegramNotifier
from ..adapters.external.pricing.pyth_hermes_client import PythHermesClient
from ..adapters.external.pricing.ttl_cache import TtlCache
from ..core.services.allowance_service import AllowanceService
from ..core.services.decision_service import DecisionService
from ..core.services.market_analysis_service import MarketAnalysisService
from ..core.services.session_key_cipher import SessionKeyCipher
from ..core.services.strategy_schedule_service import StrategyScheduleService
from ..core.usecases.evaluate_due_strategies_use_case import EvaluateDueStrategiesUseCase
from ..core.usecases.execute_swap_use_case import ExecuteSwapUseCase


class SchedulerSupervisor:
    """
    High-level supervisor for the dca-agent process.

    Responsibilities:
    - Connect to Mongo, ensure indexes.
    - Wire repositories, feeds, chain adapters, services and use cases.
    - Run the periodic tick loop (due strategies -> decision -> swap pipeline).
    """

    def __init__(self, settings: Settings | None = None):
        self._settings = settings or get_settings()
        self._logger = logging.getLogger(self.__class__.__name__)
        self._mongo_client: AsyncIOMotorClient | None = None
        self._db = None

        self.evaluate_use_case: EvaluateDueStrategiesUseCase | None = None
        self.allowance_service: AllowanceService | None = None
        self.schedule_service: StrategyScheduleService | None = None
        self._tick_task: asyncio.Task | None = None

    @property
    def db(self):
        """Expose the AsyncIOMotorDatabase instance after start()."""
        return self._db

    async def start(self):
        s = self._settings

        # Mongo
        self._mongo_client = AsyncIOMotorClient(s.MONGODB_URI, tz_aware=True)
        self._db = self._mongo_client[s.MONGODB_DB_NAME]

        strategy_repo = StrategyRepositoryMongoDB(self._db)
        execution_repo = ExecutionRepositoryMongoDB(self._db)
        permission_repo = PermissionRepositoryMongoDB(self._db)
        user_repo = UserRepositoryMongoDB(self._db)
        session_repo = SessionAccountRepositoryMongoDB(self._db)

        telegram = TelegramNotifier(s.TELEGRAM_BOT_TOKEN, s.TELEGRAM_CHAT_ID)
        outbox = ExecutionOutboxMongoDB(self._db, subscribers=[telegram] if telegram.enabled else [])

        for repo in (strategy_repo, execution_repo, permission_repo, user_repo, session_repo, outbox):
            await repo.ensure_indexes()

        # market data, one cache per feed
        indexer = IndexerGraphqlClient(s.INDEXER_GRAPHQL_URL, cache=TtlCache(s.PRICE_CACHE_TTL_SEC))
        pyth = PythHermesClient(s.HERMES_API_URL, cache=TtlCache(min(s.PRICE_CACHE_TTL_SEC, 30)))

        # chain
        w3 = Web3(Web3.HTTPProvider(s.RPC_URL, request_kwargs={"timeout": s.rpc_request_timeout_sec}))
        chain_reader = Web3ChainReader(w3)
        executor = Web3DelegationExecutor(w3, receipt_timeout_sec=s.receipt_timeout_sec)
        swap_builder = UniswapV3SwapBuilder(w3, s)

        # services
        market = MarketAnalysisService(indexer, indexer)
        decisions = DecisionService(market)
        self.allowance_service = AllowanceService(permission_repo, execution_repo)
        self.schedule_service = StrategyScheduleService(strategy_repo)

        swap_uc = ExecuteSwapUseCase(
            settings=s,
            execution_repo=execution_repo,
            strategy_repo=strategy_repo,
            user_repo=user_repo,
            session_repo=session_repo,
            permission_repo=permission_repo,
            chain_reader=chain_reader,
            delegation_executor=executor,
            swap_builder=swap_builder,
            reference_feed=pyth,
            publisher=outbox,
            cipher=SessionKeyCipher(s.ENCRYPTION_SECRET_KEY),
        )
        self.evaluate_use_case = EvaluateDueStrategiesUseCase(
            strategy_repo=strategy_repo,
            execution_repo=execution_repo,
            schedule_service=self.schedule_service,
            allowance_service=self.allowance_service,
            decision_service=decisions,
            execute_swap_use_case=swap_uc,
            publisher=outbox,
        )

        async def _tick_loop():
            """
            Forever-loop evaluating due strategies. This runs in the background.
            """
            while True:
                try:
                    stats = await self.evaluate_use_case.execute_once()
                    if stats["due"]:
                        self._logger.info("tick done: %s", stats)
                except Exception as exc:
                    self._logger.exception("scheduler tick error: %s", exc)
                await asyncio.sleep(s.CHECK_INTERVAL_SEC)

        self._tick_task = asyncio.create_task(_tick_loop())
        self._logger.info("DCA scheduler started (every %ss)", s.CHECK_INTERVAL_SEC)

    async def stop(self):
        """
        Gracefully stop resources.
        """
        if self._tick_task:
            self._tick_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._tick_task

        if self._mongo_client:
            self._mongo_client.close()
