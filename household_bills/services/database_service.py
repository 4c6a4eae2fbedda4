# household_bills/services/database_service.py
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from household_bills.config import Settings
from household_bills.models.database import Base

logger = logging.getLogger(__name__)


class DatabaseService:
    """异步数据库服务类"""

    def __init__(self, app_settings: Settings):
        self.settings = app_settings
        self.engine = None
        self.async_session = None
        self._initialized = False

    async def initialize(self):
        """初始化数据库连接池"""
        if self._initialized:
            return

        try:
            url = self.settings.sqlalchemy_url
            engine_options = {
                "echo": self.settings.debug,  # 调试模式下显示SQL语句
                "pool_pre_ping": True,  # 连接前ping检测
            }
            if not url.startswith("sqlite"):
                engine_options.update(
                    pool_size=self.settings.db_pool_size,
                    max_overflow=self.settings.db_max_overflow,
                    pool_recycle=3600,  # 连接回收时间(秒)
                )
            self.engine = create_async_engine(url, **engine_options)

            # 创建异步会话工厂
            self.async_session = sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=True
            )

            self._initialized = True
            logger.info("数据库服务初始化成功")

        except Exception as e:
            logger.error(f"数据库服务初始化失败: {e}")
            raise

    async def create_tables(self):
        """创建缺失的数据表"""
        await self.initialize()
        async with self.engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)
        logger.info("数据表检查完成")

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """获取数据库会话的上下文管理器，每个会话即一个事务"""
        if not self._initialized:
            await self.initialize()

        session = self.async_session()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def check_connection(self) -> bool:
        """检查数据库连接是否正常"""
        try:
            async with self.get_session() as session:
                result = await session.execute(text("SELECT 1"))
                return result.scalar() == 1
        except Exception as e:
            logger.error(f"数据库连接检查失败: {e}")
            return False

    async def close(self):
        """关闭数据库连接池"""
        if self.engine:
            await self.engine.dispose()
            self._initialized = False
            logger.info("数据库连接池已关闭")
