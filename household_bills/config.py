from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # 数据库配置，设置 database_url 时优先使用
    database_url: Optional[str] = None
    mysql_host: str = "localhost"
    mysql_port: int = 3306
    mysql_database: str = "household_bills"
    mysql_user: str = "bills"
    mysql_password: str = ""
    db_pool_size: int = 10
    db_max_overflow: int = 20

    # 账单配置
    default_currency: str = "PHP"

    # 管理接口口令，未配置时清空接口一律拒绝
    admin_purge_token: Optional[str] = None

    # 应用配置
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    debug: bool = False
    cors_origins: List[str] = ["*"]

    class Config:
        env_file = ".env"

    @property
    def sqlalchemy_url(self) -> str:
        """返回异步引擎使用的连接串"""
        if self.database_url:
            return self.database_url
        return (
            f"mysql+aiomysql://{self.mysql_user}:{self.mysql_password}"
            f"@{self.mysql_host}:{self.mysql_port}/{self.mysql_database}"
        )


settings = Settings()
