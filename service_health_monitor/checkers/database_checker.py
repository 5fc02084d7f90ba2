"""数据库就绪健康检查器"""

import os
from typing import Dict, Any, Optional

from .base import BaseHealthChecker, ProbeOutcome
from .factory import register_checker
from ..adapters.base import ReadinessCheck
from ..adapters.postgres import PgIsReadyCheck
from ..models.health_check import ProbeState, TargetKind


@register_checker('database')
class DatabaseHealthChecker(BaseHealthChecker):
    """数据库就绪检查器（PostgreSQL pg_isready 握手）"""

    kind = TargetKind.DATABASE
    default_timeout = 10

    def __init__(self, name: str, config: Dict[str, Any],
                 readiness: Optional[ReadinessCheck] = None, **kwargs):
        """
        初始化数据库健康检查器

        未配置的连接参数取自 DATABASE_HOST、DATABASE_PORT、DATABASE_NAME、
        DATABASE_USERNAME 环境变量。

        Args:
            name: 服务名称
            config: 数据库配置
            readiness: 就绪检查适配器，默认使用 pg_isready
        """
        super().__init__(name, config)
        self.host = config.get('host', os.environ.get('DATABASE_HOST', 'localhost'))
        self.port = config.get('port', os.environ.get('DATABASE_PORT', 5432))
        self.username = config.get('username', os.environ.get('DATABASE_USERNAME', 'postgres'))
        self.database = config.get('database', os.environ.get('DATABASE_NAME', 'manager_product_db'))
        self.readiness = readiness or PgIsReadyCheck(
            exec_service=config.get('exec_service'),
            pg_isready_binary=config.get('pg_isready_binary', 'pg_isready'),
            docker_binary=config.get('docker_binary', 'docker')
        )

    def validate_config(self) -> bool:
        """
        验证数据库配置

        Returns:
            bool: 配置是否有效
        """
        try:
            self.port = int(self.port)
        except (TypeError, ValueError):
            self.logger.error(f"数据库端口号无效: {self.port}")
            return False

        if self.port <= 0 or self.port > 65535:
            self.logger.error(f"数据库端口号无效: {self.port}")
            return False

        for field_name in ('host', 'username', 'database'):
            value = getattr(self, field_name)
            if not isinstance(value, str) or not value:
                self.logger.error(f"数据库配置 {field_name} 无效: {value!r}")
                return False

        timeout = self.get_timeout()
        if not isinstance(timeout, (int, float)) or timeout <= 0:
            self.logger.error(f"超时时间无效: {timeout}")
            return False

        return True

    def describe_address(self) -> str:
        return f"{self.username}@{self.host}:{self.port}/{self.database}"

    async def _probe(self) -> ProbeOutcome:
        outcome = await self.readiness.check(
            self.host, int(self.port), self.username, self.database, self.get_timeout()
        )
        metadata = {'returncode': outcome.returncode}

        if outcome.accepting:
            return ProbeState.HEALTHY, outcome.output or 'accepting connections', metadata

        return ProbeState.UNHEALTHY, outcome.output or 'no response', metadata
