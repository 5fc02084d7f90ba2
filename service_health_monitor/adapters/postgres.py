"""PostgreSQL 就绪检查适配器（pg_isready）"""

from typing import Optional, List

from .base import ReadinessCheck, ReadinessOutcome
from .process import run_command

ACCEPTING_MARKER = 'accepting connections'


class PgIsReadyCheck(ReadinessCheck):
    """
    使用 pg_isready 检查 PostgreSQL 是否接受连接

    配置了 exec_service 时，在对应的 compose 服务容器内执行
    （docker compose exec -T <service> pg_isready ...）。
    """

    def __init__(self, exec_service: Optional[str] = None,
                 pg_isready_binary: str = 'pg_isready',
                 docker_binary: str = 'docker'):
        self.exec_service = exec_service
        self.pg_isready_binary = pg_isready_binary
        self.docker_binary = docker_binary

    def build_command(self, host: str, port: int, username: str, database: str,
                      timeout: float) -> List[str]:
        """构造检查命令"""
        if self.exec_service:
            return [
                self.docker_binary, 'compose', 'exec', '-T', self.exec_service,
                self.pg_isready_binary, '-U', username, '-d', database
            ]

        return [
            self.pg_isready_binary,
            '-h', host,
            '-p', str(port),
            '-U', username,
            '-d', database,
            '-t', str(max(1, int(timeout)))
        ]

    async def check(self, host: str, port: int, username: str, database: str,
                    timeout: float) -> ReadinessOutcome:
        result = await run_command(self.build_command(host, port, username, database, timeout))
        output = result.stdout or result.stderr
        return ReadinessOutcome(
            accepting=ACCEPTING_MARKER in result.stdout,
            output=output,
            returncode=result.returncode
        )
