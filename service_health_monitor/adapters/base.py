"""外部能力接口

探测逻辑只依赖这里的抽象接口，具体平台实现由适配器提供。
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ContainerStatus:
    """容器运行状态"""
    exists: bool
    state: str  # running, exited, restarting, absent ...
    health: Optional[str] = None  # healthy, starting, unhealthy; None 表示未配置健康检查


@dataclass(frozen=True)
class ResourceUsage:
    """容器资源占用（百分比）"""
    cpu_percent: float
    memory_percent: float
    memory_usage: str = ""


@dataclass(frozen=True)
class ReadinessOutcome:
    """数据库就绪检查结果"""
    accepting: bool
    output: str
    returncode: Optional[int] = None


class ContainerRuntime(ABC):
    """容器运行时查询接口"""

    @abstractmethod
    async def inspect(self, container: str) -> ContainerStatus:
        """
        查询容器状态

        Raises:
            RuntimeUnavailableError: 运行时不可达
        """

    @abstractmethod
    async def stats(self, container: str) -> ResourceUsage:
        """查询容器资源占用"""

    async def resolve(self, service: str) -> Optional[str]:
        """将编排服务名解析为容器ID，默认直接使用名称"""
        return service


class HttpClient(ABC):
    """HTTP GET 接口"""

    @abstractmethod
    async def get_status(self, url: str, timeout: float) -> int:
        """
        发送GET请求并返回状态码

        Raises:
            aiohttp.ClientError / asyncio.TimeoutError: 网络错误或超时
        """


class ReadinessCheck(ABC):
    """数据库就绪检查接口"""

    @abstractmethod
    async def check(self, host: str, port: int, username: str, database: str,
                    timeout: float) -> ReadinessOutcome:
        """执行数据库特定的就绪握手"""
