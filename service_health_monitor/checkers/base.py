"""健康检查器基类"""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, Tuple

from ..models.health_check import ProbeResult, ProbeState, ServiceTarget, TargetKind
from ..utils.exceptions import RuntimeUnavailableError
from ..utils.log_manager import get_logger

# 探测结果：(状态, 详情, 元数据)
ProbeOutcome = Tuple[ProbeState, str, Dict[str, Any]]


class BaseHealthChecker(ABC):
    """健康检查器抽象基类

    check_health() 是探测边界：任何失败都会被转换为 ProbeResult，
    不会向调用方抛出异常（取消除外）。
    """

    kind: TargetKind
    default_timeout: float = 10

    def __init__(self, name: str, config: Dict[str, Any]):
        """
        初始化健康检查器

        Args:
            name: 服务名称
            config: 服务配置参数
        """
        self.name = name
        self.config = config
        self.service_type = self.kind.value
        self.logger = get_logger(f'checker.{self.service_type}.{self.name}')
        self._target: Optional[ServiceTarget] = None

    @property
    def target(self) -> ServiceTarget:
        """对应的监控目标"""
        if self._target is None:
            self._target = ServiceTarget(
                name=self.name,
                kind=self.kind,
                address=self.describe_address()
            )
        return self._target

    async def check_health(self) -> ProbeResult:
        """
        执行健康检查并返回结果，在超时时间内必定返回

        Returns:
            ProbeResult: 探测结果
        """
        start_time = time.time()
        timeout = self.get_timeout()
        metadata: Dict[str, Any] = {}

        try:
            state, detail, metadata = await asyncio.wait_for(self._probe(), timeout=timeout)
        except asyncio.TimeoutError:
            state = ProbeState.UNHEALTHY
            detail = f"检查超时 ({timeout:g}s)"
        except RuntimeUnavailableError as e:
            state = ProbeState.UNKNOWN
            detail = e.message
        except Exception as e:
            state = ProbeState.UNKNOWN
            detail = f"{self.service_type}健康检查异常: {e}"
            self.logger.error(detail, exc_info=True)

        response_time = time.time() - start_time

        if state is ProbeState.HEALTHY:
            self.logger.debug(f"服务 {self.name} 健康检查通过，用时: {response_time:.3f}s")
        else:
            self.logger.debug(
                f"服务 {self.name} 健康检查结果: {state.value}，用时: {response_time:.3f}s，详情: {detail}")

        return ProbeResult(
            target=self.target,
            state=state,
            detail=detail,
            response_time=response_time,
            metadata=metadata
        )

    @abstractmethod
    async def _probe(self) -> ProbeOutcome:
        """
        执行具体的探测逻辑

        Returns:
            ProbeOutcome: (状态, 详情, 元数据)
        """

    @abstractmethod
    def validate_config(self) -> bool:
        """
        验证配置参数是否有效

        Returns:
            bool: 配置是否有效
        """

    @abstractmethod
    def describe_address(self) -> str:
        """目标的连接信息描述（容器名、URL、host/port/db）"""

    def get_timeout(self) -> float:
        """
        获取超时时间配置

        Returns:
            float: 超时时间（秒）
        """
        return self.config.get('timeout', self.default_timeout)
