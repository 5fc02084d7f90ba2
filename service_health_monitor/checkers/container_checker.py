"""容器健康检查器"""

from typing import Dict, Any, Optional, List

from .base import BaseHealthChecker, ProbeOutcome
from .factory import register_checker
from ..adapters.base import ContainerRuntime, ContainerStatus
from ..adapters.docker_cli import DockerCLIRuntime
from ..models.health_check import ProbeState, TargetKind

# 资源占用告警阈值（百分比）
CPU_THRESHOLD = 80.0
MEMORY_THRESHOLD = 85.0


def map_container_state(status: ContainerStatus) -> ProbeState:
    """
    将容器运行状态映射为探测状态

    running + healthy/无健康检查 -> HEALTHY
    running + starting/unhealthy -> DEGRADED
    其他运行状态（stopped、restarting、absent 等） -> UNHEALTHY
    """
    if not status.exists or status.state != 'running':
        return ProbeState.UNHEALTHY

    if status.health is None or status.health in ('healthy', 'none'):
        return ProbeState.HEALTHY

    if status.health in ('starting', 'unhealthy'):
        return ProbeState.DEGRADED

    return ProbeState.UNHEALTHY


@register_checker('container')
class ContainerHealthChecker(BaseHealthChecker):
    """容器健康检查器，附带资源占用检查"""

    kind = TargetKind.CONTAINER
    default_timeout = 5

    def __init__(self, name: str, config: Dict[str, Any],
                 runtime: Optional[ContainerRuntime] = None, **kwargs):
        """
        初始化容器健康检查器

        Args:
            name: 服务名称
            config: 容器配置
            runtime: 容器运行时适配器，默认使用 docker CLI
        """
        super().__init__(name, config)
        self.runtime = runtime or DockerCLIRuntime(config.get('docker_binary', 'docker'))
        self.container = config.get('container', name)
        self.compose_service = config.get('compose_service', False)
        self.check_resources = config.get('check_resources', True)
        self.cpu_threshold = float(config.get('cpu_threshold', CPU_THRESHOLD))
        self.memory_threshold = float(config.get('memory_threshold', MEMORY_THRESHOLD))

    def validate_config(self) -> bool:
        if not isinstance(self.container, str) or not self.container:
            self.logger.error(f"容器名称无效: {self.container!r}")
            return False

        for key in ('cpu_threshold', 'memory_threshold'):
            value = self.config.get(key)
            if value is not None and (not isinstance(value, (int, float)) or not 0 < value <= 100):
                self.logger.error(f"{key} 必须在 (0, 100] 范围内: {value}")
                return False

        timeout = self.get_timeout()
        if not isinstance(timeout, (int, float)) or timeout <= 0:
            self.logger.error(f"超时时间无效: {timeout}")
            return False

        return True

    def describe_address(self) -> str:
        if self.compose_service:
            return f"compose:{self.container}"
        return self.container

    async def _resolve_container(self) -> Optional[str]:
        if not self.compose_service:
            return self.container
        return await self.runtime.resolve(self.container)

    async def _probe(self) -> ProbeOutcome:
        metadata: Dict[str, Any] = {}

        container_id = await self._resolve_container()
        if not container_id:
            return ProbeState.UNHEALTHY, "not_running", metadata

        status = await self.runtime.inspect(container_id)
        metadata['container_state'] = status.state
        metadata['container_health'] = status.health

        state = map_container_state(status)
        if status.state != 'running':
            return state, status.state, metadata

        detail = status.health or 'no_healthcheck'

        if self.check_resources:
            warnings = await self._check_resource_usage(container_id, metadata)
            if warnings:
                # 资源占用只会降级，不会提升状态
                if state.severity < ProbeState.DEGRADED.severity:
                    state = ProbeState.DEGRADED
                detail = f"{detail}; {'; '.join(warnings)}"

        return state, detail, metadata

    async def _check_resource_usage(self, container_id: str,
                                    metadata: Dict[str, Any]) -> List[str]:
        """
        检查资源占用，返回超出阈值的描述列表

        资源查询失败只记录日志，不影响探测结果。
        """
        try:
            usage = await self.runtime.stats(container_id)
        except Exception as e:
            self.logger.warning(f"{self.name}: 获取资源占用失败: {e}")
            return []

        metadata['cpu_percent'] = usage.cpu_percent
        metadata['memory_percent'] = usage.memory_percent

        warnings = []
        if usage.cpu_percent > self.cpu_threshold:
            warnings.append(f"High CPU usage: {usage.cpu_percent:.2f}%")
            self.logger.warning(f"{self.name}: CPU占用过高: {usage.cpu_percent:.2f}%")

        if usage.memory_percent > self.memory_threshold:
            memory_detail = f" ({usage.memory_usage})" if usage.memory_usage else ""
            warnings.append(f"High memory usage: {usage.memory_percent:.2f}%{memory_detail}")
            self.logger.warning(f"{self.name}: 内存占用过高: {usage.memory_percent:.2f}%{memory_detail}")

        self.logger.info(
            f"{self.name} 资源占用: CPU={usage.cpu_percent:.2f}%, Memory={usage.memory_percent:.2f}%")
        return warnings
