"""基于 docker 命令行的容器运行时适配器"""

import json
from typing import Optional, List

from .base import ContainerRuntime, ContainerStatus, ResourceUsage
from .process import run_command
from ..utils.exceptions import CheckerError, RuntimeUnavailableError, ErrorCode
from ..utils.log_manager import get_logger

# docker 守护进程不可达时的典型错误输出
_DAEMON_UNREACHABLE_MARKERS = (
    'cannot connect to the docker daemon',
    'error during connect',
    'is the docker daemon running',
)

_NOT_FOUND_MARKERS = (
    'no such object',
    'no such container',
)


def _parse_percent(value: str) -> float:
    """解析 '12.34%' 形式的百分比"""
    text = value.strip().rstrip('%').strip()
    if not text or text == '--':
        return 0.0
    return float(text)


class DockerCLIRuntime(ContainerRuntime):
    """通过 docker CLI 查询容器状态与资源占用"""

    def __init__(self, docker_binary: str = 'docker'):
        self.docker_binary = docker_binary
        self.logger = get_logger('adapters.docker')

    def _check_daemon_error(self, stderr: str):
        lowered = stderr.lower()
        if any(marker in lowered for marker in _DAEMON_UNREACHABLE_MARKERS):
            raise RuntimeUnavailableError(f"无法连接容器运行时: {stderr}")

    async def inspect(self, container: str) -> ContainerStatus:
        result = await run_command([
            self.docker_binary, 'inspect', '--format', '{{json .State}}', container
        ])

        if not result.ok:
            self._check_daemon_error(result.stderr)
            if any(marker in result.stderr.lower() for marker in _NOT_FOUND_MARKERS):
                return ContainerStatus(exists=False, state='absent')
            raise CheckerError(
                f"docker inspect 执行失败 (退出码 {result.returncode}): {result.stderr}",
                service_name=container
            )

        try:
            state = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise CheckerError(
                f"无法解析 docker inspect 输出: {result.stdout[:200]}",
                ErrorCode.INVALID_RESPONSE,
                service_name=container,
                cause=e
            )

        health = None
        if isinstance(state.get('Health'), dict):
            health = state['Health'].get('Status')

        return ContainerStatus(
            exists=True,
            state=str(state.get('Status', 'unknown')).lower(),
            health=health.lower() if health else None
        )

    async def stats(self, container: str) -> ResourceUsage:
        result = await run_command([
            self.docker_binary, 'stats', '--no-stream', '--format',
            '{{.CPUPerc}},{{.MemUsage}},{{.MemPerc}}', container
        ])

        if not result.ok:
            self._check_daemon_error(result.stderr)
            raise CheckerError(
                f"docker stats 执行失败 (退出码 {result.returncode}): {result.stderr}",
                service_name=container
            )

        parts = result.stdout.splitlines()[0].split(',') if result.stdout else []
        if len(parts) != 3:
            raise CheckerError(
                f"无法解析 docker stats 输出: {result.stdout[:200]}",
                ErrorCode.INVALID_RESPONSE,
                service_name=container
            )

        cpu_perc, mem_usage, mem_perc = parts
        try:
            return ResourceUsage(
                cpu_percent=_parse_percent(cpu_perc),
                memory_percent=_parse_percent(mem_perc),
                memory_usage=mem_usage.strip()
            )
        except ValueError as e:
            raise CheckerError(
                f"无法解析资源占用: {result.stdout[:200]}",
                ErrorCode.INVALID_RESPONSE,
                service_name=container,
                cause=e
            )

    async def resolve(self, service: str) -> Optional[str]:
        """通过 docker compose ps -q 解析服务对应的容器ID"""
        result = await run_command(self.compose_command('ps', '-q', service))

        if not result.ok:
            self._check_daemon_error(result.stderr)
            self.logger.debug(f"解析compose服务 {service} 失败: {result.stderr}")
            return None

        container_ids = [line.strip() for line in result.stdout.splitlines() if line.strip()]
        return container_ids[0] if container_ids else None

    async def ping(self) -> str:
        """通过 docker info 确认守护进程可达，返回服务端版本"""
        result = await run_command([self.docker_binary, 'info', '--format', '{{.ServerVersion}}'])

        if not result.ok or not result.stdout:
            raise RuntimeUnavailableError(
                f"无法连接容器运行时: {result.stderr or f'docker info 退出码 {result.returncode}'}")
        return result.stdout

    def compose_command(self, *args: str) -> List[str]:
        """构造 docker compose 子命令"""
        return [self.docker_binary, 'compose', *args]
