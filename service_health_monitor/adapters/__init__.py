"""外部能力适配器模块"""

from .base import (
    ContainerRuntime, ContainerStatus, ResourceUsage,
    HttpClient, ReadinessCheck, ReadinessOutcome
)
from .docker_cli import DockerCLIRuntime
from .http_client import AiohttpClient
from .postgres import PgIsReadyCheck
from .process import CommandResult, run_command

__all__ = [
    'ContainerRuntime', 'ContainerStatus', 'ResourceUsage',
    'HttpClient', 'ReadinessCheck', 'ReadinessOutcome',
    'DockerCLIRuntime', 'AiohttpClient', 'PgIsReadyCheck',
    'CommandResult', 'run_command'
]
