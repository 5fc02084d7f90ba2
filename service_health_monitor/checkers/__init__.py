"""健康检查器模块"""

from .base import BaseHealthChecker
from .container_checker import ContainerHealthChecker, map_container_state
from .database_checker import DatabaseHealthChecker
from .factory import HealthCheckerFactory, health_checker_factory, register_checker
from .http_checker import HttpEndpointHealthChecker

__all__ = ['BaseHealthChecker', 'HealthCheckerFactory', 'health_checker_factory',
           'register_checker', 'ContainerHealthChecker', 'HttpEndpointHealthChecker',
           'DatabaseHealthChecker', 'map_container_state']
