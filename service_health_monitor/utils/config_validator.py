"""配置验证工具"""

from typing import Dict, Any
from urllib.parse import urlparse

from .exceptions import ConfigError

SUPPORTED_SERVICE_TYPES = ['container', 'http', 'database']
SUPPORTED_ALERT_TYPES = ['webhook', 'http']


def is_valid_url(url: Any) -> bool:
    """检查是否为带主机名的 http/https URL"""
    if not isinstance(url, str):
        return False
    parsed = urlparse(url)
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


def _is_positive_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


class ConfigValidator:
    """配置验证器"""

    @staticmethod
    def validate_service_config(service_name: str, config: Dict[str, Any]) -> None:
        """
        验证服务配置

        Args:
            service_name: 服务名称
            config: 服务配置

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(config, dict):
            raise ConfigError(f"服务 '{service_name}' 的配置必须是字典类型")

        if 'type' not in config:
            raise ConfigError(f"服务 '{service_name}' 缺少必需的配置项: type")

        service_type = config.get('type')
        if service_type not in SUPPORTED_SERVICE_TYPES:
            raise ConfigError(
                f"服务 '{service_name}' 的类型 '{service_type}' 不受支持。支持的类型: {SUPPORTED_SERVICE_TYPES}")

        timeout = config.get('timeout')
        if timeout is not None and not _is_positive_number(timeout):
            raise ConfigError(f"服务 '{service_name}' 的 timeout 必须是正数")

        if service_type == 'http':
            if 'url' in config:
                if not is_valid_url(config['url']):
                    raise ConfigError(f"服务 '{service_name}' 的URL无效: {config['url']}")
            elif 'base_url' in config:
                if not is_valid_url(config['base_url']):
                    raise ConfigError(f"服务 '{service_name}' 的base_url无效: {config['base_url']}")
                endpoints = config.get('endpoints')
                if not isinstance(endpoints, list) or not endpoints:
                    raise ConfigError(f"服务 '{service_name}' 使用 base_url 时必须配置 endpoints 列表")
            else:
                raise ConfigError(f"服务 '{service_name}' 缺少必需的配置项: url 或 base_url")

    @staticmethod
    def validate_alert_config(alert_config: Dict[str, Any]) -> None:
        """
        验证告警配置

        Args:
            alert_config: 告警配置

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(alert_config, dict):
            raise ConfigError("告警配置必须是字典类型")

        required_fields = ['name', 'type', 'url']
        for field in required_fields:
            if field not in alert_config:
                raise ConfigError(f"告警配置缺少必需的配置项: {field}")

        if str(alert_config['type']).lower() not in SUPPORTED_ALERT_TYPES:
            raise ConfigError(
                f"告警 '{alert_config['name']}' 的类型 '{alert_config['type']}' 不受支持。"
                f"支持的类型: {SUPPORTED_ALERT_TYPES}")

        if not is_valid_url(alert_config['url']):
            raise ConfigError(f"告警 '{alert_config['name']}' 的URL无效: {alert_config['url']}")

    @staticmethod
    def validate_global_config(global_config: Dict[str, Any]) -> None:
        """
        验证全局配置

        Args:
            global_config: 全局配置

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(global_config, dict):
            raise ConfigError("全局配置必须是字典类型")

        check_interval = global_config.get('check_interval')
        if check_interval is not None and not _is_positive_number(check_interval):
            raise ConfigError("check_interval 必须是正数")

        max_concurrent = global_config.get('max_concurrent_checks')
        if max_concurrent is not None:
            if not isinstance(max_concurrent, int) or isinstance(max_concurrent, bool) or max_concurrent <= 0:
                raise ConfigError("max_concurrent_checks 必须是正整数")

        margin = global_config.get('cycle_timeout_margin')
        if margin is not None and not _is_positive_number(margin):
            raise ConfigError("cycle_timeout_margin 必须是正数")

        log_level = global_config.get('log_level')
        if log_level is not None:
            valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
            if log_level not in valid_levels:
                raise ConfigError(f"log_level 必须是以下值之一: {valid_levels}")
