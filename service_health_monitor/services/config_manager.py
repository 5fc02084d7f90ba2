"""配置管理器"""

import copy
import os
from typing import Dict, Any, Optional

import yaml

from ..utils.config_validator import ConfigValidator, is_valid_url
from ..utils.exceptions import ConfigError, ErrorCode
from ..utils.log_manager import get_logger

DEFAULT_GLOBAL_CONFIG: Dict[str, Any] = {
    'check_interval': 30,
    'log_level': 'INFO',
    'log_file': 'health-monitor.log',
    'max_concurrent_checks': 10,
    'cycle_timeout_margin': 2,
    'alert_on_overall': False,
}


def default_config() -> Dict[str, Any]:
    """
    内置默认配置：Manager Product Service 的容器、应用端点和数据库

    Returns:
        Dict[str, Any]: 配置字典
    """
    return {
        'global': dict(DEFAULT_GLOBAL_CONFIG),
        'services': {
            'postgres-db': {
                'type': 'container',
                'container': 'postgres-db',
                'compose_service': True,
            },
            'manager-product-service': {
                'type': 'container',
                'container': 'manager-product-service',
                'compose_service': True,
            },
            'application-endpoints': {
                'type': 'http',
                'base_url': 'http://localhost:8080',
                'endpoints': [
                    {'path': '/actuator/health', 'required': True},
                    {'path': '/actuator/info', 'required': True},
                ],
            },
            'manager_product_db': {
                'type': 'database',
                'exec_service': 'postgres-db',
                'database': os.environ.get('DATABASE_NAME', 'manager_product_db'),
                'username': os.environ.get('DATABASE_USERNAME', 'postgres'),
            },
        },
        'alerts': [],
    }


class ConfigManager:
    """配置管理器，负责YAML配置文件的加载、解析和验证"""

    def __init__(self, config_path: Optional[str] = None):
        """
        初始化配置管理器

        Args:
            config_path: 配置文件路径，为 None 时使用内置默认配置
        """
        self.config_path = config_path
        self.config: Dict[str, Any] = {}
        self.logger = get_logger('config_manager')

    def load_config(self) -> Dict[str, Any]:
        """
        加载YAML配置文件，未指定文件时加载内置默认配置

        Returns:
            Dict[str, Any]: 配置字典（global 已补全默认值）

        Raises:
            ConfigError: 配置加载或验证失败
        """
        if self.config_path is None:
            self.logger.info("未指定配置文件，使用内置默认配置")
            config = default_config()
        else:
            config = self._read_file(self.config_path)

        self._validate_config(config)

        global_config = dict(DEFAULT_GLOBAL_CONFIG)
        global_config.update(config.get('global') or {})
        config['global'] = global_config
        config.setdefault('alerts', [])

        services_count = len(config.get('services', {}))
        alerts_count = len(config.get('alerts', []))
        self.logger.info(f"配置验证成功，包含 {services_count} 个服务和 {alerts_count} 个告警配置")

        self.config = config
        return self.config

    def _read_file(self, config_path: str) -> Dict[str, Any]:
        self.logger.info(f"开始加载配置文件: {config_path}")

        if not os.path.exists(config_path):
            raise ConfigError(f"配置文件不存在: {config_path}",
                              ErrorCode.CONFIG_FILE_NOT_FOUND, config_path=config_path)

        try:
            with open(config_path, 'r', encoding='utf-8') as file:
                config = yaml.safe_load(file)
        except yaml.YAMLError as e:
            raise ConfigError(f"YAML格式错误: {e}", ErrorCode.CONFIG_PARSE_ERROR,
                              config_path=config_path, cause=e)
        except PermissionError as e:
            raise ConfigError(f"没有权限读取配置文件: {config_path}",
                              ErrorCode.CONFIG_FILE_NOT_FOUND, config_path=config_path, cause=e)
        except OSError as e:
            raise ConfigError(f"读取配置文件失败: {e}", ErrorCode.CONFIG_FILE_NOT_FOUND,
                              config_path=config_path, cause=e)

        if config is None:
            raise ConfigError("配置文件为空", config_path=config_path)

        return config

    def _validate_config(self, config: Dict[str, Any]) -> None:
        """
        验证配置内容

        Args:
            config: 配置字典

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(config, dict):
            raise ConfigError("配置文件根节点必须是字典类型")

        if 'global' in config and config['global'] is not None:
            ConfigValidator.validate_global_config(config['global'])

        services = config.get('services')
        if not isinstance(services, dict):
            raise ConfigError("services配置必须是字典类型")
        if not services:
            raise ConfigError("services配置不能为空")

        for service_name, service_config in services.items():
            ConfigValidator.validate_service_config(service_name, service_config)

        alerts = config.get('alerts')
        if alerts is not None:
            if not isinstance(alerts, list):
                raise ConfigError("alerts配置必须是列表类型")

            names = set()
            for alert_config in alerts:
                ConfigValidator.validate_alert_config(alert_config)
                if alert_config['name'] in names:
                    raise ConfigError(f"告警名称重复: {alert_config['name']}")
                names.add(alert_config['name'])

    def apply_overrides(self, interval: Optional[float] = None,
                        log_file: Optional[str] = None,
                        log_level: Optional[str] = None,
                        alert_webhook: Optional[str] = None) -> Dict[str, Any]:
        """
        应用命令行参数覆盖

        Returns:
            Dict[str, Any]: 覆盖后的配置

        Raises:
            ConfigError: 参数无效
        """
        config = copy.deepcopy(self.config)
        global_config = config.setdefault('global', {})

        if interval is not None:
            if interval <= 0:
                raise ConfigError(f"检查间隔必须是正数: {interval}")
            global_config['check_interval'] = interval

        if log_file is not None:
            global_config['log_file'] = log_file

        if log_level is not None:
            global_config['log_level'] = log_level

        if alert_webhook is not None:
            if not is_valid_url(alert_webhook):
                raise ConfigError(f"告警webhook URL无效: {alert_webhook}")
            config.setdefault('alerts', []).append({
                'name': 'cli-webhook',
                'type': 'webhook',
                'url': alert_webhook,
            })

        ConfigValidator.validate_global_config(global_config)
        self.config = config
        return self.config

    def get_global_config(self) -> Dict[str, Any]:
        """
        获取全局配置

        Returns:
            Dict[str, Any]: 全局配置字典
        """
        return self.config.get('global', {})

    def get_services_config(self) -> Dict[str, Any]:
        """
        获取服务配置

        Returns:
            Dict[str, Any]: 服务配置字典（保持配置顺序）
        """
        return self.config.get('services', {})

    def get_alerts_config(self) -> list:
        """
        获取告警配置

        Returns:
            list: 告警配置列表
        """
        return self.config.get('alerts', [])

    def get_service_config(self, service_name: str) -> Optional[Dict[str, Any]]:
        """
        获取指定服务的配置

        Args:
            service_name: 服务名称

        Returns:
            Optional[Dict[str, Any]]: 服务配置，如果不存在返回None
        """
        return self.get_services_config().get(service_name)
