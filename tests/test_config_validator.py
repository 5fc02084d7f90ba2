"""配置验证器测试"""

import pytest

from service_health_monitor.utils.config_validator import ConfigValidator, is_valid_url
from service_health_monitor.utils.exceptions import ConfigError


class TestIsValidUrl:
    """URL检查测试类"""

    @pytest.mark.parametrize("url, expected", [
        ("http://localhost:8080", True),
        ("https://hooks.example.com/x?y=1", True),
        ("ftp://example.com", False),
        ("http://", False),
        ("localhost:8080", False),
        (None, False),
    ])
    def test_is_valid_url(self, url, expected):
        """测试URL格式检查"""
        assert is_valid_url(url) is expected


class TestConfigValidator:
    """配置验证器测试类"""

    def test_valid_service_configs(self):
        """测试有效的服务配置"""
        ConfigValidator.validate_service_config('web', {'type': 'container'})
        ConfigValidator.validate_service_config('api', {'type': 'http', 'url': 'http://localhost/health'})
        ConfigValidator.validate_service_config('app', {
            'type': 'http', 'base_url': 'http://localhost:8080', 'endpoints': ['/actuator/health']
        })
        ConfigValidator.validate_service_config('db', {'type': 'database', 'timeout': 2.5})

    @pytest.mark.parametrize("config", [
        "not a dict",
        {},
        {'type': 'redis'},
        {'type': 'container', 'timeout': 0},
        {'type': 'container', 'timeout': True},
        {'type': 'http'},
        {'type': 'http', 'base_url': 'http://localhost'},
        {'type': 'http', 'base_url': 'localhost', 'endpoints': ['/']},
    ])
    def test_invalid_service_config(self, config):
        """测试无效的服务配置"""
        with pytest.raises(ConfigError):
            ConfigValidator.validate_service_config('svc', config)

    def test_valid_alert_config(self):
        """测试有效的告警配置"""
        ConfigValidator.validate_alert_config({'name': 'ops', 'type': 'Webhook',
                                               'url': 'https://hooks.example.com'})

    @pytest.mark.parametrize("config", [
        [],
        {'type': 'webhook', 'url': 'https://hooks.example.com'},
        {'name': 'ops', 'url': 'https://hooks.example.com'},
        {'name': 'ops', 'type': 'webhook'},
        {'name': 'ops', 'type': 'email', 'url': 'https://hooks.example.com'},
        {'name': 'ops', 'type': 'webhook', 'url': 'hooks'},
    ])
    def test_invalid_alert_config(self, config):
        """测试无效的告警配置"""
        with pytest.raises(ConfigError):
            ConfigValidator.validate_alert_config(config)

    def test_valid_global_config(self):
        """测试有效的全局配置"""
        ConfigValidator.validate_global_config({
            'check_interval': 0.5, 'max_concurrent_checks': 4,
            'cycle_timeout_margin': 1, 'log_level': 'WARNING'
        })

    @pytest.mark.parametrize("config", [
        [],
        {'check_interval': 0},
        {'check_interval': '30'},
        {'max_concurrent_checks': 1.5},
        {'max_concurrent_checks': 0},
        {'cycle_timeout_margin': -1},
        {'log_level': 'info'},
    ])
    def test_invalid_global_config(self, config):
        """测试无效的全局配置"""
        with pytest.raises(ConfigError):
            ConfigValidator.validate_global_config(config)
