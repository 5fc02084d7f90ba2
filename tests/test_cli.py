"""命令行接口测试"""

import asyncio
import pytest
import yaml
from unittest.mock import AsyncMock, patch

import main
from main import (
    EXIT_CONFIG_ERROR, EXIT_HEALTHY, EXIT_UNHEALTHY,
    DATABASE_ENV_VARS, create_argument_parser, find_missing_env_vars, find_missing_executables,
    get_overrides, validate_config_file
)
from service_health_monitor import __version__
from service_health_monitor.utils.exceptions import RuntimeUnavailableError

GET_STATUS = 'service_health_monitor.adapters.http_client.AiohttpClient.get_status'
SEND_ALERT = 'service_health_monitor.alerts.webhook_alerter.WebhookAlerter.send_alert'
DOCKER_PING = 'service_health_monitor.adapters.docker_cli.DockerCLIRuntime.ping'


def write_config(tmp_path, services, alerts=None) -> str:
    config = {
        'global': {'log_file': str(tmp_path / 'health-monitor.log'), 'check_interval': 1},
        'services': services,
        'alerts': alerts or [],
    }
    path = tmp_path / 'config.yaml'
    path.write_text(yaml.safe_dump(config, sort_keys=False), encoding='utf-8')
    return str(path)


HTTP_SERVICES = {
    'api': {'type': 'http', 'url': 'http://localhost:8080/actuator/health', 'timeout': 1},
}


class TestArgumentParser:
    """参数解析测试类"""

    def test_defaults(self):
        """测试默认参数"""
        args = create_argument_parser().parse_args([])

        assert args.config_file is None
        assert not args.continuous
        assert not args.validate
        assert get_overrides(args) == {'interval': None, 'log_file': None,
                                       'log_level': None, 'alert_webhook': None}

    def test_all_flags(self):
        """测试全部参数"""
        args = create_argument_parser().parse_args([
            'config.yaml', '--continuous', '--interval', '15', '--alert-webhook', 'https://h.example.com',
            '--log-file', 'x.log', '--log-level', 'DEBUG', '--verbose'
        ])

        assert args.config_file == 'config.yaml'
        assert args.continuous
        assert args.verbose
        assert get_overrides(args) == {'interval': 15.0, 'log_file': 'x.log',
                                       'log_level': 'DEBUG', 'alert_webhook': 'https://h.example.com'}

    def test_version(self, capsys):
        """测试版本信息"""
        with pytest.raises(SystemExit) as exc_info:
            create_argument_parser().parse_args(['--version'])

        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out


class TestExitCodes:
    """退出码测试类"""

    @pytest.mark.asyncio
    async def test_healthy_exit_zero(self, tmp_path, capsys):
        """测试整体健康时退出码为0"""
        path = write_config(tmp_path, HTTP_SERVICES)

        with patch(GET_STATUS, AsyncMock(return_value=200)):
            exit_code = await main.main([path])

        assert exit_code == EXIT_HEALTHY
        output = capsys.readouterr().out
        assert "✓ api: healthy" in output
        assert "Overall System Status: HEALTHY" in output

    @pytest.mark.asyncio
    async def test_unhealthy_exit_one(self, tmp_path, capsys):
        """测试整体不健康时退出码为1"""
        path = write_config(tmp_path, HTTP_SERVICES)

        with patch(GET_STATUS, AsyncMock(return_value=500)):
            exit_code = await main.main([path])

        assert exit_code == EXIT_UNHEALTHY
        assert "Overall System Status: UNHEALTHY" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_config_error_exit_two(self, tmp_path, capsys):
        """测试配置错误时退出码为2"""
        exit_code = await main.main([str(tmp_path / 'missing.yaml')])

        assert exit_code == EXIT_CONFIG_ERROR
        assert "配置错误" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_invalid_webhook_exit_two(self, tmp_path):
        """测试无效的告警webhook参数"""
        path = write_config(tmp_path, HTTP_SERVICES)

        assert await main.main([path, '--alert-webhook', 'not-a-url']) == EXIT_CONFIG_ERROR

    @pytest.mark.asyncio
    async def test_log_file_written(self, tmp_path):
        """测试日志写入文件"""
        path = write_config(tmp_path, HTTP_SERVICES)
        log_file = tmp_path / 'override.log'

        with patch(GET_STATUS, AsyncMock(return_value=200)):
            await main.main([path, '--log-file', str(log_file)])

        content = log_file.read_text(encoding='utf-8')
        assert "[INFO] api: healthy" in content
        assert "Overall System Status: HEALTHY" in content

    @pytest.mark.asyncio
    async def test_alert_webhook_flag(self, tmp_path):
        """测试命令行告警webhook"""
        path = write_config(tmp_path, HTTP_SERVICES)
        send_alert = AsyncMock(return_value=True)

        with patch(GET_STATUS, AsyncMock(return_value=500)), patch(SEND_ALERT, send_alert):
            exit_code = await main.main([path, '--alert-webhook', 'https://hooks.example.com/x'])

        assert exit_code == EXIT_UNHEALTHY
        send_alert.assert_awaited_once()
        event = send_alert.await_args.args[0]
        assert event.target_name == 'api'
        assert event.status == 'critical'


class TestContinuousMode:
    """持续模式测试类"""

    @pytest.mark.asyncio
    async def test_stop_exits_zero(self, tmp_path):
        """测试收到停止请求后正常退出"""
        path = write_config(tmp_path, HTTP_SERVICES)
        app = main.HealthMonitorApp(path)

        with patch(GET_STATUS, AsyncMock(return_value=500)):
            await app.initialize()
            task = asyncio.ensure_future(app.run_continuous())
            for _ in range(100):
                if app.monitor_scheduler.cycle_count >= 1:
                    break
                await asyncio.sleep(0.01)
            app.shutdown()
            exit_code = await asyncio.wait_for(task, timeout=2)

        assert exit_code == EXIT_HEALTHY
        assert app.monitor_scheduler.cycle_count >= 1
        assert not app.is_running
        app.cleanup()

    @pytest.mark.asyncio
    async def test_get_status(self, tmp_path):
        """测试应用程序状态"""
        path = write_config(tmp_path, HTTP_SERVICES)
        app = main.HealthMonitorApp(path)

        with patch(GET_STATUS, AsyncMock(return_value=200)):
            await app.initialize()
            await app.run_once()

        status = app.get_status()
        assert status['config_path'] == path
        assert status['scheduler_stats']['cycle_count'] == 1
        assert status['alert_stats']['alerter_count'] == 0
        assert status['current_states'] == {'api': 'healthy'}
        app.cleanup()


class TestSpecialModes:
    """特殊模式测试类"""

    @pytest.mark.asyncio
    async def test_validate_success(self, tmp_path, capsys):
        """测试验证配置成功"""
        path = write_config(tmp_path, HTTP_SERVICES)

        assert await main.main([path, '--validate']) == EXIT_HEALTHY
        assert "配置验证成功" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_validate_invalid_config(self, tmp_path):
        """测试验证无效配置"""
        path = write_config(tmp_path, {'x': {'type': 'redis'}})

        assert await main.main([path, '--validate']) == EXIT_UNHEALTHY

    @pytest.mark.asyncio
    async def test_validate_missing_executable(self, tmp_path, capsys):
        """测试运行环境缺少命令"""
        path = write_config(tmp_path, {'db': {'type': 'database'}})

        with patch('main.shutil.which', return_value=None):
            assert await validate_config_file(path) is False

        assert "pg_isready" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_validate_docker_daemon_down(self, tmp_path, capsys):
        """测试Docker守护进程不可达"""
        path = write_config(tmp_path, {'web': {'type': 'container', 'container': 'web'}})
        ping = AsyncMock(side_effect=RuntimeUnavailableError("无法连接容器运行时: daemon down"))

        with patch('main.shutil.which', return_value='/usr/bin/docker'), \
                patch(DOCKER_PING, ping):
            assert await validate_config_file(path) is False

        ping.assert_awaited_once()
        assert "无法连接容器运行时" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_validate_docker_daemon_running(self, tmp_path, capsys):
        """测试Docker守护进程可达时验证通过"""
        path = write_config(tmp_path, {'web': {'type': 'container', 'container': 'web'}})

        with patch('main.shutil.which', return_value='/usr/bin/docker'), \
                patch(DOCKER_PING, AsyncMock(return_value='24.0.7')):
            assert await validate_config_file(path) is True

        assert "24.0.7" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_validate_missing_database_env(self, tmp_path, capsys, monkeypatch):
        """测试数据库连接参数既未配置也未设置环境变量"""
        for env_var in DATABASE_ENV_VARS.values():
            monkeypatch.delenv(env_var, raising=False)
        path = write_config(tmp_path, {'db': {'type': 'database', 'host': 'db.internal'}})

        with patch('main.shutil.which', return_value='/usr/bin/pg_isready'):
            assert await validate_config_file(path) is False

        out = capsys.readouterr().out
        assert "DATABASE_PORT" in out
        assert "DATABASE_HOST" not in out

    def test_find_missing_env_vars(self, monkeypatch):
        """测试数据库目标所需环境变量"""
        for env_var in DATABASE_ENV_VARS.values():
            monkeypatch.delenv(env_var, raising=False)
        monkeypatch.setenv('DATABASE_NAME', 'manager_product_db')
        services = {
            'db': {'type': 'database', 'exec_service': 'postgres-db'},
            'db2': {'type': 'database', 'port': 5432, 'username': 'postgres'},
            'api': {'type': 'http', 'url': 'http://localhost'},
        }

        assert find_missing_env_vars(services) == ['DATABASE_USERNAME', 'DATABASE_HOST']

    def test_find_missing_executables(self):
        """测试所需外部命令"""
        services = {
            'web': {'type': 'container'},
            'db': {'type': 'database', 'exec_service': 'postgres-db'},
            'db2': {'type': 'database'},
            'api': {'type': 'http', 'url': 'http://localhost'},
        }

        with patch('main.shutil.which', return_value=None):
            assert find_missing_executables(services) == ['docker', 'pg_isready']

        with patch('main.shutil.which', return_value='/usr/bin/x'):
            assert find_missing_executables(services) == []

    @pytest.mark.asyncio
    async def test_alert_test_mode(self, tmp_path):
        """测试告警测试模式"""
        alerts = [{'name': 'ops', 'type': 'webhook', 'url': 'https://hooks.example.com/ops'}]
        path = write_config(tmp_path, HTTP_SERVICES, alerts)

        with patch(SEND_ALERT, AsyncMock(return_value=True)):
            assert await main.main([path, '--test-alerts']) == EXIT_HEALTHY

        with patch(SEND_ALERT, AsyncMock(return_value=False)):
            assert await main.main([path, '--test-alerts']) == EXIT_UNHEALTHY
