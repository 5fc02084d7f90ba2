#!/usr/bin/env python3
"""
服务健康监控主应用程序入口

集成所有组件，支持单次检查和持续监控两种模式，
添加信号处理和退出码约定。
"""

import argparse
import asyncio
import logging
import os
import shutil
import signal
import sys
from typing import Optional, Dict, Any, List

from service_health_monitor import __version__
from service_health_monitor.adapters.docker_cli import DockerCLIRuntime
from service_health_monitor.alerts.dispatcher import AlertDispatcher
from service_health_monitor.models.health_check import CycleReport
from service_health_monitor.services.config_manager import ConfigManager
from service_health_monitor.services.monitor_scheduler import MonitorScheduler
from service_health_monitor.services.reporter import format_report, log_report
from service_health_monitor.utils.exceptions import HealthMonitorError, ConfigError, AlertConfigError
from service_health_monitor.utils.log_manager import log_manager, get_logger

# 退出码
EXIT_HEALTHY = 0
EXIT_UNHEALTHY = 1
EXIT_CONFIG_ERROR = 2


class HealthMonitorApp:
    """健康监控系统主应用程序类"""

    def __init__(self, config_path: Optional[str] = None,
                 overrides: Optional[Dict[str, Any]] = None,
                 verbose: bool = False,
                 adapters: Optional[Dict[str, Any]] = None):
        """初始化应用程序

        Args:
            config_path: 配置文件路径，为 None 时使用内置默认配置
            overrides: 命令行覆盖参数（interval、log_file、log_level、alert_webhook）
            verbose: 是否同时输出日志到控制台
            adapters: 传给检查器的适配器，测试时注入
        """
        self.config_path = config_path
        self.overrides = overrides or {}
        self.verbose = verbose
        self.adapters = adapters or {}
        self.logger: Optional[logging.Logger] = None
        self.is_running = False

        # 核心组件
        self.config_manager: Optional[ConfigManager] = None
        self.dispatcher: Optional[AlertDispatcher] = None
        self.monitor_scheduler: Optional[MonitorScheduler] = None

    async def initialize(self):
        """初始化应用程序组件

        Raises:
            ConfigError: 配置无效
        """
        # 初始化配置管理器
        self.config_manager = ConfigManager(self.config_path)
        self.config_manager.load_config()
        self.config_manager.apply_overrides(**self.overrides)

        global_config = self.config_manager.get_global_config()

        # 配置日志系统
        self._configure_logging(global_config)
        self.logger = get_logger('main')
        self.logger.info("开始初始化健康监控系统")

        # 初始化告警分发器
        try:
            self.dispatcher = AlertDispatcher.from_config(
                self.config_manager.get_alerts_config(),
                alert_on_overall=global_config.get('alert_on_overall', False)
            )
        except AlertConfigError as e:
            raise ConfigError(f"告警配置无效: {e.message}", cause=e)

        # 初始化监控调度器
        self.monitor_scheduler = MonitorScheduler(dispatcher=self.dispatcher)
        self.monitor_scheduler.configure_services(
            self.config_manager.get_services_config(), global_config, **self.adapters)
        self.monitor_scheduler.set_cycle_callback(self._on_cycle_complete)

        self.logger.info("应用程序组件初始化完成")

    def _configure_logging(self, global_config: Dict[str, Any]):
        """配置日志系统

        Args:
            global_config: 全局配置
        """
        log_file = global_config.get('log_file')
        log_config = {
            'log_level': global_config.get('log_level', 'INFO'),
            'enable_console': self.verbose,
            'log_file': log_file,
            'enable_file': bool(log_file),
            'max_file_size': global_config.get('max_log_size', 10 * 1024 * 1024),
            'backup_count': global_config.get('log_backup_count', 5),
        }
        log_manager.configure(log_config)

    async def _on_cycle_complete(self, report: CycleReport):
        """周期完成回调：打印并记录报告"""
        for line in format_report(report):
            print(line)
        log_report(report, self.logger)

    async def run_once(self) -> int:
        """执行一次检查

        Returns:
            退出码：整体健康为 0，否则为 1
        """
        report = await self.monitor_scheduler.run_once()
        return EXIT_HEALTHY if report.overall_state.is_healthy else EXIT_UNHEALTHY

    async def run_continuous(self, max_cycles: Optional[int] = None) -> int:
        """持续监控，直到收到 SIGINT/SIGTERM

        Returns:
            退出码，正常停止为 0
        """
        self.is_running = True
        installed = self._install_signal_handlers()
        try:
            await self.monitor_scheduler.run_forever(max_cycles=max_cycles)
        finally:
            self._remove_signal_handlers(installed)
            self.is_running = False
        return EXIT_HEALTHY

    def _install_signal_handlers(self) -> List[int]:
        loop = asyncio.get_running_loop()
        installed = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.shutdown, sig)
                installed.append(sig)
            except (NotImplementedError, RuntimeError):
                # 不支持 add_signal_handler 的平台
                signal.signal(sig, lambda signum, frame: loop.call_soon_threadsafe(
                    self.shutdown, signum))
        return installed

    def _remove_signal_handlers(self, installed: List[int]):
        loop = asyncio.get_running_loop()
        for sig in installed:
            loop.remove_signal_handler(sig)

    def shutdown(self, signum: Optional[int] = None):
        """触发应用程序关闭，当前周期结束后退出"""
        if self.logger:
            if signum is not None:
                self.logger.info(f"收到信号 {signal.Signals(signum).name}，准备停止")
            else:
                self.logger.info("收到关闭请求")
        if self.monitor_scheduler:
            self.monitor_scheduler.stop()

    def cleanup(self):
        """清理资源"""
        if self.logger:
            self.logger.info("健康监控系统已停止")
        log_manager.cleanup()

    def get_status(self) -> Dict[str, Any]:
        """获取应用程序状态

        Returns:
            应用程序状态信息
        """
        status = {
            'is_running': self.is_running,
            'config_path': self.config_path,
        }

        if self.monitor_scheduler:
            status['scheduler_stats'] = self.monitor_scheduler.get_scheduler_stats()

        if self.dispatcher:
            status['alert_stats'] = self.dispatcher.get_alert_stats()
            status['current_states'] = {
                name: state.value for name, state in self.dispatcher.state.get_all_states().items()
            }

        return status


def create_argument_parser() -> argparse.ArgumentParser:
    """创建命令行参数解析器"""
    parser = argparse.ArgumentParser(
        prog='service-health-monitor',
        description='服务健康监控 - 检查容器、HTTP端点和数据库的健康状态并发送告警通知',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例用法:
  %(prog)s                                    # 使用内置默认配置执行一次检查
  %(prog)s config.yaml                        # 使用指定配置文件执行一次检查
  %(prog)s config.yaml --continuous           # 持续监控
  %(prog)s --continuous --interval 60         # 每60秒检查一次
  %(prog)s --alert-webhook https://hooks.example.com/x
  %(prog)s --validate config.yaml             # 验证配置文件和运行环境
  %(prog)s --test-alerts config.yaml          # 测试告警系统

退出码:
  0  整体健康（持续模式下为正常停止）
  1  整体不健康或降级
  2  配置错误

配置文件格式请参考 config/example.yaml
        """
    )

    # 位置参数：配置文件路径
    parser.add_argument(
        'config_file',
        nargs='?',
        help='YAML配置文件路径（省略时使用内置默认配置）'
    )

    parser.add_argument(
        '--version', '-V',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '--continuous', '-c',
        action='store_true',
        help='持续监控，直到收到 SIGINT/SIGTERM'
    )

    parser.add_argument(
        '--interval', '-i',
        type=float,
        help='持续模式下的检查间隔秒数（覆盖配置文件设置）'
    )

    parser.add_argument(
        '--alert-webhook',
        help='告警webhook URL（追加到配置文件中的告警）'
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='设置日志级别（覆盖配置文件设置）'
    )

    parser.add_argument(
        '--log-file',
        help='日志文件路径（覆盖配置文件设置）'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='同时输出日志到控制台'
    )

    parser.add_argument(
        '--validate',
        action='store_true',
        help='验证配置文件和运行环境并退出'
    )

    parser.add_argument(
        '--test-alerts',
        action='store_true',
        help='测试告警系统并退出'
    )

    return parser


def get_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """从命令行参数提取配置覆盖项"""
    return {
        'interval': args.interval,
        'log_file': args.log_file,
        'log_level': args.log_level,
        'alert_webhook': args.alert_webhook,
    }


def find_missing_executables(services_config: Dict[str, Any]) -> List[str]:
    """检查目标所需的外部命令是否可用

    Args:
        services_config: 服务配置字典

    Returns:
        缺失的命令列表
    """
    required = []
    for service_config in services_config.values():
        service_type = service_config.get('type')
        if service_type == 'container':
            required.append(service_config.get('docker_binary', 'docker'))
        elif service_type == 'database':
            if service_config.get('exec_service'):
                required.append(service_config.get('docker_binary', 'docker'))
            else:
                required.append(service_config.get('pg_isready_binary', 'pg_isready'))

    missing = []
    for executable in dict.fromkeys(required):
        if shutil.which(executable) is None:
            missing.append(executable)
    return missing


# 数据库目标的连接参数 -> 环境变量
DATABASE_ENV_VARS = {
    'host': 'DATABASE_HOST',
    'port': 'DATABASE_PORT',
    'database': 'DATABASE_NAME',
    'username': 'DATABASE_USERNAME',
}


def find_missing_env_vars(services_config: Dict[str, Any]) -> List[str]:
    """检查数据库目标未在配置中给出的连接参数是否设置了环境变量

    通过 exec_service 在容器内检查时不需要 host 和 port。
    """
    missing = []
    for service_config in services_config.values():
        if service_config.get('type') != 'database':
            continue
        for key, env_var in DATABASE_ENV_VARS.items():
            if key in ('host', 'port') and service_config.get('exec_service'):
                continue
            if service_config.get(key) is None and not os.environ.get(env_var):
                missing.append(env_var)
    return list(dict.fromkeys(missing))


def docker_binaries(services_config: Dict[str, Any]) -> List[str]:
    """需要访问 docker 守护进程的命令"""
    binaries = []
    for service_config in services_config.values():
        service_type = service_config.get('type')
        if service_type == 'container' or (service_type == 'database'
                                           and service_config.get('exec_service')):
            binaries.append(service_config.get('docker_binary', 'docker'))
    return list(dict.fromkeys(binaries))


async def validate_config_file(config_path: Optional[str],
                               overrides: Optional[Dict[str, Any]] = None) -> bool:
    """验证配置文件和运行环境

    Args:
        config_path: 配置文件路径
        overrides: 命令行覆盖参数

    Returns:
        验证是否成功
    """
    try:
        print(f"正在验证配置: {config_path or '内置默认配置'}")

        config_manager = ConfigManager(config_path)
        config_manager.load_config()
        config = config_manager.apply_overrides(**(overrides or {}))
        AlertDispatcher.from_config(config.get('alerts', []))

        services = config.get('services', {})
        alerts = config.get('alerts', [])

        print("✅ 配置验证成功!")
        print(f"   - 服务数量: {len(services)}")
        print(f"   - 告警配置数量: {len(alerts)}")

        # 显示服务详情
        if services:
            print("   - 配置的服务:")
            for service_name, service_config in services.items():
                print(f"     * {service_name} ({service_config.get('type', 'unknown')})")

        # 显示告警详情
        if alerts:
            print("   - 配置的告警:")
            for alert_config in alerts:
                print(f"     * {alert_config.get('name', 'unnamed')} "
                      f"({alert_config.get('type', 'unknown')})")

    except HealthMonitorError as e:
        print(f"❌ 配置验证失败: {e.message}")
        return False

    problems = []

    missing = find_missing_executables(services)
    if missing:
        problems.append(f"运行环境缺少命令: {', '.join(missing)}")

    missing_vars = find_missing_env_vars(services)
    if missing_vars:
        problems.append(f"未设置环境变量: {', '.join(missing_vars)}")

    for docker_binary in docker_binaries(services):
        if docker_binary in missing:
            continue
        try:
            version = await DockerCLIRuntime(docker_binary).ping()
            print(f"✅ Docker守护进程运行中 (版本 {version})")
        except HealthMonitorError as e:
            problems.append(e.message)

    if problems:
        for problem in problems:
            print(f"❌ {problem}")
        return False

    print("✅ 运行环境检查通过")
    return True


async def run_alert_test(app: HealthMonitorApp) -> bool:
    """测试告警系统

    Args:
        app: 已初始化的应用程序

    Returns:
        测试是否成功
    """
    print("正在测试告警系统")
    success = await app.dispatcher.send_test_alert()

    if success:
        print("✅ 告警系统测试成功!")
    else:
        print("❌ 告警系统测试失败!")

    return success


async def main(argv: Optional[List[str]] = None) -> int:
    """主函数

    Returns:
        进程退出码
    """
    parser = create_argument_parser()
    args = parser.parse_args(argv)
    overrides = get_overrides(args)

    if args.validate:
        success = await validate_config_file(args.config_file, overrides)
        return EXIT_HEALTHY if success else EXIT_UNHEALTHY

    app = HealthMonitorApp(args.config_file, overrides, verbose=args.verbose)

    try:
        await app.initialize()
    except ConfigError as e:
        print(f"配置错误: {e.message}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    try:
        if args.test_alerts:
            success = await run_alert_test(app)
            return EXIT_HEALTHY if success else EXIT_UNHEALTHY

        if args.continuous:
            interval = app.monitor_scheduler.check_interval
            print(f"服务健康监控 v{__version__} 已启动，检查间隔: {interval}秒")
            print("按 Ctrl+C 停止程序")
            return await app.run_continuous()

        return await app.run_once()

    except HealthMonitorError as e:
        print(f"健康监控系统错误: {e}", file=sys.stderr)
        return EXIT_UNHEALTHY
    finally:
        app.cleanup()


def cli():
    """命令行入口"""
    try:
        exit_code = asyncio.run(main())
    except KeyboardInterrupt:
        print("\n用户中断程序")
        exit_code = EXIT_HEALTHY
    sys.exit(exit_code)


if __name__ == "__main__":
    cli()
