"""监控调度器模块

驱动 探测 -> 汇总 -> 告警 -> 记录 的周期，可单次执行或按固定间隔持续执行。
"""

import asyncio
import math
from datetime import datetime
from typing import Dict, Any, Optional, List, Callable, Awaitable

from ..alerts.dispatcher import AlertDispatcher
from ..checkers.base import BaseHealthChecker
from ..checkers.factory import health_checker_factory
from ..models.health_check import CycleReport, ProbeResult, ProbeState
from ..utils.exceptions import ConfigError
from ..utils.log_manager import get_logger

CycleCallback = Callable[[CycleReport], Awaitable[None]]


class SchedulerPhase:
    """调度器状态"""
    IDLE = 'idle'
    RUNNING = 'running'
    SLEEPING = 'sleeping'
    STOPPED = 'stopped'


class MonitorScheduler:
    """监控调度器

    同一周期内的探测并发执行，周期之间严格串行：上一个周期的汇总、
    告警和记录完成后才会开始下一个周期。停止请求在周期之间生效，
    正在执行的周期总会完整结束。
    """

    def __init__(self, dispatcher: Optional[AlertDispatcher] = None,
                 max_concurrent_checks: int = 10,
                 check_interval: float = 30,
                 cycle_timeout_margin: float = 2,
                 clock: Callable[[], datetime] = datetime.now,
                 sleep: Optional[Callable[[float], Awaitable[None]]] = None):
        """初始化监控调度器

        Args:
            dispatcher: 告警分发器，为 None 时不告警
            max_concurrent_checks: 最大并发检查数量
            check_interval: 持续模式下的周期间隔（秒）
            cycle_timeout_margin: 周期超时在探测超时基础上的余量（秒）
            clock: 返回当前时间的函数
            sleep: 周期间等待函数，默认等待停止事件或间隔到期
        """
        self.dispatcher = dispatcher
        self.max_concurrent_checks = max_concurrent_checks
        self.check_interval = check_interval
        self.cycle_timeout_margin = cycle_timeout_margin
        self.clock = clock
        self._sleep = sleep
        self.checkers: List[BaseHealthChecker] = []
        self.logger = get_logger('monitor_scheduler')

        self.phase = SchedulerPhase.IDLE
        self.cycle_count = 0
        self.last_report: Optional[CycleReport] = None
        self._stop_requested = False
        self._stop_event: Optional[asyncio.Event] = None

        # 回调函数
        self.on_cycle_complete: Optional[CycleCallback] = None

    @property
    def is_running(self) -> bool:
        return self.phase in (SchedulerPhase.RUNNING, SchedulerPhase.SLEEPING)

    def configure_services(self, services_config: Dict[str, Any],
                           global_config: Optional[Dict[str, Any]] = None,
                           **adapters: Any):
        """配置监控服务，检查器顺序与配置顺序一致

        Args:
            services_config: 服务配置字典
            global_config: 全局配置字典
            **adapters: 传给检查器的适配器

        Raises:
            ConfigError: 配置错误
        """
        if global_config is None:
            global_config = {}

        self.check_interval = global_config.get('check_interval', self.check_interval)
        self.max_concurrent_checks = global_config.get('max_concurrent_checks',
                                                       self.max_concurrent_checks)
        self.cycle_timeout_margin = global_config.get('cycle_timeout_margin',
                                                      self.cycle_timeout_margin)

        checkers = []
        for service_name, service_config in services_config.items():
            try:
                checker = health_checker_factory.create_checker(service_name, service_config,
                                                                **adapters)
            except Exception as e:
                self.logger.error(f"配置服务 {service_name} 失败: {e}")
                raise ConfigError(f"配置服务 {service_name} 失败: {e}", cause=e)

            checkers.append(checker)
            self.logger.info(
                f"配置服务 {service_name}: 类型={service_config.get('type')}, "
                f"地址={checker.target.address}, 超时={checker.get_timeout()}秒")

        self.checkers = checkers

    def add_checker(self, checker: BaseHealthChecker):
        """追加检查器"""
        self.checkers.append(checker)

    def set_cycle_callback(self, callback: CycleCallback):
        """设置周期完成回调函数

        Args:
            callback: 周期完成回调函数，参数为周期报告
        """
        self.on_cycle_complete = callback

    def get_cycle_timeout(self) -> float:
        """周期总超时：最大探测超时（按并发批次计）加余量"""
        if not self.checkers:
            return self.cycle_timeout_margin
        max_timeout = max(checker.get_timeout() for checker in self.checkers)
        batches = math.ceil(len(self.checkers) / max(1, self.max_concurrent_checks))
        return max_timeout * batches + self.cycle_timeout_margin

    async def _run_checker(self, checker: BaseHealthChecker,
                           semaphore: asyncio.Semaphore) -> ProbeResult:
        async with semaphore:  # 控制并发数量
            return await checker.check_health()

    def _fallback_result(self, checker: BaseHealthChecker, detail: str) -> ProbeResult:
        return ProbeResult(
            target=checker.target,
            state=ProbeState.UNKNOWN,
            detail=detail,
            observed_at=self.clock()
        )

    async def run_cycle(self) -> CycleReport:
        """执行一个完整周期

        每个配置的目标在报告中恰好对应一个结果。

        Returns:
            CycleReport: 周期报告
        """
        started_at = self.clock()
        checkers = list(self.checkers)
        semaphore = asyncio.Semaphore(max(1, self.max_concurrent_checks))

        tasks = [asyncio.create_task(self._run_checker(checker, semaphore))
                 for checker in checkers]

        pending = set()
        if tasks:
            _, pending = await asyncio.wait(tasks, timeout=self.get_cycle_timeout())
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        results = []
        for checker, task in zip(checkers, tasks):
            if task in pending or task.cancelled():
                self.logger.error(f"服务 {checker.name} 检查未在周期超时内完成")
                results.append(self._fallback_result(checker, "周期超时，检查未完成"))
            elif task.exception() is not None:
                error = task.exception()
                self.logger.error(f"检查服务 {checker.name} 时发生异常: {error}")
                results.append(self._fallback_result(checker, f"检查异常: {error}"))
            else:
                results.append(task.result())

        report = CycleReport(results=tuple(results), started_at=started_at,
                             finished_at=self.clock())
        self.cycle_count += 1
        self.last_report = report

        self.logger.debug(
            f"周期 {self.cycle_count} 完成: 整体状态={report.overall_state.value}, "
            f"用时={report.duration:.3f}s")

        if self.dispatcher:
            try:
                await self.dispatcher.dispatch(report)
            except Exception as e:
                self.logger.error(f"告警分发失败: {e}", exc_info=True)

        if self.on_cycle_complete:
            try:
                await self.on_cycle_complete(report)
            except Exception as e:
                self.logger.error(f"周期回调执行失败: {e}", exc_info=True)

        return report

    async def run_once(self) -> CycleReport:
        """单次执行

        Returns:
            CycleReport: 周期报告
        """
        self.phase = SchedulerPhase.RUNNING
        try:
            return await self.run_cycle()
        finally:
            self.phase = SchedulerPhase.IDLE

    async def run_forever(self, max_cycles: Optional[int] = None) -> int:
        """按固定间隔持续执行，直到收到停止请求

        Args:
            max_cycles: 最多执行的周期数，为 None 时不限制

        Returns:
            实际执行的周期数
        """
        if self.is_running:
            self.logger.warning("监控调度器已经在运行")
            return 0

        self._stop_event = asyncio.Event()
        if self._stop_requested:
            self._stop_event.set()

        self.logger.info(f"启动监控调度器，检查间隔: {self.check_interval}秒，"
                         f"目标数: {len(self.checkers)}")
        cycles = 0

        try:
            while not self._stop_requested:
                self.phase = SchedulerPhase.RUNNING
                await self.run_cycle()
                cycles += 1

                if max_cycles is not None and cycles >= max_cycles:
                    break
                if self._stop_requested:
                    break

                self.phase = SchedulerPhase.SLEEPING
                await self._wait_interval()
        finally:
            self.phase = SchedulerPhase.STOPPED
            self.logger.info(f"监控调度器已停止，共执行 {cycles} 个周期")

        return cycles

    async def _wait_interval(self):
        if self._sleep is not None:
            await self._sleep(self.check_interval)
            return

        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self.check_interval)
        except asyncio.TimeoutError:
            pass

    def stop(self):
        """请求停止，正在执行的周期会完整结束"""
        if not self._stop_requested:
            self.logger.info("收到停止请求，当前周期结束后退出")
        self._stop_requested = True
        if self._stop_event is not None:
            self._stop_event.set()

    def get_scheduler_stats(self) -> Dict[str, Any]:
        """获取调度器统计信息

        Returns:
            调度器统计信息
        """
        stats = {
            'phase': self.phase,
            'total_services': len(self.checkers),
            'configured_services': [checker.name for checker in self.checkers],
            'max_concurrent_checks': self.max_concurrent_checks,
            'check_interval': self.check_interval,
            'cycle_timeout': self.get_cycle_timeout(),
            'cycle_count': self.cycle_count,
        }
        if self.last_report:
            stats['last_overall_state'] = self.last_report.overall_state.value
        return stats
