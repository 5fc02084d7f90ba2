"""告警分发器

根据周期报告判断是否需要发出告警（边沿触发），并投递到所有告警器。
"""

import asyncio
import socket
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Any, Optional, Callable, Set, Tuple

from .base import BaseAlerter
from .webhook_alerter import WebhookAlerter
from ..models.health_check import AlertEvent, CycleReport, ProbeState
from ..services.state_manager import DispatcherState, StateTransition
from ..utils.exceptions import AlertConfigError
from ..utils.log_manager import get_logger

SYSTEM_TARGET = 'system'

# 告警器类型 -> 告警器类
ALERTER_TYPES = {
    'webhook': WebhookAlerter,
    'http': WebhookAlerter,
}


def create_alerter(config: Dict[str, Any]) -> BaseAlerter:
    """根据配置创建告警器

    Raises:
        AlertConfigError: 类型不支持或配置无效
    """
    alerter_type = str(config.get('type', '')).lower()
    alerter_class = ALERTER_TYPES.get(alerter_type)
    if alerter_class is None:
        raise AlertConfigError(f"不支持的告警器类型: {alerter_type}",
                               alert_name=config.get('name'))
    return alerter_class(config.get('name', alerter_type), config)


@dataclass
class PendingDelivery:
    """尚未送达全部告警器的告警"""
    state: ProbeState
    event: AlertEvent
    failed: Set[BaseAlerter] = field(default_factory=set)
    delivered: Set[BaseAlerter] = field(default_factory=set)


class AlertDispatcher:
    """告警分发器

    每个目标在告警级别进入 warning/critical 时告警一次，恢复为健康时再告警
    一次。部分告警器投递失败时不提交新状态，下一个周期若告警级别不变，
    只向失败的告警器重新投递同一条告警。
    """

    def __init__(self, alerters: Optional[List[BaseAlerter]] = None,
                 state: Optional[DispatcherState] = None,
                 alert_on_overall: bool = False,
                 hostname: Optional[str] = None,
                 clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        """初始化告警分发器

        Args:
            alerters: 告警器列表
            state: 跨周期状态，为 None 时新建
            alert_on_overall: 是否同时针对整体状态（system）告警
            hostname: 告警中的主机名，默认取本机名
            clock: 返回当前UTC时间的函数
        """
        self.alerters: List[BaseAlerter] = list(alerters or [])
        self.state = state or DispatcherState()
        self.alert_on_overall = alert_on_overall
        self.hostname = hostname or socket.gethostname()
        self.clock = clock
        self.pending: Dict[str, PendingDelivery] = {}
        self.logger = get_logger('alert_dispatcher')

    @classmethod
    def from_config(cls, alert_configs: List[Dict[str, Any]],
                    alert_on_overall: bool = False) -> 'AlertDispatcher':
        """根据告警配置列表创建分发器

        Raises:
            AlertConfigError: 任一告警器配置无效
        """
        alerters = [create_alerter(config) for config in alert_configs]
        return cls(alerters, alert_on_overall=alert_on_overall)

    def add_alerter(self, alerter: BaseAlerter):
        """添加告警器"""
        if not isinstance(alerter, BaseAlerter):
            raise AlertConfigError(f"告警器必须继承自BaseAlerter: {type(alerter)}")
        self.alerters.append(alerter)
        self.logger.info(f"已添加告警器: {alerter.name} ({alerter.alerter_type})")

    def _observations(self, report: CycleReport) -> List[tuple]:
        """本周期的 (目标名, 状态, 详情) 列表"""
        observations = [
            (result.target.name, result.state, result.detail)
            for result in report.results
        ]
        if self.alert_on_overall:
            overall = report.overall_state
            detail = "System health check failed" if not overall.is_healthy else "System healthy"
            observations.append((SYSTEM_TARGET, overall, detail))
        return observations

    def _build_event(self, transition: StateTransition, detail: str) -> AlertEvent:
        if transition.is_recovery:
            message = f"服务已恢复 ({transition.old_state.value} -> healthy)"
            if detail:
                message += f": {detail}"
        else:
            message = f"服务状态: {transition.new_state.value}"
            if detail:
                message += f" - {detail}"

        return AlertEvent(
            target_name=transition.service_name,
            state=transition.new_state,
            message=message,
            timestamp_utc=self.clock(),
            hostname=self.hostname
        )

    def evaluate(self, report: CycleReport) -> List[AlertEvent]:
        """计算本周期应发出的告警，不修改状态

        Args:
            report: 周期报告

        Returns:
            告警事件列表（按配置顺序）
        """
        events = []
        for name, state, detail in self._observations(report):
            transition = self.state.peek(name, state)
            if transition and (transition.is_alert_edge or transition.is_recovery):
                events.append(self._build_event(transition, detail))
        return events

    async def dispatch(self, report: CycleReport) -> List[AlertEvent]:
        """处理周期报告：计算告警、投递并提交状态

        投递失败只记录日志，不抛出异常。所有目标的告警并发投递。

        Args:
            report: 周期报告

        Returns:
            本周期发出的告警事件列表（含重新投递的告警）
        """
        events = {event.target_name: event for event in self.evaluate(report)}

        plans = []
        for name, state, detail in self._observations(report):
            event, alerters = self._plan_delivery(name, state, detail, events.get(name))
            if event is None:
                # 无需告警的变化（如 unhealthy <-> unknown）直接提交
                self.state.commit(name, state)
                continue
            plans.append((name, state, event, alerters))

        failures = await asyncio.gather(
            *(self._deliver_to(event, alerters) for _, _, event, alerters in plans)
        )

        for (name, state, event, alerters), failed in zip(plans, failures):
            if not failed:
                self.state.commit(name, state)
                continue
            self.pending[name] = PendingDelivery(
                state=state,
                event=event,
                failed=failed,
                delivered={alerter for alerter in self.alerters if alerter not in failed}
            )
            self.logger.warning(
                f"告警 {name} 有 {len(failed)} 个告警器未能送达，状态保持未确认，下个周期将重新尝试")

        return [event for _, _, event, _ in plans]

    def _plan_delivery(self, name: str, state: ProbeState, detail: str,
                       event: Optional[AlertEvent]) -> Tuple[Optional[AlertEvent], List[BaseAlerter]]:
        """决定本周期向哪些告警器投递哪条告警"""
        pending = self.pending.pop(name, None)

        if pending and pending.state.alert_level == state.alert_level:
            alerters = [alerter for alerter in self.alerters if alerter in pending.failed]
            self.logger.info(f"重新投递告警 {name} 到 {len(alerters)} 个告警器")
            return pending.event, alerters

        if event is None and pending and pending.delivered:
            # 已收到未确认告警的告警器需要得知状况回到了原来的级别
            transition = StateTransition(name, pending.state, state, self.clock())
            if transition.is_alert_edge or transition.is_recovery:
                event = self._build_event(transition, detail)
                self._log_event(event)
                return event, [alerter for alerter in self.alerters if alerter in pending.delivered]

        if event is None:
            return None, []

        self._log_event(event)
        return event, list(self.alerters)

    async def deliver(self, event: AlertEvent) -> bool:
        """投递告警到所有告警器

        Returns:
            所有告警器均发送成功时返回 True；未配置告警器时视为成功
        """
        failed = await self._deliver_to(event, self.alerters)
        return not failed

    async def _deliver_to(self, event: AlertEvent, alerters: List[BaseAlerter]) -> Set[BaseAlerter]:
        """并发投递到指定告警器，返回发送失败的告警器"""
        results = await asyncio.gather(
            *(self._send_to_alerter(alerter, event) for alerter in alerters)
        )
        return {alerter for alerter, ok in zip(alerters, results) if not ok}

    async def _send_to_alerter(self, alerter: BaseAlerter, event: AlertEvent) -> bool:
        try:
            return await alerter.send_alert(event)
        except Exception as e:
            self.logger.error(f"告警器 {alerter.name} 发送失败 (服务: {event.target_name}): {e}")
            return False

    def _log_event(self, event: AlertEvent):
        text = f"ALERT [{event.status}] {event.target_name}: {event.message}"
        if event.status == 'critical':
            self.logger.error(text)
        elif event.status == 'warning':
            self.logger.warning(text)
        else:
            self.logger.info(text)

    async def send_test_alert(self, service_name: str = "test-service") -> bool:
        """发送测试告警，不影响跨周期状态

        Returns:
            是否全部发送成功
        """
        if not self.alerters:
            self.logger.warning("没有配置告警器，跳过测试告警")
            return False

        event = AlertEvent(
            target_name=service_name,
            state=ProbeState.DEGRADED,
            message="告警系统测试",
            timestamp_utc=self.clock(),
            hostname=self.hostname
        )
        success = await self.deliver(event)
        if success:
            self.logger.info("告警系统测试完成")
        else:
            self.logger.error("告警系统测试失败")
        return success

    def get_alert_stats(self) -> Dict[str, Any]:
        """获取告警统计信息"""
        return {
            'alerter_count': len(self.alerters),
            'alerter_names': [alerter.name for alerter in self.alerters],
            'alert_on_overall': self.alert_on_overall,
            'transitions_count': len(self.state.transitions),
            'pending_count': len(self.pending),
        }
