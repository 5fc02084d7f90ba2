"""告警分发器测试"""

import asyncio

import pytest
from datetime import datetime, timezone
from typing import List

from service_health_monitor.alerts.base import BaseAlerter
from service_health_monitor.alerts.dispatcher import AlertDispatcher, SYSTEM_TARGET, create_alerter
from service_health_monitor.alerts.webhook_alerter import WebhookAlerter
from service_health_monitor.models.health_check import (
    AlertEvent, CycleReport, ProbeResult, ProbeState, ServiceTarget, TargetKind
)
from service_health_monitor.utils.exceptions import AlertConfigError, AlertSendError

FIXED_TIME = datetime(2024, 3, 1, 8, 0, 0, tzinfo=timezone.utc)


class RecordingAlerter(BaseAlerter):
    """记录发送内容的告警器"""

    def __init__(self, name: str = "recorder", fail: bool = False):
        super().__init__(name, {})
        self.fail = fail
        self.events: List[AlertEvent] = []

    async def send_alert(self, event: AlertEvent) -> bool:
        if self.fail:
            raise AlertSendError("webhook unreachable", alert_name=self.name)
        self.events.append(event)
        return True

    def validate_config(self) -> bool:
        return True


class SlowAlerter(BaseAlerter):
    """记录同时进行中的发送数量"""

    def __init__(self):
        super().__init__("slow", {})
        self.active = 0
        self.peak = 0

    async def send_alert(self, event: AlertEvent) -> bool:
        self.active += 1
        self.peak = max(self.peak, self.active)
        await asyncio.sleep(0.05)
        self.active -= 1
        return True

    def validate_config(self) -> bool:
        return True


def make_report(**states: ProbeState) -> CycleReport:
    results = tuple(
        ProbeResult(target=ServiceTarget(name, TargetKind.HTTP, f"http://{name}"),
                    state=state, detail=f"{name} is {state.value}")
        for name, state in states.items()
    )
    return CycleReport(results=results)


class TestAlertDispatcher:
    """告警分发器测试类"""

    def setup_method(self):
        """测试前准备"""
        self.alerter = RecordingAlerter()
        self.dispatcher = AlertDispatcher([self.alerter], hostname="monitor-01",
                                          clock=lambda: FIXED_TIME)

    @pytest.mark.asyncio
    async def test_no_alert_when_all_healthy(self):
        """测试全部健康时不告警"""
        events = await self.dispatcher.dispatch(make_report(api=ProbeState.HEALTHY, db=ProbeState.HEALTHY))

        assert events == []
        assert self.alerter.events == []

    @pytest.mark.asyncio
    async def test_unchanged_state_alerts_once(self):
        """测试相同状态连续出现只告警一次"""
        report = make_report(api=ProbeState.UNHEALTHY)

        first = await self.dispatcher.dispatch(report)
        second = await self.dispatcher.dispatch(report)
        third = await self.dispatcher.dispatch(report)

        assert len(first) == 1
        assert second == []
        assert third == []
        assert len(self.alerter.events) == 1

    @pytest.mark.asyncio
    async def test_recovery_sequence(self):
        """测试 健康 -> 不健康 -> 不健康 -> 健康 产生两条告警"""
        for state in (ProbeState.HEALTHY, ProbeState.UNHEALTHY,
                      ProbeState.UNHEALTHY, ProbeState.HEALTHY):
            await self.dispatcher.dispatch(make_report(api=state))

        statuses = [event.status for event in self.alerter.events]
        assert statuses == ["critical", "recovered"]

        recovered = self.alerter.events[1]
        assert recovered.message.startswith("服务已恢复 (unhealthy -> healthy)")
        assert recovered.to_payload() == {
            'service': "api",
            'status': "recovered",
            'message': recovered.message,
            'timestamp': "2024-03-01T08:00:00Z",
            'hostname': "monitor-01",
        }

    @pytest.mark.asyncio
    async def test_unhealthy_to_unknown_is_silent(self):
        """测试不健康与未知之间切换不告警，但状态会更新"""
        await self.dispatcher.dispatch(make_report(api=ProbeState.UNHEALTHY))
        events = await self.dispatcher.dispatch(make_report(api=ProbeState.UNKNOWN))

        assert events == []
        assert len(self.alerter.events) == 1
        assert self.dispatcher.state.get_previous_state("api") is ProbeState.UNKNOWN

    @pytest.mark.asyncio
    async def test_degraded_to_unhealthy_escalates(self):
        """测试降级升级为不健康时再次告警"""
        await self.dispatcher.dispatch(make_report(api=ProbeState.DEGRADED))
        await self.dispatcher.dispatch(make_report(api=ProbeState.UNHEALTHY))

        assert [event.status for event in self.alerter.events] == ["warning", "critical"]

    @pytest.mark.asyncio
    async def test_failed_delivery_is_retried_next_cycle(self):
        """测试发送失败时不提交状态，下个周期重新告警"""
        self.alerter.fail = True
        events = await self.dispatcher.dispatch(make_report(api=ProbeState.UNHEALTHY))

        assert len(events) == 1
        assert self.dispatcher.state.get_previous_state("api") is ProbeState.HEALTHY

        self.alerter.fail = False
        events = await self.dispatcher.dispatch(make_report(api=ProbeState.UNHEALTHY))

        assert len(events) == 1
        assert len(self.alerter.events) == 1
        assert self.dispatcher.state.get_previous_state("api") is ProbeState.UNHEALTHY

    @pytest.mark.asyncio
    async def test_one_failing_alerter_does_not_block_others(self):
        """测试单个告警器失败不影响其他告警器"""
        failing = RecordingAlerter("failing", fail=True)
        self.dispatcher.add_alerter(failing)

        await self.dispatcher.dispatch(make_report(api=ProbeState.DEGRADED))

        assert len(self.alerter.events) == 1
        assert self.dispatcher.state.get_previous_state("api") is ProbeState.HEALTHY

    @pytest.mark.asyncio
    async def test_failing_alerter_retry_does_not_repeat_to_others(self):
        """测试持续失败的告警器只重试自身，正常告警器只收到一次"""
        failing = RecordingAlerter("failing", fail=True)
        self.dispatcher.add_alerter(failing)
        report = make_report(api=ProbeState.UNHEALTHY)

        for _ in range(3):
            await self.dispatcher.dispatch(report)

        assert len(self.alerter.events) == 1
        assert self.dispatcher.state.get_previous_state("api") is ProbeState.HEALTHY
        assert self.dispatcher.pending["api"].failed == {failing}

        failing.fail = False
        events = await self.dispatcher.dispatch(report)

        assert len(events) == 1
        assert events[0] is self.alerter.events[0]
        assert failing.events == [self.alerter.events[0]]
        assert len(self.alerter.events) == 1
        assert self.dispatcher.state.get_previous_state("api") is ProbeState.UNHEALTHY
        assert self.dispatcher.pending == {}

        assert await self.dispatcher.dispatch(report) == []

    @pytest.mark.asyncio
    async def test_pending_alert_then_recovery_notifies_delivered_alerters(self):
        """测试未确认告警期间恢复健康，已收到告警的告警器会收到恢复通知"""
        failing = RecordingAlerter("failing", fail=True)
        self.dispatcher.add_alerter(failing)

        await self.dispatcher.dispatch(make_report(api=ProbeState.UNHEALTHY))
        await self.dispatcher.dispatch(make_report(api=ProbeState.HEALTHY))

        assert [event.status for event in self.alerter.events] == ["critical", "recovered"]
        assert failing.events == []
        assert self.dispatcher.state.get_previous_state("api") is ProbeState.HEALTHY
        assert self.dispatcher.pending == {}

    @pytest.mark.asyncio
    async def test_pending_alert_unknown_keeps_retrying_same_event(self):
        """测试未确认期间 unhealthy -> unknown 不产生新告警，继续重试原告警"""
        failing = RecordingAlerter("failing", fail=True)
        self.dispatcher.add_alerter(failing)

        await self.dispatcher.dispatch(make_report(api=ProbeState.UNHEALTHY))
        failing.fail = False
        await self.dispatcher.dispatch(make_report(api=ProbeState.UNKNOWN))

        assert len(self.alerter.events) == 1
        assert failing.events == self.alerter.events
        assert self.dispatcher.state.get_previous_state("api") is ProbeState.UNKNOWN

    @pytest.mark.asyncio
    async def test_targets_are_delivered_concurrently(self):
        """测试不同目标的告警并发投递"""
        alerter = SlowAlerter()
        dispatcher = AlertDispatcher([alerter], hostname="monitor-01")

        events = await dispatcher.dispatch(make_report(
            api=ProbeState.UNHEALTHY, db=ProbeState.DEGRADED, web=ProbeState.UNKNOWN))

        assert len(events) == 3
        assert alerter.peak == 3

    @pytest.mark.asyncio
    async def test_without_alerters_state_is_committed(self):
        """测试未配置告警器时仍记录告警日志并提交状态"""
        dispatcher = AlertDispatcher(hostname="monitor-01")
        events = await dispatcher.dispatch(make_report(api=ProbeState.DEGRADED))

        assert len(events) == 1
        assert dispatcher.state.get_previous_state("api") is ProbeState.DEGRADED

    def test_evaluate_does_not_modify_state(self):
        """测试evaluate不修改状态"""
        report = make_report(api=ProbeState.UNHEALTHY, db=ProbeState.HEALTHY)

        first = self.dispatcher.evaluate(report)
        second = self.dispatcher.evaluate(report)

        assert [event.target_name for event in first] == ["api"]
        assert len(second) == 1
        assert self.dispatcher.state.get_all_states() == {}

    @pytest.mark.asyncio
    async def test_alert_on_overall(self):
        """测试整体状态告警"""
        dispatcher = AlertDispatcher([self.alerter], alert_on_overall=True, hostname="monitor-01")

        await dispatcher.dispatch(make_report(api=ProbeState.UNHEALTHY, db=ProbeState.HEALTHY))

        names = [event.target_name for event in self.alerter.events]
        assert names == ["api", SYSTEM_TARGET]
        assert self.alerter.events[1].message == "服务状态: unhealthy - System health check failed"

    @pytest.mark.asyncio
    async def test_send_test_alert(self):
        """测试发送测试告警不影响状态"""
        assert await self.dispatcher.send_test_alert() is True
        assert self.alerter.events[0].target_name == "test-service"
        assert self.dispatcher.state.get_all_states() == {}

        assert await AlertDispatcher(hostname="h").send_test_alert() is False

    def test_add_alerter_rejects_non_alerter(self):
        """测试添加非告警器对象"""
        with pytest.raises(AlertConfigError):
            self.dispatcher.add_alerter(object())

    def test_get_alert_stats(self):
        """测试告警统计信息"""
        stats = self.dispatcher.get_alert_stats()

        assert stats['alerter_count'] == 1
        assert stats['alerter_names'] == ["recorder"]
        assert stats['alert_on_overall'] is False


class TestCreateAlerter:
    """告警器创建测试类"""

    def test_create_webhook(self):
        """测试创建webhook告警器"""
        alerter = create_alerter({'name': 'ops', 'type': 'webhook', 'url': 'https://hooks.example.com/x'})

        assert isinstance(alerter, WebhookAlerter)
        assert alerter.name == 'ops'

    def test_unsupported_type(self):
        """测试不支持的告警器类型"""
        with pytest.raises(AlertConfigError):
            create_alerter({'name': 'sms', 'type': 'aliyun_sms'})

    def test_from_config(self):
        """测试根据配置列表创建分发器"""
        dispatcher = AlertDispatcher.from_config(
            [{'name': 'a', 'type': 'webhook', 'url': 'https://hooks.example.com/a'},
             {'name': 'b', 'type': 'http', 'url': 'http://localhost:9000/b'}],
            alert_on_overall=True
        )

        assert [alerter.name for alerter in dispatcher.alerters] == ['a', 'b']
        assert dispatcher.alert_on_overall is True
