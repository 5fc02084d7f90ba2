"""告警分发状态

记录每个目标上一次已确认的状态，用于边沿触发告警的状态变化检测。
由 AlertDispatcher 独占持有，并在每个周期显式传递。
"""

from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Deque, Dict, List, Optional

from ..models.health_check import ProbeState
from ..utils.log_manager import get_logger


@dataclass(frozen=True)
class StateTransition:
    """目标状态变化"""
    service_name: str
    old_state: ProbeState
    new_state: ProbeState
    timestamp: datetime

    @property
    def is_alert_edge(self) -> bool:
        """告警级别发生变化且进入 warning/critical"""
        return (self.new_state.alert_level is not None
                and self.new_state.alert_level != self.old_state.alert_level)

    @property
    def is_recovery(self) -> bool:
        """从非健康状态恢复为健康"""
        return self.new_state.is_healthy and self.old_state.alert_level is not None


class DispatcherState:
    """告警分发器的跨周期状态

    启动时所有目标的基线状态为 HEALTHY，基线本身不视为状态变化。
    """

    def __init__(self, baseline: ProbeState = ProbeState.HEALTHY, history_size: int = 100):
        """初始化状态

        Args:
            baseline: 未观测过的目标的初始状态
            history_size: 保留的状态变化记录数量
        """
        self.baseline = baseline
        self.previous_states: Dict[str, ProbeState] = {}
        self.transitions: Deque[StateTransition] = deque(maxlen=history_size)
        self.logger = get_logger('dispatcher_state')

    def get_previous_state(self, service_name: str) -> ProbeState:
        """获取目标上一次已确认的状态

        Args:
            service_name: 服务名称

        Returns:
            上一次的状态，未观测过时返回基线状态
        """
        return self.previous_states.get(service_name, self.baseline)

    def peek(self, service_name: str, new_state: ProbeState,
             timestamp: Optional[datetime] = None) -> Optional[StateTransition]:
        """计算状态变化但不提交

        Args:
            service_name: 服务名称
            new_state: 本周期观测到的状态
            timestamp: 观测时间

        Returns:
            状态发生变化时返回 StateTransition，否则返回 None
        """
        old_state = self.get_previous_state(service_name)
        if old_state == new_state:
            return None
        return StateTransition(
            service_name=service_name,
            old_state=old_state,
            new_state=new_state,
            timestamp=timestamp or datetime.now()
        )

    def commit(self, service_name: str, new_state: ProbeState,
               timestamp: Optional[datetime] = None) -> Optional[StateTransition]:
        """提交本周期的状态

        Args:
            service_name: 服务名称
            new_state: 本周期观测到的状态
            timestamp: 观测时间

        Returns:
            状态发生变化时返回 StateTransition，否则返回 None
        """
        transition = self.peek(service_name, new_state, timestamp)
        self.previous_states[service_name] = new_state

        if transition:
            self.transitions.append(transition)
            self.logger.debug(
                f"服务 {service_name} 状态变化: {transition.old_state.value} -> {new_state.value}")

        return transition

    def get_all_states(self) -> Dict[str, ProbeState]:
        """获取所有目标的已确认状态"""
        return self.previous_states.copy()

    def get_transitions(self, service_name: Optional[str] = None) -> List[StateTransition]:
        """获取状态变化记录

        Args:
            service_name: 服务名称，为 None 时返回全部
        """
        if service_name is None:
            return list(self.transitions)
        return [t for t in self.transitions if t.service_name == service_name]

    def reset(self):
        """清空所有状态"""
        self.previous_states.clear()
        self.transitions.clear()
