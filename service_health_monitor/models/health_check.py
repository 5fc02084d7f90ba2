"""健康检查相关的数据模型"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, Optional, Tuple


class TargetKind(Enum):
    """监控目标类型"""
    CONTAINER = "container"
    HTTP = "http"
    DATABASE = "database"


class ProbeState(Enum):
    """探测状态"""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"

    @property
    def severity(self) -> int:
        """汇总用的严重程度，UNKNOWN 与 UNHEALTHY 同级"""
        return _SEVERITY[self]

    @property
    def alert_level(self) -> Optional[str]:
        """告警级别：None / warning / critical"""
        if self is ProbeState.HEALTHY:
            return None
        if self is ProbeState.DEGRADED:
            return "warning"
        return "critical"

    @property
    def is_healthy(self) -> bool:
        return self is ProbeState.HEALTHY


_SEVERITY = {
    ProbeState.HEALTHY: 0,
    ProbeState.DEGRADED: 1,
    ProbeState.UNHEALTHY: 2,
    ProbeState.UNKNOWN: 2,
}


@dataclass(frozen=True)
class ServiceTarget:
    """监控目标，启动时由配置生成，运行期间不可变"""
    name: str
    kind: TargetKind
    address: str


@dataclass(frozen=True)
class ProbeResult:
    """单个目标在某一时刻的探测结果"""
    target: ServiceTarget
    state: ProbeState
    detail: str = ""
    observed_at: datetime = field(default_factory=datetime.now)
    response_time: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def service_name(self) -> str:
        return self.target.name


@dataclass(frozen=True)
class CycleReport:
    """一个调度周期内所有探测结果的汇总"""
    results: Tuple[ProbeResult, ...]
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: datetime = field(default_factory=datetime.now)

    @property
    def overall_state(self) -> ProbeState:
        # 避免 models 与 services 之间的循环导入
        from ..services.aggregator import aggregate_state
        return aggregate_state(self.results)

    @property
    def duration(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()

    def get_result(self, service_name: str) -> Optional[ProbeResult]:
        """按目标名称查找结果"""
        for result in self.results:
            if result.target.name == service_name:
                return result
        return None

    def count_by_state(self) -> Dict[ProbeState, int]:
        counts = {state: 0 for state in ProbeState}
        for result in self.results:
            counts[result.state] += 1
        return counts


@dataclass(frozen=True)
class AlertEvent:
    """告警事件，对应一次对外通知"""
    target_name: str
    state: ProbeState
    message: str
    timestamp_utc: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    hostname: str = ""

    @property
    def status(self) -> str:
        """webhook 中的状态字段：warning / critical / recovered"""
        return self.state.alert_level or "recovered"

    def to_payload(self) -> Dict[str, Any]:
        """转换为 webhook JSON 负载"""
        return {
            'service': self.target_name,
            'status': self.status,
            'message': self.message,
            'timestamp': self.timestamp_utc.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ'),
            'hostname': self.hostname,
        }
