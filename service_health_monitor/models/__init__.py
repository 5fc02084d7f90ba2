"""数据模型模块"""

from .health_check import (
    TargetKind, ProbeState, ServiceTarget, ProbeResult, CycleReport, AlertEvent
)

__all__ = ['TargetKind', 'ProbeState', 'ServiceTarget', 'ProbeResult',
           'CycleReport', 'AlertEvent']
