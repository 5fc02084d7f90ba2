"""状态汇总

将一个周期内的探测结果汇总为整体状态。纯函数，与结果顺序无关。
"""

from typing import Iterable, Dict

from ..models.health_check import ProbeResult, ProbeState


def worst_state(states: Iterable[ProbeState]) -> ProbeState:
    """
    按严重程度取最差状态，UNKNOWN 按 UNHEALTHY 计

    Args:
        states: 状态序列

    Returns:
        ProbeState: HEALTHY / DEGRADED / UNHEALTHY 之一
    """
    severity = max((state.severity for state in states), default=0)
    if severity >= ProbeState.UNHEALTHY.severity:
        return ProbeState.UNHEALTHY
    if severity >= ProbeState.DEGRADED.severity:
        return ProbeState.DEGRADED
    return ProbeState.HEALTHY


def aggregate_state(results: Iterable[ProbeResult]) -> ProbeState:
    """
    汇总探测结果的整体状态

    全部 HEALTHY 时为 HEALTHY；存在 UNHEALTHY 或 UNKNOWN 时为 UNHEALTHY；
    否则为 DEGRADED。空序列视为 HEALTHY。

    Args:
        results: 探测结果序列

    Returns:
        ProbeState: 整体状态
    """
    return worst_state(result.state for result in results)


def summarize(results: Iterable[ProbeResult]) -> Dict[str, int]:
    """统计各状态的结果数量"""
    summary = {state.value: 0 for state in ProbeState}
    for result in results:
        summary[result.state.value] += 1
    return summary
