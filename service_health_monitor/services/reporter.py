"""周期报告输出

把 CycleReport 转换为可读文本，并按状态级别写入日志。
"""

import logging
from typing import List

from ..models.health_check import CycleReport, ProbeState

STATE_SYMBOLS = {
    ProbeState.HEALTHY: '✓',
    ProbeState.DEGRADED: '⚠',
    ProbeState.UNHEALTHY: '✗',
    ProbeState.UNKNOWN: '?',
}

# 整体状态行，UNKNOWN 与 UNHEALTHY 同级
OVERALL_LABELS = {
    ProbeState.HEALTHY: 'HEALTHY',
    ProbeState.DEGRADED: 'DEGRADED',
    ProbeState.UNHEALTHY: 'UNHEALTHY',
    ProbeState.UNKNOWN: 'UNHEALTHY',
}

SEPARATOR = '=' * 40


def overall_label(report: CycleReport) -> str:
    return OVERALL_LABELS[report.overall_state]


def format_report(report: CycleReport) -> List[str]:
    """
    生成报告文本行

    Args:
        report: 周期报告

    Returns:
        List[str]: 文本行，按配置顺序每个目标一行
    """
    lines = [
        SEPARATOR,
        f"Health Check Report - {report.finished_at.strftime('%Y-%m-%d %H:%M:%S')}",
        SEPARATOR,
    ]

    for result in report.results:
        line = f"{STATE_SYMBOLS[result.state]} {result.target.name}: {result.state.value}"
        if result.detail:
            line += f" ({result.detail})"
        lines.append(line)

    lines.append(SEPARATOR)
    lines.append(f"Overall System Status: {overall_label(report)}")
    return lines


def log_report(report: CycleReport, logger: logging.Logger) -> None:
    """
    将报告写入日志：健康为 INFO，降级为 WARN，不健康或未知为 ERROR

    Args:
        report: 周期报告
        logger: 日志记录器
    """
    for result in report.results:
        text = f"{result.target.name}: {result.state.value}"
        if result.detail:
            text += f" - {result.detail}"

        if result.state is ProbeState.HEALTHY:
            logger.info(text)
        elif result.state is ProbeState.DEGRADED:
            logger.warning(text)
        else:
            logger.error(text)

    overall = report.overall_state
    text = f"Overall System Status: {overall_label(report)}"
    if overall is ProbeState.HEALTHY:
        logger.info(text)
    elif overall is ProbeState.DEGRADED:
        logger.warning(text)
    else:
        logger.error(text)
