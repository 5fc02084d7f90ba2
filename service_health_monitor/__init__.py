"""服务健康监控

周期性检查容器、HTTP 端点和数据库的健康状态，汇总整体状态，
并在状态变化时通过 webhook 发出告警。
"""

__version__ = "1.0.0"
