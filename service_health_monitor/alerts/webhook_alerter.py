"""Webhook告警器实现"""

import asyncio
from typing import Dict, Any
from urllib.parse import urlparse

import aiohttp

from .base import BaseAlerter
from ..models.health_check import AlertEvent
from ..utils.exceptions import AlertConfigError, AlertSendError
from ..utils.log_manager import get_logger


class WebhookAlerter(BaseAlerter):
    """Webhook告警器，通过HTTP POST发送JSON告警

    负载格式：
        {"service": ..., "status": "warning|critical|recovered",
         "message": ..., "timestamp": "<ISO8601 UTC>", "hostname": ...}

    发送失败不在同一周期内重试。
    """

    def __init__(self, name: str, config: Dict[str, Any]):
        """
        初始化Webhook告警器

        Args:
            name: 告警器名称
            config: 告警器配置
        """
        super().__init__(name, config)
        self.logger = get_logger(f'alerter.webhook.{self.name}')

        self.url = config.get('url', '')
        self.headers = {'Content-Type': 'application/json'}
        if isinstance(config.get('headers'), dict):
            self.headers.update(config['headers'])
        self.ssl_verify = config.get('ssl_verify', True)

        if not self.validate_config():
            raise AlertConfigError(f"Webhook告警器配置无效: {name}", alert_name=name)

    def validate_config(self) -> bool:
        """
        验证配置参数是否有效

        Returns:
            bool: 配置是否有效
        """
        if not self.url:
            self.logger.error(f"Webhook告警器 {self.name} 缺少URL配置")
            return False

        parsed_url = urlparse(self.url)
        if parsed_url.scheme not in ('http', 'https') or not parsed_url.netloc:
            self.logger.error(f"Webhook告警器 {self.name} URL格式无效: {self.url}")
            return False

        if not isinstance(self.config.get('headers', {}), dict):
            self.logger.error(f"Webhook告警器 {self.name} headers 必须是字典类型")
            return False

        timeout = self.get_timeout()
        if not isinstance(timeout, (int, float)) or timeout <= 0:
            self.logger.error(f"Webhook告警器 {self.name} 超时时间无效: {timeout}")
            return False

        return True

    async def send_alert(self, event: AlertEvent) -> bool:
        """
        发送告警事件

        Args:
            event: 告警事件

        Returns:
            bool: 发送是否成功

        Raises:
            AlertSendError: 网络错误、超时或非2xx响应
        """
        payload = event.to_payload()
        self.logger.debug(f"发送告警: {payload}")

        timeout = aiohttp.ClientTimeout(total=self.get_timeout())
        connector = aiohttp.TCPConnector(ssl=True if self.ssl_verify else False)
        if not self.ssl_verify:
            self.logger.warning(f"Webhook告警器 {self.name} 已禁用SSL验证")

        try:
            async with aiohttp.ClientSession(timeout=timeout, connector=connector) as session:
                async with session.post(self.url, json=payload, headers=self.headers) as response:
                    response_text = await response.text()
                    if 200 <= response.status < 300:
                        self.logger.info(
                            f"Webhook告警器 {self.name} 发送成功 "
                            f"(服务: {event.target_name}, 状态: {event.status})"
                        )
                        return True

                    raise AlertSendError(
                        f"Webhook返回错误响应 (状态码: {response.status}, 响应: {response_text[:200]})",
                        alert_name=self.name
                    )

        except aiohttp.ClientError as e:
            raise AlertSendError(f"Webhook请求失败: {e}", alert_name=self.name, cause=e)
        except asyncio.TimeoutError as e:
            raise AlertSendError("Webhook请求超时", alert_name=self.name, cause=e)

    def get_config_summary(self) -> Dict[str, Any]:
        """
        获取配置摘要（用于调试和监控）

        Returns:
            Dict[str, Any]: 配置摘要
        """
        return {
            'name': self.name,
            'type': 'webhook',
            'url': self.url,
            'timeout': self.get_timeout(),
            'ssl_verify': self.ssl_verify,
            'headers_count': len(self.headers)
        }
