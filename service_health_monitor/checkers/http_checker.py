"""HTTP接口健康检查器"""

import asyncio
from dataclasses import dataclass
from typing import Dict, Any, Optional, List, Union
from urllib.parse import urlparse

import aiohttp

from .base import BaseHealthChecker, ProbeOutcome
from .factory import register_checker
from ..adapters.base import HttpClient
from ..adapters.http_client import AiohttpClient
from ..models.health_check import ProbeState, TargetKind


@dataclass(frozen=True)
class Endpoint:
    """单个HTTP检查端点"""
    url: str
    label: str
    required: bool = True
    expected_status: Union[int, List[int]] = 200

    def is_status_expected(self, status_code: int) -> bool:
        if isinstance(self.expected_status, list):
            return status_code in self.expected_status
        return status_code == self.expected_status


def _valid_url(url: Any) -> bool:
    if not isinstance(url, str) or not url.startswith(('http://', 'https://')):
        return False
    return bool(urlparse(url).netloc)


def _valid_status(expected_status: Any) -> bool:
    if isinstance(expected_status, bool):
        return False
    if isinstance(expected_status, int):
        return 100 <= expected_status <= 599
    if isinstance(expected_status, list) and expected_status:
        return all(_valid_status(status) for status in expected_status)
    return False


@register_checker('http')
class HttpEndpointHealthChecker(BaseHealthChecker):
    """HTTP接口健康检查器

    支持单个 url，或 base_url + endpoints 的多端点形式。任何必需端点
    失败时目标为 UNHEALTHY；仅可选端点失败时为 DEGRADED。
    """

    kind = TargetKind.HTTP
    default_timeout = 10

    def __init__(self, name: str, config: Dict[str, Any],
                 http_client: Optional[HttpClient] = None, **kwargs):
        """
        初始化HTTP健康检查器

        Args:
            name: 服务名称
            config: HTTP配置
            http_client: HTTP客户端适配器，默认使用 aiohttp
        """
        super().__init__(name, config)
        self.http_client = http_client or AiohttpClient(config.get('ssl_verify', True))

    def get_endpoints(self) -> List[Endpoint]:
        """根据配置生成端点列表"""
        default_status = self.config.get('expected_status', 200)

        if 'url' in self.config:
            url = self.config['url']
            return [Endpoint(url=url, label=urlparse(url).path or url,
                             expected_status=default_status)]

        base_url = str(self.config.get('base_url', '')).rstrip('/')
        endpoints = []
        for entry in self.config.get('endpoints', []):
            if isinstance(entry, str):
                entry = {'path': entry}
            path = entry.get('path', '')
            if path and not path.startswith('/'):
                path = '/' + path
            endpoints.append(Endpoint(
                url=f"{base_url}{path}",
                label=path or base_url,
                required=entry.get('required', True),
                expected_status=entry.get('expected_status', default_status)
            ))
        return endpoints

    def validate_config(self) -> bool:
        """
        验证HTTP配置

        Returns:
            bool: 配置是否有效
        """
        if 'url' not in self.config and 'base_url' not in self.config:
            self.logger.error("HTTP配置缺少 url 或 base_url")
            return False

        if 'base_url' in self.config:
            endpoints = self.config.get('endpoints')
            if not isinstance(endpoints, list) or not endpoints:
                self.logger.error("使用 base_url 时必须配置至少一个 endpoints")
                return False
            for entry in endpoints:
                if not isinstance(entry, (str, dict)):
                    self.logger.error(f"端点配置无效: {entry!r}")
                    return False
                if isinstance(entry, dict) and not _valid_status(entry.get('expected_status', 200)):
                    self.logger.error(f"端点期望状态码无效: {entry!r}")
                    return False

        if not _valid_status(self.config.get('expected_status', 200)):
            self.logger.error(f"期望状态码无效: {self.config.get('expected_status')}")
            return False

        for endpoint in self.get_endpoints():
            if not _valid_url(endpoint.url):
                self.logger.error(f"URL格式无效: {endpoint.url}")
                return False

        timeout = self.get_timeout()
        if not isinstance(timeout, (int, float)) or timeout <= 0:
            self.logger.error(f"超时时间无效: {timeout}")
            return False

        return True

    def describe_address(self) -> str:
        return ", ".join(endpoint.url for endpoint in self.get_endpoints())

    async def _check_endpoint(self, endpoint: Endpoint) -> Dict[str, Any]:
        """检查单个端点，失败不抛出异常"""
        try:
            status_code = await self.http_client.get_status(endpoint.url, self.get_timeout())
        except asyncio.TimeoutError:
            return {'endpoint': endpoint, 'ok': False, 'status': None, 'error': 'timeout'}
        except aiohttp.ClientError as e:
            return {'endpoint': endpoint, 'ok': False, 'status': None, 'error': str(e) or type(e).__name__}

        return {
            'endpoint': endpoint,
            'ok': endpoint.is_status_expected(status_code),
            'status': status_code,
            'error': None
        }

    async def _probe(self) -> ProbeOutcome:
        endpoints = self.get_endpoints()
        outcomes = await asyncio.gather(*(self._check_endpoint(e) for e in endpoints))

        details = []
        metadata: Dict[str, Any] = {'endpoints': {}}
        required_failed = False
        optional_failed = False

        for outcome in outcomes:
            endpoint = outcome['endpoint']
            status_text = outcome['status'] if outcome['status'] is not None else '000'
            metadata['endpoints'][endpoint.url] = outcome['status']

            if outcome['ok']:
                details.append(f"{endpoint.label}: OK ({status_text})")
                self.logger.info(f"Endpoint {endpoint.label}: OK ({status_text})")
                continue

            reason = f"{status_text}" if outcome['error'] is None else f"{status_text}, {outcome['error']}"
            details.append(f"{endpoint.label}: FAILED ({reason})")
            self.logger.error(f"Endpoint {endpoint.label}: FAILED ({reason})")
            if endpoint.required:
                required_failed = True
            else:
                optional_failed = True

        if required_failed:
            state = ProbeState.UNHEALTHY
        elif optional_failed:
            state = ProbeState.DEGRADED
        else:
            state = ProbeState.HEALTHY

        return state, "; ".join(details), metadata
