"""基于 aiohttp 的 HTTP 客户端适配器"""

import aiohttp

from .base import HttpClient


class AiohttpClient(HttpClient):
    """每次请求使用独立会话的 aiohttp 客户端"""

    def __init__(self, ssl_verify: bool = True):
        self.ssl_verify = ssl_verify

    async def get_status(self, url: str, timeout: float) -> int:
        client_timeout = aiohttp.ClientTimeout(total=timeout)
        connector = aiohttp.TCPConnector(ssl=True if self.ssl_verify else False)

        async with aiohttp.ClientSession(timeout=client_timeout,
                                         connector=connector) as session:
            async with session.get(url) as response:
                # 读取响应体，确保连接正常释放
                await response.read()
                return response.status
