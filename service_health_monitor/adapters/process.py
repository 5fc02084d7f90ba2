"""子进程执行工具"""

import asyncio
from dataclasses import dataclass
from typing import Sequence

from ..utils.exceptions import RuntimeUnavailableError
from ..utils.log_manager import get_logger

logger = get_logger('adapters.process')


@dataclass(frozen=True)
class CommandResult:
    """命令执行结果"""
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


async def run_command(args: Sequence[str]) -> CommandResult:
    """
    异步执行外部命令

    超时由调用方通过 asyncio.wait_for 控制，取消时会终止子进程。

    Args:
        args: 命令及参数

    Returns:
        CommandResult: 执行结果

    Raises:
        RuntimeUnavailableError: 可执行文件不存在或无法启动
    """
    logger.debug(f"执行命令: {' '.join(args)}")
    try:
        process = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE
        )
    except FileNotFoundError as e:
        raise RuntimeUnavailableError(f"命令不存在: {args[0]}", cause=e)
    except PermissionError as e:
        raise RuntimeUnavailableError(f"没有权限执行命令: {args[0]}", cause=e)

    try:
        stdout, stderr = await process.communicate()
    except asyncio.CancelledError:
        if process.returncode is None:
            process.kill()
            await process.wait()
        raise

    return CommandResult(
        returncode=process.returncode,
        stdout=stdout.decode('utf-8', errors='replace').strip(),
        stderr=stderr.decode('utf-8', errors='replace').strip()
    )
