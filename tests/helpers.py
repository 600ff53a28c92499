"""
Test doubles shared by the redispool test suite
"""

import asyncio
import itertools
from typing import Any, List, Optional, Tuple


class FakeConnection:
    """Stand-in for a network client"""

    _ids = itertools.count(1)

    def __init__(self):
        self.id = next(self._ids)
        self.closed = False

    def __repr__(self) -> str:
        return f"<FakeConnection {self.id}>"


class FakeFactory:
    """In-memory resource factory with knobs for failures and slow creates"""

    def __init__(self):
        self.created: List[FakeConnection] = []
        self.destroyed: List[FakeConnection] = []
        self.create_calls = 0
        self.validate_calls = 0
        self.fail_creates = 0
        self.fail_always = False
        self.invalid = set()
        self.always_invalid = False
        self.destroy_error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None
        self.validate_gate: Optional[asyncio.Event] = None

    async def create(self) -> FakeConnection:
        self.create_calls += 1
        should_fail = self.fail_always or self.fail_creates > 0
        if self.fail_creates > 0:
            self.fail_creates -= 1

        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)

        if should_fail:
            raise ConnectionRefusedError("backend unavailable")
        conn = FakeConnection()
        self.created.append(conn)
        return conn

    async def destroy(self, conn: FakeConnection) -> None:
        await asyncio.sleep(0)
        if self.destroy_error is not None:
            raise self.destroy_error
        conn.closed = True
        self.destroyed.append(conn)

    async def validate(self, conn: FakeConnection) -> bool:
        self.validate_calls += 1
        if self.validate_gate is not None:
            await self.validate_gate.wait()
        else:
            await asyncio.sleep(0)
        return not self.always_invalid and conn not in self.invalid


class RecordingLogger:
    """PoolLogger capability that remembers every call"""

    def __init__(self):
        self.records: List[Tuple[str, str, Any]] = []

    def _record(self, level: str, message: str, detail: Any = None) -> None:
        self.records.append((level, message, detail))

    def error(self, message, detail=None):
        self._record("error", message, detail)

    def warn(self, message, detail=None):
        self._record("warn", message, detail)

    def info(self, message, detail=None):
        self._record("info", message, detail)

    def debug(self, message, detail=None):
        self._record("debug", message, detail)

    def messages(self, level: str) -> List[str]:
        return [message for lvl, message, _ in self.records if lvl == level]


async def settle(rounds: int = 20) -> None:
    """Let scheduled pool work run to completion"""
    for _ in range(rounds):
        await asyncio.sleep(0)


