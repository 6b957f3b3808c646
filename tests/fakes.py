"""Test doubles for the token resolver and the share client."""
import asyncio
from typing import Callable, List, Optional, Sequence, Tuple

from sharetrack.services import ShareContext, ShareOutcome

VALID_TOKEN = "tok_" + "a" * 40


class FakeResolver:
    def __init__(self, token: Optional[str] = VALID_TOKEN):
        self.token = token
        self.calls: List[Tuple[str, str]] = []

    async def resolve(self, cookie: str, user_agent: str) -> Optional[str]:
        self.calls.append((cookie, user_agent))
        return self.token


class ExplodingResolver:
    async def resolve(self, cookie: str, user_agent: str) -> Optional[str]:
        raise RuntimeError("resolver blew up")


class FakeShareClient:
    """
    Returns outcomes from `outcomes` in order (repeating the last one), or
    success when none are given. `on_call(n)` runs after the n-th call.
    If `gate` is set, every call waits for it first.
    """

    def __init__(
        self,
        outcomes: Sequence[ShareOutcome] = (),
        on_call: Optional[Callable[[int], None]] = None,
        gate: Optional[asyncio.Event] = None,
    ):
        self.outcomes = list(outcomes)
        self.on_call = on_call
        self.gate = gate
        self.calls = 0
        self.contexts: List[ShareContext] = []

    async def share(self, context: ShareContext) -> ShareOutcome:
        if self.gate is not None:
            await self.gate.wait()
        self.calls += 1
        self.contexts.append(context)
        if self.outcomes:
            outcome = self.outcomes[min(self.calls - 1, len(self.outcomes) - 1)]
        else:
            outcome = ShareOutcome.success
        if self.on_call is not None:
            self.on_call(self.calls)
        return outcome


class RaisingShareClient:
    def __init__(self):
        self.calls = 0

    async def share(self, context: ShareContext) -> ShareOutcome:
        self.calls += 1
        raise ValueError("malformed response")


class GatedResolver(FakeResolver):
    """Resolves only once `gate` is set."""

    def __init__(self, gate: asyncio.Event, token: Optional[str] = VALID_TOKEN):
        super().__init__(token)
        self.gate = gate

    async def resolve(self, cookie: str, user_agent: str) -> Optional[str]:
        self.calls.append((cookie, user_agent))
        await self.gate.wait()
        return self.token
