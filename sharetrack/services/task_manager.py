"""Supervises background share pipelines: token resolution followed by the share loop."""
import asyncio
import logging
import random
import string
import time
from dataclasses import dataclass
from typing import Dict, List

from sharetrack.config import PlatformConfig
from sharetrack.errors import ShareNotActiveError
from sharetrack.state import ShareLedger, ShareStatus, ShareTask

from .share_runner import CancelToken, ShareContext, ShareRunner
from .token_resolver import TokenResolver, mask_secret

_logger = logging.getLogger("sharetrack")

_ID_ALPHABET = string.ascii_lowercase + string.digits


@dataclass
class _RunningShare:
    task: asyncio.Task
    cancel: CancelToken


class ShareTaskManager:
    def __init__(
        self,
        ledger: ShareLedger,
        resolver: TokenResolver,
        runner: ShareRunner,
        platform: PlatformConfig,
    ):
        self.ledger = ledger
        self.resolver = resolver
        self.runner = runner
        self.platform = platform
        self._running: Dict[str, _RunningShare] = {}

    def new_share_id(self) -> str:
        while True:
            suffix = "".join(random.choices(_ID_ALPHABET, k=5))
            share_id = f"{int(time.time() * 1000)}{suffix}"
            if self.ledger.query(share_id) is None:
                return share_id

    def pick_user_agent(self) -> str:
        return random.choice(self.platform.user_agents)

    def active_ids(self) -> List[str]:
        return list(self._running)

    def submit(self, cookie: str, link: str, limit: int) -> ShareTask:
        """Record the share and schedule its pipeline. Returns before any network call."""
        share = self.ledger.create(ShareTask(id=self.new_share_id(), link=link, requested=limit))
        cancel = CancelToken()
        task = asyncio.create_task(self._run_pipeline(share.id, cookie, link, limit, cancel))
        self._running[share.id] = _RunningShare(task=task, cancel=cancel)
        _logger.info("Queued share share_id=%s limit=%d cookie=%s", share.id, limit, mask_secret(cookie))
        return share

    def cancel(self, share_id: str) -> ShareTask:
        running = self._running.get(share_id)
        share = self.ledger.query(share_id)
        if running is None or share is None or not self.ledger.is_active(share_id):
            raise ShareNotActiveError(share_id)
        running.cancel.cancel()
        _logger.info("Cancel requested share_id=%s", share_id)
        return share

    def _on_progress(self, share_id: str):
        def update(success: int, failed: int) -> None:
            self.ledger.update(share_id, success=success, failed=failed)

        return update

    async def _run_pipeline(self, share_id: str, cookie: str, link: str, limit: int, cancel: CancelToken) -> None:
        start = time.monotonic()
        _logger.info("Pipeline start share_id=%s", share_id)
        try:
            user_agent = self.pick_user_agent()
            token = await self.resolver.resolve(cookie, user_agent)
            if not token:
                self.ledger.update(share_id, status=ShareStatus.failed, error="token_not_resolved")
                return
            if cancel.cancelled:
                self.ledger.update(share_id, status=ShareStatus.cancelled, error="cancelled")
                return

            self.ledger.update(share_id, token=token)
            context = ShareContext(link=link, token=token, cookie=cookie, user_agent=user_agent)
            summary = await self.runner.run(context, limit, cancel=cancel, on_progress=self._on_progress(share_id))
            self.ledger.update(
                share_id,
                success=summary.success,
                failed=summary.failed,
                status=summary.status,
                error="cancelled" if summary.cancelled else None,
            )
        except asyncio.CancelledError:
            self.ledger.update(share_id, status=ShareStatus.cancelled, error="shutdown")
            raise
        except Exception as exc:
            _logger.exception("Pipeline failed share_id=%s error=%s", share_id, exc)
            self.ledger.update(share_id, status=ShareStatus.failed, error=str(exc) or exc.__class__.__name__)
        finally:
            self.ledger.complete(share_id)
            self._running.pop(share_id, None)
            _logger.info("Pipeline end share_id=%s elapsed_ms=%d", share_id, int((time.monotonic() - start) * 1000))

    async def wait(self, share_id: str) -> None:
        """Wait for one pipeline to finish (no-op if it is not running)."""
        running = self._running.get(share_id)
        if running is not None:
            await asyncio.shield(running.task)

    async def shutdown(self, timeout: float = 5.0) -> None:
        if not self._running:
            return
        _logger.info("Shutting down running shares count=%d", len(self._running))
        for running in self._running.values():
            running.cancel.cancel()
        tasks = [running.task for running in self._running.values()]
        _, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
