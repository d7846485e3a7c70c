"""
Gavel - Logger Module
=====================

Tree-style logging for moderation events.

DESIGN:
    A moderation decision is a handful of related facts (guild, case,
    target, moderator), so structured events are written as a title with
    key/value branches:

        [02:30:45 PM UTC] 📋 Case Created
          ├─ Guild: 1234
          ├─ Case ID: #7
          └─ Action: ban

    Output goes to stdout and to a daily file under GAVEL_LOG_DIR/<date>/.
    Errors are also copied to a separate error file and, when a webhook
    URL is set and an event loop is running, posted to Discord.
    Dated folders older than LOG_RETENTION_DAYS are removed at startup.
"""

import asyncio
import os
import shutil
import uuid
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable, List, Optional, Tuple
from zoneinfo import ZoneInfo

import aiohttp


# =============================================================================
# Constants
# =============================================================================

LOGS_DIR = Path(os.getenv("GAVEL_LOG_DIR", "logs"))
LOG_RETENTION_DAYS = 7
LOG_TZ = ZoneInfo(os.getenv("GAVEL_LOG_TZ", "UTC"))

WEBHOOK_TIMEOUT = aiohttp.ClientTimeout(total=10)
WEBHOOK_ERROR_COLOR = 0xDC3545

Details = List[Tuple[str, str]]


def _branches(items: Details) -> List[str]:
    last = len(items) - 1
    return [f"  {'└─' if i == last else '├─'} {key}: {value}" for i, (key, value) in enumerate(items)]


# =============================================================================
# Tree Logger
# =============================================================================

class TreeLogger:
    """
    Console and file logger with tree-formatted details.

    Attributes:
        run_id: Short id stamped on every session header and webhook post.
        log_file: Today's main log file.
        error_file: Today's error-only log file.
    """

    def __init__(self) -> None:
        self.run_id = uuid.uuid4().hex[:8]
        self._webhook_url: Optional[str] = None

        today = datetime.now(LOG_TZ).date()
        self.log_dir = LOGS_DIR / today.isoformat()
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.log_file = self.log_dir / f"gavel-{today.isoformat()}.log"
        self.error_file = self.log_dir / f"gavel-errors-{today.isoformat()}.log"

        self._purge_expired(today)
        self._append(self.log_file, [
            "",
            "=" * 60,
            f"SESSION {self.run_id} STARTED {self._now('%Y-%m-%d %I:%M:%S %p %Z')}",
            "=" * 60,
        ])

    def set_webhook(self, url: Optional[str]) -> None:
        """Forward errors to this Discord webhook (None disables it)."""
        self._webhook_url = url

    # =========================================================================
    # Files
    # =========================================================================

    def _purge_expired(self, today) -> None:
        cutoff = today - timedelta(days=LOG_RETENTION_DAYS)
        for folder in LOGS_DIR.iterdir():
            if not folder.is_dir():
                continue
            try:
                folder_date = datetime.strptime(folder.name, "%Y-%m-%d").date()
            except ValueError:
                continue  # not a dated folder
            if folder_date < cutoff:
                shutil.rmtree(folder, ignore_errors=True)

    @staticmethod
    def _append(path: Path, lines: Iterable[str]) -> None:
        with open(path, "a", encoding="utf-8") as f:
            for line in lines:
                f.write(f"{line}\n")

    @staticmethod
    def _now(fmt: str) -> str:
        return datetime.now(LOG_TZ).strftime(fmt)

    def _emit(self, lines: List[str], is_error: bool = False) -> None:
        for line in lines:
            print(line)
        self._append(self.log_file, lines)
        if is_error:
            self._append(self.error_file, lines)

    def _line(self, emoji: str, msg: str) -> str:
        stamp = self._now("[%I:%M:%S %p %Z]")
        return f"{stamp} {emoji} {msg}" if emoji else f"{stamp} {msg}"

    # =========================================================================
    # Public API
    # =========================================================================

    def tree(self, title: str, items: Details, emoji: str = "📦") -> None:
        """
        Log a structured event.

        Args:
            title: Event heading.
            items: (key, value) rows shown as branches.
            emoji: Prefix for the heading.
        """
        self._emit(["", self._line(emoji, title), *_branches(items)])

    def debug(self, msg: str, details: Optional[Details] = None) -> None:
        """Only written when the DEBUG environment variable is set."""
        if os.getenv("DEBUG"):
            self._emit([self._line("🔍", msg), *_branches(details or [])])

    def info(self, msg: str, details: Optional[Details] = None) -> None:
        self._emit([self._line("ℹ️", msg), *_branches(details or [])])

    def warning(self, msg: str, details: Optional[Details] = None) -> None:
        self._emit([self._line("⚠️", msg), *_branches(details or [])])

    def error(self, msg: str, details: Optional[Details] = None) -> None:
        """
        Log an error to both files and forward it to the webhook.

        The webhook post is scheduled on the running loop; outside a loop
        (scripts, synchronous tests) it is skipped.
        """
        self._emit([self._line("❌", msg), *_branches(details or [])], is_error=True)

        if not self._webhook_url:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        loop.create_task(self._post_webhook(msg, details or []))

    # =========================================================================
    # Webhook
    # =========================================================================

    async def _post_webhook(self, title: str, details: Details) -> None:
        payload = {
            "embeds": [{
                "title": f"❌ {title}",
                "description": "\n".join(f"**{k}:** {v}" for k, v in details) or None,
                "color": WEBHOOK_ERROR_COLOR,
                "timestamp": datetime.now(LOG_TZ).isoformat(),
                "footer": {"text": f"Run {self.run_id}"},
            }]
        }
        try:
            async with aiohttp.ClientSession(timeout=WEBHOOK_TIMEOUT) as session:
                async with session.post(self._webhook_url, json=payload) as resp:
                    if resp.status >= 400:
                        print(f"[WEBHOOK] Error post rejected with status {resp.status}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            print(f"[WEBHOOK] Error post failed: {e}")


logger = TreeLogger()
"""Shared logger instance."""


__all__ = [
    "logger",
    "TreeLogger",
    "Details",
    "LOG_TZ",
]
