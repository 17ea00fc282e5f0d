"""Location permission gates."""

from __future__ import annotations

import abc
import asyncio
import logging

import click

logger = logging.getLogger(__name__)


class PermissionGate(abc.ABC):
    """Grants or denies access to the live location."""

    @abc.abstractmethod
    async def request(self) -> bool:
        """Ask for permission; returns True when granted."""

    @abc.abstractmethod
    def check(self) -> bool:
        """Current permission state, without asking."""


class StaticPermissionGate(PermissionGate):
    """Gate with a fixed answer, optionally already granted before any request."""

    def __init__(self, granted: bool = True, pre_granted: bool = False):
        self.granted = granted
        self._state = pre_granted
        self.requests = 0

    async def request(self) -> bool:
        self.requests += 1
        self._state = self.granted
        return self._state

    def check(self) -> bool:
        return self._state


class PromptPermissionGate(PermissionGate):
    """Asks on the terminal once and remembers the answer."""

    def __init__(self, prompt: str = "Allow mapline to use your approximate location?"):
        self.prompt = prompt
        self._answer: bool | None = None

    async def request(self) -> bool:
        if self._answer is None:
            self._answer = await asyncio.to_thread(click.confirm, self.prompt, default=True)
            logger.info("Location permission %s", "granted" if self._answer else "denied")
        return self._answer

    def check(self) -> bool:
        return bool(self._answer)
