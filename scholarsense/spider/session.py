"""
Page session capability
Minimal interface the scrape pipeline needs from a rendering engine
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncContextManager, List, Optional


class ElementRef(ABC):
    """Handle to one rendered element"""

    @abstractmethod
    async def text(self, selector: Optional[str] = None) -> str:
        """
        Trimmed visible text of the element, or of its first descendant matching selector

        Returns:
            Text, or "" when the descendant does not exist

        Raises:
            ExtractionError: The DOM read itself failed
        """
        pass

    @abstractmethod
    async def href(self, selector: Optional[str] = None) -> Optional[str]:
        """Absolute link target of the element (or a descendant), None if there is none"""
        pass

    @abstractmethod
    async def is_enabled(self) -> bool:
        """Whether the element can currently be interacted with"""
        pass


class PageSession(ABC):
    """
    One rendering context (a browser tab)

    Sessions are acquired from a SessionProvider and must not be shared
    between concurrently running tasks.
    """

    @abstractmethod
    async def navigate(self, url: str) -> None:
        """
        Load a URL

        Raises:
            NavigationError: Target unreachable or not loaded within the navigation timeout
        """
        pass

    @abstractmethod
    async def text(self, selector: str) -> str:
        """
        Trimmed visible text of the first match

        Returns:
            Text, or "" when nothing matches (absence is not an error)

        Raises:
            ExtractionError: The DOM read itself failed
        """
        pass

    @abstractmethod
    async def all(self, selector: str) -> List[ElementRef]:
        """All matches in DOM order (possibly empty)"""
        pass

    @abstractmethod
    async def wait_for(self, selector: str, timeout: float, enabled: bool = False) -> None:
        """
        Suspend until the selector matches

        Args:
            selector: CSS selector
            timeout: Deadline in seconds
            enabled: Also require the match to be interactable (not disabled)

        Raises:
            WaitTimeoutError: Deadline elapsed
        """
        pass

    @abstractmethod
    async def click(self, selector: str) -> None:
        """Activate the first match"""
        pass


class SessionProvider(ABC):
    """Hands out page sessions and owns the rendering engine behind them"""

    async def start(self) -> None:
        """Bring up the rendering engine"""

    async def stop(self) -> None:
        """Shut down the rendering engine"""

    @abstractmethod
    def acquire(self) -> AsyncContextManager[PageSession]:
        """
        Async context manager yielding a fresh session

        The session is released when the block exits, on every path.
        """
        pass

    @asynccontextmanager
    async def running(self):
        """Context manager that starts and stops the provider"""
        await self.start()
        try:
            yield self
        finally:
            await self.stop()

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()
