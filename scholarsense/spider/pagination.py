"""
Pagination expander
Drives the profile list's "show more" control until the full list is rendered
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from scholarsense.config import SelectorConfig, config
from scholarsense.exceptions import ExtractionError, WaitTimeoutError
from scholarsense.spider.session import PageSession
from scholarsense.utils.logger import get_logger


class PaginationState(str, Enum):
    """Where the expansion loop stopped"""
    MORE_AVAILABLE = "more_available"  # round budget used up, control still usable
    EXHAUSTED = "exhausted"
    STALLED = "stalled"  # control stopped responding without revealing anything


@dataclass(frozen=True)
class PaginationOutcome:
    """Result of one expansion run"""
    state: PaginationState
    rounds: int
    visible_before: int
    visible_after: int

    @property
    def is_complete(self) -> bool:
        return self.state is PaginationState.EXHAUSTED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "rounds": self.rounds,
            "visible_before": self.visible_before,
            "visible_after": self.visible_after,
        }


class PaginationExpander:
    """
    Repeatedly activates the load-more control on one session

    Each round clicks the control once and waits for it to become
    interactable again. The loop ends in one of three states:

    - EXHAUSTED: the control is absent or disabled, or it stayed disabled
      after revealing new rows (the list is complete)
    - STALLED: the control stayed disabled and nothing new appeared
      within pagination_timeout
    - MORE_AVAILABLE: max_rounds activations were spent and the control is
      still usable

    Publication anchors are only counted inside the loop, to tell a finished
    list from a stalled control. Nothing is read from them until expansion
    ends; ProfileExtractor does that afterwards.
    """

    def __init__(
        self,
        selectors: Optional[SelectorConfig] = None,
        timeout: Optional[float] = None,
        max_rounds: Optional[int] = None,
    ):
        self.selectors = selectors or config.selectors
        self.timeout = timeout or config.spider.pagination_timeout
        self.max_rounds = max_rounds or config.spider.max_pagination_rounds
        self.logger = get_logger("spider.pagination")

    async def _visible_count(self, session: PageSession) -> int:
        """Number of publication rows rendered so far (count only)"""
        return len(await session.all(self.selectors.publication_anchor))

    async def _control_usable(self, session: PageSession) -> bool:
        controls = await session.all(self.selectors.load_more)
        if not controls:
            return False
        return await controls[0].is_enabled()

    async def expand(self, session: PageSession) -> PaginationOutcome:
        """
        Expand the list on an already-navigated session

        Args:
            session: Session showing the profile page

        Returns:
            PaginationOutcome describing why expansion stopped
        """
        visible_before = await self._visible_count(session)
        visible = visible_before
        rounds = 0
        state = PaginationState.MORE_AVAILABLE

        while rounds < self.max_rounds:
            if not await self._control_usable(session):
                state = PaginationState.EXHAUSTED
                break

            try:
                await session.click(self.selectors.load_more)
            except ExtractionError as e:
                self.logger.warning(f"Could not activate load-more control: {e}")
                state = PaginationState.STALLED
                break
            rounds += 1

            try:
                await session.wait_for(self.selectors.load_more, self.timeout, enabled=True)
            except WaitTimeoutError:
                now_visible = await self._visible_count(session)
                if now_visible > visible:
                    self.logger.debug(
                        f"Round {rounds}: control stayed disabled after revealing "
                        f"{now_visible - visible} rows"
                    )
                    visible = now_visible
                    state = PaginationState.EXHAUSTED
                else:
                    self.logger.warning(
                        f"Round {rounds}: load-more control unresponsive for {self.timeout}s"
                    )
                    state = PaginationState.STALLED
                break

            now_visible = await self._visible_count(session)
            self.logger.debug(f"Round {rounds}: {now_visible} publications visible")
            visible = now_visible
        else:
            # Budget spent; the control may still be usable
            if not await self._control_usable(session):
                state = PaginationState.EXHAUSTED

        outcome = PaginationOutcome(
            state=state,
            rounds=rounds,
            visible_before=visible_before,
            visible_after=visible,
        )
        self.logger.info(
            f"Pagination finished: {state.value} after {rounds} rounds "
            f"({visible_before} -> {visible} publications)"
        )
        return outcome
