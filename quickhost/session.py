"""User session and credit ticker.

The session owns the signed-in user's profile and a local credit balance.
While active, a ticker task adds CREDIT_INCREMENT every CREDIT_INTERVAL
seconds and writes the new absolute value to the platform without waiting
for the write (write-behind). Failed tick writes are logged, never rolled
back; the next tick writes a fresh absolute value. Writes are applied in
the order they were issued, so the stored balance ends at the local one.
"""

import asyncio
import enum
import logging
from typing import Callable, Optional

from quickhost.client import QuickHostClient
from quickhost.constants import CREDIT_INCREMENT, CREDIT_INTERVAL_SECONDS
from quickhost.errors import BackendError, QuickHostError, ValidationError

logger = logging.getLogger(__name__)

PROFILES_TABLE = "profiles"


class SessionState(str, enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    LOADING = "loading"
    ACTIVE = "active"


class Session:
    """Explicit session object passed to the site service and mailbox view.

    ``auto_tick=False`` disables the background ticker; ``tick()`` can then
    be driven manually.
    """

    def __init__(
        self,
        client: QuickHostClient,
        interval: float = CREDIT_INTERVAL_SECONDS,
        increment: int = CREDIT_INCREMENT,
        auto_tick: bool = True,
        on_change: Optional[Callable[[int], None]] = None,
    ):
        self.client = client
        self.interval = interval
        self.increment = increment
        self.auto_tick = auto_tick
        self.on_change = on_change

        self.state = SessionState.UNAUTHENTICATED
        self.user: Optional[dict] = None
        self.profile: Optional[dict] = None
        self.credits = 0

        self._ticker: Optional[asyncio.Task] = None
        self._pending: set[asyncio.Task] = set()
        # Serializes credit writes so the last value issued is the last stored
        self._write_lock = asyncio.Lock()

    @property
    def user_id(self) -> Optional[str]:
        return self.user["id"] if self.user else None

    @property
    def is_active(self) -> bool:
        return self.state is SessionState.ACTIVE

    def require_active(self) -> str:
        """Return the user id, or raise if nobody is signed in."""
        if not self.is_active or not self.user_id:
            raise ValidationError("Not signed in")
        return self.user_id

    # ── Transitions ─────────────────────────────────────────────────────

    async def sign_up(self, email: str, password: str) -> None:
        await self._transition(SessionState.LOADING)
        try:
            data = await self.client.sign_up(email, password)
        except QuickHostError:
            await self._transition(SessionState.UNAUTHENTICATED)
            raise
        await self._establish(data["user"])

    async def sign_in(self, email: str, password: str) -> None:
        await self._transition(SessionState.LOADING)
        try:
            data = await self.client.sign_in(email, password)
        except QuickHostError:
            await self._transition(SessionState.UNAUTHENTICATED)
            raise
        await self._establish(data["user"])

    async def resume(self) -> None:
        """Establish a session from a token the client already holds."""
        await self._transition(SessionState.LOADING)
        try:
            user = await self.client.current_user()
        except QuickHostError:
            await self._transition(SessionState.UNAUTHENTICATED)
            raise
        await self._establish(user)

    async def sign_out(self) -> None:
        """Stop the ticker, wait for in-flight writes and reset to defaults."""
        await self._transition(SessionState.UNAUTHENTICATED)
        await self.flush()
        try:
            await self.client.sign_out()
        finally:
            self._reset()

    async def pause(self) -> None:
        """Stop earning without signing out; in-flight writes are awaited."""
        await self._stop_ticker()
        await self.flush()

    async def _establish(self, user: dict) -> None:
        self.user = user
        try:
            await self.refresh_profile()
        except QuickHostError:
            self._reset()
            await self._transition(SessionState.UNAUTHENTICATED)
            raise
        await self._transition(SessionState.ACTIVE)
        logger.info(f"Session active for {user.get('email')} with {self.credits} credits")

    async def _transition(self, state: SessionState) -> None:
        await self._stop_ticker()
        self.state = state
        if state is SessionState.ACTIVE and self.auto_tick and self.interval > 0:
            self._ticker = asyncio.create_task(self._tick_loop())

    async def _stop_ticker(self) -> None:
        if self._ticker is None:
            return
        ticker, self._ticker = self._ticker, None
        ticker.cancel()
        try:
            await ticker
        except asyncio.CancelledError:
            pass

    def _reset(self) -> None:
        self.user = None
        self.profile = None
        self._set_credits(0)

    # ── Credits ─────────────────────────────────────────────────────────

    async def refresh_profile(self) -> dict:
        """Fetch the profile row and seed the local balance from it."""
        if not self.user_id:
            raise ValidationError("Not signed in")
        profile = await self.client.fetch_by_id(PROFILES_TABLE, self.user_id)
        self.profile = profile
        self._set_credits(int(profile.get("credits") or 0))
        return profile

    def _set_credits(self, value: int) -> None:
        self.credits = value
        if self.on_change:
            self.on_change(value)

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.tick()

    def tick(self) -> int:
        """Add one increment and schedule its persistence. Returns the new balance."""
        if not self.is_active:
            return self.credits
        self._set_credits(self.credits + self.increment)
        self._schedule_write(self.credits)
        return self.credits

    def _schedule_write(self, value: int) -> None:
        task = asyncio.create_task(self._write_credits(self.user_id, value))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _write_credits(self, user_id: str, value: int) -> None:
        try:
            async with self._write_lock:
                await self.client.update(PROFILES_TABLE, user_id, {"credits": value})
        except QuickHostError as e:
            logger.warning(f"Failed to persist credits ({value}): {e}")

    async def flush(self) -> None:
        """Wait for every in-flight tick write."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    def has_sufficient_credits(self, cost: int) -> bool:
        return self.credits >= cost

    async def debit(self, cost: int) -> int:
        """Spend ``cost`` credits.

        In-flight tick writes are awaited first so none of them can land
        after the debit. Raises ValidationError, before any backend call,
        when the balance is short. The local balance drops immediately; if
        the write fails the amount is added back and BackendError is raised.
        """
        self.require_active()
        # A tick write still in flight carries the pre-debit balance
        await self.flush()
        user_id = self.require_active()
        if not self.has_sufficient_credits(cost):
            raise ValidationError(
                f"Insufficient credits: need {cost}, have {self.credits}"
            )

        self._set_credits(self.credits - cost)
        value = self.credits
        try:
            async with self._write_lock:
                await self.client.update(PROFILES_TABLE, user_id, {"credits": value})
        except QuickHostError as e:
            self._set_credits(self.credits + cost)
            raise BackendError(f"Failed to debit credits: {e}") from e
        return self.credits
