"""A persisted player session around the pull engine."""

import logging
import threading
from collections.abc import MutableMapping
from typing import Optional, Union

from banner import BannerKind, RandomSource
from gacha import (
    GlobalState,
    PullRecord,
    get_initial_state,
    grant_currency,
    perform_pull,
)
from storage import StorageConfig, clear_state, load_state, save_state

logger = logging.getLogger(__name__)


class GachaSession:
    """Owns one player's state, serializes pulls and saves after each call.

    Pity counters depend on draws being strictly ordered, so every operation
    holds the session lock for its whole duration.
    """

    def __init__(
        self,
        store: MutableMapping[str, str],
        config: Optional[StorageConfig] = None,
        rng: Optional[RandomSource] = None,
    ):
        self.store = store
        self.config = config or StorageConfig()
        self.rng = rng
        self._lock = threading.Lock()
        self._state = load_state(self.store, self.config)

    @property
    def state(self) -> GlobalState:
        """A snapshot of the current state."""
        with self._lock:
            return self._state.model_copy(deep=True)

    def pull(self, banner_kind: Union[BannerKind, str], count: int) -> list[PullRecord]:
        """Pull on a banner. An empty list means the pull was refused."""
        with self._lock:
            outcome = perform_pull(self._state, banner_kind, count, rng=self.rng)
            self._state = outcome.new_state
            save_state(self.store, self._state, self.config)
            return outcome.results

    def add_currency(self, amount: int) -> None:
        with self._lock:
            self._state = grant_currency(self._state, primary=amount)
            save_state(self.store, self._state, self.config)

    def reset(self) -> None:
        """Drop all progress and start over from a fresh state."""
        with self._lock:
            clear_state(self.store, self.config)
            self._state = get_initial_state()
            save_state(self.store, self._state, self.config)
            logger.info("Session state reset")
