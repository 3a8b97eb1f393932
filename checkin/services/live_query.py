from typing import Awaitable, Callable, Generic, Optional, TypeVar

from checkin.constants import MIN_SEARCH_TERM_LENGTH
from checkin.exceptions import CheckInException

T = TypeVar("T")


class Generation:
    """
    Monotonic counter for one kind of asynchronous work. A unit of work captures
    the value it was started with and may only commit while that value is
    still current.
    """

    def __init__(self):
        self.value = 0

    def advance(self) -> int:
        self.value += 1
        return self.value

    def is_current(self, token: int) -> bool:
        return token == self.value


class LiveQuery(Generic[T]):
    """
    Search-as-you-type state for one search box.

    Each call to `search` supersedes the previous one. Results of a superseded
    search are dropped even if they arrive last, and `clear` drops whatever is
    still in flight.
    """

    def __init__(self, fetch: Callable[[str], Awaitable[list[T]]], min_length: int = MIN_SEARCH_TERM_LENGTH):
        self._fetch = fetch
        self._generation = Generation()
        self.min_length = min_length
        self.term = ""
        self.results: list[T] = []
        self.error: Optional[str] = None
        self.searching = False

    async def search(self, term: Optional[str]) -> bool:
        """Run a search for `term`. Returns True when its results were committed."""
        token = self._generation.advance()
        self.term = (term or "").strip()
        self.error = None

        if len(self.term) < self.min_length:
            self.results = []
            self.searching = False
            return False

        self.searching = True
        try:
            results = await self._fetch(self.term)
        except CheckInException as e:
            if not self._generation.is_current(token):
                return False
            self.results = []
            self.error = e.message
            self.searching = False
            return False

        if not self._generation.is_current(token):
            return False

        self.results = results
        self.searching = False
        return True

    def clear(self):
        self._generation.advance()
        self.term = ""
        self.results = []
        self.error = None
        self.searching = False
