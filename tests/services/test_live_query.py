import asyncio

from checkin.exceptions import StoreUnavailableException
from checkin.services.live_query import Generation, LiveQuery


class RecordingFetch:
    """Fetch that records terms and can hold specific terms until released."""

    def __init__(self, hold=()):
        self.terms = []
        self.hold = set(hold)
        self.release = asyncio.Event()

    async def __call__(self, term):
        self.terms.append(term)
        if term in self.hold:
            await self.release.wait()
        return [f"{term}-result"]


def test_generation():
    generation = Generation()
    token = generation.advance()

    assert generation.is_current(token)
    generation.advance()
    assert not generation.is_current(token)


def test_short_terms_do_not_query():
    async def scenario():
        fetch = RecordingFetch()
        query = LiveQuery(fetch)

        assert await query.search("a") is False
        assert await query.search(" an") is True
        assert await query.search("  ") is False
        return fetch, query

    fetch, query = asyncio.run(scenario())

    assert fetch.terms == ["an"]
    assert query.results == []
    assert query.term == ""


def test_short_term_clears_previous_results():
    async def scenario():
        query = LiveQuery(RecordingFetch(), min_length=3)

        await query.search("ana")
        assert query.results == ["ana-result"]

        await query.search("an")
        return query

    query = asyncio.run(scenario())

    assert query.results == []
    assert query.searching is False


def test_search_issues_one_query_per_term():
    async def scenario():
        fetch = RecordingFetch()
        query = LiveQuery(fetch)
        await query.search(" ana ")
        return fetch, query

    fetch, query = asyncio.run(scenario())

    assert fetch.terms == ["ana"]
    assert query.results == ["ana-result"]
    assert query.term == "ana"


def test_stale_slow_result_never_overwrites_newer_term():
    async def scenario():
        fetch = RecordingFetch(hold={"ana"})
        query = LiveQuery(fetch)

        slow = asyncio.create_task(query.search("ana"))
        await asyncio.sleep(0)

        assert await query.search("anab") is True
        assert query.results == ["anab-result"]

        fetch.release.set()
        return await slow, query

    committed, query = asyncio.run(scenario())

    assert committed is False
    assert query.results == ["anab-result"]
    assert query.term == "anab"


def test_clear_supersedes_in_flight_search():
    async def scenario():
        fetch = RecordingFetch(hold={"ana"})
        query = LiveQuery(fetch)

        slow = asyncio.create_task(query.search("ana"))
        await asyncio.sleep(0)
        assert query.searching is True

        query.clear()
        fetch.release.set()
        return await slow, query

    committed, query = asyncio.run(scenario())

    assert committed is False
    assert query.results == []
    assert query.searching is False


def test_search_error_is_recorded():
    async def failing(term):
        raise StoreUnavailableException("The record store could not be reached")

    async def scenario():
        query = LiveQuery(failing)
        committed = await query.search("ana")
        return committed, query

    committed, query = asyncio.run(scenario())

    assert committed is False
    assert query.error == "The record store could not be reached"
    assert query.results == []


def test_stale_error_is_discarded():
    release = None

    async def fetch(term):
        if term == "ana":
            await release.wait()
            raise StoreUnavailableException("late failure")
        return [term]

    async def scenario():
        nonlocal release
        release = asyncio.Event()
        query = LiveQuery(fetch)

        slow = asyncio.create_task(query.search("ana"))
        await asyncio.sleep(0)
        await query.search("anab")

        release.set()
        await slow
        return query

    query = asyncio.run(scenario())

    assert query.error is None
    assert query.results == ["anab"]
