import asyncio
import json
import string
import threading
from concurrent.futures import ThreadPoolExecutor

import httpx
import pytest

from airport_importer.config import CrawlSettings, DEFAULT_BACKOFF_PATTERN
from airport_importer.models.airport import AirportRecord
from airport_importer.services.crawl.base import ResultAccumulator, TransportError
from airport_importer.services.crawl.client import CrawlClient
from airport_importer.services.crawl.mapper import AIRPORT_KEYS
from airport_importer.services.crawl.spiders.world_airport_codes_spider import (
    CrawlState,
    WorldAirportCodesSpider,
)

BASE_URL = "http://wac.test"


def markers_for(letter: str) -> int:
    return string.ascii_lowercase.index(letter) % 4


def index_html(letter: str) -> str:
    rows = "".join(
        f'<tr><td><a href="/airport/{letter}{n}.html?l={letter}&amp;n={n}"><img src="/images/info.gif"></a></td></tr>'
        for n in range(markers_for(letter))
    )
    return f"<html><body><table>{rows}</table></body></html>"


def detail_html(code: str) -> str:
    values = [
        f": {code}",
        f": {code} Field",
        ": 9,000 ft.",
        ": 500 ft.",
        ": Testville",
        ": Testland",
        ": TL",
        ": Unknown (add)",
        ": 10 20 30W",
        ": 40 50 10N",
        ": 12",
        ": 3",
        ": Unavailable",
        ": Unavailable",
        ': <script>string1 = "ops"; string2 = "@"; string3 = "test.example";</script>',
        f': <a href="http://{code.lower()}.example/">Visit Website</a> (?)',
    ]
    spans = "".join(f'<p><span class="detail">{v}</span></p>' for v in values)
    return f'<html><body><div class="airportdetails">{spans}</div></body></html>'


def make_handler(calls=None, fail_path=None):
    lock = threading.Lock()

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if calls is not None:
            with lock:
                calls.append(path)
        if fail_path and path == fail_path:
            return httpx.Response(500, text="Internal Server Error")
        if path.startswith("/alphabetical/airport-code/"):
            letter = path.rsplit("/", 1)[1].split(".")[0]
            return httpx.Response(200, text=index_html(letter))
        if path.startswith("/airport/"):
            code = path.rsplit("/", 1)[1].split(".")[0].upper()
            return httpx.Response(200, text=detail_html(code))
        return httpx.Response(404, text="Not found")

    return handler


def make_spider(handler, **settings) -> WorldAirportCodesSpider:
    opts = dict(base_url=BASE_URL, concurrency=4, max_attempts=2, backoff_factor=0.0)
    opts.update(settings)
    return WorldAirportCodesSpider(
        settings=CrawlSettings(**opts),
        transport=httpx.MockTransport(handler),
        verbose=False,
    )


def expected_codes():
    return {f"{letter}{n}".upper() for letter in string.ascii_lowercase for n in range(markers_for(letter))}


def test_full_crawl_collects_every_linked_airport():
    calls = []
    spider = make_spider(make_handler(calls))
    records = spider.fetch()

    total_markers = sum(markers_for(l) for l in string.ascii_lowercase)
    assert len(records) == total_markers
    assert {r["airportCode"] for r in records} == expected_codes()
    assert all(r["airportName"] == f"{r['airportCode']} Field" for r in records)
    assert spider.state is CrawlState.COMPLETE
    assert spider.elapsed is not None

    index_calls = [c for c in calls if c.startswith("/alphabetical/")]
    assert sorted(index_calls) == [f"/alphabetical/airport-code/{l}.html" for l in string.ascii_lowercase]
    assert len(calls) == 26 + total_markers


def test_crawled_record_fields_are_normalized():
    records = make_spider(make_handler()).fetch()
    rec = next(r for r in records if r["airportCode"] == "B0")
    assert list(rec) == list(AIRPORT_KEYS)
    assert rec["runwayLength"] == 9000.0
    assert rec["runwayElevation"] == 500.0
    assert rec["airportGuide"] is None
    assert rec["longitude"] == pytest.approx(-(10 + 20 / 60 + 30 / 3600))
    assert rec["latitude"] == pytest.approx(40 + 50 / 60 + 10 / 3600)
    assert rec["worldAreaCode"] == 12
    assert rec["gmtOffset"] == 3
    assert rec["telephone"] is None
    assert rec["email"] == "ops@test.example"
    assert rec["url"] == "http://b0.example/"


def test_get_json_serializes_array():
    data = json.loads(make_spider(make_handler()).get_json())
    assert isinstance(data, list)
    assert len(data) == len(expected_codes())
    assert all(list(item) == list(AIRPORT_KEYS) for item in data)


def test_spider_runs_only_once():
    spider = make_spider(make_handler())
    spider.fetch()
    with pytest.raises(RuntimeError):
        spider.fetch()


def test_transport_failure_aborts_crawl():
    spider = make_spider(make_handler(fail_path="/airport/b0.html"))
    with pytest.raises(TransportError) as ei:
        spider.fetch()
    assert ei.value.uri.startswith("/airport/b0.html")
    assert ei.value.attempts == 2
    assert spider.state is not CrawlState.COMPLETE
    assert not spider.accumulator.frozen


def test_index_page_waits_for_its_detail_batch():
    spider = make_spider(make_handler())

    async def go():
        async with spider._build_client() as client:
            spider.client = client
            page = await client.fetch("/alphabetical/airport-code/d.html")
            scheduled = await spider.process_index_page(page)
            # All children are already imported when the handler returns
            return scheduled, len(spider.accumulator)

    scheduled, imported = asyncio.run(go())
    assert scheduled == markers_for("d") == 3
    assert imported == 3


def test_concurrent_detail_pages_are_all_recorded():
    spider = make_spider(make_handler(), concurrency=16)
    n = 50

    async def go():
        async with spider._build_client() as client:
            spider.client = client
            batch = [client.get(f"/airport/z{i}.html", spider.process_airport_page) for i in range(n)]
            await client.send(batch)

    asyncio.run(go())
    codes = [r.airportCode for r in spider.records]
    assert len(codes) == n
    assert len(set(codes)) == n


def test_accumulator_threaded_appends():
    acc = ResultAccumulator()
    n = 200

    def add(i):
        acc.append(AirportRecord(airportCode=f"T{i}", airportName=f"Test {i}"))

    with ThreadPoolExecutor(max_workers=16) as pool:
        list(pool.map(add, range(n)))

    codes = [r.airportCode for r in acc]
    assert len(codes) == n
    assert len(set(codes)) == n


def test_accumulator_rejects_appends_after_freeze():
    acc = ResultAccumulator()
    acc.append(AirportRecord(airportCode="A", airportName="Alpha"))
    frozen = acc.freeze()
    assert len(frozen) == 1
    with pytest.raises(RuntimeError):
        acc.append(AirportRecord(airportCode="B", airportName="Beta"))
    assert acc.to_list() == [frozen[0].to_dict()]


def _fetch(handler, uri="/x.html", **kwargs):
    opts = dict(backoff_pattern=DEFAULT_BACKOFF_PATTERN, backoff_factor=0.0, max_attempts=3)
    opts.update(kwargs)

    async def go():
        async with CrawlClient(BASE_URL, transport=httpx.MockTransport(handler), **opts) as client:
            page = await client.fetch(uri)
            return page, client.requests_sent

    return asyncio.run(go())


def test_client_backs_off_on_mysql_error_page():
    responses = [
        httpx.Response(200, text="Warning: Can't connect to local MySQL server through socket"),
        httpx.Response(200, text="Warning: Can't connect to local MySQL server through socket"),
        httpx.Response(200, text="<html>ok</html>"),
    ]
    page, sent = _fetch(lambda request: responses.pop(0))
    assert sent == 3
    assert "ok" in page.css_first("html").text()
    assert page.effective_url == f"{BASE_URL}/x.html"


def test_client_retries_server_errors_then_gives_up():
    with pytest.raises(TransportError) as ei:
        _fetch(lambda request: httpx.Response(503, text="busy"))
    assert ei.value.attempts == 3
    assert ei.value.status_code == 503


def test_client_does_not_retry_client_errors():
    with pytest.raises(TransportError) as ei:
        _fetch(lambda request: httpx.Response(404, text="missing"))
    assert ei.value.attempts == 1
    assert ei.value.status_code == 404


def test_client_retries_connection_errors():
    attempts = []

    def handler(request):
        attempts.append(1)
        if len(attempts) < 2:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, text="<p>fine</p>")

    page, sent = _fetch(handler)
    assert sent == 2
    assert page.status_code == 200


def test_client_backoff_waits_grow_exponentially():
    waits = []

    async def fake_sleep(seconds):
        waits.append(seconds)

    async def go():
        async with CrawlClient(
            BASE_URL,
            backoff_factor=0.5,
            max_attempts=4,
            transport=httpx.MockTransport(lambda request: httpx.Response(500)),
            sleep=fake_sleep,
        ) as client:
            await client.fetch("/x.html")

    with pytest.raises(TransportError):
        asyncio.run(go())
    assert waits == [0.5, 1.0, 2.0]


def test_send_empty_batch():
    async def go():
        async with CrawlClient(BASE_URL, transport=httpx.MockTransport(make_handler())) as client:
            return await client.send([])

    assert asyncio.run(go()) == []
