"""World Airport Codes crawling subsystem.

Structure:
- base.py: errors, result accumulator and the spider contract
- normalize.py: text cleanup, DMS and numeric coercion
- mapper.py: positional values -> AirportRecord
- page.py / client.py: selectolax pages and the batched httpx client
- spiders/: the two-level index/detail spider
- pipeline.py: JSON / JSONL export writer and reader
- runner.py: CLI entrypoint

Uses httpx (async, batched with retry/backoff) + selectolax parsing.
"""
