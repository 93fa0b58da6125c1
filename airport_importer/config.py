import os
from dataclasses import dataclass
from typing import Optional

ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

DEFAULT_BASE_URL = "http://www.world-airport-codes.com"
# The site answers with this message (HTTP 200) when its database is down.
DEFAULT_BACKOFF_PATTERN = r"Can't connect to local MySQL server"


@dataclass(frozen=True)
class CrawlSettings:
    base_url: str = DEFAULT_BASE_URL
    backoff_pattern: str = DEFAULT_BACKOFF_PATTERN
    timeout: float = 15.0
    concurrency: int = 8
    max_attempts: int = 5
    backoff_factor: float = 1.0
    user_agent: str = "WAC-Importer/0.1"
    output_dir: str = os.path.join(ROOT_DIR, "data", "scraped", "airports")


def _load_env_from_file(root_dir: Optional[str] = None) -> None:
    """Load environment variables from a .env file at the project root if present.

    Only sets variables that aren't already present in the process environment.
    Avoids an external dependency on python-dotenv for this small use case.
    """
    env_path = os.path.join(root_dir or ROOT_DIR, ".env")
    if not os.path.isfile(env_path):
        return
    try:
        with open(env_path, "r", encoding="utf-8") as f:
            lines = f.readlines()
    except OSError:
        # Best-effort, like a missing file
        return
    for line in lines:
        s = line.strip()
        if not s or s.startswith("#") or "=" not in s:
            continue
        key, val = s.split("=", 1)
        key = key.strip()
        val = val.strip().strip('"').strip("'")
        if key and (key not in os.environ or not os.environ[key]):
            os.environ[key] = val


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip())
    except ValueError as exc:
        raise RuntimeError(
            f"Invalid value for {name}: {raw!r} (expected {cast.__name__}).\n"
            "Fix it in your environment or in the .env file at the project root."
        ) from exc


def get_settings() -> CrawlSettings:
    """Build crawl settings from WAC_* environment variables, loading .env first."""
    _load_env_from_file()
    d = CrawlSettings()
    return CrawlSettings(
        base_url=os.getenv("WAC_BASE_URL") or d.base_url,
        backoff_pattern=os.getenv("WAC_BACKOFF_PATTERN") or d.backoff_pattern,
        timeout=_env_number("WAC_TIMEOUT", d.timeout, float),
        concurrency=_env_number("WAC_CONCURRENCY", d.concurrency, int),
        max_attempts=_env_number("WAC_MAX_ATTEMPTS", d.max_attempts, int),
        backoff_factor=_env_number("WAC_BACKOFF_FACTOR", d.backoff_factor, float),
        user_agent=os.getenv("WAC_USER_AGENT") or d.user_agent,
        output_dir=os.getenv("WAC_OUTPUT_DIR") or d.output_dir,
    )
