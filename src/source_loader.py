"""
Source loader for part question files.

A part is fetched from the first candidate location that responds, then run
through a tolerant parse chain and normalized into Question objects.
"""
import asyncio
import json
import logging
import re
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

import aiohttp

from .models import LoadResult, Question

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES = ("test{part}.js", "test{part}.json", "part{part}.json")

_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")
_ARRAY_PATTERN = re.compile(r"\[[\s\S]*\]")


class LoadError(Exception):
    """Raised when a part cannot be fetched, parsed or understood."""
    pass


class ResourceFetcher:
    """
    Resolves a resource location to its body text.

    Fetchers are async context managers so a whole aggregation can share one
    underlying connection pool. ``fetch`` returns None when the location did
    not respond successfully, which tells the loader to try the next one.
    Overlapping aggregations may enter the same fetcher; it is closed when
    the last of them exits.
    """

    _users = 0

    async def __aenter__(self) -> "ResourceFetcher":
        self._users += 1
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self._users -= 1
        if self._users == 0:
            await self.close()

    async def close(self) -> None:
        pass

    def describe(self, location: str) -> str:
        return location

    async def fetch(self, location: str) -> Optional[str]:
        raise NotImplementedError


class HttpFetcher(ResourceFetcher):
    """Fetches part files over HTTP relative to a base URL."""

    def __init__(self, base_url: str, timeout: Optional[float] = 10.0):
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    def describe(self, location: str) -> str:
        return self.base_url + location

    async def fetch(self, location: str) -> Optional[str]:
        url = self.describe(location)
        session = self._get_session()
        try:
            async with session.get(url) as response:
                if not response.ok:
                    logger.debug(f"GET {url} returned HTTP {response.status}")
                    return None
                return await response.text(encoding="utf-8")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"GET {url} failed: {e!r}")
            return None


class DirectoryFetcher(ResourceFetcher):
    """Reads part files from a local directory."""

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def describe(self, location: str) -> str:
        return str(self.directory / location)

    async def fetch(self, location: str) -> Optional[str]:
        path = self.directory / location
        try:
            return await asyncio.to_thread(path.read_text, encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to read {path}: {e}")
            return None


def _parse_direct(text: str) -> LoadResult:
    try:
        return LoadResult.success(json.loads(text))
    except json.JSONDecodeError as e:
        return LoadResult.failure(f"not valid JSON: {e}")


def _parse_embedded(pattern: re.Pattern, label: str):
    def attempt(text: str) -> LoadResult:
        match = pattern.search(text)
        if match is None:
            return LoadResult.failure(f"no {label} found")
        try:
            return LoadResult.success(json.loads(match.group(0)))
        except json.JSONDecodeError as e:
            return LoadResult.failure(f"embedded {label} is not valid JSON: {e}")
    return attempt


PARSE_CHAIN = (
    _parse_direct,
    _parse_embedded(_OBJECT_PATTERN, "object"),
    _parse_embedded(_ARRAY_PATTERN, "array"),
)


def extract_records(data: Any) -> LoadResult:
    """Accept a bare list of records or an object with a 'questions' list."""
    if isinstance(data, list):
        return LoadResult.success(data)
    if isinstance(data, dict) and isinstance(data.get("questions"), list):
        return LoadResult.success(data["questions"])
    return LoadResult.failure(
        f"expected a list of questions or an object with a 'questions' list, got {type(data).__name__}"
    )


def parse_records(text: str) -> LoadResult:
    """
    Read the raw question records out of a response body.

    Tries a direct JSON parse, then the outermost brace-delimited object,
    then the outermost bracket-delimited array. The first attempt that
    parses into a known container shape wins.
    """
    errors = []
    for attempt in PARSE_CHAIN:
        parsed = attempt(text)
        if not parsed.ok:
            errors.append(parsed.error)
            continue
        records = extract_records(parsed.value)
        if records.ok:
            return records
        errors.append(records.error)
    return LoadResult.failure("Could not read questions (" + "; ".join(errors) + ")")


def _first_present(record: dict, *keys: str) -> Any:
    for key in keys:
        if record.get(key) is not None:
            return record[key]
    return None


def normalize_record(record: Any, part_id: str) -> Question:
    """
    Map one raw record onto a Question.

    Options come from 'options' or 'answers' and the right answer from
    'correct_answer' or 'correct'; the first spelling present wins.

    Raises:
        ValueError: If the record cannot form a valid question
    """
    if not isinstance(record, dict):
        raise ValueError(f"record must be an object, got {type(record).__name__}")

    text = record.get("question")
    if not isinstance(text, str) or not text.strip():
        raise ValueError("missing 'question' text")

    options = _first_present(record, "options", "answers")
    if not isinstance(options, (list, tuple)):
        raise ValueError("missing 'options'/'answers' list")

    correct = _first_present(record, "correct_answer", "correct")
    if correct is None:
        raise ValueError("missing 'correct_answer'/'correct'")

    return Question(
        text=text,
        options=tuple(str(option) for option in options),
        correct_option=str(correct),
        source_part=part_id,
    )


class SourceLoader:
    """Loads and normalizes the questions of a single part."""

    def __init__(self, fetcher: ResourceFetcher, templates: Sequence[str] = DEFAULT_TEMPLATES):
        self.fetcher = fetcher
        self.templates = tuple(templates)

    def candidate_locations(self, part_id: str) -> List[str]:
        return [template.format(part=part_id) for template in self.templates]

    async def fetch_part(self, part_id: str) -> str:
        """Return the body of the first candidate location that responds."""
        candidates = self.candidate_locations(part_id)
        for location in candidates:
            body = await self.fetcher.fetch(location)
            if body is not None:
                logger.debug(f"Part {part_id} served from {self.fetcher.describe(location)}")
                return body
        raise LoadError(f"none of {', '.join(candidates)} could be fetched")

    def parse_part(self, part_id: str, body: str) -> List[Question]:
        records = parse_records(body)
        if not records.ok:
            raise LoadError(records.error)

        questions = []
        for i, record in enumerate(records.value):
            try:
                questions.append(normalize_record(record, part_id))
            except ValueError as e:
                logger.warning(f"Skipping question {i} of part {part_id}: {e}")
        return questions

    async def load_with_status(self, part_id: str) -> Tuple[List[Question], Optional[str]]:
        """
        Load one part, never raising.

        Returns:
            Tuple of (questions, error message or None)
        """
        try:
            body = await self.fetch_part(part_id)
            questions = self.parse_part(part_id, body)
        except LoadError as e:
            logger.error(f"Error loading part {part_id}: {e}")
            return [], str(e)
        except Exception as e:
            logger.exception(f"Unexpected error loading part {part_id}")
            return [], f"Unexpected error: {e}"

        logger.info(f"Loaded part {part_id} with {len(questions)} questions")
        return questions, None

    async def load(self, part_id: str) -> List[Question]:
        questions, _ = await self.load_with_status(part_id)
        return questions
