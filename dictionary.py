"""dictionary.py — Look up the definition of the word under the cursor."""

import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from urllib.parse import quote

import requests

from models import DefinitionLookup, LookupStatus

DEFAULT_API_URL = "https://api.dictionaryapi.dev/api/v2/entries/en/"
NOT_FOUND_MESSAGE = "No definition found."
ERROR_MESSAGE = "Error fetching definition."
REQUEST_TIMEOUT_S = 10


def first_definition(payload) -> str | None:
    """First definition string in a dictionaryapi.dev style response.

    Shape: [{"meanings": [{"definitions": [{"definition": "..."}]}]}]
    """
    if not isinstance(payload, list):
        return None
    for entry in payload:
        if not isinstance(entry, dict):
            continue
        for meaning in entry.get("meanings") or []:
            if not isinstance(meaning, dict):
                continue
            for sense in meaning.get("definitions") or []:
                definition = sense.get("definition") if isinstance(sense, dict) else None
                if isinstance(definition, str) and definition.strip():
                    return definition.strip()
    return None


class DictionaryLookupCache:
    """
    Holds the one definition currently on display.

    Each define() sends exactly one request, with no retry. Requests may
    overlap; `current` always reflects the most recently issued word, so a
    slow answer for an older word is returned to its caller but not shown.
    """

    def __init__(self, api_url: str | None = None, session=None, timeout: float = REQUEST_TIMEOUT_S):
        self.api_url = api_url or os.getenv("DICTIONARY_API_URL", "").strip() or DEFAULT_API_URL
        self.http = session if session is not None else requests.Session()
        self.timeout = timeout
        self.current = DefinitionLookup(word="")
        self._lock = threading.Lock()
        self._issued = 0
        self._executor = None

    def _fetch(self, word: str) -> DefinitionLookup:
        url = self.api_url + quote(word, safe="")
        try:
            response = self.http.get(url, timeout=self.timeout)
        except requests.RequestException:
            return DefinitionLookup(word, LookupStatus.ERROR, ERROR_MESSAGE)
        if response.status_code != 200:
            return DefinitionLookup(word, LookupStatus.NOT_FOUND, NOT_FOUND_MESSAGE)
        try:
            payload = response.json()
        except ValueError:
            return DefinitionLookup(word, LookupStatus.ERROR, ERROR_MESSAGE)
        definition = first_definition(payload)
        if definition is None:
            return DefinitionLookup(word, LookupStatus.NOT_FOUND, NOT_FOUND_MESSAGE)
        return DefinitionLookup(word, LookupStatus.FOUND, definition)

    def _issue(self, word: str) -> int:
        with self._lock:
            self._issued += 1
            self.current = DefinitionLookup(word, LookupStatus.LOADING)
            return self._issued

    def _complete(self, ticket: int, word: str) -> DefinitionLookup:
        result = self._fetch(word)
        with self._lock:
            if ticket == self._issued:
                self.current = result
        return result

    def define(self, word: str) -> DefinitionLookup:
        return self._complete(self._issue(word), word)

    def define_async(self, word: str) -> Future:
        """Issue the lookup now, fetch on the background worker so playback stays responsive."""
        ticket = self._issue(word)
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="speedread-define")
            executor = self._executor
        return executor.submit(self._complete, ticket, word)

    def close(self) -> None:
        """Stop the background worker. Lookups already queued still finish."""
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=False)
