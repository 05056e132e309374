import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional

from glimpse.models import AnalysisResult, create_empty_analysis_result
from glimpse.services.analysis import VueFileAnalyzer
from glimpse.services.document import TextDocument

Analyzer = Callable[[TextDocument], AnalysisResult]


class AnalysisStatus(str, Enum):
    OK = "ok"
    STALE = "stale"
    FAILED = "failed"


@dataclass(frozen=True)
class CacheEntry:
    version: int
    result: AnalysisResult


@dataclass(frozen=True)
class ManagedAnalysisResult:
    result: AnalysisResult
    status: AnalysisStatus
    error: Optional[BaseException] = None

    @property
    def error_message(self) -> Optional[str]:
        if self.error is None:
            return None
        return f"{type(self.error).__name__}: {self.error}"


class AnalysisManager:
    """
    Per-document cache in front of the analyzer.

    A failed analysis serves the last good result for the document (`stale`) or
    an empty one (`failed`), so in-progress edits never blank the markers.
    """

    def __init__(self, analyzer: Optional[Analyzer] = None, logger: Optional[logging.Logger] = None):
        self._analyzer = analyzer if analyzer is not None else VueFileAnalyzer()
        self._log = logger or logging.getLogger(__name__)
        self._cache: Dict[str, CacheEntry] = {}
        self._document_locks: Dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def __contains__(self, document_id: str) -> bool:
        with self._lock:
            return document_id in self._cache

    def _document_lock(self, document_id: str) -> threading.Lock:
        with self._lock:
            lock = self._document_locks.get(document_id)
            if lock is None:
                lock = self._document_locks[document_id] = threading.Lock()
            return lock

    def _cached(self, document_id: str) -> Optional[CacheEntry]:
        with self._lock:
            return self._cache.get(document_id)

    def get_analysis(self, document_id: str, version: int, text: str) -> ManagedAnalysisResult:
        with self._document_lock(document_id):
            entry = self._cached(document_id)
            if entry is not None and entry.version == version:
                self._log.debug("Cache hit for %s@%d", document_id, version)
                return ManagedAnalysisResult(result=entry.result, status=AnalysisStatus.OK)

            self._log.debug("Cache miss for %s@%d, analyzing", document_id, version)
            try:
                result = self._analyzer(TextDocument(document_id, version, text))
            except Exception as e:
                if entry is not None:
                    self._log.info(
                        "Analysis of %s@%d failed, serving version %d: %s",
                        document_id, version, entry.version, e,
                    )
                    return ManagedAnalysisResult(result=entry.result, status=AnalysisStatus.STALE, error=e)
                self._log.warning("Analysis of %s@%d failed: %s", document_id, version, e)
                return ManagedAnalysisResult(
                    result=create_empty_analysis_result(),
                    status=AnalysisStatus.FAILED,
                    error=e,
                )

            with self._lock:
                current = self._cache.get(document_id)
                # Never replace a newer cached version with an older one.
                if current is None or current.version <= version:
                    self._cache[document_id] = CacheEntry(version=version, result=result)
            return ManagedAnalysisResult(result=result, status=AnalysisStatus.OK)

    def remove_document(self, document_id: str) -> None:
        with self._lock:
            self._cache.pop(document_id, None)
            self._document_locks.pop(document_id, None)

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()
            self._document_locks.clear()
