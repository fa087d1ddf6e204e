"""
Status extraction strategies.

The upstream page has moved between layouts more than once (a plain
table, labeled div blocks, free text), so the layout is a configuration
choice. Every strategy turns a document into the same ordered list of
StatusEntry values and raises ExtractionEmpty when nothing was found.

Example res/extractor.yaml:

    strategy: table
    table:
      row_selector: "tbody tr"
      name_column: 0
      status_column: 1
"""

import logging
import re
import unicodedata
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import soupsieve
import yaml
from bs4 import BeautifulSoup

from .snapshot import Snapshot, StatusEntry

logger = logging.getLogger(__name__)

Document = Union[bytes, str]


class ExtractionEmpty(Exception):
    """No status entries could be recovered from the document."""


class ExtractorConfigError(ValueError):
    """The extractor configuration is missing or malformed."""


def compile_selector(option: str, selector: Any) -> soupsieve.SoupSieve:
    """Compile a CSS selector at load time so a typo fails the config, not a poll cycle."""
    if not isinstance(selector, str) or not selector.strip():
        raise ExtractorConfigError(f"{option} must be a non-empty CSS selector")
    try:
        return soupsieve.compile(selector)
    except soupsieve.SelectorSyntaxError as e:
        raise ExtractorConfigError(f"invalid {option} {selector!r}: {e}") from e


def normalize_text(s: Optional[str]) -> str:
    if not s:
        return ""
    s = unicodedata.normalize("NFKC", s)
    return re.sub(r"\s+", " ", s).strip()


class BaseExtractor(ABC):
    STRATEGY: str = "base"

    def extract(self, document: Document) -> Snapshot:
        soup = BeautifulSoup(document, "html.parser")
        entries = self._dedupe(self._pairs(soup))
        if not entries:
            raise ExtractionEmpty(f"{self.STRATEGY}: no status entries found")
        return entries

    @abstractmethod
    def _pairs(self, soup: BeautifulSoup) -> List[Tuple[str, str]]:
        """Raw (name, status) pairs in document order."""

    @staticmethod
    def _dedupe(pairs: List[Tuple[str, str]]) -> Snapshot:
        seen = set()
        out: Snapshot = []
        for name, status in pairs:
            name, status = normalize_text(name), normalize_text(status)
            if not name or name in seen:
                continue
            seen.add(name)
            out.append(StatusEntry(name=name, status=status))
        return out


class TableExtractor(BaseExtractor):
    """One row per component: name and status in fixed columns."""

    STRATEGY = "table"

    def __init__(self, row_selector: str = "tbody tr", name_column: int = 0,
                 status_column: int = 1, skip_header: bool = True):
        if name_column < 0 or status_column < 0:
            raise ExtractorConfigError("column indexes must be >= 0")
        self.row_selector = row_selector
        self._rows = compile_selector("row_selector", row_selector)
        self.name_column = name_column
        self.status_column = status_column
        self.skip_header = skip_header

    def _pairs(self, soup):
        pairs = []
        need = max(self.name_column, self.status_column)
        for row in self._rows.select(soup):
            if self.skip_header and row.find("td") is None:
                continue
            cells = row.find_all(["td", "th"], recursive=False)
            if len(cells) <= need:
                continue
            pairs.append((cells[self.name_column].get_text(" "),
                          cells[self.status_column].get_text(" ")))
        return pairs


class BlockExtractor(BaseExtractor):
    """Labeled div blocks, e.g. <div class="server"><h3>..</h3><span class="status online"></span></div>."""

    STRATEGY = "blocks"

    def __init__(self, block_selector: str, name_selector: str, status_selector: str,
                 status_classes: Optional[Dict[str, str]] = None):
        self.block_selector = block_selector
        self.name_selector = name_selector
        self.status_selector = status_selector
        self._blocks = compile_selector("block_selector", block_selector)
        self._name = compile_selector("name_selector", name_selector)
        self._status = compile_selector("status_selector", status_selector)
        self.status_classes = {str(k).lower(): str(v) for k, v in (status_classes or {}).items()}

    def _status_of(self, el) -> str:
        text = normalize_text(el.get_text(" "))
        if text:
            return text
        # status carried by a class only, e.g. <span class="dot online">
        for cls in el.get("class") or []:
            mapped = self.status_classes.get(cls.lower())
            if mapped:
                return mapped
        return ""

    def _pairs(self, soup):
        pairs = []
        for block in self._blocks.select(soup):
            name_el = self._name.select_one(block)
            status_el = self._status.select_one(block)
            if name_el is None or status_el is None:
                continue
            pairs.append((name_el.get_text(" "), self._status_of(status_el)))
        return pairs


class TextExtractor(BaseExtractor):
    """Free text with known labels: 'Auth Server: Up ... World Server - Down'."""

    STRATEGY = "text"

    def __init__(self, labels: List[str], status_pattern: str = r"Up|Down|Online|Offline",
                 case_insensitive: bool = True):
        labels = [normalize_text(label) for label in labels or []]
        labels = [label for label in labels if label]
        if not labels:
            raise ExtractorConfigError("text strategy needs at least one label")
        flags = re.IGNORECASE if case_insensitive else 0
        try:
            self.patterns = [
                (label, re.compile(re.escape(label) + r"\s*[:\-–]?\s*(" + status_pattern + r")\b", flags))
                for label in labels
            ]
        except re.error as e:
            raise ExtractorConfigError(f"invalid status_pattern: {e}") from e

    def _pairs(self, soup):
        text = normalize_text(soup.get_text(" "))
        found = []
        for label, pattern in self.patterns:
            m = pattern.search(text)
            if m:
                found.append((m.start(), label, m.group(1)))
        found.sort(key=lambda x: x[0])
        return [(label, status) for _, label, status in found]


STRATEGIES = {cls.STRATEGY: cls for cls in (TableExtractor, BlockExtractor, TextExtractor)}


def build_extractor(cfg: Dict[str, Any]) -> BaseExtractor:
    if not isinstance(cfg, dict):
        raise ExtractorConfigError("extractor config must be a mapping")
    name = cfg.get("strategy")
    if not isinstance(name, str):
        raise ExtractorConfigError(f"strategy must be a string, got {name!r}")
    cls = STRATEGIES.get(name)
    if cls is None:
        raise ExtractorConfigError(f"unknown strategy {name!r}; expected one of {sorted(STRATEGIES)}")
    options = cfg.get(name) or {}
    if not isinstance(options, dict):
        raise ExtractorConfigError(f"section {name!r} must be a mapping")
    try:
        return cls(**options)
    except TypeError as e:
        raise ExtractorConfigError(f"bad options for {name!r}: {e}") from e


def load_extractor(path: Union[str, Path]) -> BaseExtractor:
    p = Path(path)
    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ExtractorConfigError(f"cannot read {p}: {e}") from e
    extractor = build_extractor(data)
    logger.info(f"Extractor loaded from {p}: strategy={extractor.STRATEGY}")
    return extractor
