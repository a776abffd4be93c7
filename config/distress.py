"""YAML-driven distress keyword engine used to steer the interviewer's tone."""
from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from config.settings import settings

_DEFAULT_CONFIG: dict = {
    "version": 1,
    "precedence": ["crisis", "overwhelm"],
    "categories": {
        "crisis": {
            "severity": "critical",
            "patterns": [r"\burgent\b", r"\bcrisis\b", r"\bemergency\b"],
        },
        "overwhelm": {
            "severity": "high",
            "patterns": [r"can'?t take", r"\boverwhelmed\b"],
        },
    },
    "normalizers": ["strip_whitespace", "collapse_spaces", "to_lower"],
}


@dataclass
class DistressHit:
    """Individual regex match metadata."""

    category: str
    pattern: str
    span: Tuple[int, int]
    excerpt: str


@dataclass
class DistressFinding:
    """Aggregate result returned from the distress engine."""

    category: Optional[str]
    severity: str
    hits: List[DistressHit] = field(default_factory=list)

    @property
    def distressed(self) -> bool:
        return self.category is not None


_NORMALIZERS: Dict[str, Callable[[str], str]] = {
    "strip_whitespace": str.strip,
    "collapse_spaces": lambda s: re.sub(r"\s+", " ", s),
    "to_lower": str.lower,
}


def _load_yaml(path: str) -> dict:
    import yaml  # deferred until the first reload

    with open(path, "r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


class DistressEngine:
    """Keyword categories compiled from YAML, hot-reloaded when the file changes."""

    def __init__(self, path: Optional[str] = None):
        self.path = path or settings.DISTRESS_CONFIG
        self._loaded_mtime: Optional[float] = None
        self._normalizers: List[Callable[[str], str]] = []
        self._categories: List[Tuple[str, str, List[re.Pattern[str]]]] = []
        self.reload_if_changed(force=True)

    def _file_mtime(self) -> Optional[float]:
        try:
            return os.stat(self.path).st_mtime
        except FileNotFoundError:
            return None

    def reload_if_changed(self, force: bool = False) -> None:
        mtime = self._file_mtime()
        if not force and (mtime is None or mtime == self._loaded_mtime):
            # a config file deleted at runtime keeps the last good rules
            return
        cfg = _load_yaml(self.path) if mtime is not None else _DEFAULT_CONFIG
        self._apply(cfg)
        self._loaded_mtime = mtime

    def _apply(self, cfg: dict) -> None:
        categories: Dict[str, dict] = cfg.get("categories") or {}
        rank = {name: index for index, name in enumerate(cfg.get("precedence") or [])}
        ordered = sorted(categories, key=lambda name: rank.get(name, len(rank)))
        self._categories = [
            (
                name,
                categories[name].get("severity", "info"),
                [re.compile(pattern) for pattern in categories[name].get("patterns", [])],
            )
            for name in ordered
        ]
        self._normalizers = [_NORMALIZERS[op] for op in cfg.get("normalizers", []) if op in _NORMALIZERS]

    def normalize(self, text: str) -> str:
        sample = text or ""
        for op in self._normalizers:
            sample = op(sample)
        return sample

    def analyze(self, text: str) -> DistressFinding:
        """Return hits for the highest-precedence category that matches, if any."""
        self.reload_if_changed()
        sample = self.normalize(text)
        for category, severity, patterns in self._categories:
            hits = [
                DistressHit(
                    category=category,
                    pattern=pattern.pattern,
                    span=match.span(),
                    excerpt=sample[max(0, match.start() - 20) : match.end() + 20],
                )
                for pattern in patterns
                for match in pattern.finditer(sample)
            ]
            if hits:
                return DistressFinding(category=category, severity=severity, hits=hits)
        return DistressFinding(category=None, severity="info")


_engine: Optional[DistressEngine] = None


def distress_engine() -> DistressEngine:
    global _engine
    if _engine is None:
        _engine = DistressEngine()
    return _engine


def match_distress(text: str) -> DistressFinding:
    return distress_engine().analyze(text)


__all__ = [
    "DistressEngine",
    "DistressFinding",
    "DistressHit",
    "distress_engine",
    "match_distress",
]
