"""Glossary loading and management utilities."""

from __future__ import annotations

import json
import re
import logging
from pathlib import Path
from typing import Dict, Iterator, Mapping, Tuple

logger = logging.getLogger(__name__)


class Glossary:
    """术语表管理类，大小写不敏感的查找与匹配。"""

    def __init__(self, terms: Mapping[str, str] | None = None):
        # 保存原始大小写的术语
        self._terms: Dict[str, str] = {}
        # 小写索引用于匹配
        self._lower_index: Dict[str, str] = {}
        for term, translation in (terms or {}).items():
            self.add(term, translation)

    def add(self, term: str, translation: str) -> None:
        """添加术语。"""
        term = term.strip()
        translation = translation.strip()
        if term and translation:
            # 同一术语的不同大小写只保留最后一次
            previous = self._lower_index.get(term.lower())
            if previous is not None and previous != term:
                del self._terms[previous]
            self._terms[term] = translation
            self._lower_index[term.lower()] = term

    def get(self, term: str) -> str | None:
        """获取术语翻译（不区分大小写）。"""
        original_term = self._lower_index.get(term.lower())
        if original_term:
            return self._terms.get(original_term)
        return None

    def find_matches(self, text: str) -> Dict[str, str]:
        """
        在文本中查找匹配的术语。

        返回原始大小写的术语及其翻译。
        """
        text_lower = text.lower()
        return {
            term: translation
            for term, translation in self._terms.items()
            if term.lower() in text_lower
        }

    def to_dict(self) -> Dict[str, str]:
        return dict(self._terms)

    def keys(self):
        return self._terms.keys()

    def items(self) -> Iterator[Tuple[str, str]]:
        return iter(self._terms.items())

    def __getitem__(self, term: str) -> str:
        return self._terms[term]

    def __len__(self) -> int:
        return len(self._terms)

    def __bool__(self) -> bool:
        return len(self._terms) > 0


def _load_json_terms(content: str) -> Dict[str, str]:
    data = json.loads(content)
    # 支持 {"terms": {...}} 或直接 {"key": "value"}
    if isinstance(data, dict) and isinstance(data.get("terms"), dict):
        data = data["terms"]
    if not isinstance(data, dict):
        raise ValueError("Glossary JSON must be an object")
    return {str(k): str(v) for k, v in data.items()}


def load_glossary(path: Path) -> Glossary:
    """
    Load glossary from a text or JSON file.

    Supported text formats:
        Term = Translation
        Term -> Translation
        # Comment lines

    JSON files may hold ``{"terms": {...}}`` or a flat object.

    Args:
        path: Path to glossary file

    Returns:
        Glossary instance
    """
    glossary = Glossary()

    if not path.exists():
        logger.warning(f"Glossary file not found: {path}")
        return glossary

    try:
        content = path.read_text(encoding='utf-8-sig')

        if path.suffix.lower() == '.json':
            for term, translation in _load_json_terms(content).items():
                glossary.add(term, translation)
        else:
            for line_num, line in enumerate(content.splitlines(), 1):
                line = line.strip()

                # 跳过空行和注释
                if not line or line.startswith('#'):
                    continue

                # 支持 = 和 -> 两种分隔符
                match = re.match(r'^(.+?)\s*(?:=|->)\s*(.+)$', line)
                if match:
                    term, translation = match.groups()
                    glossary.add(term, translation)
                else:
                    logger.debug(f"Skipping invalid line {line_num}: {line}")

    except (OSError, ValueError) as e:
        logger.error(f"Error loading glossary: {e}")

    logger.info(f"Loaded {len(glossary)} terms from glossary")
    return glossary


def find_matching_terms(glossary: Glossary | Mapping[str, str], text: str) -> Dict[str, str]:
    """
    Find glossary terms that appear in the given text.

    Accepts a Glossary or any plain mapping.
    """
    if isinstance(glossary, Glossary):
        return glossary.find_matches(text)

    text_lower = text.lower()
    return {
        term: trans
        for term, trans in glossary.items()
        if term.lower() in text_lower
    }
