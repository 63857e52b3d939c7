"""Heuristic code detection, language classification and attachment synthesis."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import random
import re
import string
from typing import Any

from ..models import FileAttachment, generate_id
from .languages import (
    PLAINTEXT,
    UPLOAD_TYPES,
    category_for_language,
    extension_for_language,
    extension_for_paste_category,
)
from .signatures import DEFAULT_SIGNATURES, SignatureBundle

LOGGER = logging.getLogger(__name__)

FENCED_BLOCK_PATTERN = re.compile(r"```(\w+)?\n([\s\S]+?)\n```")
EXCESS_NEWLINES_PATTERN = re.compile(r"\n{3,}")

_BASE36 = string.digits + string.ascii_lowercase


@dataclass(frozen=True)
class DetectionThresholds:
    """Numeric gates for whole-input and paste-time classification."""

    size_threshold: int = 300
    line_ratio: float = 0.5
    paste_line_ratio: float = 0.3
    min_code_lines: int = 5
    min_file_signatures: int = 2

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> DetectionThresholds:
        section = config.get("detection", {})
        defaults = cls()
        return cls(
            size_threshold=int(section.get("size_threshold", defaults.size_threshold)),
            line_ratio=float(section.get("line_ratio", defaults.line_ratio)),
            paste_line_ratio=float(
                section.get("paste_line_ratio", defaults.paste_line_ratio)
            ),
            min_code_lines=int(section.get("min_code_lines", defaults.min_code_lines)),
            min_file_signatures=int(
                section.get("min_file_signatures", defaults.min_file_signatures)
            ),
        )


@dataclass(frozen=True)
class CodeScore:
    """Numbers behind a whole-input classification decision."""

    matched_lines: int
    non_empty_lines: int
    file_matches: int

    @property
    def ratio(self) -> float:
        if self.non_empty_lines <= 0:
            return 0.0
        return self.matched_lines / self.non_empty_lines


@dataclass(frozen=True)
class ExtractionResult:
    """Visible text left after extraction plus the attachments pulled out."""

    cleaned_text: str
    attachments: tuple[FileAttachment, ...] = field(default_factory=tuple)


def collapse_newlines(text: str) -> str:
    """Collapse runs of 3+ newlines to exactly two and trim the result."""
    return EXCESS_NEWLINES_PATTERN.sub("\n\n", text).strip()


class CodeDetectionEngine:
    """Decide if and where text contains code, and turn it into attachments.

    All operations are pure apart from random id/name generation. Pattern
    sets come from the injected ``SignatureBundle``.
    """

    def __init__(
        self,
        signatures: SignatureBundle = DEFAULT_SIGNATURES,
        thresholds: DetectionThresholds | None = None,
    ) -> None:
        self.signatures = signatures
        self.thresholds = thresholds or DetectionThresholds()

    def extract_code_blocks(self, text: str) -> ExtractionResult:
        """Pull large code regions out of submitted text.

        Fenced blocks whose body exceeds the size threshold are extracted
        first. Only when none qualify is the whole input tested with the
        line heuristic, in which case it becomes a single attachment and the
        visible text is emptied.
        """
        threshold = self.thresholds.size_threshold
        if len(text) < threshold:
            return ExtractionResult(cleaned_text=text)

        fenced = self._extract_fenced_blocks(text)
        if fenced.attachments:
            LOGGER.debug(
                "detection.fenced.extracted",
                extra={
                    "event": "detection.fenced.extracted",
                    "count": len(fenced.attachments),
                },
            )
            return fenced

        if len(text) > threshold and self.looks_like_code(text):
            language = self.detect_language(text)
            attachment = self.create_code_attachment(language, text)
            LOGGER.debug(
                "detection.whole_input.extracted",
                extra={"event": "detection.whole_input.extracted", "language": language},
            )
            return ExtractionResult(cleaned_text="", attachments=(attachment,))

        return ExtractionResult(cleaned_text=text)

    def _extract_fenced_blocks(self, text: str) -> ExtractionResult:
        extracted: list[FileAttachment] = []

        def _replace(match: re.Match[str]) -> str:
            body = match.group(2)
            if len(body) <= self.thresholds.size_threshold:
                return match.group(0)
            language = match.group(1) or self.detect_language(body)
            extracted.append(self.create_code_attachment(language, body))
            return ""

        cleaned = FENCED_BLOCK_PATTERN.sub(_replace, text)
        return ExtractionResult(
            cleaned_text=collapse_newlines(cleaned), attachments=tuple(extracted)
        )

    def looks_like_code_line(self, line: str) -> bool:
        if not line.strip():
            return False
        return any(pattern.search(line) for pattern in self.signatures.line_patterns)

    def score(self, text: str) -> CodeScore:
        lines = text.split("\n")
        matched = sum(1 for line in lines if self.looks_like_code_line(line))
        non_empty = sum(1 for line in lines if line.strip())
        file_matches = sum(
            1 for pattern in self.signatures.file_patterns if pattern.search(text)
        )
        return CodeScore(
            matched_lines=matched, non_empty_lines=non_empty, file_matches=file_matches
        )

    def looks_like_code(self, text: str) -> bool:
        result = self.score(text)
        gates = self.thresholds
        signal = (
            result.ratio > gates.line_ratio
            or result.file_matches >= gates.min_file_signatures
        )
        return signal and result.matched_lines >= gates.min_code_lines

    def detect_language(self, code: str) -> str:
        """Return the first cascade language whose signature matches ``code``."""
        for language, pattern in self.signatures.language_cascade:
            if pattern.search(code):
                return language
        return PLAINTEXT

    @staticmethod
    def create_code_attachment(language: str, code: str) -> FileAttachment:
        extension = extension_for_language(language)
        return FileAttachment(
            id=generate_id(),
            name=f"code_{generate_id()[:8]}{extension}",
            content=code,
            category=category_for_language(language),
            language=language,
            extension=extension[1:],
        )

    def is_likely_domain_code(self, text: str) -> bool:
        """Stricter paste-time gate keyed on the bundle's domain vocabulary."""
        lines = text.split("\n")
        has_vocabulary = False
        matched = 0
        for line in lines:
            if self.signatures.paste_vocabulary.search(line):
                has_vocabulary = True
            if any(p.search(line) for p in self.signatures.paste_line_patterns):
                matched += 1

        non_empty = sum(1 for line in lines if line.strip())
        ratio = matched / non_empty if non_empty > 0 else 0.0
        return (
            has_vocabulary
            and ratio > self.thresholds.paste_line_ratio
            and matched >= self.thresholds.min_code_lines
        )

    def detect_paste_language(self, code: str) -> tuple[str, str]:
        """Return ``(language, category)`` for pasted domain code."""
        for pattern, language, category in self.signatures.paste_cascade:
            if pattern.search(code):
                return language, category
        return PLAINTEXT, "Text"

    @staticmethod
    def create_paste_attachment(
        language: str, category: str, content: str
    ) -> FileAttachment:
        extension = extension_for_paste_category(category)
        suffix = "".join(random.choices(_BASE36, k=7))
        return FileAttachment(
            id=f"code_{suffix}",
            name=f"code_{random.randrange(10000):04d}{extension}",
            content=content,
            category=category,
            language=language,
            extension=extension[1:],
        )

    def classify_paste(self, text: str) -> FileAttachment | None:
        """Return an attachment when pasted text should not land in the input."""
        if len(text) <= self.thresholds.size_threshold:
            return None
        if not self.is_likely_domain_code(text):
            return None
        language, category = self.detect_paste_language(text)
        return self.create_paste_attachment(language, category, text)

    @staticmethod
    def detect_file_type(file_name: str, content: str, extension: str) -> tuple[str, str]:
        """Classify an uploaded file by extension, then by content sniffing."""
        known = UPLOAD_TYPES.get(extension.lower())
        if known is not None:
            return known

        if "@isTest" in content or "testMethod" in content or "Test" in file_name:
            return "apex", "Apex Test"
        if "trigger" in content and "on" in content:
            return "apex", "Apex Trigger"
        if "class" in content and "extends" in content:
            return "apex", "Apex Class"
        if "<template>" in content or "lwc" in content:
            return "html", "LWC HTML"
        if "import" in content and "LightningElement" in content:
            return "javascript", "LWC JavaScript"
        return PLAINTEXT, "Unknown"
