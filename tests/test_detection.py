"""Tests for heuristic code detection and attachment synthesis."""

from __future__ import annotations

import re
import unittest

from codechat.detection import (
    CodeDetectionEngine,
    DetectionThresholds,
    SignatureBundle,
    collapse_newlines,
)
from codechat.detection.signatures import DEFAULT_SIGNATURES

from samples import APEX_CLASS, PROSE


class ExtractCodeBlocksTests(unittest.TestCase):
    """Validate the submit-time extraction pipeline."""

    def setUp(self) -> None:
        self.engine = CodeDetectionEngine()

    def test_short_input_passes_through_unchanged(self) -> None:
        text = "```python\nprint('hi')\n```"
        result = self.engine.extract_code_blocks(text)
        self.assertEqual(result.cleaned_text, text)
        self.assertEqual(result.attachments, ())

    def test_large_fenced_block_is_extracted_exactly(self) -> None:
        body = "\n".join(
            f"total_{i} = compute_value({i}, scale={i * 2})" for i in range(15)
        )
        text = f"Please review:\n\n```python\n{body}\n```\n\n\n\nThanks"

        result = self.engine.extract_code_blocks(text)

        self.assertEqual(result.cleaned_text, "Please review:\n\nThanks")
        self.assertEqual(len(result.attachments), 1)
        attachment = result.attachments[0]
        self.assertEqual(attachment.content, body)
        self.assertEqual(attachment.language, "python")
        self.assertEqual(attachment.extension, "py")
        self.assertEqual(attachment.category, "Python")
        self.assertRegex(attachment.name, r"^code_[0-9a-f]{8}\.py$")

    def test_untagged_fence_uses_language_cascade(self) -> None:
        body = "\n".join(f"const value_{i} = compute({i});" for i in range(15))
        text = f"```\n{body}\n```"

        result = self.engine.extract_code_blocks(text)

        self.assertEqual(result.cleaned_text, "")
        self.assertEqual(result.attachments[0].language, "javascript")
        self.assertEqual(result.attachments[0].extension, "js")

    def test_small_fence_inside_long_prose_is_kept(self) -> None:
        text = f"{PROSE}\n\n```\nx = 1\n```"
        result = self.engine.extract_code_blocks(text)
        self.assertEqual(result.cleaned_text, text)
        self.assertEqual(result.attachments, ())

    def test_long_prose_is_not_code(self) -> None:
        self.assertGreater(len(PROSE), 300)
        result = self.engine.extract_code_blocks(PROSE)
        self.assertEqual(result.cleaned_text, PROSE)
        self.assertEqual(result.attachments, ())

    def test_unfenced_class_becomes_single_apex_attachment(self) -> None:
        self.assertGreater(len(APEX_CLASS), 300)
        result = self.engine.extract_code_blocks(APEX_CLASS)

        self.assertEqual(result.cleaned_text, "")
        self.assertEqual(len(result.attachments), 1)
        attachment = result.attachments[0]
        self.assertEqual(attachment.language, "apex")
        self.assertEqual(attachment.category, "Apex Class")
        self.assertEqual(attachment.extension, "cls")
        self.assertEqual(attachment.content, APEX_CLASS)

    def test_thresholds_are_configurable(self) -> None:
        engine = CodeDetectionEngine(
            thresholds=DetectionThresholds.from_config({"detection": {"size_threshold": 1000}})
        )
        result = engine.extract_code_blocks(APEX_CLASS)
        self.assertEqual(result.cleaned_text, APEX_CLASS)
        self.assertEqual(result.attachments, ())


class ScoringTests(unittest.TestCase):
    """Validate the numbers behind the whole-input decision."""

    def test_score_counts_lines_and_file_signatures(self) -> None:
        score = CodeDetectionEngine().score(APEX_CLASS)
        self.assertEqual(score.non_empty_lines, 10)
        self.assertGreaterEqual(score.matched_lines, 5)
        self.assertGreater(score.ratio, 0.5)
        self.assertGreaterEqual(score.file_matches, 2)

    def test_empty_text_has_zero_ratio(self) -> None:
        score = CodeDetectionEngine().score("")
        self.assertEqual(score.ratio, 0.0)
        self.assertFalse(CodeDetectionEngine().looks_like_code(""))

    def test_blank_line_is_never_code(self) -> None:
        self.assertFalse(CodeDetectionEngine().looks_like_code_line("   "))
        self.assertTrue(CodeDetectionEngine().looks_like_code_line("}"))

    def test_detect_language_defaults_to_plaintext(self) -> None:
        engine = CodeDetectionEngine()
        self.assertEqual(engine.detect_language("just words"), "plaintext")
        self.assertEqual(engine.detect_language("package main\n\nfunc main() {}"), "go")
        self.assertEqual(
            engine.detect_language("import React from 'react';"), "javascript"
        )

    def test_collapse_newlines(self) -> None:
        self.assertEqual(collapse_newlines("\n a\n\n\n\nb \n\n\n"), "a\n\nb")


class PasteClassificationTests(unittest.TestCase):
    """Validate the stricter paste-time gate."""

    def setUp(self) -> None:
        self.engine = CodeDetectionEngine()

    def test_domain_code_paste_becomes_attachment(self) -> None:
        attachment = self.engine.classify_paste(APEX_CLASS)
        self.assertIsNotNone(attachment)
        assert attachment is not None
        self.assertEqual(attachment.category, "Apex Class")
        self.assertEqual(attachment.language, "apex")
        self.assertRegex(attachment.name, r"^code_\d{4}\.cls$")
        self.assertRegex(attachment.id, r"^code_[0-9a-z]{7}$")

    def test_prose_paste_is_left_alone(self) -> None:
        self.assertIsNone(self.engine.classify_paste(PROSE))

    def test_short_paste_is_left_alone(self) -> None:
        self.assertIsNone(self.engine.classify_paste("System.debug('x');"))

    def test_paste_cascade_ordering(self) -> None:
        self.assertEqual(
            self.engine.detect_paste_language("@isTest\nprivate class FooTest {}"),
            ("apex", "Apex Test Class"),
        )
        self.assertEqual(
            self.engine.detect_paste_language("trigger AccountTrigger on Account (before insert) {}"),
            ("apex", "Apex Trigger"),
        )
        self.assertEqual(
            self.engine.detect_paste_language("<template>\n<div></div>\n</template>"),
            ("html", "LWC HTML"),
        )
        self.assertEqual(
            self.engine.detect_paste_language("nothing to see"), ("plaintext", "Text")
        )

    def test_custom_vocabulary_bundle(self) -> None:
        bundle = SignatureBundle(
            line_patterns=DEFAULT_SIGNATURES.line_patterns,
            file_patterns=DEFAULT_SIGNATURES.file_patterns,
            language_cascade=DEFAULT_SIGNATURES.language_cascade,
            paste_vocabulary=re.compile(r"\bNEVER_PRESENT\b"),
            paste_line_patterns=DEFAULT_SIGNATURES.paste_line_patterns,
            paste_cascade=DEFAULT_SIGNATURES.paste_cascade,
        )
        engine = CodeDetectionEngine(signatures=bundle)
        self.assertFalse(engine.is_likely_domain_code(APEX_CLASS))
        self.assertIsNone(engine.classify_paste(APEX_CLASS))


class FileTypeTests(unittest.TestCase):
    """Validate upload classification by extension and content."""

    def test_known_extension_wins(self) -> None:
        self.assertEqual(
            CodeDetectionEngine.detect_file_type("Service.cls", "", "cls"),
            ("apex", "Apex Class"),
        )
        self.assertEqual(
            CodeDetectionEngine.detect_file_type("widget.JS", "", "JS"),
            ("javascript", "LWC JavaScript"),
        )

    def test_content_sniffing_for_unknown_extension(self) -> None:
        self.assertEqual(
            CodeDetectionEngine.detect_file_type("notes.md", "@isTest private class X {}", "md"),
            ("apex", "Apex Test"),
        )
        self.assertEqual(
            CodeDetectionEngine.detect_file_type("readme.md", "hello", "md"),
            ("plaintext", "Unknown"),
        )


if __name__ == "__main__":
    unittest.main()
