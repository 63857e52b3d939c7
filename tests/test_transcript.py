"""Tests for legacy transcript decoding."""

from __future__ import annotations

import unittest

from codechat.models import FileAttachment, Message
from codechat.transcript import (
    SENTINEL_CONTENT,
    TranscriptDecoder,
    format_files_for_api,
    most_recent_user_message,
    serialize_attachment,
)


def _apex(name: str = "Service.cls", content: str = "public class Service {}") -> FileAttachment:
    return FileAttachment(
        id="orig",
        name=name,
        content=content,
        category="Apex Class",
        language="apex",
        extension="cls",
    )


class SerializationTests(unittest.TestCase):
    """Validate the inline attachment format."""

    def test_serialize_attachment(self) -> None:
        self.assertEqual(
            serialize_attachment(_apex()),
            "Attached Apex Class (Service.cls):\n```apex\npublic class Service {}\n```\n\n",
        )

    def test_format_without_files_returns_text(self) -> None:
        self.assertEqual(format_files_for_api("just text", []), "just text")


class DecodeTextTests(unittest.TestCase):
    """Validate reconstruction of attachments from inline text."""

    def setUp(self) -> None:
        self.decoder = TranscriptDecoder()

    def test_round_trip_restores_attachments(self) -> None:
        second = FileAttachment(
            id="two",
            name="helper.js",
            content="export const x = 1;\nexport const y = 2;",
            category="LWC JavaScript",
            language="javascript",
            extension="js",
        )
        text = format_files_for_api("Please review", [_apex(), second])

        decoded = self.decoder.decode_text(text)

        self.assertEqual(decoded.text, "Please review")
        self.assertEqual(len(decoded.attachments), 2)
        for original, rebuilt in zip((_apex(), second), decoded.attachments):
            self.assertEqual(rebuilt.name, original.name)
            self.assertEqual(rebuilt.content, original.content)
            self.assertEqual(rebuilt.category, original.category)
            self.assertEqual(rebuilt.language, original.language)
            self.assertEqual(rebuilt.extension, original.extension)
            self.assertRegex(rebuilt.id, r"^file-\d+-\d+-\w+$")

    def test_empty_attachment_survives_round_trip(self) -> None:
        empty = _apex("Empty.cls", "")
        text = format_files_for_api("see file", [empty, _apex()])

        decoded = self.decoder.decode_text(text)

        self.assertEqual(decoded.text, "see file")
        self.assertEqual([item.name for item in decoded.attachments], ["Empty.cls", "Service.cls"])
        self.assertEqual(decoded.attachments[0].content, "")
        self.assertEqual(decoded.attachments[1].content, "public class Service {}")

    def test_text_without_markers_is_unchanged(self) -> None:
        decoded = self.decoder.decode_text("nothing attached here")
        self.assertEqual(decoded.text, "nothing attached here")
        self.assertEqual(decoded.attachments, ())

    def test_code_reference_tokens_become_placeholders(self) -> None:
        decoded = self.decoder.decode_text(
            "See [Attached Code: code_1234.cls] and [Attached Code: notes]"
        )
        self.assertEqual(decoded.text, "See  and")
        names = [item.name for item in decoded.attachments]
        self.assertEqual(names, ["code_1234.cls", "notes"])
        self.assertEqual(decoded.attachments[0].language, "apex")
        self.assertEqual(decoded.attachments[0].category, "Apex Class")
        self.assertEqual(decoded.attachments[1].extension, "txt")
        self.assertTrue(all(item.content == SENTINEL_CONTENT for item in decoded.attachments))
        self.assertRegex(decoded.attachments[0].id, r"^code-\d+-\w+$")

    def test_header_without_fence_is_dropped(self) -> None:
        decoded = self.decoder.decode_text("Intro\n\nAttached Apex Class (Broken.cls):\nno fence")
        self.assertEqual(decoded.attachments, ())
        self.assertEqual(decoded.text, "Intro\n\nno fence")


class DecodeMessageTests(unittest.TestCase):
    """Validate message-level decoding rules."""

    def setUp(self) -> None:
        self.decoder = TranscriptDecoder()

    def test_structured_message_is_returned_as_is(self) -> None:
        message = Message(
            role="user",
            content=format_files_for_api("hi", [_apex()]),
            files=(),
        )
        self.assertIs(self.decoder.decode(message), message)

    def test_assistant_message_is_not_decoded(self) -> None:
        message = Message(role="assistant", content=format_files_for_api("hi", [_apex()]))
        self.assertIs(self.decoder.decode(message), message)

    def test_decoding_is_idempotent(self) -> None:
        message = Message(role="user", content=format_files_for_api("hi", [_apex()]))
        once = self.decoder.decode(message)
        twice = self.decoder.decode(once)

        self.assertIs(twice, once)
        self.assertEqual(once.content, "hi")
        self.assertEqual(once.id, message.id)
        assert once.files is not None
        self.assertEqual(once.files[0].content, "public class Service {}")

    def test_convert_flattens_list_content_and_dicts(self) -> None:
        stored = [
            {
                "id": "m1",
                "role": "user",
                "content": [
                    {"type": "text", "text": "Look: "},
                    {"type": "image", "url": "x"},
                    {"type": "text", "text": "[Attached Code: a.cls]"},
                ],
                "createdAt": "2024-05-01T10:00:00Z",
            },
            Message(role="assistant", content="Sure"),
        ]

        converted = self.decoder.convert_to_ui_messages(stored)

        self.assertEqual(converted[0].content, "Look:")
        assert converted[0].files is not None
        self.assertEqual(converted[0].files[0].name, "a.cls")
        self.assertEqual(converted[1].content, "Sure")

    def test_most_recent_user_message(self) -> None:
        messages = [
            Message(role="user", content="first"),
            Message(role="assistant", content="reply"),
            Message(role="user", content="second"),
            Message(role="assistant", content="reply"),
        ]
        latest = most_recent_user_message(messages)
        assert latest is not None
        self.assertEqual(latest.content, "second")
        self.assertIsNone(most_recent_user_message([]))


if __name__ == "__main__":
    unittest.main()
