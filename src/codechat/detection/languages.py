"""Static language, extension and category lookup tables.

Adding a language means adding entries here (and usually one signature in
``signatures.py``); nothing else dispatches on language.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Final

PLAINTEXT: Final = "plaintext"
DEFAULT_EXTENSION: Final = ".txt"
DEFAULT_CATEGORY: Final = "Code File"

# Language -> extension for synthesized attachments.
LANGUAGE_EXTENSIONS = MappingProxyType(
    {
        "javascript": ".js",
        "typescript": ".ts",
        "python": ".py",
        "java": ".java",
        "csharp": ".cs",
        "apex": ".cls",
        "html": ".html",
        "css": ".css",
        "xml": ".xml",
        "json": ".json",
        "php": ".php",
        "ruby": ".rb",
        "go": ".go",
        "rust": ".rs",
        "kotlin": ".kt",
        "swift": ".swift",
        "sql": ".sql",
        "bash": ".sh",
        "plaintext": ".txt",
    }
)

# Language -> human-readable category for synthesized attachments.
LANGUAGE_CATEGORIES = MappingProxyType(
    {
        "javascript": "JavaScript",
        "typescript": "TypeScript",
        "python": "Python",
        "java": "Java",
        "csharp": "C#",
        "apex": "Apex Class",
        "html": "HTML",
        "css": "CSS",
        "xml": "XML",
        "json": "JSON",
        "php": "PHP",
        "ruby": "Ruby",
        "go": "Go",
        "rust": "Rust",
        "kotlin": "Kotlin",
        "swift": "Swift",
        "sql": "SQL",
        "bash": "Shell Script",
        "plaintext": "Text",
    }
)

# Upload extension -> (language, category) for dropped or picked files.
UPLOAD_TYPES = MappingProxyType(
    {
        "cls": ("apex", "Apex Class"),
        "trigger": ("apex", "Apex Trigger"),
        "apex": ("apex", "Apex Code"),
        "testcls": ("apex", "Apex Test Class"),
        "apextest": ("apex", "Apex Test"),
        "html": ("html", "LWC HTML"),
        "js": ("javascript", "LWC JavaScript"),
        "css": ("css", "LWC CSS"),
        "xml": ("xml", "LWC Configuration"),
        "json": ("json", "JSON"),
        "txt": ("plaintext", "Text"),
    }
)

# File-picker accept list, derived from the upload table.
ACCEPTED_UPLOAD_EXTENSIONS: Final = frozenset(
    ext for ext in UPLOAD_TYPES if ext not in {"testcls", "apextest"}
)

# Extension -> language when rebuilding attachments from stored transcripts.
EXTENSION_LANGUAGES = MappingProxyType(
    {
        "cls": "apex",
        "trigger": "apex",
        "apex": "apex",
        "js": "javascript",
        "ts": "typescript",
        "html": "html",
        "css": "css",
        "json": "json",
        "xml": "xml",
        "py": "python",
        "java": "java",
        "cs": "csharp",
        "rb": "ruby",
        "php": "php",
        "go": "go",
        "rs": "rust",
        "kt": "kotlin",
        "swift": "swift",
        "sql": "sql",
        "sh": "bash",
        "txt": "plaintext",
    }
)

# Extension -> category when rebuilding attachments from stored transcripts.
EXTENSION_CATEGORIES = MappingProxyType(
    {
        "cls": "Apex Class",
        "trigger": "Apex Trigger",
        "apex": "Apex Code",
        "js": "JavaScript",
        "ts": "TypeScript",
        "html": "HTML",
        "css": "CSS",
        "json": "JSON",
        "xml": "XML",
        "py": "Python",
        "java": "Java",
        "cs": "C#",
        "rb": "Ruby",
        "php": "PHP",
        "go": "Go",
        "rs": "Rust",
        "kt": "Kotlin",
        "swift": "Swift",
        "sql": "SQL",
        "sh": "Shell Script",
        "txt": "Text File",
    }
)

# Paste-time category -> extension.
PASTE_EXTENSIONS = MappingProxyType(
    {
        "Apex Class": ".cls",
        "Apex Test Class": ".cls",
        "Apex Trigger": ".trigger",
        "LWC JavaScript": ".js",
        "LWC HTML": ".html",
        "LWC Configuration": ".xml",
        "LWC CSS": ".css",
        "LWC Jest Test": ".test.js",
        "SOQL Query": ".soql",
    }
)


def extension_for_language(language: str) -> str:
    """Return the dotted file extension for ``language`` (``.txt`` if unknown)."""
    return LANGUAGE_EXTENSIONS.get(language.lower(), DEFAULT_EXTENSION)


def category_for_language(language: str) -> str:
    """Return the category label for ``language`` (``Code File`` if unknown)."""
    return LANGUAGE_CATEGORIES.get(language.lower(), DEFAULT_CATEGORY)


def language_for_extension(extension: str) -> str:
    return EXTENSION_LANGUAGES.get(extension.lower().lstrip("."), PLAINTEXT)


def category_for_extension(extension: str) -> str:
    return EXTENSION_CATEGORIES.get(extension.lower().lstrip("."), DEFAULT_CATEGORY)


def extension_for_paste_category(category: str) -> str:
    return PASTE_EXTENSIONS.get(category, DEFAULT_EXTENSION)


def file_extension(file_name: str) -> str:
    """Return the lowercase text after the last dot, or ``""`` without one."""
    if "." not in file_name:
        return ""
    return file_name.rsplit(".", 1)[-1].lower()
