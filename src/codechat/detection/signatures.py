"""Lexical signature bundles used by the code detection engine.

Signatures are data, not code: the engine takes a ``SignatureBundle`` so the
domain vocabulary behind the stricter paste-time gate can be swapped without
touching the detection algorithm.
"""

from __future__ import annotations

from dataclasses import dataclass
import re

Pattern = re.Pattern[str]


@dataclass(frozen=True)
class SignatureBundle:
    """Ordered pattern sets consumed by ``CodeDetectionEngine``.

    Attributes:
        line_patterns: Per-line signatures for whole-input classification.
        file_patterns: Signatures counted once each across the whole text.
        language_cascade: ``(language, pattern)`` pairs; first match wins.
        paste_vocabulary: Domain tokens; at least one must appear in a paste.
        paste_line_patterns: Looser per-line signatures for pasted text.
        paste_cascade: ``(pattern, language, category)`` for pasted domain code.
    """

    line_patterns: tuple[Pattern, ...]
    file_patterns: tuple[Pattern, ...]
    language_cascade: tuple[tuple[str, Pattern], ...]
    paste_vocabulary: Pattern
    paste_line_patterns: tuple[Pattern, ...]
    paste_cascade: tuple[tuple[Pattern, str, str], ...]


LINE_PATTERNS: tuple[Pattern, ...] = tuple(
    re.compile(source)
    for source in (
        r"^\s*[{}][\s;]*$",  # lone braces
        r"^\s*(\w+\s*\([^)]*\)[\s;{]*$)",  # call or definition
        r"^\s*(public|private|protected|static|final|class|interface|enum|import|package|void|return)\s",
        r"^\s*(\w+\s+\w+\s*=)",  # typed assignment
        r"^\s*(if|for|while|switch|catch)\s*\(",
        r"^\s*([a-zA-Z0-9_$]+\s*\([^)]*\))",  # method call
        r"^\s*@\w+",  # annotation
        r"^\s*//.*$",
        r"^\s*/\*.*\*/\s*$",
        r"^\s*\*.*$",  # doc comment body
        r"^\s*[a-zA-Z0-9_$]+:.*$",  # label
        r"^\s*case\s+.*:$",
        r"^\s*#\w+",  # preprocessor / include
        r"^\s*\w+\s*:\s*\w+",  # key: value
        r"^\s*[a-zA-Z0-9_$]+\s*\.\s*[a-zA-Z0-9_$]+",  # property access
        r"^\s*<[a-zA-Z0-9_$]+",  # markup tag
        r"^\s*[a-zA-Z0-9_$]+\s*=\s*[\"']",  # attribute
        r"^\s*;$",
        r"^\s*[a-zA-Z0-9_$]+\s+[a-zA-Z0-9_$]+\s*;$",  # simple statement
    )
)

FILE_PATTERNS: tuple[Pattern, ...] = (
    re.compile(r"\b(class|interface|enum)\s+\w+"),
    re.compile(r"\b(public|private|protected|static)\s+\w+(\s+\w+)?\s*\("),
    re.compile(r"\bimport\s+[\w.]+;"),
    re.compile(r"\bpackage\s+[\w.]+;"),
    re.compile(r"\bfunction\s+\w+\s*\("),
    re.compile(r"\b(const|let|var)\s+\w+\s*="),
    re.compile(r"\bdef\s+\w+\s*\("),
    re.compile(r"\bimport\s+\w+"),
    re.compile(r"\bSELECT\s+.+\s+FROM\s+", re.IGNORECASE),
    re.compile(r"<\w+(\s+\w+=\"[^\"]*\")*\s*>"),
    re.compile(r"@isTest"),
    re.compile(r"\b(public|private|global)\s+(with sharing|without sharing)?\s*class\s+\w+"),
    re.compile(r"#include\s+[<\"][^>\"]+[>\"]"),
)

LANGUAGE_CASCADE: tuple[tuple[str, Pattern], ...] = (
    (
        "apex",
        re.compile(r"@isTest|@AuraEnabled|Trigger\s+\w+\s+on\s+|System\.debug|Account\s+acc\s*="),
    ),
    (
        "javascript",
        re.compile(
            r"import\s+React|<(div|span|p)\s+className=|React\.Component|useState\(|export\s+default\s+function"
        ),
    ),
    ("go", re.compile(r"\bfunc\s+\w+\(|package\s+main")),
    (
        "python",
        re.compile(r"def\s+\w+\(|import\s+\w+\s+as\s+\w+|if\s+__name__\s*==\s*('|\")__main__('|\")"),
    ),
    ("java", re.compile(r"public\s+class\s+\w+|private\s+void\s+\w+\(|System\.out\.println")),
    ("csharp", re.compile(r"public\s+static\s+void\s+Main\(|namespace\s+\w+|using\s+System;")),
    ("html", re.compile(r"<html|<div|<head|<body|<script")),
    ("sql", re.compile(r"SELECT\s+.*\s+FROM\s+|INSERT\s+INTO\s+|UPDATE\s+|DELETE\s+FROM")),
    (
        "javascript",
        re.compile(r"\$\(document\)|function\s+\w+\s*\(|var\s+\w+\s*=|const\s+\w+\s*=|let\s+\w+\s*="),
    ),
)

SALESFORCE_VOCABULARY: Pattern = re.compile(
    r"\b(Apex|Salesforce|SObject|@isTest|@AuraEnabled|@api|LightningElement"
    r"|Account|Contact|Opportunity|Lead|trigger)\b"
)

SALESFORCE_PASTE_LINE_PATTERNS: tuple[Pattern, ...] = (
    re.compile(r"^\s{2,}"),  # indentation
    re.compile(r"[{}();]"),
    re.compile(
        r"\b(class|trigger|@isTest|@AuraEnabled|@api|@track|@wire|public|private"
        r"|global|static|with sharing|without sharing)\b"
    ),
    re.compile(r"\bSystem\.\w+"),
    re.compile(r"\bApex[A-Z]\w+"),
    re.compile(r"\bSObject\b"),
    re.compile(r"\b(Account|Contact|Opportunity|Case|Lead)\b"),
    re.compile(r"\bLightningElement\b"),
    re.compile(r"\bimport\s+{[^}]+}\s+from\s+['\"]lightning/\w+['\"]"),
    re.compile(r"="),
    re.compile(r"//|/\*|\*/|\*"),
)

SALESFORCE_PASTE_CASCADE: tuple[tuple[Pattern, str, str], ...] = (
    (
        re.compile(r"@isTest|@testSetup|@testVisible|Test\.startTest\(|Test\.stopTest\("),
        "apex",
        "Apex Test Class",
    ),
    (re.compile(r"trigger\s+\w+\s+on\s+\w+"), "apex", "Apex Trigger"),
    (
        re.compile(
            r"(@AuraEnabled|System\.|Database\.|public\s+class|private\s+class"
            r"|global\s+class|with\s+sharing|without\s+sharing)"
        ),
        "apex",
        "Apex Class",
    ),
    (
        re.compile(
            r"(import\s+{[^}]+}\s+from\s+|@api\s+|@track\s+|@wire\s+"
            r"|connectedCallback\(\)|disconnectedCallback\(\)|extends\s+LightningElement)"
        ),
        "javascript",
        "LWC JavaScript",
    ),
    (re.compile(r"<template>|<lightning-|<c-"), "html", "LWC HTML"),
    (
        re.compile(r"<\?xml|<LightningComponentBundle|<targetConfigs|<targets>"),
        "xml",
        "LWC Configuration",
    ),
    (re.compile(r"(:host|\.slds-|\.THIS)"), "css", "LWC CSS"),
    (
        re.compile(
            r"(describe\(|it\(|beforeEach\(|afterEach\(|jest\.fn\(\)|createElement\(|expect\()"
        ),
        "javascript",
        "LWC Jest Test",
    ),
    (re.compile(r"SELECT\s+.+\s+FROM\s+\w+"), "soql", "SOQL Query"),
    (
        re.compile(r"\b(Apex|Salesforce|SObject|Account|Contact|Opportunity|Lead)\b"),
        "apex",
        "Apex Class",
    ),
)

DEFAULT_SIGNATURES = SignatureBundle(
    line_patterns=LINE_PATTERNS,
    file_patterns=FILE_PATTERNS,
    language_cascade=LANGUAGE_CASCADE,
    paste_vocabulary=SALESFORCE_VOCABULARY,
    paste_line_patterns=SALESFORCE_PASTE_LINE_PATTERNS,
    paste_cascade=SALESFORCE_PASTE_CASCADE,
)
