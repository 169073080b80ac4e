"""
Heuristic text -> Profile extraction.

Each field is produced by an independent pure function over the same text and
has a defined fallback, so extract_profile never raises. Apart from the text,
the only input is the calendar year used to resolve "present" in date ranges.
"""
import re
from datetime import datetime
from typing import List, Optional

from resumerag.helpers.vocabulary import SECTION_HEADERS, SKILL_VOCABULARY
from resumerag.models.models import Profile

SUMMARY_MAX_CHARS = 500
NAME_SCAN_LINES = 5
MIN_ENTRY_CHARS = 10

EMAIL_RE = re.compile(r"[\w.-]+@[\w.-]+\.\w+")
PHONE_RE = re.compile(r"\+?\d{10,}")
LONG_DIGITS_RE = re.compile(r"\d{10}")
NAME_RE = re.compile(r"[A-Z][a-z]+(?: [A-Z][a-z]+)+")
YEAR_RANGE_RE = re.compile(r"(\d{4})\s*-\s*(\d{4}|present|current)", re.IGNORECASE)
ENTRY_SPLIT_RE = re.compile(r"\n(?=[ \t]*(?:\d{4}|•|-|\*))")
TOKEN_SPLIT_RE = re.compile(r"[,;\n]+")

_KNOWN_HEADER = r"(?:[A-Za-z]+[ \t]+)?(?:{names})[ \t]*(?::|(?=\n)|\Z)".format(
    names="|".join(SECTION_HEADERS)
)


def _section_re(names: str) -> "re.Pattern":
    # header at line start ("Skills:", "Work Experience", ...); blank lines after
    # the header are skipped, then the body runs to a blank line, the next known
    # header, or the end of the text
    return re.compile(
        r"(?:\A|\n)[ \t]*(?:[A-Za-z]+[ \t]+)?(?:" + names + r")[ \t]*(?::|(?=\n))"
        r"\s*([^\n]+(?:\n[^\n]+)*?)"
        r"(?=\n[ \t]*\n|\n[ \t]*" + _KNOWN_HEADER + r"|\s*\Z)",
        re.IGNORECASE,
    )


SKILLS_SECTION_RE = _section_re(r"skills?")
EXPERIENCE_SECTION_RE = _section_re(r"experience")
EDUCATION_SECTION_RE = _section_re(r"education")
SUMMARY_SECTION_RE = _section_re(r"summary|objective|profile")


def _normalize(text: str) -> str:
    return (text or "").replace("\r\n", "\n").replace("\r", "\n")


def _section_body(pattern: "re.Pattern", text: str) -> Optional[str]:
    m = pattern.search(text)
    if not m:
        return None
    return m.group(1)


def extract_email(text: str) -> Optional[str]:
    m = EMAIL_RE.search(text)
    return m.group(0) if m else None


def extract_phone(text: str) -> Optional[str]:
    m = PHONE_RE.search(text)
    return m.group(0) if m else None


def extract_name(text: str) -> str:
    """First Title Case line of two or more words among the first five lines.

    Lines that look like contact details are skipped. Falls back to the first
    non-empty line, then to "Unknown".
    """
    lines = [line.strip() for line in text.split("\n") if line.strip()]
    for line in lines[:NAME_SCAN_LINES]:
        if "@" in line or LONG_DIGITS_RE.search(line):
            continue
        if len(line) < 50 and NAME_RE.fullmatch(line):
            return line
    return lines[0] if lines else "Unknown"


def extract_skills(text: str) -> List[str]:
    found = {}
    lower = text.lower()
    for skill in SKILL_VOCABULARY:
        if skill.lower() in lower:
            found[skill] = None

    body = _section_body(SKILLS_SECTION_RE, text)
    if body:
        for token in TOKEN_SPLIT_RE.split(body):
            token = token.strip()
            if 2 < len(token) < 30:
                found[token] = None
    return list(found)


def _split_entries(body: Optional[str]) -> List[str]:
    if not body:
        return []
    entries = []
    for entry in ENTRY_SPLIT_RE.split(body):
        entry = entry.strip()
        if len(entry) >= MIN_ENTRY_CHARS:
            entries.append(entry)
    return entries


def extract_experience(text: str) -> List[str]:
    return _split_entries(_section_body(EXPERIENCE_SECTION_RE, text))


def extract_education(text: str) -> List[str]:
    return _split_entries(_section_body(EDUCATION_SECTION_RE, text))


def calculate_experience_years(text: str, current_year: Optional[int] = None) -> int:
    """Sum every "YYYY - YYYY" / "YYYY - present" range in the whole text.

    Overlapping ranges are counted once each, so concurrent roles inflate the
    total. Match scoring is calibrated on this number; keep it as is.
    """
    current_year = current_year or datetime.now().year
    total_months = 0
    for start, end in YEAR_RANGE_RE.findall(text):
        end_year = int(end) if end.isdigit() else current_year
        total_months += (end_year - int(start)) * 12
    return max(0, int(total_months / 12 + 0.5))


def extract_summary(text: str) -> str:
    body = _section_body(SUMMARY_SECTION_RE, text)
    if body:
        return body.strip()[:SUMMARY_MAX_CHARS]

    for para in text.split("\n\n"):
        para = para.strip()
        if 50 <= len(para) < 1000:
            return para[:SUMMARY_MAX_CHARS]

    return text[:SUMMARY_MAX_CHARS]


def extract_profile(text: str, current_year: Optional[int] = None) -> Profile:
    text = _normalize(text)
    return Profile(
        name=extract_name(text),
        email=extract_email(text),
        phone=extract_phone(text),
        skills=extract_skills(text),
        experience=extract_experience(text),
        education=extract_education(text),
        summary=extract_summary(text),
        experience_years=calculate_experience_years(text, current_year),
    )
