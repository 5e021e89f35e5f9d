"""Mine semi-structured persona documents for quotable facts.

Persona documents are markdown written by the research team. They are parsed
in two passes: :func:`scan_outline` walks the text once and records where
every heading's body starts and stops, then each field extractor reads only
the lines of the section it cares about. A missing or malformed section
never raises; the corresponding field is simply left empty.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

import structlog

from .schemas import ExtractedPersonaFacts, JobsToBeDone, ObjectionResponse, ThemeAngles

logger = structlog.get_logger(__name__)

MIN_QUOTE_LENGTH = 20
EMOTIONAL_JOB_LIMIT = 500

# Straight and smart double quotes.
QUOTE_CHARS = "\"\u201c\u201d"

HEADING_RE = re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")
RULE_RE = re.compile(r"^\s{0,3}([-*_])(?:\s*\1){2,}\s*$")
FENCE_RE = re.compile(r"^\s*(```|~~~)")
THEME_PREFIX_RE = re.compile(r"^(?:major\s+)?theme\s+[a-z0-9]+\s*:\s*", re.IGNORECASE)
ANGLE_HEADING_RE = re.compile(r"angle[^:\"\u201c\n]*:?\s*[\"\u201c]([^\"\u201d]+)[\"\u201d]", re.IGNORECASE)
STATIC_COPY_RE = re.compile(r"\*\*static copy:\*\*\s*[\"\u201c]([^\"\u201d]+)[\"\u201d]", re.IGNORECASE)
NUMBERED_JOB_RE = re.compile(r"^\d+\.\s*\*\*([^*]+)\*\*")
BOLD_QUOTE_RE = re.compile(r"\*\*[\"\u201c]([^\"\u201d]+)[\"\u201d]\*\*")
TABLE_SEPARATOR_RE = re.compile(r"^[\s:\-]+$")


# ---------------------------------------------------------------------------
# Outline scanning
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Section:
    """A heading and the half-open range of body lines it owns."""

    level: int
    title: str
    heading: int
    end: int

    @property
    def start(self) -> int:
        return self.heading + 1

    def matches(self, label: str) -> bool:
        title = self.title.strip("*_ ").lower()
        return title.startswith(label.lower())


@dataclass(frozen=True)
class Outline:
    lines: Tuple[str, ...]
    sections: Tuple[Section, ...]

    def find(
        self,
        label: str,
        levels: Sequence[int] = (2,),
        within: Optional[Section] = None,
    ) -> Optional[Section]:
        """Return the first section at one of *levels* whose title starts with *label*."""

        for section in self.sections:
            if section.level not in levels or not section.matches(label):
                continue
            if within is not None and not (within.start <= section.heading < within.end):
                continue
            return section
        return None

    def body(self, section: Optional[Section]) -> List[str]:
        if section is None:
            return []
        return list(self.lines[section.start : section.end])


class _OutlineScanner:
    """Line-at-a-time state machine that emits closed sections."""

    def __init__(self) -> None:
        self._open: List[Tuple[int, str, int]] = []
        self._closed: List[Section] = []
        self._in_fence = False

    def feed(self, index: int, line: str) -> None:
        if FENCE_RE.match(line):
            self._in_fence = not self._in_fence
            return
        if self._in_fence:
            return
        heading = HEADING_RE.match(line)
        if heading:
            level = len(heading.group(1))
            self._close(index, lambda open_level: open_level >= level)
            self._open.append((level, heading.group(2).strip(), index))
            return
        if RULE_RE.match(line):
            self._close(index, lambda open_level: True)

    def finish(self, line_count: int) -> Tuple[Section, ...]:
        self._close(line_count, lambda open_level: True)
        return tuple(sorted(self._closed, key=lambda section: section.heading))

    def _close(self, index: int, should_close) -> None:
        still_open = []
        for level, title, heading in self._open:
            if should_close(level):
                self._closed.append(Section(level=level, title=title, heading=heading, end=index))
            else:
                still_open.append((level, title, heading))
        self._open = still_open


def scan_outline(text: str) -> Outline:
    """Split *text* into lines and record every heading's body range.

    A body runs until the next heading of the same or a higher level, or
    until a horizontal rule, whichever comes first.
    """

    lines = tuple(text.splitlines())
    scanner = _OutlineScanner()
    for index, line in enumerate(lines):
        scanner.feed(index, line)
    return Outline(lines=lines, sections=scanner.finish(len(lines)))


# ---------------------------------------------------------------------------
# Field extractors
# ---------------------------------------------------------------------------


def _quoted_lines(lines: Iterable[str]) -> List[str]:
    quotes = []
    for line in lines:
        stripped = line.strip()
        if not stripped.startswith(">"):
            continue
        quote = stripped.lstrip(">").strip().strip(QUOTE_CHARS).strip()
        if len(quote) > MIN_QUOTE_LENGTH:
            quotes.append(quote)
    return quotes


def extract_gold_nugget_quotes(outline: Outline) -> List[str]:
    return _quoted_lines(outline.body(outline.find("Gold Nugget Quotes")))


def extract_voice_of_customer_quotes(outline: Outline) -> List[str]:
    return _quoted_lines(outline.body(outline.find("Voice of Customer")))


def extract_emotional_job(outline: Outline) -> str:
    """Prefer the dedicated subsection, fall back to the one-sentence summary."""

    job_section = outline.find("The Emotional Job", levels=(3,))
    if job_section is not None:
        kept = [
            line.strip()
            for line in outline.body(job_section)
            if line.strip() and not line.startswith("#") and not line.startswith("**")
        ]
        return " ".join(kept)[:EMOTIONAL_JOB_LIMIT]

    summary = outline.find("In One Sentence", levels=(3,))
    if summary is not None:
        match = BOLD_QUOTE_RE.search("\n".join(outline.body(summary)))
        if match:
            return match.group(1).strip()
    return ""


def _theme_name(title: str) -> str:
    return THEME_PREFIX_RE.sub("", title.strip()).replace("*", "").replace('"', "").strip()


def extract_copy_angles(outline: Outline) -> List[ThemeAngles]:
    section = outline.find("Copy Angles by Theme")
    themes: List[ThemeAngles] = []
    current: Optional[ThemeAngles] = None

    def close_theme() -> None:
        if current is not None and current.angles:
            themes.append(current)

    for line in outline.body(section):
        heading = HEADING_RE.match(line)
        if heading:
            level, title = len(heading.group(1)), heading.group(2).strip()
            if level == 3 or (level == 4 and THEME_PREFIX_RE.match(title)):
                close_theme()
                current = ThemeAngles(theme=_theme_name(title))
                continue
            if level == 4 and current is not None:
                angle = ANGLE_HEADING_RE.search(title)
                if angle and angle.group(1) not in current.angles:
                    current.angles.append(angle.group(1))
            continue
        if current is None:
            continue
        static_copy = STATIC_COPY_RE.search(line)
        if static_copy and static_copy.group(1) not in current.angles:
            current.angles.append(static_copy.group(1))

    close_theme()
    return [theme for theme in themes if theme.theme]


def _numbered_jobs(lines: Iterable[str]) -> List[str]:
    jobs = []
    for line in lines:
        match = NUMBERED_JOB_RE.match(line.strip())
        if match and match.group(1).strip():
            jobs.append(match.group(1).strip())
    return jobs


def extract_jobs_to_be_done(outline: Outline) -> JobsToBeDone:
    section = outline.find("Jobs To Be Done")
    if section is None:
        return JobsToBeDone()
    return JobsToBeDone(
        functional=_numbered_jobs(outline.body(outline.find("Functional Jobs", (3,), within=section))),
        emotional=_numbered_jobs(outline.body(outline.find("Emotional Jobs", (3,), within=section))),
        social=_numbered_jobs(outline.body(outline.find("Social Jobs", (3,), within=section))),
    )


def extract_objections(outline: Outline) -> List[ObjectionResponse]:
    section = outline.find("Objections & How to Overcome", levels=(2, 3))
    objections = []
    for line in outline.body(section):
        stripped = line.strip()
        if not stripped.startswith("|"):
            continue
        cells = [cell.strip() for cell in stripped.strip("|").split("|")]
        cells = [cell for cell in cells if cell]
        if len(cells) < 2:
            continue
        if "Objection" in cells[0] or TABLE_SEPARATOR_RE.match(cells[0]):
            continue
        objection = cells[0]
        for char in QUOTE_CHARS:
            objection = objection.replace(char, "")
        objections.append(ObjectionResponse(objection=objection.strip(), response=cells[1]))
    return objections


def extract_persona_facts(markdown: str) -> ExtractedPersonaFacts:
    """Parse one persona document into :class:`ExtractedPersonaFacts`.

    Pure function of its input: the same text always yields an identical
    record, and absent sections yield empty fields.
    """

    if not markdown or not markdown.strip():
        logger.warning("persona_document_empty")
        return ExtractedPersonaFacts()

    outline = scan_outline(markdown)
    return ExtractedPersonaFacts(
        quotes=extract_gold_nugget_quotes(outline),
        voice_of_customer_quotes=extract_voice_of_customer_quotes(outline),
        emotional_job_statement=extract_emotional_job(outline),
        copy_angles_by_theme=extract_copy_angles(outline),
        jobs_to_be_done=extract_jobs_to_be_done(outline),
        objections=extract_objections(outline),
    )
