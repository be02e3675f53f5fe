"""
Audit Import Module
===================

Reads a legacy safety audit PDF and pre-fills answers for an audit
template.

Matching runs in stages, each only for questions still unanswered:
1. yes/no answers from positioned text lines (question text on the left,
   answer token on the right)
2. yes/no answers from the raw text
3. text/number/date answers from positioned rows
4. known labels (and the first words of the question) in the raw text

Whatever is left and is not yes/no goes to the LLM (see `ai_service`).
"""

import io
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import pdfplumber

from storesafe.core.enums import QuestionType
from storesafe.core.exceptions import ValidationError
from storesafe.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_PAGES = 10
LINE_MERGE_TOLERANCE = 2
NEARBY_ANSWER_DISTANCE = 8
ANSWER_COLUMN_RATIO = 0.55
TEXT_ROW_MIN_SCORE = 50

OVERVIEW_MARKERS = ("FAILED QUESTIONS OVERVIEW", "FLAGGED ITEMS")
OVERVIEW_END_MARKERS = ("GENERAL SITE INFORMATION", "ACTION PLAN", "DISCLAIMER")
HEADING_RE = re.compile(r"^[A-Z0-9 &\-]{6,}$")
TOKEN_AT_END_RE = re.compile(r"\b(yes|no|n/a|na|none)\b\s*$", re.IGNORECASE)
WINDOW_TOKEN_RE = re.compile(r"\b(yes|no|n/a|na)\b", re.IGNORECASE)
AFTER_SEPARATOR_RE = re.compile(r"[:?]\s*(.+)$")
NUMBER_RE = re.compile(r"-?\d+(\.\d+)?")
ISO_DATE_RE = re.compile(r"\b(\d{4})-(\d{2})-(\d{2})\b")
UK_DATE_RE = re.compile(r"\b(\d{1,2})[/\-](\d{1,2})[/\-](\d{2,4})\b")
STOP_TOKENS = (
    " Photo ",
    " Is the ",
    " Has the ",
    " Are the ",
    " Risk Assessments",
    " Health and Safety Policy",
)

# (label, question type) looked up before falling back to the question's first words
LABEL_OVERRIDES = (
    ("young persons", QuestionType.NUMBER),
    ("pat", QuestionType.YESNO),
    ("lift", QuestionType.YESNO),
    ("working at height", QuestionType.YESNO),
    ("manual handling", QuestionType.YESNO),
    ("types of racking", QuestionType.TEXT),
    ("date of last accident", QuestionType.DATE),
    ("location of light switch", QuestionType.TEXT),
    ("auditor name", QuestionType.TEXT),
    ("store manager", QuestionType.TEXT),
    ("manager name", QuestionType.TEXT),
)


# ==========================
# Data types
# ==========================

@dataclass
class TextRun:
    x: float
    y: float
    text: str


@dataclass
class TextLine:
    y: float
    runs: List[TextRun] = field(default_factory=list)

    @property
    def text(self) -> str:
        return " ".join(run.text for run in self.runs).strip()


@dataclass
class LineEntry:
    """Question-side text of a line with the answer found for it."""

    text: str
    norm: str
    answer: Optional[str]
    has_question_mark: bool
    y: float
    threshold: float


@dataclass
class Row:
    text: str
    norm: str
    runs: List[TextRun]


@dataclass
class ParsedPDF:
    text: str
    pages: List[List[TextRun]]
    total_pages: int
    pages_parsed: int


@dataclass
class Question:
    id: str
    text: str
    type: str


# ==========================
# PDF reading
# ==========================

def read_pdf(data: bytes, max_pages: int = DEFAULT_MAX_PAGES) -> ParsedPDF:
    """
    Positioned text runs and the plain text of the first `max_pages` pages.

    `max_pages` <= 0 reads every page. Run `y` is measured from the top of
    the page.

    Raises:
        ValidationError: The upload is not a readable PDF
    """
    try:
        with pdfplumber.open(io.BytesIO(data)) as pdf:
            total = len(pdf.pages)
            limit = total if max_pages <= 0 else min(total, max_pages)
            pages: List[List[TextRun]] = []
            texts: List[str] = []
            for page in pdf.pages[:limit]:
                words = page.extract_words(keep_blank_chars=True, use_text_flow=False)
                pages.append([
                    TextRun(x=float(word["x0"]), y=float(word["top"]), text=word["text"].strip())
                    for word in words
                    if word["text"].strip()
                ])
                texts.append(page.extract_text() or "")
    except Exception as e:
        logger.warning("Audit PDF could not be read", extra={"error": str(e)})
        raise ValidationError("Uploaded file is not a readable PDF", details={"reason": str(e)})

    logger.info("Audit PDF read", extra={"total_pages": total, "pages_parsed": limit})
    return ParsedPDF(text="\n".join(texts), pages=pages, total_pages=total, pages_parsed=limit)


# ==========================
# Text helpers
# ==========================

def normalize(value: str) -> str:
    value = re.sub(r"[^a-z0-9\s]", " ", value.lower())
    return re.sub(r"\s+", " ", value).strip()


def answer_token(value: str) -> Optional[str]:
    """Canonical yes/no/n/a for a cell, or None when it is not an answer."""
    trimmed = value.strip().lower()
    if trimmed in ("yes", "no"):
        return trimmed
    if trimmed in ("n/a", "na"):
        return "n/a"
    if trimmed in ("none", "none recorded", "no issues"):
        return "no"
    return None


def match_score(question: str, line: str) -> int:
    """
    Word-overlap score of a normalized question against a normalized line.

    Short questions (three words or fewer) must match every word to score
    100; otherwise each shared word is worth 10.
    """
    q_words = question.split()
    l_words = set(line.split())
    if not q_words or not l_words:
        return 0
    overlap = sum(1 for word in q_words if word in l_words)
    if len(q_words) <= 3:
        return 100 if overlap == len(q_words) else overlap * 10
    return int(overlap / len(q_words) * 100 + 0.5)


def token_at_end(value: str) -> Optional[str]:
    match = TOKEN_AT_END_RE.search(value)
    if not match:
        return None
    token = match.group(1).lower()
    if token == "na":
        return "n/a"
    if token == "none":
        return "no"
    return token


def token_only_line(value: str) -> Optional[str]:
    trimmed = value.strip().lower()
    if trimmed in ("yes", "no"):
        return trimmed
    if trimmed in ("n/a", "na"):
        return "n/a"
    return None


def extract_number(value: str) -> Optional[str]:
    match = NUMBER_RE.search(value)
    return match.group(0) if match else None


def extract_date(value: str) -> Optional[str]:
    """ISO `YYYY-MM-DD` from an ISO or UK day/month/year date."""
    iso = ISO_DATE_RE.search(value)
    if iso:
        return f"{iso.group(1)}-{iso.group(2)}-{iso.group(3)}"
    uk = UK_DATE_RE.search(value)
    if uk:
        day, month, year = uk.groups()
        if len(year) == 2:
            year = f"20{year}"
        return f"{year}-{month.zfill(2)}-{day.zfill(2)}"
    return None


def looks_like_question_block(value: str) -> bool:
    lower = value.lower()
    if " photo " in lower:
        return True
    if "is the " in lower and "?" in lower:
        return True
    if value.count("?") >= 2:
        return True
    return len(value.split()) > 28


def clean_extracted_value(value: str) -> str:
    trimmed = value.strip()
    cleaned = trimmed
    for token in STOP_TOKENS:
        index = cleaned.find(token)
        if index > 0:
            cleaned = cleaned[:index].strip()
    return cleaned or trimmed


# ==========================
# Positioned lines
# ==========================

def group_lines(runs: Sequence[TextRun]) -> List[TextLine]:
    """
    Merge runs into lines, top to bottom, runs left to right.

    A run joins the first line whose y is within the merge tolerance.
    """
    lines: List[TextLine] = []
    for run in runs:
        line = next((entry for entry in lines if abs(entry.y - run.y) <= LINE_MERGE_TOLERANCE), None)
        if line is None:
            line = TextLine(y=run.y)
            lines.append(line)
        line.runs.append(run)
    lines.sort(key=lambda entry: entry.y)
    for line in lines:
        line.runs.sort(key=lambda run: run.x)
    return lines


def is_overview_page(lines: Sequence[TextLine]) -> bool:
    return any(
        marker in line.text.upper()
        for line in lines
        for marker in OVERVIEW_MARKERS
    )


def _rightmost_token(runs: Sequence[TextRun]):
    tokens = [(run.x, answer_token(run.text)) for run in runs]
    tokens = [entry for entry in tokens if entry[1]]
    if not tokens:
        return None
    return max(tokens, key=lambda entry: entry[0])


def extract_line_entries(pages: Sequence[Sequence[TextRun]]):
    """
    Returns:
        (entries, rows): question lines with their answers, and every
        line's full text for the text-value matcher
    """
    entries: List[LineEntry] = []
    rows: List[Row] = []

    for runs in pages:
        lines = group_lines(runs)
        if is_overview_page(lines):
            continue

        page_entries: List[LineEntry] = []
        candidates = []
        for line in lines:
            if not line.runs:
                continue
            max_x = max(run.x for run in line.runs)
            threshold = max_x * ANSWER_COLUMN_RATIO
            right_side = [run for run in line.runs if run.x >= threshold]

            right_token = _rightmost_token(right_side)
            any_token = _rightmost_token(line.runs)
            answer = (right_token or any_token or (None, None))[1]

            question_text = " ".join(run.text for run in line.runs if run.x < threshold).strip()
            if not question_text:
                continue

            page_entries.append(
                LineEntry(
                    text=question_text,
                    norm=normalize(question_text),
                    answer=answer,
                    has_question_mark="?" in question_text,
                    y=line.y,
                    threshold=threshold,
                )
            )
            if line.text:
                rows.append(Row(text=line.text, norm=normalize(line.text), runs=list(line.runs)))
            if right_token:
                candidates.append({"y": line.y, "x": right_token[0], "token": right_token[1]})

        for entry in page_entries:
            if entry.answer:
                continue
            nearby = [
                candidate
                for candidate in candidates
                if abs(candidate["y"] - entry.y) <= NEARBY_ANSWER_DISTANCE
                and candidate["x"] >= entry.threshold
            ]
            if nearby:
                entry.answer = min(nearby, key=lambda candidate: abs(candidate["y"] - entry.y))["token"]
        entries.extend(page_entries)

    return entries, rows


# ==========================
# Matching stages
# ==========================

def match_yesno_lines(questions: Sequence[Question], entries: Sequence[LineEntry]) -> Dict[str, str]:
    answers: Dict[str, str] = {}
    for question in questions:
        if question.type != QuestionType.YESNO.value:
            continue
        norm_question = normalize(question.text)
        if not norm_question:
            continue
        min_score = 80 if len(norm_question.split()) <= 3 else 60

        best_answer, best_score = None, -1
        for entry in entries:
            if not entry.answer:
                continue
            score = match_score(norm_question, entry.norm)
            if "?" in question.text and not entry.has_question_mark:
                score -= 20
            if score >= min_score and score > best_score:
                best_answer, best_score = entry.answer, score
        if best_answer:
            answers[question.id] = best_answer
    return answers


def filter_text_lines(text: str) -> List[str]:
    """Non-empty lines of the raw text with the failed/flagged overview removed."""
    kept = []
    skipping = False
    for raw in text.split("\n"):
        line = raw.strip()
        if not line:
            continue
        upper = line.upper()
        if any(marker in upper for marker in OVERVIEW_MARKERS):
            skipping = True
            continue
        if skipping:
            if any(marker in upper for marker in OVERVIEW_END_MARKERS) or HEADING_RE.match(upper):
                skipping = False
            else:
                continue
        kept.append(line)
    return kept


def _token_near(lines: Sequence[str], index: int, lookahead: int = 3) -> Optional[str]:
    token = token_at_end(lines[index])
    if token:
        return token
    for offset in range(1, lookahead + 1):
        if index + offset >= len(lines):
            break
        token = token_only_line(lines[index + offset])
        if token:
            return token
    return None


def match_yesno_text(
    questions: Sequence[Question],
    lines: Sequence[str],
    full_text: str,
    answered: Dict[str, str],
) -> Dict[str, str]:
    answers: Dict[str, str] = {}
    normalized_full = normalize(full_text)
    normalized_lines = [normalize(line) for line in lines]

    for question in questions:
        if question.type != QuestionType.YESNO.value or question.id in answered:
            continue
        norm_question = normalize(question.text)
        key_words = " ".join(norm_question.split()[:6])
        if not key_words:
            continue

        answer = None
        for index, line_norm in enumerate(normalized_lines):
            if key_words not in line_norm:
                continue
            answer = _token_near(lines, index)
            if answer:
                break

        if not answer and len(norm_question) > 6:
            position = normalized_full.find(norm_question)
            if position != -1:
                start = position + len(norm_question)
                match = WINDOW_TOKEN_RE.search(normalized_full[start:start + 200])
                if match:
                    token = match.group(1).lower()
                    answer = "n/a" if token == "na" else token

        if answer:
            answers[question.id] = answer
    return answers


def extract_row_value(row: Row) -> Optional[str]:
    if not row.runs:
        return None
    threshold = max(run.x for run in row.runs) * ANSWER_COLUMN_RATIO
    right_text = " ".join(run.text for run in row.runs if run.x >= threshold).strip()
    if right_text and not answer_token(right_text):
        return right_text
    match = AFTER_SEPARATOR_RE.search(row.text)
    if match and match.group(1):
        return match.group(1).strip()
    return None


def match_text_rows(questions: Sequence[Question], rows: Sequence[Row]) -> Dict[str, str]:
    answers: Dict[str, str] = {}
    for question in questions:
        if question.type == QuestionType.YESNO.value:
            continue
        norm_question = normalize(question.text)
        if not norm_question:
            continue

        best_index, best_score = -1, -1
        for index, row in enumerate(rows):
            score = match_score(norm_question, row.norm)
            if score >= TEXT_ROW_MIN_SCORE and score > best_score:
                best_index, best_score = index, score
        if best_index == -1:
            continue

        value = extract_row_value(rows[best_index])
        if value and looks_like_question_block(value):
            value = None
        if not value and best_index + 1 < len(rows):
            next_row = rows[best_index + 1]
            candidate = next_row.text.strip()
            if "?" not in candidate and candidate and not looks_like_question_block(candidate):
                value = candidate
        if value:
            answers[question.id] = clean_extracted_value(value)
    return answers


def _after_label(line: str, label: str) -> Optional[str]:
    index = line.lower().find(label.lower())
    if index == -1:
        return None
    rest = line[index + len(label):].strip()
    if not rest:
        return None
    cleaned = re.sub(r"^[:\-]\s*", "", rest).strip()
    return cleaned or None


def match_labels(
    questions: Sequence[Question],
    lines: Sequence[str],
    answered: set,
) -> tuple:
    """
    Returns:
        (yes/no answers, text answers) found by label lookup
    """
    yesno: Dict[str, str] = {}
    text: Dict[str, str] = {}
    normalized_lines = [normalize(line) for line in lines]

    for question in questions:
        if question.id in answered:
            continue
        norm_question = normalize(question.text)
        if not norm_question:
            continue

        label = next(
            (name for name, _ in LABEL_OVERRIDES if normalize(name) in norm_question),
            " ".join(norm_question.split()[:5]),
        )
        norm_label = normalize(label)
        found = next((i for i, line in enumerate(normalized_lines) if norm_label in line), -1)
        if found == -1:
            continue

        if question.type == QuestionType.YESNO.value:
            token = _token_near(lines, found)
            if token:
                yesno[question.id] = token
            continue

        candidate = _after_label(lines[found], label)
        if not candidate:
            for offset in (1, 2):
                if found + offset >= len(lines):
                    break
                next_line = lines[found + offset]
                if "?" in next_line:
                    continue
                candidate = next_line.strip()
                if candidate:
                    break
        if not candidate:
            continue

        if question.type == QuestionType.NUMBER.value:
            number = extract_number(candidate)
            if number:
                text[question.id] = number
        elif question.type == QuestionType.DATE.value:
            parsed = extract_date(candidate)
            if parsed:
                text[question.id] = parsed
        else:
            text[question.id] = candidate
    return yesno, text


def match_answers(questions: Sequence[Question], parsed: ParsedPDF) -> Dict[str, str]:
    """
    Heuristic answers for a template's questions, keyed by question id.

    Yes/no answers come first, then text values; later stages only fill
    questions earlier stages left empty.
    """
    entries, rows = extract_line_entries(parsed.pages)
    lines = filter_text_lines(parsed.text)

    yesno = match_yesno_lines(questions, entries)
    yesno.update(match_yesno_text(questions, lines, parsed.text, yesno))
    text = match_text_rows(questions, rows)

    label_yesno, label_text = match_labels(questions, lines, set(yesno) | set(text))
    yesno.update(label_yesno)
    text.update(label_text)

    logger.info(
        "Audit heuristics matched",
        extra={
            "questions": len(questions),
            "yesno_matched": len(yesno),
            "text_matched": len(text),
        },
    )
    return {**yesno, **text}


def unmatched_questions(questions: Sequence[Question], answers: Dict[str, str]) -> List[Question]:
    """Questions still without an answer that the LLM may fill (yes/no are never sent)."""
    return [
        question
        for question in questions
        if question.id not in answers and question.type != QuestionType.YESNO.value
    ]


def questions_from_template(template) -> List[Question]:
    return [
        Question(
            id=str(question.id),
            text=question.question_text,
            type=QuestionType(question.question_type).value,
        )
        for question in template.questions
    ]
