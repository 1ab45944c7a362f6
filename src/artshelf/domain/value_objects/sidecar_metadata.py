"""Parser for the `<id>-meta.txt` sidecar files exported next to artwork media.

Hey future me - this format is NOT key: value! Every field name sits alone on its own
line, followed by one or more value lines. A blank line (or the next field name) ends the
field. The browser extension writes these files and existing libraries contain hundreds
of thousands of them, so parsing must stay byte-compatible with what it writes:

    ID
    123
    User
    Alice
    UserID
    456
    Title
    Sunset

    Tags
    #landscape
    #sky

Quirks that look like bugs but are load-bearing:
1. Blank lines right after a field name (before any value) are skipped, the field stays open.
2. Lines before the first field name are ignored.
3. A value line that is not a field name is ALWAYS continuation, even "Title:" or "id".
4. Field names match exactly after trimming: "title" is a value line, "Title" is a field.

Usage:
    from artshelf.domain.value_objects.sidecar_metadata import parse_metadata_file

    outcome = parse_metadata_file(Path("/library/a/123-meta.txt"))
    if isinstance(outcome, ParseFailure):
        ...
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)


# =============================================================================
# FORMAT CONSTANTS
# =============================================================================

FIELD_ID = "ID"
FIELD_USER = "User"
FIELD_USER_ID = "UserID"
FIELD_TITLE = "Title"
FIELD_DESCRIPTION = "Description"
FIELD_TAGS = "Tags"
FIELD_URL = "URL"
FIELD_ORIGINAL = "Original"
FIELD_THUMBNAIL = "Thumbnail"
FIELD_X_RESTRICT = "xRestrict"
FIELD_AI = "AI"
FIELD_SIZE = "Size"
FIELD_BOOKMARK = "Bookmark"
FIELD_DATE = "Date"

# Order matters for format_metadata(): it mirrors what the exporter writes
KNOWN_FIELDS: tuple[str, ...] = (
    FIELD_ID,
    FIELD_USER,
    FIELD_USER_ID,
    FIELD_TITLE,
    FIELD_DESCRIPTION,
    FIELD_TAGS,
    FIELD_URL,
    FIELD_ORIGINAL,
    FIELD_THUMBNAIL,
    FIELD_X_RESTRICT,
    FIELD_AI,
    FIELD_SIZE,
    FIELD_BOOKMARK,
    FIELD_DATE,
)
_KNOWN_FIELD_SET = frozenset(KNOWN_FIELDS)

REQUIRED_FIELDS: tuple[str, ...] = (FIELD_ID, FIELD_USER, FIELD_USER_ID, FIELD_TITLE)

# Sidecar filename: "<digits>-meta.txt", case-insensitive
# Examples:
#   "123-meta.txt" → "123"
#   "123-META.TXT" → "123"
#   "abc-meta.txt" → no match
#   "123-meta.txt.bak" → no match
METADATA_FILENAME_PATTERN = re.compile(r"^(\d+)-meta\.txt$", re.IGNORECASE)
METADATA_FILENAME_SUFFIX = "-meta.txt"

NUMERIC_ID_PATTERN = re.compile(r"^\d+$")

# Leading integer, same leniency as the exporter's reader: "12 likes" → 12, "abc" → None
_LEADING_INT_PATTERN = re.compile(r"^\s*([+-]?\d+)")

# Fallback date layouts seen in older exports (ISO-8601 is tried first)
_DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d",
    "%a %b %d %Y %H:%M:%S",
    "%a, %d %b %Y %H:%M:%S GMT",
)


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class MetadataRecord:
    """Fields extracted from one sidecar file.

    id, user, user_id and title are guaranteed non-empty after parse_metadata_text()
    succeeds; id and user_id are numeric strings.
    """

    id: str
    user: str
    user_id: str
    title: str
    description: str | None = None
    tags: list[str] = field(default_factory=list)
    source_url: str | None = None
    original_url: str | None = None
    thumbnail_url: str | None = None
    x_restrict: str | None = None
    ai_generated: bool | None = None
    size: str | None = None
    bookmark_count: int | None = None
    # None when the Date field is absent or unparseable; the ingestion engine defaults it
    source_date: datetime | None = None


class ParseFailureKind(str, Enum):
    """Why a sidecar could not be turned into a MetadataRecord."""

    NOT_FOUND = "not_found"  # benign, file vanished between discovery and parse
    INVALID = "invalid"  # required fields missing / malformed ids
    UNREADABLE = "unreadable"  # I/O or decoding error


@dataclass(frozen=True)
class ParseFailure:
    """Typed parse failure, returned instead of raised."""

    kind: ParseFailureKind
    path: Path | None
    message: str

    @property
    def is_benign(self) -> bool:
        return self.kind == ParseFailureKind.NOT_FOUND


# =============================================================================
# FILENAME HELPERS
# =============================================================================


def extract_artwork_id_from_filename(filename: str) -> str | None:
    """Extract the external artwork id from a sidecar filename.

    Args:
        filename: Bare filename (no directory), e.g. "123-meta.txt"

    Returns:
        The numeric id as string, or None if the name is not a sidecar
    """
    match = METADATA_FILENAME_PATTERN.match(filename)
    return match.group(1) if match else None


def is_metadata_file(filename: str) -> bool:
    """Check whether a filename looks like a sidecar file."""
    return extract_artwork_id_from_filename(filename) is not None


def metadata_filename_for(external_id: str) -> str:
    """Return the canonical sidecar filename for an external id."""
    return f"{external_id}{METADATA_FILENAME_SUFFIX}"


# =============================================================================
# VALUE PARSERS
# =============================================================================


def parse_tags(value: str) -> list[str]:
    """Split a Tags value into clean tag names.

    Args:
        value: Raw multi-line value, e.g. "#landscape\\n#sky\\n #"

    Returns:
        Tag names without leading '#', blanks dropped: ["landscape", "sky"]
    """
    tags: list[str] = []
    for raw in value.split("\n"):
        tag = raw.strip()
        if tag.startswith("#"):
            tag = tag[1:]
        if tag:
            tags.append(tag)
    return tags


def parse_bookmark(value: str) -> int:
    """Parse a Bookmark value, 0 when no leading integer is present."""
    match = _LEADING_INT_PATTERN.match(value)
    return int(match.group(1)) if match else 0


def parse_date(value: str) -> datetime | None:
    """Parse a Date value into a UTC-aware datetime.

    Naive values are assumed to be UTC. Returns None when nothing matches,
    the parser never invents a date.
    """
    text = value.strip()
    if not text:
        return None

    parsed: datetime | None = None
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        for fmt in _DATE_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


# =============================================================================
# PARSER
# =============================================================================


def _split_fields(content: str) -> dict[str, str]:
    """Run the line state machine and return raw field values.

    Later occurrences of the same field name overwrite earlier ones.
    """
    fields: dict[str, str] = {}
    current_key = ""
    current_lines: list[str] = []

    def flush() -> None:
        value = "\n".join(current_lines).strip()
        if current_key and value:
            fields[current_key] = value

    for line in content.split("\n"):
        stripped = line.strip()

        if not stripped:
            # Blank line only closes a field that already has content
            if current_key and current_lines:
                flush()
                current_key = ""
                current_lines = []
            continue

        if stripped in _KNOWN_FIELD_SET:
            flush()
            current_key = stripped
            current_lines = []
        else:
            current_lines.append(stripped)

    flush()
    return fields


def _validate(fields: dict[str, str]) -> list[str]:
    errors = [
        f"Required field '{name}' is missing or empty"
        for name in REQUIRED_FIELDS
        if not fields.get(name)
    ]
    if fields.get(FIELD_ID) and not NUMERIC_ID_PATTERN.match(fields[FIELD_ID]):
        errors.append("ID must be a numeric string")
    if fields.get(FIELD_USER_ID) and not NUMERIC_ID_PATTERN.match(fields[FIELD_USER_ID]):
        errors.append("UserID must be a numeric string")
    return errors


def parse_metadata_text(
    content: str, path: Path | None = None
) -> MetadataRecord | ParseFailure:
    """Parse sidecar text into a MetadataRecord.

    Args:
        content: Full file content (already decoded)
        path: Optional source path, only used for the failure object

    Returns:
        MetadataRecord on success, ParseFailure(kind=INVALID) when validation fails
    """
    fields = _split_fields(content)

    errors = _validate(fields)
    if errors:
        return ParseFailure(
            kind=ParseFailureKind.INVALID, path=path, message="; ".join(errors)
        )

    record = MetadataRecord(
        id=fields[FIELD_ID],
        user=fields[FIELD_USER],
        user_id=fields[FIELD_USER_ID],
        title=fields[FIELD_TITLE],
        description=fields.get(FIELD_DESCRIPTION),
        source_url=fields.get(FIELD_URL),
        original_url=fields.get(FIELD_ORIGINAL),
        thumbnail_url=fields.get(FIELD_THUMBNAIL),
        x_restrict=fields.get(FIELD_X_RESTRICT),
        size=fields.get(FIELD_SIZE),
    )

    if FIELD_TAGS in fields:
        record.tags = parse_tags(fields[FIELD_TAGS])
    if FIELD_AI in fields:
        record.ai_generated = fields[FIELD_AI] == "Yes"
    if FIELD_BOOKMARK in fields:
        record.bookmark_count = parse_bookmark(fields[FIELD_BOOKMARK])
    if FIELD_DATE in fields:
        record.source_date = parse_date(fields[FIELD_DATE])
        if record.source_date is None:
            logger.debug(
                "Unparseable Date %r in %s", fields[FIELD_DATE], path or "<text>"
            )

    return record


def parse_metadata_file(path: Path) -> MetadataRecord | ParseFailure:
    """Read and parse one sidecar file. Never raises.

    Hey future me - this runs in the scanner's thread pool, so it must not touch the
    DB or the event loop. Files can disappear between discovery and parse (user moving
    folders mid-scan): that's NOT_FOUND, logged at info by the caller, not an error.

    Args:
        path: Absolute path of the sidecar file

    Returns:
        MetadataRecord or ParseFailure
    """
    try:
        if path.exists() and not path.is_file():
            return ParseFailure(
                kind=ParseFailureKind.UNREADABLE,
                path=path,
                message=f"Path is not a file: {path}",
            )
        # utf-8-sig strips the BOM some Windows editors add
        content = path.read_text(encoding="utf-8-sig")
    except FileNotFoundError:
        return ParseFailure(
            kind=ParseFailureKind.NOT_FOUND, path=path, message=f"File not found: {path}"
        )
    except UnicodeDecodeError as e:
        return ParseFailure(
            kind=ParseFailureKind.UNREADABLE,
            path=path,
            message=f"File is not valid UTF-8: {e}",
        )
    except OSError as e:
        return ParseFailure(kind=ParseFailureKind.UNREADABLE, path=path, message=str(e))

    return parse_metadata_text(content, path)


# =============================================================================
# SERIALIZER
# =============================================================================


def format_metadata(record: MetadataRecord) -> str:
    """Serialize a record in the exporter's layout.

    parse_metadata_text(format_metadata(r)) yields a record equal to r for any r
    that came out of the parser.
    """
    values: list[tuple[str, str | None]] = [
        (FIELD_ID, record.id),
        (FIELD_USER, record.user),
        (FIELD_USER_ID, record.user_id),
        (FIELD_TITLE, record.title),
        (FIELD_DESCRIPTION, record.description),
        (FIELD_TAGS, "\n".join(f"#{tag}" for tag in record.tags) or None),
        (FIELD_URL, record.source_url),
        (FIELD_ORIGINAL, record.original_url),
        (FIELD_THUMBNAIL, record.thumbnail_url),
        (FIELD_X_RESTRICT, record.x_restrict),
        (
            FIELD_AI,
            None
            if record.ai_generated is None
            else ("Yes" if record.ai_generated else "No"),
        ),
        (FIELD_SIZE, record.size),
        (
            FIELD_BOOKMARK,
            None if record.bookmark_count is None else str(record.bookmark_count),
        ),
        (
            FIELD_DATE,
            record.source_date.isoformat() if record.source_date else None,
        ),
    ]

    blocks = [f"{name}\n{value}" for name, value in values if value]
    return "\n\n".join(blocks) + "\n"
