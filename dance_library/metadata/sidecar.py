"""
Sidecar codec: a `---` block of `key: value` lines followed by a free-text body.

Only the small subset of YAML the sidecars use is understood. Anything the
parser does not recognize is carried through unchanged, and a document it
cannot make sense of is treated as plain body text.
"""
import math
import re
from typing import Any, Dict, Optional, Tuple, Union

from .. import config
from ..models import MetadataPatch, SidecarRecord
from ..organization.paths import slugify

FIELD_LINE = re.compile(r"^\s*([^:]+?)\s*:(.*)$")

FieldValue = Union[str, int, float]

# Text fields and the record attribute each key feeds
TEXT_KEYS = {
    config.KEY_STEP_NAME: "step_name",
    config.KEY_DESCRIPTION: "description",
    config.KEY_DANCE: "dance",
    config.KEY_STYLE: "style",
    config.KEY_DANCE_STYLE: "style",
    config.KEY_CLASS: "class_level",
    config.KEY_CLASS_LEVEL: "class_level",
}
NUMERIC_KEYS = {
    config.KEY_PLAY_COUNT: "play_count",
    config.KEY_LAST_PLAYED_AT: "last_played_at",
}
# (legacy, newer): the newer alias wins when both carry a value
ALIAS_PAIRS = (
    (config.KEY_STYLE, config.KEY_DANCE_STYLE),
    (config.KEY_CLASS, config.KEY_CLASS_LEVEL),
)


def coerce_value(text: str) -> FieldValue:
    """
    Turns a value into a number only when writing that number back gives
    the exact same text, so '12' -> 12 but '012' or '1e3' stay strings.
    """
    if re.fullmatch(r"-?\d+", text):
        number: Union[int, float] = int(text)
    elif re.fullmatch(r"-?\d+\.\d+", text):
        number = float(text)
        if not math.isfinite(number):
            return text
    else:
        return text
    return number if str(number) == text else text


def parse_frontmatter(text: str) -> Tuple[Dict[str, FieldValue], str]:
    """Splits a sidecar into (fields, body). Never raises on malformed input."""
    raw = (text or "").lstrip("\ufeff")
    lines = raw.splitlines(keepends=True)
    if not lines or lines[0].rstrip("\r\n") != config.FM_DELIM:
        return {}, raw

    end = None
    for idx in range(1, len(lines)):
        if lines[idx].rstrip("\r\n") == config.FM_DELIM:
            end = idx
            break
    if end is None:
        # Unterminated block: treat as no frontmatter
        return {}, raw

    fields: Dict[str, FieldValue] = {}
    for line in lines[1:end]:
        line = line.rstrip("\r\n")
        if not line.strip():
            continue
        m = FIELD_LINE.match(line)
        if not m or not m.group(1).strip():
            continue
        fields[m.group(1).strip()] = coerce_value(m.group(2).strip())

    rest = lines[end + 1:]
    # serialize_frontmatter puts exactly one blank line before the body
    if rest and not rest[0].strip("\r\n"):
        rest = rest[1:]
    return fields, "".join(rest)


def serialize_frontmatter(fields: Dict[str, Any], body: str) -> str:
    lines = [config.FM_DELIM]
    for key, value in fields.items():
        if value is None:
            continue
        # A value must stay on its own line
        rendered = str(value).replace("\r", " ").replace("\n", " ").strip()
        lines.append(f"{key}: {rendered}" if rendered else f"{key}:")
    lines.append(config.FM_DELIM)
    return "\n".join(lines) + "\n\n" + (body or "")


# --- Records ------------------------------------------------------------------

def _as_number(value: FieldValue) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)) and math.isfinite(value):
        return value
    return None


def record_from_fields(fields: Dict[str, FieldValue], body: str = "") -> SidecarRecord:
    rec = SidecarRecord(body=body, key_order=list(fields))

    for key, value in fields.items():
        if key in TEXT_KEYS:
            setattr(rec, TEXT_KEYS[key], str(value))
        elif key in NUMERIC_KEYS:
            number = _as_number(value)
            if number is not None:
                setattr(rec, NUMERIC_KEYS[key], math.floor(number))
            else:
                # Keep unusable values (blank, text) as written
                rec.extras[key] = value
        else:
            rec.extras[key] = value

    # Alias resolution must not depend on key order in the file
    for legacy, newer in ALIAS_PAIRS:
        new_val = str(fields.get(newer, "")).strip()
        old_val = fields.get(legacy)
        if new_val:
            setattr(rec, TEXT_KEYS[newer], str(fields[newer]))
        elif old_val is not None and str(old_val).strip():
            setattr(rec, TEXT_KEYS[legacy], str(old_val))

    return rec


def record_to_fields(rec: SidecarRecord) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for key, attr in TEXT_KEYS.items():
        values[key] = getattr(rec, attr)
    for key, attr in NUMERIC_KEYS.items():
        number = getattr(rec, attr)
        values[key] = number if number is not None else rec.extras.get(key)

    out: Dict[str, Any] = {}
    for key in rec.key_order:
        if key in values:
            out[key] = values[key]
        elif key in rec.extras:
            out[key] = rec.extras[key]
    for key in config.RECOGNIZED_KEYS:
        if key not in out and values.get(key) is not None:
            out[key] = values[key]
    for key, value in rec.extras.items():
        if key not in out:
            out[key] = value
    return {k: v for k, v in out.items() if v is not None}


def parse_record(text: str) -> SidecarRecord:
    fields, body = parse_frontmatter(text)
    return record_from_fields(fields, body)


def serialize_record(rec: SidecarRecord) -> str:
    return serialize_frontmatter(record_to_fields(rec), rec.body)


# --- Editing ------------------------------------------------------------------

def tag_line(dance: Optional[str]) -> str:
    """'#DanceLibrary' plus '#<dance slug>' when a dance is set."""
    dance_tag = slugify(dance)
    return f"{config.LIBRARY_TAG} #{dance_tag}" if dance_tag else config.LIBRARY_TAG


def with_tag_line(body: str, dance: Optional[str]) -> str:
    """
    Puts the managed tag line first in the body. Only a line that already
    starts with the library tag is replaced; a first line of user text is
    kept and the tag line goes above it, so repeated saves never eat notes.
    """
    line = tag_line(dance)
    if not body:
        return line + "\n"
    first, sep, rest = body.partition("\n")
    if first.rstrip("\r").startswith(config.LIBRARY_TAG):
        return line + sep + rest if sep else line + "\n"
    return line + "\n" + body


def apply_patch(rec: SidecarRecord, patch: MetadataPatch) -> SidecarRecord:
    """Applies every provided patch field and refreshes the tag line. Mutates and returns `rec`."""
    for attr in ("step_name", "description", "dance", "style", "class_level"):
        value = getattr(patch, attr)
        if value is not None:
            setattr(rec, attr, value)

    if patch.play_count is not None:
        rec.play_count = max(0, int(patch.play_count))
        rec.extras.pop(config.KEY_PLAY_COUNT, None)
    if patch.last_played_at is not None:
        rec.last_played_at = int(patch.last_played_at)
        rec.extras.pop(config.KEY_LAST_PLAYED_AT, None)

    rec.body = with_tag_line(rec.body, rec.dance)
    return rec
