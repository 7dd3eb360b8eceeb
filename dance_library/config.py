"""
Configuration constants for the dance library.
"""

# --- File Type Definitions ---
VIDEO_EXTS = {'.mp4', '.webm', '.mov', '.m4v', '.ogg'}
# Intake (import/organize) also accepts AVI, but the scanner never lists it
IMPORT_EXTS = VIDEO_EXTS | {'.avi'}
IMAGE_EXTS = {'.png', '.jpg', '.jpeg', '.webp', '.gif'}
SIDECAR_EXT = '.md'

# --- Sidecar Frontmatter ---
FM_DELIM = "---"
LIBRARY_TAG = "#DanceLibrary"

# Recognized keys. Alias pairs are written together; the newer alias wins on read.
KEY_STEP_NAME = "stepName"
KEY_DESCRIPTION = "description"
KEY_DANCE = "dance"
KEY_STYLE = "style"
KEY_DANCE_STYLE = "danceStyle"
KEY_CLASS = "class"
KEY_CLASS_LEVEL = "classLevel"
KEY_PLAY_COUNT = "playCount"
KEY_LAST_PLAYED_AT = "lastPlayedAt"

# Written by the organizer, otherwise treated as unrecognized pass-through keys
KEY_THUMBNAIL = "thumbnail"
KEY_DURATION = "duration"

RECOGNIZED_KEYS = (
    KEY_STEP_NAME,
    KEY_DESCRIPTION,
    KEY_CLASS,
    KEY_CLASS_LEVEL,
    KEY_DANCE,
    KEY_STYLE,
    KEY_DANCE_STYLE,
    KEY_PLAY_COUNT,
    KEY_LAST_PLAYED_AT,
)

# --- Organization ---
DEFAULT_LIBRARY_ROOT = "Dance"
DEFAULT_FOLDER_TEMPLATE = "{dance}/{style}/{class}"
DEFAULT_FILENAME_TEMPLATE = "{stepName}"
STAGING_FOLDER = "_imports"
QUICK_IMPORT_FOLDER = "Imported"

# --- Query ---
SORT_AZ = "az"
SORT_RECENT = "recent"
SORT_MOST_PLAYED = "mostPlayed"
SORT_MODES = (SORT_AZ, SORT_RECENT, SORT_MOST_PLAYED)
