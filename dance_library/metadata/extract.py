import json
import logging
import subprocess
from pathlib import Path
from typing import Optional

from pymediainfo import MediaInfo


class MediaProbe:
    """
    Reads technical facts (currently only the duration) from a video file.

    Strategies:
      - pymediainfo (fast wrapper around libmediainfo)
      - 'exiftool' on the PATH as a fallback
    Neither is required to succeed; a probe that learns nothing returns None.
    """

    def get_duration(self, path: Path) -> Optional[float]:
        """Duration in seconds, or None."""
        try:
            duration = self._duration_from_mediainfo(path)
            if duration:
                return duration
        except Exception as e:
            logging.debug(f"MediaInfo failed for {path}: {e}")

        try:
            return self._duration_from_exiftool(path)
        except Exception as e:
            # Debug level: a missing exiftool would otherwise spam every import
            logging.debug(f"ExifTool failed for {path}: {e}")
        return None

    def _duration_from_mediainfo(self, path: Path) -> Optional[float]:
        mi = MediaInfo.parse(str(path))
        for track in mi.tracks:
            if track.track_type == "General" and getattr(track, "duration", None):
                # MediaInfo duration is in milliseconds
                return round(float(track.duration) / 1000.0, 3)
        return None

    def _duration_from_exiftool(self, path: Path) -> Optional[float]:
        # -n returns Duration as plain seconds
        cmd = ["exiftool", "-j", "-n", "-Duration", str(path)]
        out = subprocess.check_output(cmd, stderr=subprocess.DEVNULL, text=True)
        data_list = json.loads(out)
        if not data_list or data_list[0].get("Duration") is None:
            return None
        try:
            return round(float(data_list[0]["Duration"]), 3)
        except (TypeError, ValueError):
            return None
