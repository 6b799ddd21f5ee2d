"""Test session setup.

Settings are read once at import time, so the media root has to point at a
scratch directory before any postpic module is imported.
"""

import os
import tempfile

os.environ.setdefault("MEDIA_ROOT", tempfile.mkdtemp(prefix="postpic-test-media-"))
os.environ.setdefault("SUBTITLE_BACKEND", "thread")
os.environ.setdefault("LOG_JSON", "false")
