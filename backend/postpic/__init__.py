"""Postpic media backend.

Turns a single uploaded video into an adaptive resolution ladder of
renditions, per-rendition posters, a default cover poster and a placeholder
caption track.

Modules:
    - core: Configuration, logging, Celery setup
    - modules.transcoding: Ladder planning, FFmpeg toolchain, upload pipeline
"""

__version__ = "0.1.0"
