"""Transcoding module for uploaded videos.

Plans an aspect-preserving resolution ladder for each upload, drives FFmpeg
once per tier, extracts posters, writes a placeholder caption track and
assembles the manifest returned to callers.
"""
