"""Application modules.

- transcoding: Video rendition ladder, posters, subtitle stubs and manifests
"""
