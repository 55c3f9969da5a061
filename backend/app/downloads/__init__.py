"""Document downloads with remote and local fallbacks."""
from .resolver import DownloadResolver, candidate_paths, rewrite_attachment_url, sanitize_filename
from .schemas import DownloadAttempt, ResolvedDownload

__all__ = [
    "DownloadAttempt",
    "DownloadResolver",
    "ResolvedDownload",
    "candidate_paths",
    "rewrite_attachment_url",
    "sanitize_filename",
]
