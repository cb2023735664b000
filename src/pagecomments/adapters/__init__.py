"""Converters between the comment store and third-party comment systems."""

from .disqus_export import build_disqus_export, exportable_comments
from .disqus_import import parse_disqus_export
from .importing import ImportedComment, ImportReport, import_comments
from .talkyard_import import parse_talkyard_export
from .url_repair import fix_imported_urls

__all__ = [
    "ImportReport",
    "ImportedComment",
    "build_disqus_export",
    "exportable_comments",
    "fix_imported_urls",
    "import_comments",
    "parse_disqus_export",
    "parse_talkyard_export",
]
