"""Document source implementations.

Two implementations of IDocumentSource:
    1. FileSystemSource -- walks a directory tree on disk.
    2. ZipSource        -- reads entries from an uploaded ZIP archive,
       holding the archive open until cleanup().

Both yield only files whose extension is on the allow-list (Markdown by
default) and skip unreadable entries with a logged warning.
"""

from src.providers.source.filesystem_source import FileSystemSource
from src.providers.source.zip_source import ZipSource

__all__ = ["FileSystemSource", "ZipSource"]
