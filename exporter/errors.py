"""Failures that abort an export run. None of them are retried."""


class ExportError(Exception):
    pass


class IndexReadError(ExportError):
    """Reading a page, record or entry from the index failed."""


class CursorOrderError(IndexReadError):
    """The index returned an older cursor that does not move strictly backward."""


class OutputIOError(ExportError):
    """Creating, writing or flushing the CSV file failed."""


class EmptyIndexError(ExportError):
    """The index holds no records to export."""


class TextDecodeError(ExportError):
    """A text record body is not valid UTF-8 under the strict decode policy."""
