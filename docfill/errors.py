# docfill/errors.py
"""
Exception types raised by the docfill core

Extraction misses and failed validations are not exceptions: they travel as
ExtractionOutcome values and drive the conversation instead.
"""


class DocFillError(Exception):
    """Base class for all docfill errors"""


class InputRejectedError(DocFillError):
    """The uploaded document is empty, unreadable or has no fillable fields"""


class ExternalUnavailableError(DocFillError):
    """The LLM capability failed, timed out or answered in an unusable shape"""


class RegenerationError(DocFillError):
    """The completed document could not be produced"""


class DocumentCorruptError(RegenerationError):
    """The original package cannot be opened or has no main document part"""


class RenderError(RegenerationError):
    """A marker's [ ] delimiters are unbalanced and cannot be substituted"""

    def __init__(self, message: str, paragraph_text: str = ""):
        super().__init__(message)
        self.paragraph_text = paragraph_text
