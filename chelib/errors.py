"""Exceptions raised by the CHE codecs."""


class CheError(Exception):
    """Base class for CHE codec failures."""
    pass


class UnrecognizedFormatError(CheError):
    """Raised when a buffer's 4-byte tag matches no known CHE format."""

    def __init__(self, tag: bytes, expected=None):
        self.tag = tag
        self.expected = expected
        if expected:
            msg = f"Expected {expected!r} file, got tag {tag!r}"
        else:
            msg = f"Unknown CHE file format: {tag!r}"
        super().__init__(msg)


FormatError = UnrecognizedFormatError


class TemplateMissingError(CheError):
    """Raised when a tournament file is generated before a template is loaded."""
    pass


class InvalidTemplateError(CheError):
    """Raised when a template buffer is not a full-size tournament file."""
    pass
