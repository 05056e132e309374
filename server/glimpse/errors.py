class GlimpseError(Exception):
    """Base class for analysis failures raised inside the glimpse pipeline."""


class SFCParseError(GlimpseError):
    """The single-file component produced no usable block at all."""


class ScriptCompileError(GlimpseError):
    """The binding oracle could not compile a `<script setup>` block."""

    def __init__(self, message: str, offset: int | None = None):
        super().__init__(message)
        self.offset = offset


class ScriptParseError(GlimpseError):
    """An options-API `<script>` block could not be parsed."""

    def __init__(self, message: str, offset: int | None = None):
        super().__init__(message)
        self.offset = offset


class OffsetOutOfRangeError(GlimpseError, IndexError):
    """A computed occurrence range does not map onto the live document text."""
