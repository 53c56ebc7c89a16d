"""
Exceptions raised by the boiler transcoding pipeline.

Every failure aborts the current file only; the batch loop in
``boiler.core.main`` catches ``BoilerError`` and continues with the next file.
"""


class BoilerError(Exception):
    """Base exception for boiler errors"""
    def __init__(self, message, command=None, output=None):
        self.message = message
        self.command = command
        self.output = output
        super().__init__(self.message)


class ProbeError(BoilerError): pass
class EncodeFailure(BoilerError): pass
class RemuxError(BoilerError): pass


class MeasurementUnavailable(BoilerError):
    """Raised where a bitrate is required but neither stream metadata nor size/duration gave one."""
    def __init__(self, message, path=None):
        super().__init__(message)
        self.path = path


class SelectionError(BoilerError):
    """Raised when an interactive track selection cannot be used."""
    pass
