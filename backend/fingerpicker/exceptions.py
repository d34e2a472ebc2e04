"""Exceptions raised at the boundary of the round engine.

Conditions the engine recovers from by itself (an empty touch set when the
countdown fires, an out-of-range winner count, a stale timer) are not
represented here. These are the ones the transport layer reports back.
"""


class FingerPickerException(Exception):
    """Base class for all finger picker errors"""
    pass


class InvalidTouchPayload(FingerPickerException):
    """A touch event could not be turned into touch points"""
    pass


class InvalidWinnerCount(FingerPickerException):
    """The requested winner count is not an integer"""
    def __init__(self, value):
        self.value = value
        super().__init__(f"Winner count must be an integer, got {value!r}")


class InvalidStateTransition(FingerPickerException):
    """A command was issued in a phase that does not accept it"""
    def __init__(self, command, phase):
        self.command = command
        self.phase = phase
        super().__init__(f"Cannot {command} while the round is {phase.value}")


class TableNotFound(FingerPickerException):
    def __init__(self, code):
        self.code = code
        super().__init__(f"Table {code} not found")
