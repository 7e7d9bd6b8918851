"""
Intcode error hierarchy.

Every error the emulator raises derives from IntcodeError.  FaultError and
its subclasses are fatal to the machine that hits them; LoadError is
raised before anything runs.
"""

from __future__ import annotations
from typing import Optional


class IntcodeError(Exception):
    """Base for every error raised by the emulator."""
    pass

class LoadError(IntcodeError):
    """Malformed program text."""

    def __init__(self, index: int, msg: str):
        self.index = index
        super().__init__(f"Token {index}: {msg}")

class FaultError(IntcodeError):
    """Fatal machine fault.  ``ip`` is the address of the faulting
    instruction, filled in by the machine when it aborts."""

    def __init__(self, message: str, ip: Optional[int] = None):
        self.ip = ip
        super().__init__(message)

    def __str__(self) -> str:
        msg = super().__str__()
        if self.ip is None:
            return msg
        return f"{msg} (ip={self.ip})"

class DecodeError(FaultError):
    pass

class AddressError(FaultError):
    def __init__(self, addr: int, message: str = ""):
        self.addr = addr
        super().__init__(message or f"Bad address {addr}")

class PortError(FaultError):
    pass

class HaltError(IntcodeError):
    pass

class PipelineError(IntcodeError):
    def __init__(self, message: str, stage: Optional[int] = None):
        self.stage = stage
        super().__init__(message)
