"""
Scanner module.

QR payload classification and the camera capture session that accepts a
treasure marker.
"""

from .qr_validator import PAYLOAD_PREFIX, ScanClassification, classify, encode, parse
from .session import FrameSource, QRDecoder, ScannerSession, ScannerState

__all__ = [
    "PAYLOAD_PREFIX",
    "ScanClassification",
    "classify",
    "encode",
    "parse",
    "FrameSource",
    "QRDecoder",
    "ScannerSession",
    "ScannerState",
]
