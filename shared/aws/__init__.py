"""
AWS Wire Module
===============

SDK-free building blocks for talking to AWS services over plain HTTP.

- sigv4: Signature Version 4 request signing
- eventstream: binary event-stream frame decoding

Usage:
    from shared.aws import SigV4Signer, EventStreamDecoder

    signer = SigV4Signer()
    signed = signer.sign("POST", url, body, "aoss")
"""

from shared.aws.eventstream import (
    EventStreamDecoder,
    EventStreamError,
    EventStreamMessage,
    encode_frame,
)
from shared.aws.sigv4 import (
    AWSCredentials,
    SignedRequest,
    SigV4Signer,
    model_invocation_paths,
)


__all__ = [
    # Signing
    "AWSCredentials",
    "SignedRequest",
    "SigV4Signer",
    "model_invocation_paths",
    # Event stream
    "EventStreamDecoder",
    "EventStreamError",
    "EventStreamMessage",
    "encode_frame",
]
