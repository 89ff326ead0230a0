"""Artifact naming, signature verification and mirror downloads."""

from .minisign import PublicKey, SignatureRecord, parse_key, parse_signature, verify_signature
from .mirrors import MirrorFetcher
from .naming import TargetIdentity, artifact_base_name, artifact_extension, detect_host

__all__ = [
    "MirrorFetcher",
    "PublicKey",
    "SignatureRecord",
    "TargetIdentity",
    "artifact_base_name",
    "artifact_extension",
    "detect_host",
    "parse_key",
    "parse_signature",
    "verify_signature",
]
