"""Shared fixtures: a throwaway minisign signer and a fake mirror network."""

import base64
import hashlib
from pathlib import Path

import pytest
from nacl.signing import SigningKey

from download.minisign import PublicKey, parse_key
from errors import DownloadError


class MinisignSigner:
    """Produces minisign-format signature files with a fresh Ed25519 key."""

    def __init__(self, key_id: bytes = b"\x11\x22\x33\x44\x55\x66\x77\x88"):
        self.key_id = key_id
        self.signing_key = SigningKey.generate()

    @property
    def public_key_b64(self) -> str:
        raw = b"Ed" + self.key_id + bytes(self.signing_key.verify_key)
        return base64.b64encode(raw).decode("ascii")

    @property
    def public_key(self) -> PublicKey:
        return parse_key(self.public_key_b64)

    def sign(self, payload: bytes, filename: str, hashed: bool = True, timestamp: int = 1717171717) -> bytes:
        message = hashlib.blake2b(payload, digest_size=64).digest() if hashed else payload
        algorithm = b"ED" if hashed else b"Ed"
        signature = self.signing_key.sign(message).signature
        trusted = f"timestamp:{timestamp}\tfile:{filename}\thashed".encode()
        global_signature = self.signing_key.sign(signature + trusted).signature
        return (
            b"untrusted comment: signature from minisign secret key\n"
            + base64.b64encode(algorithm + self.key_id + signature) + b"\n"
            + b"trusted comment: " + trusted + b"\n"
            + base64.b64encode(global_signature) + b"\n"
        )


class FakeMirrorNetwork:
    """Stands in for ``download_file`` / ``get_bytes`` keyed by URL."""

    def __init__(self):
        self.files = {}
        self.requested = []

    def serve(self, url: str, body) -> None:
        self.files[url] = body

    def _lookup(self, url: str) -> bytes:
        self.requested.append(url)
        body = self.files.get(url)
        if body is None:
            raise DownloadError(f"mirror request to {url} failed with HTTP 404")
        if isinstance(body, Exception):
            raise body
        return body

    def download_file(self, url, dest, *, context, **kwargs):
        body = self._lookup(url)
        Path(dest).parent.mkdir(parents=True, exist_ok=True)
        Path(dest).write_bytes(body)
        return Path(dest)

    def get_bytes(self, url, *, context, **kwargs):
        return self._lookup(url)


class OrderedRng:
    """Deterministic stand-in for random.Random that preserves input order."""

    def __init__(self):
        self._n = 0

    def random(self):
        self._n += 1
        return self._n / 1000.0


@pytest.fixture
def signer():
    return MinisignSigner()


@pytest.fixture
def network(monkeypatch):
    fake = FakeMirrorNetwork()
    monkeypatch.setattr("download.mirrors.download_file", fake.download_file)
    monkeypatch.setattr("download.mirrors.get_bytes", fake.get_bytes)
    return fake


@pytest.fixture
def ordered_rng():
    return OrderedRng()
