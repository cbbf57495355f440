# src/taskos/crypto/envelope.py
from __future__ import annotations

"""Encrypted content envelopes.

Wire format of a stored blob:

  tagged:  b"TOS-ENC1" || nonce(24) || secretbox(plaintext)
  legacy:  nonce(24) || secretbox(plaintext)

secretbox is XSalsa20-Poly1305 (NaCl). The content key is not stored
anywhere; it is derived from the task id and the task creator's address, so
anyone who can read the task can decrypt its content.

A blob that does not start with the tag is always read as legacy. There is no
way to tell legacy ciphertext from arbitrary bytes, so an untagged blob that
was never encrypted fails authentication rather than being detected.
"""

import hashlib
import logging
from dataclasses import dataclass
from typing import Optional

import nacl.exceptions
import nacl.secret
import nacl.utils

from taskos.storage.walrus import BlobStore, BlobUploader
from taskos.util.log_events import log_event, warn_event

log = logging.getLogger("taskos.crypto")

ENCRYPTION_TAG = b"TOS-ENC1"
NONCE_LENGTH = nacl.secret.SecretBox.NONCE_SIZE  # 24
KEY_LENGTH = nacl.secret.SecretBox.KEY_SIZE  # 32
KEY_MESSAGE = "TaskOS Walrus encryption key"

FORMAT_TAGGED = "tagged"
FORMAT_LEGACY = "legacy"


@dataclass(frozen=True, slots=True)
class Envelope:
    format: str
    nonce: bytes
    ciphertext: bytes


@dataclass(frozen=True, slots=True)
class KeyMaterial:
    task_id: str
    creator: str


@dataclass(frozen=True, slots=True)
class DecryptResult:
    ok: bool
    plaintext: Optional[bytes] = None
    envelope_format: str = ""
    reason: str = ""

    @classmethod
    def failed(cls, reason: str, envelope_format: str = "") -> "DecryptResult":
        return cls(ok=False, plaintext=None, envelope_format=envelope_format, reason=reason)


def split_envelope(blob: bytes) -> Envelope:
    b = bytes(blob)
    tag_len = len(ENCRYPTION_TAG)
    if len(b) >= tag_len + NONCE_LENGTH and b[:tag_len] == ENCRYPTION_TAG:
        return Envelope(FORMAT_TAGGED, b[tag_len : tag_len + NONCE_LENGTH], b[tag_len + NONCE_LENGTH :])
    return Envelope(FORMAT_LEGACY, b[:NONCE_LENGTH], b[NONCE_LENGTH:])


def derive_content_key(task_id: str, creator: str) -> bytes:
    """SHA-256 of "<message>:<task id>:<creator>", both ids lowercased."""
    raw = f"{KEY_MESSAGE}:{str(task_id).lower()}:{str(creator).lower()}"
    return hashlib.sha256(raw.encode("utf-8")).digest()


def open_envelope(env: Envelope, key: bytes) -> DecryptResult:
    if len(env.nonce) != NONCE_LENGTH:
        return DecryptResult.failed("truncated_envelope", env.format)
    if len(key) != KEY_LENGTH:
        return DecryptResult.failed("bad_key_length", env.format)
    try:
        plaintext = nacl.secret.SecretBox(key).decrypt(env.ciphertext, env.nonce)
    except nacl.exceptions.CryptoError:
        return DecryptResult.failed("authentication_failed", env.format)
    return DecryptResult(ok=True, plaintext=plaintext, envelope_format=env.format)


def seal_content(plaintext: bytes, key: bytes, nonce: Optional[bytes] = None) -> bytes:
    """Tagged envelope around secretbox(plaintext). A random nonce is drawn when none is given."""
    n = nacl.utils.random(NONCE_LENGTH) if nonce is None else bytes(nonce)
    if len(n) != NONCE_LENGTH:
        raise ValueError(f"nonce must be {NONCE_LENGTH} bytes")
    box = nacl.secret.SecretBox(key)
    return ENCRYPTION_TAG + n + box.encrypt(bytes(plaintext), n).ciphertext


def fetch_and_decrypt(storage: BlobStore, content_id: str, key_material: KeyMaterial) -> DecryptResult:
    """Fetch a blob and open it with the task-derived key.

    Storage errors propagate; authentication failure is returned as a value.
    """
    blob = storage.get_blob(content_id)
    env = split_envelope(blob)
    key = derive_content_key(key_material.task_id, key_material.creator)
    res = open_envelope(env, key)
    if res.ok:
        log_event(log, "content_decrypted", blob_id=content_id, format=env.format, size=len(res.plaintext or b""))
    else:
        warn_event(log, "content_decrypt_failed", blob_id=content_id, format=env.format, reason=res.reason)
    return res


def encrypt_and_store(storage: BlobUploader, plaintext: bytes, key_material: KeyMaterial) -> str:
    """Seal with the task-derived key and upload. Returns the new blob id."""
    key = derive_content_key(key_material.task_id, key_material.creator)
    blob_id = storage.put_blob(seal_content(plaintext, key))
    log_event(log, "content_stored", blob_id=blob_id, task_id=key_material.task_id, size=len(plaintext))
    return blob_id
