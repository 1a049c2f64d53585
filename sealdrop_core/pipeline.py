"""
sealdrop_core.pipeline
----------------------
Download-and-decrypt orchestration.

One pipeline, two strategies:

- RemoteStrategy ("simple"): the encoded private key is sent with the
  package id to the service, which answers with plaintext. The key text is
  held for exactly that one call.
- LocalStrategy ("advanced"): the envelope archive is fetched and
  unwrapped/decrypted on the client; the private key never leaves.

Both feed the same verification step, so a plaintext is only delivered after
its digest matched. Each call to download() is one attempt moving through

    IDLE → FETCHING → PARSING → UNWRAPPING → DECRYPTING → VERIFYING → DELIVERED | FAILED

strictly forward (the remote strategy skips PARSING and UNWRAPPING). There
are no automatic retries. A new attempt for a package id that already has
one in flight cancels the older one first.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union
import asyncio

from .crypto import decrypt_content, unwrap_key
from .envelope import Manifest, parse
from .errors import (
    AttemptCancelled, IntegrityViolation, RemoteRequestFailed, SealDropError,
    TERMINAL_ERRORS, RECOVERABLE_ERRORS,
)
from .integrity import SignatureState, verify_hash, verify_signature
from .keystore import KeyPair, KeyStore
from .logger import get_logger
from .metadata import PackageMetadata
from .session import Session
from .transport.transport_base import BaseTransferService
from .utils import new_id, wipe

log = get_logger("SealDrop.Pipeline")


class AttemptState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    PARSING = "parsing"
    UNWRAPPING = "unwrapping"
    DECRYPTING = "decrypting"
    VERIFYING = "verifying"
    DELIVERED = "delivered"
    FAILED = "failed"


_ORDER = {s: i for i, s in enumerate(AttemptState)}
TERMINAL_STATES = (AttemptState.DELIVERED, AttemptState.FAILED)


@dataclass
class DownloadAttempt:
    package_id: str
    strategy: str
    attempt_id: str = field(default_factory=new_id)
    state: AttemptState = AttemptState.IDLE
    failure: Optional[str] = None
    history: List[AttemptState] = field(default_factory=lambda: [AttemptState.IDLE])
    cancel_requested: bool = False

    @property
    def done(self) -> bool:
        return self.state in TERMINAL_STATES

    def advance(self, state: AttemptState) -> None:
        if self.done or state is AttemptState.FAILED or _ORDER[state] <= _ORDER[self.state]:
            raise RuntimeError(f"illegal transition {self.state.value} → {state.value}")
        log.info(f"[ATTEMPT {self.attempt_id[:8]}] {self.package_id} {self.state.value} → {state.value}")
        self.state = state
        self.history.append(state)

    def fail(self, reason: str) -> None:
        if self.done:
            return
        log.warning(f"[ATTEMPT {self.attempt_id[:8]}] {self.package_id} {self.state.value} → failed ({reason})")
        self.state = AttemptState.FAILED
        self.failure = reason
        self.history.append(AttemptState.FAILED)


@dataclass
class AttemptContext:
    attempt: DownloadAttempt
    session: Session
    key_pair: Optional[KeyPair]  # resolved from the KeyStore when None
    transport: BaseTransferService
    metadata: Optional[PackageMetadata] = None

    @property
    def package_id(self) -> str:
        return self.attempt.package_id


@dataclass
class Recovered:
    """Strategy output, not yet trusted."""
    plaintext: bytes = field(repr=False)
    manifest: Manifest
    metadata: Optional[PackageMetadata] = None


@dataclass
class DecryptResult:
    package_id: str
    plaintext: bytes = field(repr=False)
    manifest: Manifest
    strategy: str
    hash_verified: bool
    signature: SignatureState = SignatureState.ABSENT
    attempt_id: str = ""

    @property
    def filename(self) -> str:
        return self.manifest.filename


def _require_available(metadata: Optional[PackageMetadata], package_id: str) -> None:
    # inactive packages are refused before any key material leaves the client
    if metadata is not None and not metadata.is_available:
        raise RemoteRequestFailed(
            f"package {package_id} is {metadata.status}", status=410, server_reason=f"Package {metadata.status}"
        )


def _wipe_late_key(fut: asyncio.Future) -> None:
    if not fut.cancelled() and fut.exception() is None:
        wipe(fut.result())


async def _unwrap_in_thread(private_key, wrapped_key: bytes) -> bytearray:
    """unwrap_key in a worker thread. A key that arrives after cancellation is wiped on arrival."""
    fut = asyncio.ensure_future(asyncio.to_thread(unwrap_key, private_key, wrapped_key))
    try:
        return await asyncio.shield(fut)
    except asyncio.CancelledError:
        fut.add_done_callback(_wipe_late_key)
        raise


class DecryptStrategy:
    name: str = "base"

    async def recover(self, ctx: AttemptContext) -> Recovered:
        raise NotImplementedError


class RemoteStrategy(DecryptStrategy):
    """
    Server-assisted decryption.

    Sends the private key to the service for one request. Kept as designed;
    whether this path stays is an open product question, so every use logs
    a warning. When the service does not attest a digest, the package
    manifest is fetched and the plaintext is checked against it.
    """
    name = "simple"

    async def recover(self, ctx: AttemptContext) -> Recovered:
        attempt = ctx.attempt
        attempt.advance(AttemptState.FETCHING)
        metadata = ctx.metadata
        if metadata is None:
            metadata = await asyncio.to_thread(ctx.transport.fetch_metadata, ctx.package_id, ctx.session)
        _require_available(metadata, ctx.package_id)

        attempt.advance(AttemptState.DECRYPTING)
        log.warning(f"[REMOTE] private key transmitted for package={ctx.package_id} fpr={ctx.key_pair.fingerprint}")
        private_pem = ctx.key_pair.private_pem()
        try:
            payload = await asyncio.to_thread(ctx.transport.remote_decrypt, ctx.package_id, private_pem, ctx.session)
        finally:
            del private_pem

        if payload.content_hash:
            manifest = Manifest(
                filename=metadata.filename,
                original_size=metadata.original_size,
                mime_type=metadata.mime_type,
                content_hash=payload.content_hash,
                algorithm=payload.hash_algorithm,
                created_at=metadata.uploaded_at or None,
            )
        else:
            log.info(f"[REMOTE] no attested digest for {ctx.package_id}, reading archive manifest")
            archive = await asyncio.to_thread(ctx.transport.fetch_envelope, ctx.package_id, ctx.session)
            manifest = parse(archive).manifest
        return Recovered(plaintext=payload.data, manifest=manifest, metadata=metadata)


class LocalStrategy(DecryptStrategy):
    """Client-side unwrap and decrypt; the private key stays local."""
    name = "advanced"

    async def recover(self, ctx: AttemptContext) -> Recovered:
        attempt = ctx.attempt
        attempt.advance(AttemptState.FETCHING)
        _require_available(ctx.metadata, ctx.package_id)
        archive = await asyncio.to_thread(ctx.transport.fetch_envelope, ctx.package_id, ctx.session)

        attempt.advance(AttemptState.PARSING)
        envelope = parse(archive)
        del archive

        attempt.advance(AttemptState.UNWRAPPING)
        content_key = await _unwrap_in_thread(ctx.key_pair.private_key, envelope.wrapped_key)
        try:
            attempt.advance(AttemptState.DECRYPTING)
            plaintext = await asyncio.to_thread(
                decrypt_content, content_key, envelope.ciphertext, envelope.manifest.cipher
            )
        finally:
            wipe(content_key)

        return Recovered(plaintext=plaintext, manifest=envelope.manifest, metadata=ctx.metadata)


STRATEGIES: Dict[str, DecryptStrategy] = {
    RemoteStrategy.name: RemoteStrategy(),
    LocalStrategy.name: LocalStrategy(),
    "remote": RemoteStrategy(),
    "local": LocalStrategy(),
}


def resolve_strategy(strategy: Union[str, DecryptStrategy]) -> DecryptStrategy:
    if isinstance(strategy, DecryptStrategy):
        return strategy
    try:
        return STRATEGIES[strategy]
    except KeyError:
        raise ValueError(f"Unknown decrypt strategy: {strategy}") from None


class DecryptionPipeline:
    """
    Runs download attempts for one transport and key store.

    `attempts` keeps the latest attempt per package id, bounded by
    `max_attempts`; finished attempts are evicted oldest first.
    """

    def __init__(self, transport: BaseTransferService, keystore: KeyStore, max_attempts: int = 256):
        self.transport = transport
        self.keystore = keystore
        self.max_attempts = max_attempts
        self.attempts: Dict[str, DownloadAttempt] = {}
        self._inflight: Dict[str, Tuple[asyncio.Task, DownloadAttempt]] = {}

    async def download(
        self,
        package_id: str,
        session: Session,
        strategy: Union[str, DecryptStrategy] = "advanced",
        key_pair: Optional[KeyPair] = None,
        metadata: Optional[PackageMetadata] = None,
    ) -> DecryptResult:
        """
        Run one download attempt and return verified plaintext.

        `key_pair` overrides the session's stored pair (e.g. a key file the
        user supplied). Raises NoLocalKey when neither is available, and the
        typed SealDropError of whichever step failed otherwise.
        """
        chosen = resolve_strategy(strategy)
        # another caller may have registered while we waited; supersede it too
        while await self._supersede(package_id):
            pass

        # no await between the check above and registration below
        attempt = DownloadAttempt(package_id=package_id, strategy=chosen.name)
        self._remember(attempt)
        ctx = AttemptContext(attempt, session, key_pair, self.transport, metadata)
        task = asyncio.ensure_future(self._run(chosen, ctx))
        self._inflight[package_id] = (task, attempt)
        try:
            return await task
        except asyncio.CancelledError:
            if attempt.cancel_requested:
                # a task cancelled before its first step never ran _run
                attempt.fail(AttemptCancelled.reason)
                raise AttemptCancelled(f"download of {package_id} was cancelled") from None
            raise
        finally:
            current = self._inflight.get(package_id)
            if current is not None and current[0] is task:
                del self._inflight[package_id]

    def abort(self, package_id: str) -> bool:
        """Cancel the in-flight attempt for `package_id`. True if one was running."""
        entry = self._inflight.get(package_id)
        if entry is None or entry[0].done():
            return False
        task, attempt = entry
        attempt.cancel_requested = True
        task.cancel()
        return True

    async def _supersede(self, package_id: str) -> bool:
        entry = self._inflight.get(package_id)
        if entry is None or entry[0].done():
            return False
        task, attempt = entry
        log.info(f"[PIPELINE] new attempt for {package_id} supersedes {attempt.attempt_id[:8]}")
        attempt.cancel_requested = True
        task.cancel()
        # asyncio.wait never raises the task's own error
        await asyncio.wait([task])
        return True

    def _remember(self, attempt: DownloadAttempt) -> None:
        self.attempts.pop(attempt.package_id, None)
        self.attempts[attempt.package_id] = attempt
        while len(self.attempts) > self.max_attempts:
            oldest = next(iter(self.attempts))
            if not self.attempts[oldest].done:
                break
            del self.attempts[oldest]

    async def _run(self, strategy: DecryptStrategy, ctx: AttemptContext) -> DecryptResult:
        attempt = ctx.attempt
        try:
            if ctx.key_pair is None:
                ctx.key_pair = await asyncio.to_thread(self.keystore.require, ctx.session)
            recovered = await strategy.recover(ctx)
            result = await self._verify(recovered, ctx)
            attempt.advance(AttemptState.DELIVERED)
            return result
        except asyncio.CancelledError:
            attempt.fail(AttemptCancelled.reason)
            raise
        except SealDropError as e:
            attempt.fail(e.reason)
            if isinstance(e, TERMINAL_ERRORS):
                log.error(f"[ATTEMPT] {attempt.attempt_id[:8]} for {ctx.package_id} rejected: {e.reason}")
            elif isinstance(e, RECOVERABLE_ERRORS):
                log.warning(f"[ATTEMPT] {attempt.attempt_id[:8]} for {ctx.package_id} may be retried: {e.reason}")
            raise
        except Exception:
            attempt.fail("internal_error")
            raise

    async def _verify(self, recovered: Recovered, ctx: AttemptContext) -> DecryptResult:
        ctx.attempt.advance(AttemptState.VERIFYING)
        manifest = recovered.manifest

        # a missing digest fails verification like a wrong one
        if not await asyncio.to_thread(verify_hash, manifest, recovered.plaintext):
            recovered.plaintext = b""
            raise IntegrityViolation(f"{manifest.algorithm} digest mismatch for {ctx.package_id}")

        metadata = recovered.metadata or ctx.metadata
        return DecryptResult(
            package_id=ctx.package_id,
            plaintext=recovered.plaintext,
            manifest=manifest,
            strategy=ctx.attempt.strategy,
            hash_verified=True,
            signature=verify_signature(metadata),
            attempt_id=ctx.attempt.attempt_id,
        )
