import io
import json
import struct
import zipfile

import pytest

from sealdrop_core.constants import ENVELOPE_ENTRIES, MANIFEST_ENTRY
from sealdrop_core.envelope import Envelope, Manifest, build, parse
from sealdrop_core.errors import MalformedEnvelope


def _manifest(**kw):
    base = dict(
        filename="report.pdf",
        original_size=11,
        mime_type="application/pdf",
        content_hash="ab" * 32,
        algorithm="SHA-256",
        created_at="2026-01-02T03:04:05Z",
    )
    base.update(kw)
    return Manifest(**base)


def _zip(entries):
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return buf.getvalue()


def test_envelope_roundtrip():
    env = Envelope(
        manifest=_manifest(),
        wrapped_key=bytes(range(256)),
        ciphertext=b"\x00\x01ciphertext\xff",
        instructions="Decrypt me.\nÜnïcode ok.",
    )
    assert parse(build(env.manifest, env.wrapped_key, env.ciphertext, env.instructions)) == env
    assert Envelope.from_bytes(env.to_bytes()) == env


def test_build_is_deterministic_with_fixed_entries():
    m = _manifest()
    a = build(m, b"wrapped", b"cipher", "readme")
    b = build(_manifest(), b"wrapped", b"cipher", "readme")
    assert a == b

    with zipfile.ZipFile(io.BytesIO(a)) as zf:
        infos = zf.infolist()
    assert [i.filename for i in infos] == list(ENVELOPE_ENTRIES)
    assert all(i.date_time == (1980, 1, 1, 0, 0, 0) for i in infos)


def test_manifest_json_uses_wire_names():
    archive = build(_manifest(), b"w", b"c", "r")
    with zipfile.ZipFile(io.BytesIO(archive)) as zf:
        data = json.loads(zf.read(MANIFEST_ENTRY))
    for key in ("filename", "originalSize", "mimeType", "contentHash", "algorithm", "createdAt"):
        assert key in data
    assert data["originalSize"] == 11


def test_default_instructions_are_written():
    env = parse(build(_manifest(), b"w", b"c"))
    assert "report.pdf" in env.instructions
    assert "encrypted_key.bin" in env.instructions


@pytest.mark.parametrize("missing", list(ENVELOPE_ENTRIES))
def test_missing_entry_is_malformed(missing):
    entries = {
        "manifest.json": _manifest().to_json_bytes(),
        "encrypted_file.enc": b"c",
        "encrypted_key.bin": b"w",
        "README.txt": b"r",
    }
    del entries[missing]
    with pytest.raises(MalformedEnvelope):
        parse(_zip(entries))


def test_entry_names_are_case_sensitive():
    entries = {
        "Manifest.json": _manifest().to_json_bytes(),
        "encrypted_file.enc": b"c",
        "encrypted_key.bin": b"w",
        "README.txt": b"r",
    }
    with pytest.raises(MalformedEnvelope):
        parse(_zip(entries))


@pytest.mark.parametrize("manifest", [
    b"not json",
    b"[1, 2]",
    b'{"filename": "a"}',
    b'{"filename": "a", "originalSize": "10", "mimeType": "x", "contentHash": "h", "algorithm": "SHA-256"}',
    b'{"filename": "a", "originalSize": true, "mimeType": "x", "contentHash": "h", "algorithm": "SHA-256"}',
    b'{"filename": "a", "originalSize": -1, "mimeType": "x", "contentHash": "h", "algorithm": "SHA-256"}',
    b"\xff\xfe",
])
def test_bad_manifest_is_malformed(manifest):
    entries = {
        "manifest.json": manifest,
        "encrypted_file.enc": b"c",
        "encrypted_key.bin": b"w",
        "README.txt": b"r",
    }
    with pytest.raises(MalformedEnvelope):
        parse(_zip(entries))


def test_manifest_optional_fields_default():
    entries = {
        "manifest.json": b'{"filename": "a.txt", "originalSize": 3, "mimeType": "text/plain", '
                         b'"contentHash": "h", "algorithm": "SHA-256"}',
        "encrypted_file.enc": b"c",
        "encrypted_key.bin": b"w",
        "README.txt": b"r",
    }
    env = parse(_zip(entries))
    assert env.manifest.created_at is None
    assert env.manifest.cipher == "AES-256-GCM"


@pytest.mark.parametrize("blob", [b"", b"PK\x03\x04 truncated", b"plain bytes"])
def test_non_archive_is_malformed(blob):
    with pytest.raises(MalformedEnvelope):
        parse(blob)


def _mark_encrypted(archive):
    # set the "encrypted" general purpose bit on every central directory entry
    data = bytearray(archive)
    eocd = data.rfind(b"PK\x05\x06")
    count, _, offset = struct.unpack_from("<HII", data, eocd + 10)
    pos = offset
    for _ in range(count):
        assert data[pos:pos + 4] == b"PK\x01\x02"
        data[pos + 8] |= 0x01
        name_len, extra_len, comment_len = struct.unpack_from("<HHH", data, pos + 28)
        pos += 46 + name_len + extra_len + comment_len
    return bytes(data)


def test_encrypted_entries_are_malformed():
    archive = _mark_encrypted(build(_manifest(), b"wrapped", b"ciphertext"))
    with pytest.raises(MalformedEnvelope, match="must not be encrypted"):
        parse(archive)
