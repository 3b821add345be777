"""Tests for the whole-payload and file helpers."""

from __future__ import annotations

from pathlib import Path

import pytest

from wamedia import (
    ErrorKind,
    MediaCryptoError,
    MediaType,
    decrypt_bytes,
    decrypt_file,
    encrypt_bytes,
    encrypt_file,
)

CLIP = bytes(i % 256 for i in range(150000))


class TestBytesHelpers:
    def test_result_fields(self, media_key: bytes) -> None:
        result = encrypt_bytes(b"photo", MediaType.IMAGE, media_key)
        assert result.media_key == media_key
        assert result.sidecar is None
        assert len(result.payload) == 26

    def test_sidecar_requested(self, media_key: bytes) -> None:
        result = encrypt_bytes(CLIP, MediaType.VIDEO, media_key, generate_sidecar=True)
        assert result.sidecar is not None
        assert len(result.sidecar) == 30

    def test_repr_hides_key(self, media_key: bytes) -> None:
        result = encrypt_bytes(b"photo", MediaType.IMAGE, media_key)
        text = repr(result)
        assert "payload_len=26" in text
        assert media_key.hex() not in text
        assert repr(media_key) not in text

    def test_result_is_frozen(self, media_key: bytes) -> None:
        result = encrypt_bytes(b"photo", MediaType.IMAGE, media_key)
        with pytest.raises(AttributeError):
            result.payload = b""

    def test_round_trip(self) -> None:
        result = encrypt_bytes(CLIP, "audio")
        assert decrypt_bytes(result.payload, result.media_key, "AUDIO") == CLIP


class TestFileHelpers:
    def test_round_trip(self, tmp_path: Path, media_key: bytes) -> None:
        source = tmp_path / "clip.mp4"
        source.write_bytes(CLIP)

        result = encrypt_file(source, MediaType.VIDEO, media_key=media_key, generate_sidecar=True)
        assert result.output_path == tmp_path / "clip.mp4.enc"
        assert result.sidecar_path == tmp_path / "clip.mp4.sidecar"
        assert result.media_key == media_key

        expected = encrypt_bytes(CLIP, MediaType.VIDEO, media_key, generate_sidecar=True)
        assert result.output_path.read_bytes() == expected.payload
        assert result.sidecar_path.read_bytes() == expected.sidecar

        plain = decrypt_file(result.output_path, media_key, MediaType.VIDEO, tmp_path / "out" / "clip.mp4")
        assert plain.read_bytes() == CLIP

    def test_explicit_output_and_generated_key(self, tmp_path: Path) -> None:
        source = tmp_path / "scan.pdf"
        source.write_bytes(b"%PDF-1.7")
        target = tmp_path / "encrypted.bin"

        result = encrypt_file(source, "document", output_path=target)
        assert result.output_path == target
        assert result.sidecar_path is None
        assert len(result.media_key) == 32
        assert decrypt_bytes(target.read_bytes(), result.media_key, MediaType.DOCUMENT) == b"%PDF-1.7"

    def test_sidecar_beside_explicit_output(self, tmp_path: Path, media_key: bytes) -> None:
        source = tmp_path / "clip.mp4"
        source.write_bytes(CLIP)
        target = tmp_path / "out" / "payload.bin"

        result = encrypt_file(source, MediaType.VIDEO, output_path=target, media_key=media_key, generate_sidecar=True)
        assert result.output_path == target
        assert result.sidecar_path == tmp_path / "out" / "payload.sidecar"
        assert result.sidecar_path.read_bytes() == encrypt_bytes(
            CLIP, MediaType.VIDEO, media_key, generate_sidecar=True
        ).sidecar
        assert not (tmp_path / "clip.mp4.sidecar").exists()

    def test_empty_file(self, tmp_path: Path, media_key: bytes) -> None:
        source = tmp_path / "empty.ogg"
        source.write_bytes(b"")
        result = encrypt_file(source, MediaType.AUDIO, media_key=media_key)
        out = decrypt_file(result.output_path, media_key, MediaType.AUDIO, tmp_path / "empty.out")
        assert out.read_bytes() == b""

    def test_missing_source(self, tmp_path: Path, media_key: bytes) -> None:
        with pytest.raises(FileNotFoundError):
            encrypt_file(tmp_path / "missing.jpg", MediaType.IMAGE, media_key=media_key)
        with pytest.raises(FileNotFoundError):
            decrypt_file(tmp_path / "missing.enc", media_key, MediaType.IMAGE, tmp_path / "out")

    def test_tampered_file_leaves_no_output(self, tmp_path: Path, media_key: bytes) -> None:
        source = tmp_path / "photo.jpg"
        source.write_bytes(CLIP)
        result = encrypt_file(source, MediaType.IMAGE, media_key=media_key)

        data = bytearray(result.output_path.read_bytes())
        data[len(data) // 2] ^= 0x01
        result.output_path.write_bytes(bytes(data))

        target = tmp_path / "restored.jpg"
        with pytest.raises(MediaCryptoError) as excinfo:
            decrypt_file(result.output_path, media_key, MediaType.IMAGE, target)
        assert excinfo.value.kind is ErrorKind.MAC_VERIFICATION_FAILED
        assert not target.exists()
        assert sorted(p.name for p in tmp_path.iterdir()) == ["photo.jpg", "photo.jpg.enc"]

    def test_failure_keeps_existing_output(self, tmp_path: Path, media_key: bytes) -> None:
        encrypted = tmp_path / "bad.enc"
        encrypted.write_bytes(b"\x00" * 42)
        target = tmp_path / "keep.jpg"
        target.write_bytes(b"previous")

        with pytest.raises(MediaCryptoError):
            decrypt_file(encrypted, media_key, MediaType.IMAGE, target)
        assert target.read_bytes() == b"previous"
