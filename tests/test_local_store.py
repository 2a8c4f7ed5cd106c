"""Tests for the file-backed local key store."""

import os
import stat

import pytest

from validator_kms.crypto import SecretEncryptor, generate_master_key, is_encrypted
from validator_kms.secrets_manager.base import (
    SecretAlreadyExistsError,
    SecretNotFoundError,
    SecretsManagerError,
)
from validator_kms.secrets_manager.local import LocalKeyStore


class TestLocalKeyStore:
    """Tests for plain file storage."""

    def test_set_get_has_remove(self, local_store):
        assert local_store.has("network-key") is False

        local_store.set("network-key", b"\x01\x02")
        assert local_store.has("network-key") is True
        assert local_store.get("network-key") == b"\x01\x02"

        local_store.remove("network-key")
        assert local_store.has("network-key") is False

    def test_file_layout_and_permissions(self, tmp_path):
        store = LocalKeyStore(tmp_path / "node1")
        store.set("network-key", b"k")

        path = tmp_path / "node1" / "network-key.key"
        assert path.read_bytes() == b"k"
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600

    def test_set_refuses_overwrite(self, local_store):
        local_store.set("network-key", b"first")

        with pytest.raises(SecretAlreadyExistsError):
            local_store.set("network-key", b"second")

        assert local_store.get("network-key") == b"first"

    def test_get_missing(self, local_store):
        with pytest.raises(SecretNotFoundError):
            local_store.get("network-key")

    def test_remove_missing(self, local_store):
        with pytest.raises(SecretNotFoundError):
            local_store.remove("network-key")

    def test_failed_write_leaves_nothing_behind(self, local_store, monkeypatch):
        """A write that fails midway does not block a later set."""
        def failing_fsync(fd):
            raise OSError("disk full")

        monkeypatch.setattr(os, "fsync", failing_fsync)
        with pytest.raises(OSError, match="disk full"):
            local_store.set("network-key", b"secret")

        assert local_store.has("network-key") is False
        assert list(local_store.base_dir.iterdir()) == []

        monkeypatch.undo()
        local_store.set("network-key", b"secret")
        assert local_store.get("network-key") == b"secret"

    @pytest.mark.parametrize("name", ["", "../escape", ".hidden", "a/b"])
    def test_invalid_names(self, local_store, name):
        with pytest.raises(SecretsManagerError):
            local_store.get(name)


class TestEncryptedLocalKeyStore:
    """Tests for Fernet encryption at rest."""

    def test_encrypted_on_disk(self, tmp_path):
        store = LocalKeyStore(tmp_path, encryptor=SecretEncryptor(generate_master_key()))
        store.set("network-key", b"libp2p-secret")

        raw = (tmp_path / "network-key.key").read_bytes()
        assert is_encrypted(raw)
        assert b"libp2p-secret" not in raw
        assert store.get("network-key") == b"libp2p-secret"

    def test_reads_plain_file_written_before_encryption(self, tmp_path):
        LocalKeyStore(tmp_path).set("network-key", b"plain")

        store = LocalKeyStore(tmp_path, encryptor=SecretEncryptor(generate_master_key()))
        assert store.get("network-key") == b"plain"

    def test_wrong_master_key(self, tmp_path):
        LocalKeyStore(tmp_path, encryptor=SecretEncryptor(generate_master_key())).set(
            "network-key", b"secret"
        )

        store = LocalKeyStore(tmp_path, encryptor=SecretEncryptor(generate_master_key()))
        with pytest.raises(SecretsManagerError, match="wrong master key"):
            store.get("network-key")
