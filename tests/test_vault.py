import base64
import logging
import os

import pytest
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from lostfound.vault import SecretVault, parse_key


def _open(key: bytes, record: dict) -> str:
    nonce = base64.b64decode(record["nonce"])
    sealed = base64.b64decode(record["ciphertext"]) + base64.b64decode(record["tag"])
    return AESGCM(key).decrypt(nonce, sealed, None).decode("utf-8")


def test_same_value_encrypts_differently_and_both_authenticate():
    key = os.urandom(32)
    vault = SecretVault(key)
    first, second = vault.encrypt(["red keyring", "red keyring"])

    assert first["type"] == second["type"] == "aes-256-gcm"
    assert first["nonce"] != second["nonce"]
    assert first["ciphertext"] != second["ciphertext"]
    assert _open(key, first) == "red keyring"
    assert _open(key, second) == "red keyring"


def test_tampered_record_fails_authentication():
    key = os.urandom(32)
    record = SecretVault(key).encrypt_one("scratch on the lid")
    raw = bytearray(base64.b64decode(record["ciphertext"]))
    raw[0] ^= 0x01
    record["ciphertext"] = base64.b64encode(bytes(raw)).decode()
    with pytest.raises(InvalidTag):
        _open(key, record)


def test_values_are_trimmed_and_empties_dropped():
    key = os.urandom(32)
    records = SecretVault(key).encrypt(["  a  ", "", "   ", None, "b"])
    assert [_open(key, r) for r in records] == ["a", "b"]


def test_plain_mode_without_key(caplog):
    with caplog.at_level(logging.WARNING, logger="lostfound.vault"):
        vault = SecretVault.from_setting(None)
    assert not vault.enabled
    assert vault.encrypt(["one", "two"]) == [
        {"type": "plain", "value": "one"},
        {"type": "plain", "value": "two"},
    ]
    assert "SECRETS_KEY" in caplog.text


def test_malformed_key_falls_back_to_plain(caplog):
    with caplog.at_level(logging.ERROR, logger="lostfound.vault"):
        vault = SecretVault.from_setting("too-short")
    assert not vault.enabled
    assert vault.encrypt(["x"])[0]["type"] == "plain"
    assert "invalid format" in caplog.text


def test_parse_key_formats():
    key = os.urandom(32)
    assert parse_key(key.hex()) == key
    assert parse_key(key.hex().upper()) == key
    assert parse_key(base64.b64encode(key).decode()) == key
    assert parse_key("k" * 32) == b"k" * 32
    assert parse_key("  " + key.hex() + "\n") == key
    assert parse_key("") is None
    assert parse_key(base64.b64encode(os.urandom(16)).decode()) is None


def test_wrong_key_length_rejected():
    with pytest.raises(ValueError):
        SecretVault(b"short")
