import json
import os
import stat

import pytest

from stake_reward.core.keys import (
    Keypair,
    b58decode,
    b58encode,
    create_keypair_file,
    create_program_address,
    find_program_address,
    is_on_curve,
    load_keypair,
    pubkey_to_bytes,
    save_keypair,
    verify_signature,
)
from stake_reward.errors import KeypairError

# RFC 8032, section 7.1, TEST 1
RFC_SEED = bytes.fromhex("9d61b19deffd5a60ba844af492ec2cc44449c5697b326919703bac031cae7f60")
RFC_PUBKEY = bytes.fromhex("d75a980182b10ab7d54bfed3c964073a0ee172f3daa62325af021a68f707511a")

PROGRAM_ID = "88gNHvxuPxaFTPELWBRYk59xCFqpjCt6MoBA1Lqk7qny"


def test_base58_known_values():
    assert b58encode(b"hello world") == "StV1DL6CwTryKyV"
    assert b58decode("StV1DL6CwTryKyV") == b"hello world"
    assert b58encode(bytes(32)) == "1" * 32
    assert b58decode("1" * 32) == bytes(32)
    assert b58encode(b"\x00\x00\x01") == "112"


def test_base58_rejects_bad_characters():
    with pytest.raises(ValueError):
        b58decode("0OIl")


def test_program_id_is_a_32_byte_key():
    assert len(pubkey_to_bytes(PROGRAM_ID)) == 32
    with pytest.raises(ValueError):
        pubkey_to_bytes("abc")


def test_keypair_matches_rfc8032_vector():
    keypair = Keypair.from_seed(RFC_SEED)
    assert keypair.public_key_bytes == RFC_PUBKEY
    assert keypair.public_key == b58encode(RFC_PUBKEY)
    assert keypair.secret_key == RFC_SEED + RFC_PUBKEY


def test_sign_and_verify():
    keypair = Keypair.generate()
    signature = keypair.sign(b"stake")
    assert len(signature) == 64
    assert verify_signature(keypair.public_key, b"stake", signature)
    assert not verify_signature(keypair.public_key, b"unstake", signature)
    assert not verify_signature(Keypair.generate().public_key, b"stake", signature)
    assert keypair.verify(b"stake", signature)
    assert not keypair.verify(b"stake", bytes(64))


def test_keypair_rejects_bad_seed_length():
    with pytest.raises(KeypairError):
        Keypair(seed=b"short")


def test_keypair_file_uses_cli_format(tmp_path):
    keypair = Keypair.from_seed(RFC_SEED)
    path = save_keypair(keypair, tmp_path / "keys" / "payer.json")

    with open(path) as f:
        values = json.load(f)
    assert values == list(RFC_SEED + RFC_PUBKEY)
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o600
    assert load_keypair(path) == keypair


def test_load_keypair_detects_mismatched_pubkey(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps(list(RFC_SEED + bytes(32))))
    with pytest.raises(KeypairError, match="does not match"):
        load_keypair(path)


def test_load_keypair_errors(tmp_path):
    with pytest.raises(KeypairError, match="not found"):
        load_keypair(tmp_path / "missing.json")

    garbage = tmp_path / "garbage.json"
    garbage.write_text("{not json")
    with pytest.raises(KeypairError):
        load_keypair(garbage)

    wrong_shape = tmp_path / "shape.json"
    wrong_shape.write_text(json.dumps({"secret": 1}))
    with pytest.raises(KeypairError):
        load_keypair(wrong_shape)


def test_create_keypair_file_is_idempotent(tmp_path):
    path = tmp_path / "payer.json"
    first, created = create_keypair_file(path)
    assert created
    second, created_again = create_keypair_file(path)
    assert not created_again
    assert first == second


def test_real_public_keys_are_on_curve():
    assert is_on_curve(RFC_PUBKEY)
    assert is_on_curve(Keypair.generate().public_key)


def test_find_program_address_is_off_curve_and_reproducible():
    address, bump = find_program_address([b"MASTER_STAKING_test_8"], PROGRAM_ID)
    assert 0 <= bump <= 255
    assert not is_on_curve(address)
    assert find_program_address([b"MASTER_STAKING_test_8"], PROGRAM_ID) == (address, bump)
    assert create_program_address([b"MASTER_STAKING_test_8", bytes([bump])], PROGRAM_ID) == address


def test_token_account_authority_address_matches_known_value():
    address, bump = find_program_address([b"TOKEN_ACCOUNT_AUTHORITY_test_8"], PROGRAM_ID)
    assert address == "H4mrL6S1vUDHn1mP3jKqGnWp9hrt7cUXKufpxf1WJCvc"
    assert bump == 251


def test_program_address_depends_on_seeds_and_program():
    a, _ = find_program_address([b"STATE_POOL"], PROGRAM_ID)
    b, _ = find_program_address([b"WALLET_POOL"], PROGRAM_ID)
    c, _ = find_program_address([b"STATE_POOL"], "11111111111111111111111111111111")
    assert len({a, b, c}) == 3


def test_program_address_seed_limits():
    with pytest.raises(ValueError, match="Seed exceeds"):
        create_program_address([b"x" * 33], PROGRAM_ID)
    with pytest.raises(ValueError, match="At most"):
        create_program_address([b"s"] * 17, PROGRAM_ID)
