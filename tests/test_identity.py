import json
import logging

import base58
import pytest
from nacl.signing import VerifyKey
from solders.keypair import Keypair

from conftest import run
from veilpay.api.logging_config import get_logger, setup_logging
from veilpay.config import program_id_from_deployment
from veilpay.errors import CapabilityUnsupported
from veilpay.wallet.identity import KeyfileIdentity, WatchOnlyIdentity, read_secret_64

KP = Keypair.from_seed(bytes([3] * 32))


@pytest.mark.parametrize(
    "raw",
    [
        json.dumps(list(bytes(KP))),
        base58.b58encode(bytes(KP)).decode(),
        base58.b58encode(bytes([3] * 32)).decode(),
    ],
)
def test_read_secret_accepts_keyfile_formats(raw):
    assert read_secret_64(raw + "\n") == bytes(KP)


def test_read_secret_rejects_wrong_length():
    with pytest.raises(ValueError):
        read_secret_64(json.dumps([1] * 40))


def test_keyfile_identity_signs_messages(tmp_path):
    path = tmp_path / "user.json"
    path.write_text(json.dumps(list(bytes(KP))))
    identity = KeyfileIdentity.from_file(path)

    assert identity.pubkey == KP.pubkey()
    assert identity.can_sign_messages
    sig = run(identity.sign_message(b"hello"))
    VerifyKey(bytes(KP.pubkey())).verify(b"hello", sig)


def test_watch_only_identity_cannot_sign():
    identity = WatchOnlyIdentity(KP.pubkey())
    assert not identity.can_sign_messages
    with pytest.raises(CapabilityUnsupported):
        run(identity.sign_message(b"hello"))


def test_program_id_from_deployment(tmp_path):
    path = tmp_path / "deployment.json"
    path.write_text(json.dumps({"programId": "Prog111", "cluster": "devnet"}))
    assert program_id_from_deployment(path) == "Prog111"
    assert program_id_from_deployment(tmp_path / "missing.json") is None
    path.write_text("[]")
    assert program_id_from_deployment(path) is None


def test_loggers_share_namespace():
    root = setup_logging("WARNING")
    assert get_logger("transfer").name == "veilpay.transfer"
    assert root.level == logging.WARNING
    setup_logging("INFO")
    assert len(root.handlers) == 1
