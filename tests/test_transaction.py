import pytest

from matrixsdk.request import Initiator, SdkError
from matrixsdk.transaction import (
    RawTransaction,
    SignatureInfo,
    Transaction,
    TxOutput,
    in_auth_require,
)

ACCOUNT = Initiator(address="TeyyPLpp9L7QAcxHangtcHTu7HUZ6iydY")


def fake_signer(address, message):
    return SignatureInfo(public_key="pub-" + address, sign=b"sig:" + message)


def failing_signer(address, message):
    raise RuntimeError("enclave unavailable")


@pytest.mark.parametrize(
    "has_hash,sign_acc,has_err,in_auth",
    [
        (True, None, True, True),
        (False, ACCOUNT, False, True),
        (True, ACCOUNT, True, False),
    ],
)
def test_transaction_sign_cases(has_hash, sign_acc, has_err, in_auth):
    tx = Transaction(tx=RawTransaction())
    if has_hash:
        tx.digest_hash = b"haha"
    if in_auth:
        tx.tx.auth_require.append(ACCOUNT.auth_require())
    if has_err:
        with pytest.raises(SdkError):
            tx.sign(sign_acc, fake_signer)
        assert tx.tx.initiator_signs == []
    else:
        tx.sign(sign_acc, fake_signer)
        assert len(tx.tx.initiator_signs) == 1
        assert len(tx.tx.txid) == 32


def test_sign_appends_signature_and_sets_txid():
    tx = Transaction(tx=RawTransaction(auth_require=[ACCOUNT.address], initiator=ACCOUNT.address))
    tx.sign(ACCOUNT, fake_signer)
    expected = SignatureInfo(public_key="pub-" + ACCOUNT.address, sign=b"sig:" + tx.digest_hash)
    assert tx.tx.initiator_signs == [expected]
    assert tx.tx.auth_require_signs == [expected]
    assert len(tx.digest_hash) == 32


def test_digest_is_deterministic_and_ignores_signatures():
    def build():
        return Transaction(
            tx=RawTransaction(
                auth_require=[ACCOUNT.address],
                tx_outputs=[TxOutput(amount=b"\x0a", to_addr=b"bob")],
                nonce="n1",
            )
        )

    first, second = build(), build()
    second.tx.auth_require_signs.append(SignatureInfo(public_key="other", sign=b"x"))
    first.sign(ACCOUNT, fake_signer)
    second.sign(ACCOUNT, fake_signer)
    assert first.digest_hash == second.digest_hash
    assert first.tx.txid != second.tx.txid


def test_existing_digest_is_kept():
    tx = Transaction(tx=RawTransaction(auth_require=[ACCOUNT.address]), digest_hash=b"haha")
    tx.sign(ACCOUNT, fake_signer)
    assert tx.digest_hash == b"haha"
    assert tx.tx.initiator_signs[0].sign == b"sig:haha"


def test_signer_failure_raises_sign_error():
    tx = Transaction(tx=RawTransaction(auth_require=[ACCOUNT.address]))
    with pytest.raises(SdkError, match="sign error"):
        tx.sign(ACCOUNT, failing_signer)
    assert tx.tx.auth_require_signs == []


def test_sign_with_contract_account_entry():
    acc = Initiator(address="abc", contract_account="XC1234567887654321@xuper")
    tx = Transaction(tx=RawTransaction(auth_require=["XC1234567887654321@xuper/abc"]))
    tx.sign(acc, fake_signer)
    assert tx.tx.initiator_signs[0].public_key == "pub-abc"


@pytest.mark.parametrize(
    "entries,address,found",
    [
        (["abc"], "abc", True),
        (["XC1234567887654321@xuper/abc"], "abc", True),
        (["abc/def"], "abc", False),
        ([], "abc", False),
    ],
)
def test_in_auth_require(entries, address, found):
    assert in_auth_require(entries, address) is found