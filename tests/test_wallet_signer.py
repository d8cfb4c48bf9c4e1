import asyncio

import pytest
from tonsdk.boc import begin_cell

from core.domain.enums.deployment_enums import TonNetwork
from core.services.exceptions import BroadcastError
from core.services.wallet_signer import WalletSigner
from fakes import DEPLOYER, FACTORY, OWNER, FakeWallet


def _body():
    return begin_cell().store_uint(0, 32).store_string("ping").end_cell()


def test_submit_uses_onchain_seqno_and_network_flags(chain, signer):
    chain.seqnos[DEPLOYER] = 5

    seqno = asyncio.run(signer.submit(FACTORY, _body(), 20_000_000, bounce=True))

    assert seqno == 5
    assert signer.pending_seqno == 5
    sent = chain.sent[0]
    assert sent["seqno"] == 5
    assert sent["to"] == FACTORY
    assert sent["bounce"] is True
    assert sent["test_only"] is True
    assert sent["amount"] == 20_000_000


def test_concurrent_submits_on_one_wallet_get_distinct_seqnos(chain, signer):
    async def scenario():
        return await asyncio.gather(
            signer.submit(FACTORY, _body(), 1),
            signer.submit(FACTORY, _body(), 1),
        )

    seqnos = asyncio.run(scenario())

    assert sorted(seqnos) == [0, 1]
    assert [m["seqno"] for m in chain.sent] == [0, 1]
    # the second transfer was only signed after the first one was accepted
    assert chain.sent[1]["sent_at"] >= chain.accept_delay


def test_different_wallets_do_not_wait_for_each_other(chain, clock):
    a = WalletSigner(chain, FakeWallet(DEPLOYER), network=TonNetwork.TESTNET, clock=clock)
    b = WalletSigner(chain, FakeWallet(OWNER), network=TonNetwork.TESTNET, clock=clock)

    async def scenario():
        return await asyncio.gather(a.submit(FACTORY, _body(), 1), b.submit(FACTORY, _body(), 1))

    assert asyncio.run(scenario()) == [0, 0]
    assert [m["sent_at"] for m in chain.sent] == [0.0, 0.0]


def test_wait_accepted_clears_pending_seqno(chain, signer, clock):
    async def scenario():
        seqno = await signer.submit(FACTORY, _body(), 1)
        return await signer.wait_accepted(seqno)

    res = asyncio.run(scenario())

    assert res.satisfied
    assert res.value == 1
    assert signer.pending_seqno is None
    assert clock.now() >= chain.accept_delay


def test_unaccepted_seqno_is_reused_only_after_acceptance_window(chain, signer, clock):
    chain.drop_broadcasts = True

    async def scenario():
        first = await signer.submit(FACTORY, _body(), 1)
        second = await signer.submit(FACTORY, _body(), 1)
        return first, second

    first, second = asyncio.run(scenario())

    assert first == second == 0
    assert chain.sent[1]["sent_at"] == pytest.approx(signer.acceptance_timeout)


def test_broadcast_failure_is_raised_and_not_retried(chain, signer):
    chain.fail_broadcasts = True

    with pytest.raises(BroadcastError) as exc:
        asyncio.run(signer.submit(FACTORY, _body(), 1))

    assert exc.value.seqno == 0
    assert chain.send_attempts == 1
    assert signer.pending_seqno is None


def test_from_mnemonic_requires_24_words(chain):
    with pytest.raises(ValueError):
        WalletSigner.from_mnemonic(chain, "one two three", network=TonNetwork.TESTNET)
